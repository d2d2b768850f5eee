"""ossclient: asyncio client for Aliyun OSS compatible object storage."""

from ossclient.callback import Callback, CallbackBodyParameter, CallbackBodyType, CallbackBuilder
from ossclient.client import ByteStream, Client
from ossclient.config import ClientConfig, config_from_env, load_config
from ossclient.errors import (
    DecodeError,
    InvalidBase64,
    InvalidBucketName,
    InvalidFilePath,
    InvalidObjectKey,
    InvalidPartNumber,
    InvalidPosition,
    InvalidRange,
    InvalidUploadId,
    NotFound,
    OssError,
    ServiceError,
    ValidationError,
)
from ossclient.logging_config import configure_logging
from ossclient.models import (
    Base64Part,
    BufferPart,
    CallbackResponse,
    CompleteMultipartUploadApiResponse,
    CompleteMultipartUploadOptions,
    FilePart,
    GetObjectOptions,
    InitiateMultipartUploadOptions,
    ListMultipartUploadsOptions,
    ListPartsOptions,
    ObjectMetadata,
    Part,
    PutObjectApiResponse,
    PutObjectOptions,
    UploadPartCopyOptions,
    UploadSession,
)
from ossclient.request import OssRequest, RequestMethod, format_byte_range

__version__ = "0.1.0"

__all__ = [
    "Base64Part",
    "BufferPart",
    "ByteStream",
    "Callback",
    "CallbackBodyParameter",
    "CallbackBodyType",
    "CallbackBuilder",
    "CallbackResponse",
    "Client",
    "ClientConfig",
    "CompleteMultipartUploadApiResponse",
    "CompleteMultipartUploadOptions",
    "DecodeError",
    "FilePart",
    "GetObjectOptions",
    "InitiateMultipartUploadOptions",
    "InvalidBase64",
    "InvalidBucketName",
    "InvalidFilePath",
    "InvalidObjectKey",
    "InvalidPartNumber",
    "InvalidPosition",
    "InvalidRange",
    "InvalidUploadId",
    "ListMultipartUploadsOptions",
    "ListPartsOptions",
    "NotFound",
    "ObjectMetadata",
    "OssError",
    "OssRequest",
    "Part",
    "PutObjectApiResponse",
    "PutObjectOptions",
    "RequestMethod",
    "ServiceError",
    "UploadPartCopyOptions",
    "UploadSession",
    "ValidationError",
    "config_from_env",
    "configure_logging",
    "format_byte_range",
    "load_config",
]
