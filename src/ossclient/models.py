"""Data model types for ossclient.

These dataclasses represent multipart sessions, request options and the
typed results decoded from OSS responses (XML bodies or headers).
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from ossclient.callback import Callback

# ---------------------------------------------------------------------------
# Multipart sessions and part sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadSession:
    """An open multipart upload, threaded by the caller through every call.

    The client keeps no other record of the session; persisting it (and
    the parts manifest) for crash recovery is up to the caller.

    Attributes:
        bucket: The bucket name.
        key: The destination object key.
        upload_id: The service-issued upload identifier.
    """

    bucket: str
    key: str
    upload_id: str


@dataclass(frozen=True)
class FilePart:
    """Part data read from the half-open byte range ``[start, end)`` of a file."""

    path: Path | str
    start: int
    end: int


@dataclass(frozen=True)
class BufferPart:
    """Part data held in memory."""

    data: bytes


@dataclass(frozen=True)
class Base64Part:
    """Part data given as standard base64 text, decoded before sending."""

    text: str


PartSource = FilePart | BufferPart | Base64Part


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


def _encode_tags(tags: dict[str, str]) -> str:
    return "&".join(
        f"{urllib.parse.quote(k, safe='')}={urllib.parse.quote(v, safe='')}"
        for k, v in tags.items()
    )


@dataclass
class ObjectHeaderOptions:
    """Standard object headers shared by put, append and initiate.

    Attributes:
        content_type: MIME type of the final object.
        cache_control: Cache-Control header value.
        content_disposition: Content-Disposition header value.
        content_encoding: Content-Encoding header value.
        expires: Expires header value.
        forbid_overwrite: Sent as ``x-oss-forbid-overwrite`` when set.
        server_side_encryption: ``AES256``, ``KMS`` or ``SM4``.
        server_side_data_encryption: Data encryption algorithm for KMS.
        server_side_encryption_key_id: KMS key id.
        storage_class: ``Standard``, ``IA``, ``Archive``...
        object_acl: ``private``, ``public-read``...
        metadata: User metadata, sent as ``x-oss-meta-*``.
        tags: Object tags, sent as ``x-oss-tagging``.
    """

    content_type: str | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    expires: str | None = None
    forbid_overwrite: bool | None = None
    server_side_encryption: str | None = None
    server_side_data_encryption: str | None = None
    server_side_encryption_key_id: str | None = None
    storage_class: str | None = None
    object_acl: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)

    def to_headers(self) -> dict[str, str]:
        """Render the options as request headers (unset options are omitted)."""
        pairs = {
            "content-type": self.content_type,
            "cache-control": self.cache_control,
            "content-disposition": self.content_disposition,
            "content-encoding": self.content_encoding,
            "expires": self.expires,
            "x-oss-server-side-encryption": self.server_side_encryption,
            "x-oss-server-side-data-encryption": self.server_side_data_encryption,
            "x-oss-server-side-encryption-key-id": self.server_side_encryption_key_id,
            "x-oss-storage-class": self.storage_class,
            "x-oss-object-acl": self.object_acl,
        }
        headers = {k: v for k, v in pairs.items() if v}
        if self.forbid_overwrite is not None:
            headers["x-oss-forbid-overwrite"] = str(self.forbid_overwrite).lower()
        for name, value in self.metadata.items():
            headers[f"x-oss-meta-{name.lower()}"] = value
        if self.tags:
            headers["x-oss-tagging"] = _encode_tags(self.tags)
        return headers


# ---------------------------------------------------------------------------
# Multipart options
# ---------------------------------------------------------------------------


@dataclass
class InitiateMultipartUploadOptions(ObjectHeaderOptions):
    """Options for InitiateMultipartUpload."""


@dataclass
class ListPartsOptions:
    """Pagination controls for ListParts."""

    max_parts: int | None = None
    part_number_marker: int | None = None
    encoding_type: str | None = None


@dataclass
class ListMultipartUploadsOptions:
    """Filters and pagination controls for ListMultipartUploads."""

    prefix: str | None = None
    delimiter: str | None = None
    max_uploads: int | None = None
    key_marker: str | None = None
    upload_id_marker: str | None = None
    encoding_type: str | None = None


@dataclass
class UploadPartCopyOptions:
    """Options for UploadPartCopy.

    Attributes:
        source_bucket: Bucket of the source object; defaults to the
            destination bucket.
        source_version_id: Version of the source object.
        copy_source_range: Inclusive range, ``bytes=start-end`` or
            ``bytes=start-`` (see ``ossclient.request.format_byte_range``).
        if_match: Copy only if the source ETag matches.
        if_none_match: Copy only if the source ETag differs.
        if_modified_since: Copy only if modified since this HTTP date.
        if_unmodified_since: Copy only if not modified since this HTTP date.
    """

    source_bucket: str | None = None
    source_version_id: str | None = None
    copy_source_range: str | None = None
    if_match: str | None = None
    if_none_match: str | None = None
    if_modified_since: str | None = None
    if_unmodified_since: str | None = None


@dataclass
class CompleteMultipartUploadOptions:
    """Options for CompleteMultipartUpload.

    Attributes:
        callback: When set, the service POSTs to the callback URL and the
            result is the callback target's response body.
        forbid_overwrite: Sent as ``x-oss-forbid-overwrite`` when set.
        complete_all: Complete with every uploaded part
            (``x-oss-complete-all: yes``); no manifest is sent.
        object_acl: ACL of the assembled object.
        encoding_type: ``url`` to receive URL-encoded keys in the result.
    """

    callback: Callback | None = None
    forbid_overwrite: bool | None = None
    complete_all: bool = False
    object_acl: str | None = None
    encoding_type: str | None = None


# ---------------------------------------------------------------------------
# Multipart results
# ---------------------------------------------------------------------------


@dataclass
class InitiateMultipartUploadResult:
    """Decoded InitiateMultipartUploadResult."""

    bucket: str
    key: str
    upload_id: str

    @property
    def session(self) -> UploadSession:
        """The session value to thread through subsequent calls."""
        return UploadSession(self.bucket, self.key, self.upload_id)


@dataclass
class UploadPartResult:
    """Header-only result of UploadPart."""

    etag: str
    content_md5: str = ""
    hash_crc64ecma: str = ""
    request_id: str = ""

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> UploadPartResult:
        return cls(
            etag=_unquote_etag(headers.get("etag", "")),
            content_md5=headers.get("content-md5", ""),
            hash_crc64ecma=headers.get("x-oss-hash-crc64ecma", ""),
            request_id=headers.get("x-oss-request-id", ""),
        )


@dataclass
class UploadPartCopyResult:
    """Decoded CopyPartResult."""

    etag: str
    last_modified: str = ""


@dataclass
class Part:
    """One uploaded part as reported by ListParts."""

    part_number: int
    etag: str
    size: int = 0
    last_modified: str = ""
    hash_crc64ecma: str = ""


@dataclass
class ListPartsResult:
    """Decoded ListPartsResult."""

    bucket: str
    key: str
    upload_id: str
    part_number_marker: int = 0
    next_part_number_marker: int = 0
    max_parts: int = 0
    is_truncated: bool = False
    storage_class: str = ""
    parts: list[Part] = field(default_factory=list)


@dataclass
class MultipartUpload:
    """One open upload as reported by ListMultipartUploads."""

    key: str
    upload_id: str
    initiated: str = ""
    storage_class: str = ""


@dataclass
class ListMultipartUploadsResult:
    """Decoded ListMultipartUploadsResult."""

    bucket: str
    key_marker: str = ""
    upload_id_marker: str = ""
    next_key_marker: str = ""
    next_upload_id_marker: str = ""
    prefix: str = ""
    delimiter: str = ""
    max_uploads: int = 0
    is_truncated: bool = False
    encoding_type: str = ""
    uploads: list[MultipartUpload] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)


@dataclass
class CompleteMultipartUploadApiResponse:
    """Decoded CompleteMultipartUploadResult (no callback attached)."""

    bucket: str
    key: str
    etag: str
    location: str = ""
    encoding_type: str = ""
    hash_crc64ecma: str = ""
    version_id: str = ""
    request_id: str = ""


@dataclass
class CallbackResponse:
    """Raw response body of the callback target, passed through unparsed."""

    body: str


CompleteMultipartUploadResult = CompleteMultipartUploadApiResponse | CallbackResponse


# ---------------------------------------------------------------------------
# Object options and results
# ---------------------------------------------------------------------------


@dataclass
class PutObjectOptions(ObjectHeaderOptions):
    """Options for PutObject.

    Attributes:
        callback: When set, the result is the callback target's response.
    """

    callback: Callback | None = None


@dataclass
class AppendObjectOptions(ObjectHeaderOptions):
    """Options for AppendObject."""


@dataclass
class GetObjectOptions:
    """Options for GetObject.

    Attributes:
        range: Inclusive range header, e.g. ``bytes=0-499``.
        version_id: Object version to read.
        if_match: Read only if the ETag matches.
        if_none_match: Read only if the ETag differs.
        if_modified_since: Read only if modified since this HTTP date.
        if_unmodified_since: Read only if not modified since this HTTP date.
    """

    range: str | None = None
    version_id: str | None = None
    if_match: str | None = None
    if_none_match: str | None = None
    if_modified_since: str | None = None
    if_unmodified_since: str | None = None


@dataclass
class HeadObjectOptions:
    """Conditional options for HeadObject."""

    version_id: str | None = None
    if_match: str | None = None
    if_none_match: str | None = None
    if_modified_since: str | None = None
    if_unmodified_since: str | None = None


@dataclass
class GetObjectMetadataOptions:
    """Options for GetObjectMeta."""

    version_id: str | None = None


@dataclass
class CopyObjectOptions(ObjectHeaderOptions):
    """Options for CopyObject.

    Attributes:
        metadata_directive: ``COPY`` or ``REPLACE``.
        tagging_directive: ``Copy`` or ``Replace``.
        source_version_id: Version of the source object.
    """

    metadata_directive: str | None = None
    tagging_directive: str | None = None
    source_version_id: str | None = None


@dataclass
class PutObjectApiResponse:
    """Header-only result of PutObject (no callback attached)."""

    etag: str = ""
    content_md5: str = ""
    hash_crc64ecma: str = ""
    version_id: str = ""
    request_id: str = ""

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> PutObjectApiResponse:
        return cls(
            etag=_unquote_etag(headers.get("etag", "")),
            content_md5=headers.get("content-md5", ""),
            hash_crc64ecma=headers.get("x-oss-hash-crc64ecma", ""),
            version_id=headers.get("x-oss-version-id", ""),
            request_id=headers.get("x-oss-request-id", ""),
        )


PutObjectResult = PutObjectApiResponse | CallbackResponse


@dataclass
class AppendObjectResult:
    """Header-only result of AppendObject."""

    next_append_position: int = 0
    hash_crc64ecma: str = ""
    request_id: str = ""

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> AppendObjectResult:
        return cls(
            next_append_position=int(headers.get("x-oss-next-append-position", "0") or 0),
            hash_crc64ecma=headers.get("x-oss-hash-crc64ecma", ""),
            request_id=headers.get("x-oss-request-id", ""),
        )


@dataclass
class CopyObjectResult:
    """Decoded CopyObjectResult."""

    etag: str
    last_modified: str = ""


@dataclass
class ObjectMetadata:
    """Object metadata decoded from response headers.

    Attributes:
        content_length: Size in bytes of the object (or of the returned range).
        etag: ETag without surrounding quotes.
        last_modified: Last-Modified header value.
        content_type: MIME type.
        hash_crc64ecma: CRC-64/ECMA checksum.
        content_md5: Base64 MD5, when the service reports it.
        version_id: Version id, for versioned buckets.
        object_type: ``Normal``, ``Appendable`` or ``Multipart``.
        storage_class: Storage class.
        next_append_position: For appendable objects.
        request_id: ``x-oss-request-id`` of the response.
        metadata: User metadata (``x-oss-meta-*`` with the prefix removed).
    """

    content_length: int = 0
    etag: str = ""
    last_modified: str = ""
    content_type: str = ""
    hash_crc64ecma: str = ""
    content_md5: str = ""
    version_id: str = ""
    object_type: str = ""
    storage_class: str = ""
    next_append_position: int | None = None
    request_id: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> ObjectMetadata:
        meta: dict[str, str] = {}
        for name, value in headers.items():
            lower_name = name.lower()
            if lower_name.startswith("x-oss-meta-"):
                meta[lower_name[len("x-oss-meta-"):]] = value

        next_position = headers.get("x-oss-next-append-position")
        return cls(
            content_length=int(headers.get("content-length", "0") or 0),
            etag=_unquote_etag(headers.get("etag", "")),
            last_modified=headers.get("last-modified", ""),
            content_type=headers.get("content-type", ""),
            hash_crc64ecma=headers.get("x-oss-hash-crc64ecma", ""),
            content_md5=headers.get("content-md5", ""),
            version_id=headers.get("x-oss-version-id", ""),
            object_type=headers.get("x-oss-object-type", ""),
            storage_class=headers.get("x-oss-storage-class", ""),
            next_append_position=int(next_position) if next_position else None,
            request_id=headers.get("x-oss-request-id", ""),
            metadata=meta,
        )


def _unquote_etag(etag: str) -> str:
    """Strip the surrounding double quotes OSS puts around ETags."""
    return etag.strip().strip('"')
