"""Single-shot object operations for ossclient.

Thin mappings of the OSS object API onto ``Client``: put (from memory,
file or base64, optionally with an upload callback), append, streamed get,
download to file, metadata probes, existence check, delete, copy, and
folder markers.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import urllib.parse
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from ossclient.errors import InvalidFilePath, NotFound
from ossclient.models import (
    AppendObjectOptions,
    AppendObjectResult,
    CallbackResponse,
    CopyObjectOptions,
    CopyObjectResult,
    GetObjectMetadataOptions,
    GetObjectOptions,
    HeadObjectOptions,
    ObjectMetadata,
    PutObjectApiResponse,
    PutObjectOptions,
    PutObjectResult,
)
from ossclient.request import BytesBody, FileBody, OssRequest, RequestBody, RequestMethod
from ossclient.validation import (
    decode_base64,
    normalize_object_key,
    validate_append_position,
    validate_bucket_name,
    validate_object_key,
)
from ossclient.xml_utils import parse_copy_object_result

if TYPE_CHECKING:
    from ossclient.client import ByteStream, Client

logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _object_request(method: RequestMethod, bucket: str, key: str) -> OssRequest:
    validate_bucket_name(bucket)
    validate_object_key(key)
    return OssRequest().method(method).bucket(bucket).object(key)


def _conditional_headers(request: OssRequest, options: GetObjectOptions | HeadObjectOptions) -> None:
    conditional = {
        "if-match": options.if_match,
        "if-none-match": options.if_none_match,
        "if-modified-since": options.if_modified_since,
        "if-unmodified-since": options.if_unmodified_since,
    }
    for name, value in conditional.items():
        if value:
            request.add_header(name, value)
    if options.version_id:
        request.add_query("versionId", options.version_id)


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def build_put_object_request(
    bucket: str, key: str, body: RequestBody, options: PutObjectOptions | None = None
) -> OssRequest:
    """Build a PutObject request.

    The content type defaults to one guessed from the key's extension.
    """
    options = options or PutObjectOptions()
    request = _object_request(RequestMethod.PUT, bucket, key).body(body)

    for name, value in options.to_headers().items():
        request.add_header(name, value)
    if "content-type" not in request.headers:
        guessed, _ = mimetypes.guess_type(key)
        request.add_header("content-type", guessed or _DEFAULT_CONTENT_TYPE)
    if options.callback is not None:
        for name, value in options.callback.to_headers().items():
            request.add_header(name, value)
    return request


def build_append_object_request(
    bucket: str,
    key: str,
    body: RequestBody,
    position: int,
    options: AppendObjectOptions | None = None,
) -> OssRequest:
    validate_append_position(position)

    request = (
        _object_request(RequestMethod.POST, bucket, key)
        .add_query("append")
        .add_query("position", position)
        .body(body)
    )
    if options is not None:
        for name, value in options.to_headers().items():
            request.add_header(name, value)
    if "content-type" not in request.headers:
        guessed, _ = mimetypes.guess_type(key)
        request.add_header("content-type", guessed or _DEFAULT_CONTENT_TYPE)
    return request


def build_get_object_request(
    bucket: str, key: str, options: GetObjectOptions | None = None
) -> OssRequest:
    request = _object_request(RequestMethod.GET, bucket, key)
    if options is not None:
        if options.range:
            request.add_header("range", options.range)
        _conditional_headers(request, options)
    return request


def build_copy_object_request(
    source_bucket: str,
    source_key: str,
    dest_bucket: str,
    dest_key: str,
    options: CopyObjectOptions | None = None,
) -> OssRequest:
    validate_bucket_name(source_bucket)
    validate_object_key(source_key)
    options = options or CopyObjectOptions()

    copy_source = f"/{source_bucket}/{urllib.parse.quote(source_key, safe='')}"
    if options.source_version_id:
        copy_source += f"?versionId={options.source_version_id}"

    request = _object_request(RequestMethod.PUT, dest_bucket, dest_key).add_header(
        "x-oss-copy-source", copy_source
    )
    for name, value in options.to_headers().items():
        request.add_header(name, value)
    if options.metadata_directive:
        request.add_header("x-oss-metadata-directive", options.metadata_directive)
    if options.tagging_directive:
        request.add_header("x-oss-tagging-directive", options.tagging_directive)
    return request


def _folder_key(key: str) -> str:
    return normalize_object_key(key) + "/"


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class ObjectOperations:
    """Object calls, obtained as ``client.objects``."""

    def __init__(self, client: Client) -> None:
        self._client = client

    # -- Put ------------------------------------------------------------------

    async def _put(
        self, bucket: str, key: str, body: RequestBody, options: PutObjectOptions | None
    ) -> PutObjectResult:
        with_callback = options is not None and options.callback is not None
        request = build_put_object_request(bucket, normalize_object_key(key), body, options)

        headers, text = await self._client.send_text(request)
        if with_callback:
            return CallbackResponse(text)
        return PutObjectApiResponse.from_headers(headers)

    async def put_object_from_buffer(
        self, bucket: str, key: str, data: bytes, options: PutObjectOptions | None = None
    ) -> PutObjectResult:
        """Create an object from in-memory bytes.

        Leading and trailing ``/`` are stripped from ``key``.

        Returns:
            ``CallbackResponse`` when ``options.callback`` is set, otherwise
            ``PutObjectApiResponse``.
        """
        return await self._put(bucket, key, BytesBody(bytes(data)), options)

    async def put_object_from_file(
        self, bucket: str, key: str, path: Path | str, options: PutObjectOptions | None = None
    ) -> PutObjectResult:
        """Create an object from a local file, streamed in chunks.

        Raises:
            InvalidFilePath: If ``path`` is not a regular file.
        """
        path = Path(path)
        if not path.is_file():
            raise InvalidFilePath(str(path))
        return await self._put(bucket, key, FileBody(path), options)

    async def put_object_from_base64(
        self, bucket: str, key: str, text: str, options: PutObjectOptions | None = None
    ) -> PutObjectResult:
        """Decode ``text`` and store it.

        Raises:
            InvalidBase64: If ``text`` is not valid base64; nothing is sent.
        """
        return await self._put(bucket, key, BytesBody(decode_base64(text)), options)

    # -- Append ---------------------------------------------------------------

    async def append_object_from_buffer(
        self,
        bucket: str,
        key: str,
        data: bytes,
        position: int,
        options: AppendObjectOptions | None = None,
    ) -> AppendObjectResult:
        """Append bytes to an appendable object at ``position``.

        ``position`` must equal the current object length (0 creates it).
        """
        request = build_append_object_request(bucket, key, BytesBody(bytes(data)), position, options)
        headers = await self._client.send_empty(request)
        return AppendObjectResult.from_headers(headers)

    async def append_object_from_file(
        self,
        bucket: str,
        key: str,
        path: Path | str,
        position: int,
        options: AppendObjectOptions | None = None,
    ) -> AppendObjectResult:
        path = Path(path)
        if not path.is_file():
            raise InvalidFilePath(str(path))
        request = build_append_object_request(bucket, key, FileBody(path), position, options)
        headers = await self._client.send_empty(request)
        return AppendObjectResult.from_headers(headers)

    async def append_object_from_base64(
        self,
        bucket: str,
        key: str,
        text: str,
        position: int,
        options: AppendObjectOptions | None = None,
    ) -> AppendObjectResult:
        """Decode ``text`` and append it at ``position``.

        Raises:
            InvalidBase64: If ``text`` is not valid base64; nothing is sent.
        """
        return await self.append_object_from_buffer(bucket, key, decode_base64(text), position, options)

    # -- Get ------------------------------------------------------------------

    async def get_object(
        self, bucket: str, key: str, options: GetObjectOptions | None = None
    ) -> tuple[ObjectMetadata, ByteStream]:
        """Start a streamed download.

        With ``options.range`` set (e.g. ``bytes=0-499``) only that span
        is returned.

        Returns:
            The object metadata and a ``ByteStream`` the caller must consume
            or close.
        """
        request = build_get_object_request(bucket, key, options)
        headers, stream = await self._client.send_stream(request)
        return ObjectMetadata.from_headers(headers), stream

    async def get_object_to_file(
        self,
        bucket: str,
        key: str,
        path: Path | str,
        options: GetObjectOptions | None = None,
    ) -> ObjectMetadata:
        """Download an object into a local file.

        Parent directories are created as needed. Data is written to a
        temporary sibling and renamed into place once the download has
        finished.
        """
        path = Path(path)
        if path.is_dir():
            raise InvalidFilePath(str(path))
        path.parent.mkdir(parents=True, exist_ok=True)

        metadata, stream = await self.get_object(bucket, key, options)

        tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex[:8]}")
        try:
            async with stream:
                with open(tmp, "wb") as f:
                    async for chunk in stream:
                        f.write(chunk)
            os.replace(tmp, path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        logger.debug("Downloaded %s/%s to %s", bucket, key, path)
        return metadata

    # -- Metadata -------------------------------------------------------------

    async def get_object_metadata(
        self, bucket: str, key: str, options: GetObjectMetadataOptions | None = None
    ) -> ObjectMetadata:
        """Fetch the basic metadata (ETag, size, last modified) of an object."""
        request = _object_request(RequestMethod.HEAD, bucket, key).add_query("objectMeta")
        if options is not None and options.version_id:
            request.add_query("versionId", options.version_id)
        headers = await self._client.send_empty(request)
        return ObjectMetadata.from_headers(headers)

    async def exists(self, bucket: str, key: str) -> bool:
        """Return whether the object exists.

        Only a 404 is treated as absence; any other failure propagates.
        """
        try:
            await self.get_object_metadata(bucket, key)
        except NotFound:
            return False
        return True

    async def head_object(
        self, bucket: str, key: str, options: HeadObjectOptions | None = None
    ) -> ObjectMetadata:
        """Fetch all headers of an object, including user metadata."""
        request = _object_request(RequestMethod.HEAD, bucket, key)
        if options is not None:
            _conditional_headers(request, options)
        headers = await self._client.send_empty(request)
        return ObjectMetadata.from_headers(headers)

    # -- Delete / copy --------------------------------------------------------

    async def delete_object(self, bucket: str, key: str, version_id: str | None = None) -> None:
        request = _object_request(RequestMethod.DELETE, bucket, key)
        if version_id:
            request.add_query("versionId", version_id)
        await self._client.send_empty(request)

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        dest_bucket: str,
        dest_key: str,
        options: CopyObjectOptions | None = None,
    ) -> CopyObjectResult:
        """Copy an object (up to 1 GB) server-side."""
        request = build_copy_object_request(source_bucket, source_key, dest_bucket, dest_key, options)
        _, body = await self._client.send_text(request)
        return parse_copy_object_result(body)

    # -- Folders --------------------------------------------------------------

    async def create_folder(self, bucket: str, key: str) -> None:
        """Create an empty ``key/`` marker object."""
        request = _object_request(RequestMethod.PUT, bucket, _folder_key(key)).body(BytesBody(b""))
        await self._client.send_empty(request)

    async def delete_folder(self, bucket: str, key: str) -> None:
        """Delete the ``key/`` marker object (not the objects under it)."""
        request = _object_request(RequestMethod.DELETE, bucket, _folder_key(key))
        await self._client.send_empty(request)
