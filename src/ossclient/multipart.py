"""Multipart upload coordinator for ossclient.

Implements the OSS multipart API on top of ``Client``:

    - InitiateMultipartUpload   (POST   /{key}?uploads)
    - UploadPart                (PUT    /{key}?partNumber&uploadId)
    - UploadPartCopy            (PUT    /{key}?partNumber&uploadId + x-oss-copy-source)
    - ListParts                 (GET    /{key}?uploadId)
    - ListMultipartUploads      (GET    /?uploads)
    - CompleteMultipartUpload   (POST   /{key}?uploadId)
    - AbortMultipartUpload      (DELETE /{key}?uploadId)

The coordinator keeps no state between calls. Every operation after
``initiate`` takes the ``UploadSession`` value returned by it, so parts may
be uploaded concurrently from any number of tasks and the session (plus
the caller's parts manifest) can be persisted and resumed elsewhere.
Retries and concurrency limits are left to the caller.

Request construction is split into pure ``build_*_request`` functions so
the exact wire shape of each call can be checked without a network.
"""

from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from ossclient.errors import InvalidFilePath
from ossclient.models import (
    Base64Part,
    BufferPart,
    CallbackResponse,
    CompleteMultipartUploadOptions,
    CompleteMultipartUploadResult,
    FilePart,
    InitiateMultipartUploadOptions,
    InitiateMultipartUploadResult,
    ListMultipartUploadsOptions,
    ListMultipartUploadsResult,
    ListPartsOptions,
    ListPartsResult,
    PartSource,
    UploadPartCopyOptions,
    UploadPartCopyResult,
    UploadPartResult,
    UploadSession,
)
from ossclient.request import BytesBody, FileBody, OssRequest, RequestBody, RequestMethod
from ossclient.validation import (
    decode_base64,
    validate_bucket_name,
    validate_byte_range,
    validate_object_key,
    validate_part_number,
    validate_upload_id,
)
from ossclient.xml_utils import (
    parse_complete_multipart_upload,
    parse_copy_part_result,
    parse_initiate_multipart_upload,
    parse_list_multipart_uploads,
    parse_list_parts,
    render_complete_multipart_upload,
)

if TYPE_CHECKING:
    from ossclient.client import Client

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_session(session: UploadSession) -> None:
    """Check the bucket, key and upload id of a session.

    Raises:
        InvalidBucketName, InvalidObjectKey, InvalidUploadId
    """
    validate_bucket_name(session.bucket)
    validate_object_key(session.key)
    validate_upload_id(session.upload_id)


def _session_request(method: RequestMethod, session: UploadSession) -> OssRequest:
    return (
        OssRequest()
        .method(method)
        .bucket(session.bucket)
        .object(session.key)
        .add_query("uploadId", session.upload_id)
    )


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def build_initiate_request(
    bucket: str, key: str, options: InitiateMultipartUploadOptions | None = None
) -> OssRequest:
    validate_bucket_name(bucket)
    validate_object_key(key)

    request = (
        OssRequest()
        .method(RequestMethod.POST)
        .bucket(bucket)
        .object(key)
        .add_query("uploads")
    )
    if options is not None:
        for name, value in options.to_headers().items():
            request.add_header(name, value)
    return request


def build_upload_part_request(
    session: UploadSession, part_number: int, body: RequestBody
) -> OssRequest:
    validate_session(session)
    validate_part_number(part_number)

    return (
        _session_request(RequestMethod.PUT, session)
        .add_query("partNumber", part_number)
        .body(body)
    )


def build_upload_part_copy_request(
    session: UploadSession,
    part_number: int,
    source_key: str,
    options: UploadPartCopyOptions | None = None,
) -> OssRequest:
    """Build an UploadPartCopy request.

    The source defaults to ``source_key`` in the session's bucket; the
    copy source header is ``/{bucket}/{url-encoded key}`` with an optional
    ``?versionId=`` suffix.
    """
    validate_session(session)
    validate_part_number(part_number)
    validate_object_key(source_key)

    options = options or UploadPartCopyOptions()
    source_bucket = options.source_bucket or session.bucket
    validate_bucket_name(source_bucket)

    copy_source = f"/{source_bucket}/{urllib.parse.quote(source_key, safe='')}"
    if options.source_version_id:
        copy_source += f"?versionId={options.source_version_id}"

    request = (
        _session_request(RequestMethod.PUT, session)
        .add_query("partNumber", part_number)
        .add_header("x-oss-copy-source", copy_source)
    )
    conditional = {
        "x-oss-copy-source-range": options.copy_source_range,
        "x-oss-copy-source-if-match": options.if_match,
        "x-oss-copy-source-if-none-match": options.if_none_match,
        "x-oss-copy-source-if-modified-since": options.if_modified_since,
        "x-oss-copy-source-if-unmodified-since": options.if_unmodified_since,
    }
    for name, value in conditional.items():
        if value:
            request.add_header(name, value)
    return request


def build_list_parts_request(
    session: UploadSession, options: ListPartsOptions | None = None
) -> OssRequest:
    validate_session(session)

    request = _session_request(RequestMethod.GET, session)
    if options is not None:
        if options.max_parts is not None:
            request.add_query("max-parts", options.max_parts)
        if options.part_number_marker is not None:
            request.add_query("part-number-marker", options.part_number_marker)
        if options.encoding_type:
            request.add_query("encoding-type", options.encoding_type)
    return request


def build_list_multipart_uploads_request(
    bucket: str, options: ListMultipartUploadsOptions | None = None
) -> OssRequest:
    validate_bucket_name(bucket)

    request = OssRequest().method(RequestMethod.GET).bucket(bucket).add_query("uploads")
    if options is not None:
        query = {
            "prefix": options.prefix,
            "delimiter": options.delimiter,
            "max-uploads": options.max_uploads,
            "key-marker": options.key_marker,
            "upload-id-marker": options.upload_id_marker,
            "encoding-type": options.encoding_type,
        }
        for name, value in query.items():
            if value is not None and value != "":
                request.add_query(name, value)
    return request


def build_complete_request(
    session: UploadSession,
    parts: Iterable[tuple[int, str]],
    options: CompleteMultipartUploadOptions | None = None,
) -> OssRequest:
    """Build a CompleteMultipartUpload request.

    The manifest is rendered in the order given. With
    ``options.complete_all`` no manifest is sent and the service assembles
    every uploaded part.
    """
    validate_session(session)

    options = options or CompleteMultipartUploadOptions()
    request = _session_request(RequestMethod.POST, session)

    if options.complete_all:
        request.add_header("x-oss-complete-all", "yes")
    else:
        manifest = [(validate_part_number(number), etag) for number, etag in parts]
        payload = render_complete_multipart_upload(manifest).encode("utf-8")
        request.body(BytesBody(payload)).add_header("content-type", "application/xml")

    if options.forbid_overwrite is not None:
        request.add_header("x-oss-forbid-overwrite", str(options.forbid_overwrite).lower())
    if options.object_acl:
        request.add_header("x-oss-object-acl", options.object_acl)
    if options.encoding_type:
        request.add_query("encoding-type", options.encoding_type)
    if options.callback is not None:
        for name, value in options.callback.to_headers().items():
            request.add_header(name, value)
    return request


def build_abort_request(session: UploadSession) -> OssRequest:
    validate_session(session)
    return _session_request(RequestMethod.DELETE, session)


def part_body(source: PartSource) -> RequestBody:
    """Turn a part source into a request body, validating it locally.

    Raises:
        InvalidRange: If a file range is empty or negative.
        InvalidFilePath: If a file source does not name a regular file.
        InvalidBase64: If base64 text cannot be decoded.
    """
    if isinstance(source, FilePart):
        validate_byte_range(source.start, source.end)
        path = Path(source.path)
        if not path.is_file():
            raise InvalidFilePath(str(path))
        return FileBody(path, (source.start, source.end))
    if isinstance(source, BufferPart):
        return BytesBody(bytes(source.data))
    if isinstance(source, Base64Part):
        return BytesBody(decode_base64(source.text))
    raise TypeError(f"unsupported part source: {type(source).__name__}")


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class MultipartCoordinator:
    """Stateless multipart upload operations.

    Obtained as ``client.multipart``. A typical flow:

        result = await client.multipart.initiate(bucket, key)
        session = result.session
        etags = await asyncio.gather(*(
            client.multipart.upload_part(session, n, FilePart(path, start, end))
            for n, (start, end) in enumerate(ranges, start=1)
        ))
        await client.multipart.complete(
            session, [(n, r.etag) for n, r in enumerate(etags, start=1)]
        )
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    async def initiate(
        self, bucket: str, key: str, options: InitiateMultipartUploadOptions | None = None
    ) -> InitiateMultipartUploadResult:
        """Open a multipart upload session.

        Returns:
            The decoded result; ``result.session`` is the value to pass to
            every subsequent call.

        Raises:
            InvalidBucketName: If the bucket name is invalid.
            InvalidObjectKey: If the key is invalid.
            DecodeError: If the response carries no upload id.
        """
        request = build_initiate_request(bucket, key, options)
        _, body = await self._client.send_text(request)
        result = parse_initiate_multipart_upload(body)
        # Some deployments omit the echo; the request is authoritative.
        result.bucket = result.bucket or bucket
        result.key = result.key or key
        logger.info("Initiated multipart upload %s for %s/%s", result.upload_id, bucket, key)
        return result

    async def upload_part(
        self, session: UploadSession, part_number: int, source: PartSource
    ) -> UploadPartResult:
        """Upload one part.

        Re-uploading an existing ``part_number`` replaces it; only the ETag
        named in the completion manifest matters.

        Raises:
            ValidationError: On an invalid session, part number or source,
                before any request is sent.
        """
        request = build_upload_part_request(session, part_number, part_body(source))
        headers = await self._client.send_empty(request)
        return UploadPartResult.from_headers(headers)

    async def upload_part_from_file(
        self, session: UploadSession, part_number: int, path: Path | str, start: int, end: int
    ) -> UploadPartResult:
        """Upload bytes ``[start, end)`` of a local file as one part."""
        return await self.upload_part(session, part_number, FilePart(path, start, end))

    async def upload_part_from_buffer(
        self, session: UploadSession, part_number: int, data: bytes
    ) -> UploadPartResult:
        return await self.upload_part(session, part_number, BufferPart(data))

    async def upload_part_from_base64(
        self, session: UploadSession, part_number: int, text: str
    ) -> UploadPartResult:
        """Decode ``text`` and upload it as one part.

        Raises:
            InvalidBase64: If ``text`` is not valid base64; nothing is sent.
        """
        return await self.upload_part(session, part_number, Base64Part(text))

    async def upload_part_copy(
        self,
        session: UploadSession,
        part_number: int,
        source_key: str,
        options: UploadPartCopyOptions | None = None,
    ) -> UploadPartCopyResult:
        """Fill a part from (a range of) an existing object."""
        request = build_upload_part_copy_request(session, part_number, source_key, options)
        _, body = await self._client.send_text(request)
        return parse_copy_part_result(body)

    async def list_parts(
        self, session: UploadSession, options: ListPartsOptions | None = None
    ) -> ListPartsResult:
        """List the parts uploaded so far, ordered by part number."""
        request = build_list_parts_request(session, options)
        _, body = await self._client.send_text(request)
        return parse_list_parts(body)

    async def list_multipart_uploads(
        self, bucket: str, options: ListMultipartUploadsOptions | None = None
    ) -> ListMultipartUploadsResult:
        """List the open (initiated, not completed or aborted) uploads of a bucket."""
        request = build_list_multipart_uploads_request(bucket, options)
        _, body = await self._client.send_text(request)
        return parse_list_multipart_uploads(body)

    async def complete(
        self,
        session: UploadSession,
        parts: Iterable[tuple[int, str]] = (),
        options: CompleteMultipartUploadOptions | None = None,
    ) -> CompleteMultipartUploadResult:
        """Assemble the object from the parts named in the manifest.

        Args:
            session: The upload session.
            parts: ``(part_number, etag)`` pairs, in assembly order
                (ascending part number).
            options: Callback, overwrite protection and complete-all.

        Returns:
            ``CallbackResponse`` carrying the callback target's raw body when
            a callback is attached, otherwise the decoded
            ``CompleteMultipartUploadApiResponse``.
        """
        with_callback = options is not None and options.callback is not None
        request = build_complete_request(session, parts, options)

        headers, body = await self._client.send_text(request)
        if with_callback:
            return CallbackResponse(body)

        result = parse_complete_multipart_upload(body)
        result.hash_crc64ecma = headers.get("x-oss-hash-crc64ecma", "")
        result.version_id = headers.get("x-oss-version-id", "")
        result.request_id = headers.get("x-oss-request-id", "")
        logger.info("Completed multipart upload %s for %s/%s", session.upload_id, session.bucket, session.key)
        return result

    async def abort(self, session: UploadSession) -> None:
        """Abort the upload and discard its parts.

        A 404 (unknown upload) is raised as ``NotFound``.
        """
        request = build_abort_request(session)
        await self._client.send_empty(request)
        logger.info("Aborted multipart upload %s for %s/%s", session.upload_id, session.bucket, session.key)
