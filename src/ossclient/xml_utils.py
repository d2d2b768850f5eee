"""OSS XML response decoding and request rendering helpers for ossclient."""

import base64
import binascii
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from xml.sax.saxutils import escape as _sax_escape

from ossclient.errors import DecodeError
from ossclient.models import (
    CompleteMultipartUploadApiResponse,
    CopyObjectResult,
    InitiateMultipartUploadResult,
    ListMultipartUploadsResult,
    ListPartsResult,
    MultipartUpload,
    Part,
    UploadPartCopyResult,
)


def _escape_xml(value: str) -> str:
    """Escape special XML characters in a string value.

    Args:
        value: The raw string to escape.

    Returns:
        The XML-safe escaped string.
    """
    return _sax_escape(str(value))


# ---------------------------------------------------------------------------
# Parsing primitives
# ---------------------------------------------------------------------------


def _parse_root(body: str | bytes, expected: str) -> tuple[ET.Element, str]:
    """Parse an XML document and check the root element name.

    Returns:
        The root element and its namespace prefix (``"{uri}"`` or ``""``).

    Raises:
        DecodeError: If the body is not well-formed or the root differs.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise DecodeError(f"malformed XML response: {exc}") from exc

    # Handle XML namespace
    ns = ""
    if root.tag.startswith("{"):
        ns = root.tag[: root.tag.index("}") + 1]

    if root.tag != f"{ns}{expected}":
        raise DecodeError(f"unexpected root element <{root.tag}>, expected <{expected}>")
    return root, ns


def _text(elem: ET.Element, ns: str, name: str, default: str = "") -> str:
    child = elem.find(f"{ns}{name}")
    if child is None or child.text is None:
        return default
    return child.text


def _required(elem: ET.Element, ns: str, name: str) -> str:
    child = elem.find(f"{ns}{name}")
    if child is None or child.text is None or not child.text.strip():
        raise DecodeError(f"missing required element <{name}>")
    return child.text


def _int(elem: ET.Element, ns: str, name: str, default: int = 0) -> int:
    raw = _text(elem, ns, name).strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise DecodeError(f"element <{name}> is not an integer: {raw!r}") from exc


def _bool(elem: ET.Element, ns: str, name: str) -> bool:
    return _text(elem, ns, name).strip().lower() == "true"


def _etag(value: str) -> str:
    return value.strip().strip('"')


# ---------------------------------------------------------------------------
# Error documents
# ---------------------------------------------------------------------------


def parse_error(body: str | bytes) -> dict[str, str]:
    """Extract the fields of an OSS ``<Error>`` document.

    Unlike the success decoders this never raises: an unparseable body
    yields an empty dict so the caller can still report the HTTP status.

    Returns:
        A dict with keys ``code``, ``message``, ``request_id``, ``host_id``
        and ``ec`` (missing elements map to "").
    """
    try:
        root, ns = _parse_root(body, "Error")
    except DecodeError:
        return {}
    return {
        "code": _text(root, ns, "Code"),
        "message": _text(root, ns, "Message"),
        "request_id": _text(root, ns, "RequestId"),
        "host_id": _text(root, ns, "HostId"),
        "ec": _text(root, ns, "EC"),
    }


def parse_error_header(value: str) -> dict[str, str]:
    """Decode the base64 ``x-oss-err`` header sent with bodiless error responses."""
    try:
        decoded = base64.b64decode(value)
    except (binascii.Error, ValueError):
        return {}
    return parse_error(decoded)


# ---------------------------------------------------------------------------
# Multipart decoders
# ---------------------------------------------------------------------------


def parse_initiate_multipart_upload(body: str | bytes) -> InitiateMultipartUploadResult:
    """Decode an InitiateMultipartUploadResult document.

    Raises:
        DecodeError: If the body is malformed or ``UploadId`` is missing.
    """
    root, ns = _parse_root(body, "InitiateMultipartUploadResult")
    return InitiateMultipartUploadResult(
        bucket=_text(root, ns, "Bucket"),
        key=_text(root, ns, "Key"),
        upload_id=_required(root, ns, "UploadId"),
    )


def parse_copy_part_result(body: str | bytes) -> UploadPartCopyResult:
    """Decode a CopyPartResult document."""
    root, ns = _parse_root(body, "CopyPartResult")
    return UploadPartCopyResult(
        etag=_etag(_required(root, ns, "ETag")),
        last_modified=_text(root, ns, "LastModified"),
    )


def parse_list_parts(body: str | bytes) -> ListPartsResult:
    """Decode a ListPartsResult document."""
    root, ns = _parse_root(body, "ListPartsResult")

    parts: list[Part] = []
    for part_elem in root.findall(f"{ns}Part"):
        parts.append(
            Part(
                part_number=_int(part_elem, ns, "PartNumber"),
                etag=_etag(_required(part_elem, ns, "ETag")),
                size=_int(part_elem, ns, "Size"),
                last_modified=_text(part_elem, ns, "LastModified"),
                hash_crc64ecma=_text(part_elem, ns, "HashCrc64ecma"),
            )
        )

    return ListPartsResult(
        bucket=_text(root, ns, "Bucket"),
        key=_text(root, ns, "Key"),
        upload_id=_text(root, ns, "UploadId"),
        part_number_marker=_int(root, ns, "PartNumberMarker"),
        next_part_number_marker=_int(root, ns, "NextPartNumberMarker"),
        max_parts=_int(root, ns, "MaxParts"),
        is_truncated=_bool(root, ns, "IsTruncated"),
        storage_class=_text(root, ns, "StorageClass"),
        parts=parts,
    )


def parse_list_multipart_uploads(body: str | bytes) -> ListMultipartUploadsResult:
    """Decode a ListMultipartUploadsResult document."""
    root, ns = _parse_root(body, "ListMultipartUploadsResult")

    uploads = [
        MultipartUpload(
            key=_text(elem, ns, "Key"),
            upload_id=_required(elem, ns, "UploadId"),
            initiated=_text(elem, ns, "Initiated"),
            storage_class=_text(elem, ns, "StorageClass"),
        )
        for elem in root.findall(f"{ns}Upload")
    ]
    common_prefixes = [
        _text(elem, ns, "Prefix") for elem in root.findall(f"{ns}CommonPrefixes")
    ]

    return ListMultipartUploadsResult(
        bucket=_text(root, ns, "Bucket"),
        key_marker=_text(root, ns, "KeyMarker"),
        upload_id_marker=_text(root, ns, "UploadIdMarker"),
        next_key_marker=_text(root, ns, "NextKeyMarker"),
        next_upload_id_marker=_text(root, ns, "NextUploadIdMarker"),
        prefix=_text(root, ns, "Prefix"),
        delimiter=_text(root, ns, "Delimiter"),
        max_uploads=_int(root, ns, "MaxUploads"),
        is_truncated=_bool(root, ns, "IsTruncated"),
        encoding_type=_text(root, ns, "EncodingType"),
        uploads=uploads,
        common_prefixes=common_prefixes,
    )


def parse_complete_multipart_upload(body: str | bytes) -> CompleteMultipartUploadApiResponse:
    """Decode a CompleteMultipartUploadResult document."""
    root, ns = _parse_root(body, "CompleteMultipartUploadResult")
    return CompleteMultipartUploadApiResponse(
        bucket=_text(root, ns, "Bucket"),
        key=_text(root, ns, "Key"),
        etag=_etag(_required(root, ns, "ETag")),
        location=_text(root, ns, "Location"),
        encoding_type=_text(root, ns, "EncodingType"),
    )


# ---------------------------------------------------------------------------
# Object decoders
# ---------------------------------------------------------------------------


def parse_copy_object_result(body: str | bytes) -> CopyObjectResult:
    """Decode a CopyObjectResult document."""
    root, ns = _parse_root(body, "CopyObjectResult")
    return CopyObjectResult(
        etag=_etag(_required(root, ns, "ETag")),
        last_modified=_text(root, ns, "LastModified"),
    )


# ---------------------------------------------------------------------------
# Request rendering
# ---------------------------------------------------------------------------


def render_complete_multipart_upload(parts: Iterable[tuple[int, str]]) -> str:
    """Render the CompleteMultipartUpload manifest.

    Parts are written in the order supplied. ETags are quoted the way the
    service reports them.

    Args:
        parts: ``(part_number, etag)`` pairs.

    Returns:
        An XML string for the CompleteMultipartUpload request body.
    """
    body = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<CompleteMultipartUpload>",
    ]
    for part_number, etag in parts:
        body.append(
            f"<Part><PartNumber>{int(part_number)}</PartNumber>"
            f'<ETag>"{_escape_xml(_etag(etag))}"</ETag></Part>'
        )
    body.append("</CompleteMultipartUpload>")
    return "\n".join(body)
