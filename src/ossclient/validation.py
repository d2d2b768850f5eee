"""Input validation helpers for ossclient.

These functions enforce OSS naming and parameter rules *independently* of
request construction, so they can be unit-tested without building or
sending a request.

Each function raises an appropriate ``ValidationError`` subclass on invalid
input.
"""

import base64
import binascii
import re

from ossclient.errors import (
    InvalidBase64,
    InvalidBucketName,
    InvalidObjectKey,
    InvalidPartNumber,
    InvalidPosition,
    InvalidRange,
    InvalidUploadId,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# OSS bucket naming rules:
#   - 3-63 characters
#   - lowercase letters, digits and hyphens
#   - must start and end with a letter or digit
_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9\-]{1,61}[a-z0-9]$")

_MAX_KEY_BYTES = 1023
MIN_PART_NUMBER = 1
MAX_PART_NUMBER = 10000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_bucket_name(name: str) -> None:
    """Validate a bucket name against the OSS naming rules.

    Args:
        name: The candidate bucket name.

    Raises:
        InvalidBucketName: If the name violates any naming rule.
    """
    if not isinstance(name, str) or not _BUCKET_RE.match(name):
        raise InvalidBucketName(name)


def validate_object_key(key: str) -> None:
    """Validate an object key.

    The key must be 1-1023 bytes when UTF-8 encoded and must not start
    with ``/`` or ``\\``.

    Args:
        key: The object key string.

    Raises:
        InvalidObjectKey: If the key is empty, too long or starts with a
            path separator.
    """
    if not isinstance(key, str) or not key:
        raise InvalidObjectKey(key)

    if len(key.encode("utf-8")) > _MAX_KEY_BYTES:
        raise InvalidObjectKey(key)

    if key.startswith("/") or key.startswith("\\"):
        raise InvalidObjectKey(key)


def normalize_object_key(key: str) -> str:
    """Strip one leading and one trailing ``/`` from an object key."""
    if key.startswith("/"):
        key = key[1:]
    if key.endswith("/"):
        key = key[:-1]
    return key


def validate_upload_id(upload_id: str) -> None:
    """Reject an empty multipart upload id.

    Raises:
        InvalidUploadId: If the upload id is empty or not a string.
    """
    if not isinstance(upload_id, str) or not upload_id.strip():
        raise InvalidUploadId(upload_id if isinstance(upload_id, str) else "")


def validate_part_number(part_number: int) -> int:
    """Validate a multipart part number.

    Args:
        part_number: The candidate part number.

    Returns:
        The part number as an ``int``.

    Raises:
        InvalidPartNumber: If it is not an integer in [1, 10000].
    """
    if isinstance(part_number, bool) or not isinstance(part_number, int):
        raise InvalidPartNumber(part_number)
    if part_number < MIN_PART_NUMBER or part_number > MAX_PART_NUMBER:
        raise InvalidPartNumber(part_number)
    return part_number


def validate_byte_range(start: int, end: int) -> None:
    """Validate a half-open byte range ``[start, end)``.

    Only the shape of the range is checked; whether ``end`` lies within
    the source is the caller's responsibility.

    Raises:
        InvalidRange: If ``start`` is negative or ``end <= start``.
    """
    if start < 0 or end <= start:
        raise InvalidRange((start, end))


def validate_append_position(position: int) -> int:
    """Validate the offset an append writes at.

    Raises:
        InvalidPosition: If it is not a non-negative integer.
    """
    if isinstance(position, bool) or not isinstance(position, int) or position < 0:
        raise InvalidPosition(position)
    return position


def decode_base64(data: str | bytes) -> bytes:
    """Decode standard base64 strictly.

    Args:
        data: The base64 text.

    Returns:
        The decoded bytes.

    Raises:
        InvalidBase64: If the input contains characters outside the base64
            alphabet or has incorrect padding.
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidBase64() from exc
