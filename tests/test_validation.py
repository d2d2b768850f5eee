"""Tests for ossclient input validation functions."""

import base64

import pytest

from ossclient.errors import (
    InvalidBase64,
    InvalidBucketName,
    InvalidObjectKey,
    InvalidPartNumber,
    InvalidPosition,
    InvalidRange,
    InvalidUploadId,
    ValidationError,
)
from ossclient.validation import (
    decode_base64,
    normalize_object_key,
    validate_append_position,
    validate_bucket_name,
    validate_byte_range,
    validate_object_key,
    validate_part_number,
    validate_upload_id,
)


class TestValidateBucketName:
    """Tests for validate_bucket_name()."""

    # -- Valid names ----------------------------------------------------------

    def test_valid_simple(self):
        validate_bucket_name("my-bucket")

    def test_valid_three_chars(self):
        """Minimum length (3 chars) is accepted."""
        validate_bucket_name("abc")

    def test_valid_63_chars(self):
        """Maximum length (63 chars) is accepted."""
        validate_bucket_name("a" * 63)

    def test_valid_all_digits(self):
        validate_bucket_name("123456")

    # -- Invalid names --------------------------------------------------------

    def test_empty(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("")

    def test_too_short(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("ab")

    def test_too_long(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("a" * 64)

    def test_uppercase(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("MyBucket")

    def test_dots_rejected(self):
        """OSS bucket names do not allow dots."""
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("my.bucket")

    def test_starts_with_hyphen(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("-my-bucket")

    def test_ends_with_hyphen(self):
        with pytest.raises(InvalidBucketName):
            validate_bucket_name("my-bucket-")

    def test_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_bucket_name("Bad_Name")
        assert exc_info.value.value == "Bad_Name"


class TestValidateObjectKey:
    """Tests for validate_object_key() and normalize_object_key()."""

    def test_valid_nested_key(self):
        validate_object_key("videos/2025/a.mp4")

    def test_valid_unicode_key(self):
        validate_object_key("文档/报告.pdf")

    def test_valid_max_length(self):
        validate_object_key("a" * 1023)

    def test_empty(self):
        with pytest.raises(InvalidObjectKey):
            validate_object_key("")

    def test_too_long(self):
        with pytest.raises(InvalidObjectKey):
            validate_object_key("a" * 1024)

    def test_too_long_in_bytes(self):
        """The limit counts UTF-8 bytes, not characters."""
        with pytest.raises(InvalidObjectKey):
            validate_object_key("é" * 512)

    def test_leading_slash(self):
        with pytest.raises(InvalidObjectKey):
            validate_object_key("/a.txt")

    def test_leading_backslash(self):
        with pytest.raises(InvalidObjectKey):
            validate_object_key("\\a.txt")

    def test_normalize_strips_one_slash_each_side(self):
        assert normalize_object_key("/a/b/") == "a/b"
        assert normalize_object_key("a/b") == "a/b"
        assert normalize_object_key("//a//") == "/a/"


class TestValidateUploadId:
    """Tests for validate_upload_id()."""

    def test_valid(self):
        validate_upload_id("0004B9895DBBB6EC98E36")

    def test_empty(self):
        with pytest.raises(InvalidUploadId):
            validate_upload_id("")

    def test_whitespace_only(self):
        with pytest.raises(InvalidUploadId):
            validate_upload_id("   ")

    def test_message(self):
        with pytest.raises(InvalidUploadId, match=r"\[empty\]"):
            validate_upload_id("")


class TestValidatePartNumber:
    """Tests for validate_part_number()."""

    @pytest.mark.parametrize("value", [1, 2, 5000, 10000])
    def test_valid(self, value):
        assert validate_part_number(value) == value

    @pytest.mark.parametrize("value", [0, -1, 10001])
    def test_out_of_range(self, value):
        with pytest.raises(InvalidPartNumber):
            validate_part_number(value)

    @pytest.mark.parametrize("value", ["1", 1.0, True, None])
    def test_not_an_int(self, value):
        with pytest.raises(InvalidPartNumber):
            validate_part_number(value)


class TestValidateByteRange:
    """Tests for validate_byte_range()."""

    def test_valid(self):
        validate_byte_range(0, 1)
        validate_byte_range(100, 5 * 1024 * 1024)

    def test_empty_range(self):
        with pytest.raises(InvalidRange):
            validate_byte_range(10, 10)

    def test_reversed_range(self):
        with pytest.raises(InvalidRange):
            validate_byte_range(10, 5)

    def test_negative_start(self):
        with pytest.raises(InvalidRange):
            validate_byte_range(-1, 5)


class TestValidateAppendPosition:
    """Tests for validate_append_position()."""

    @pytest.mark.parametrize("value", [0, 1, 2**40])
    def test_valid(self, value):
        assert validate_append_position(value) == value

    @pytest.mark.parametrize("value", [-1, "3", 1.5, True, None])
    def test_invalid(self, value):
        with pytest.raises(InvalidPosition) as exc_info:
            validate_append_position(value)
        assert isinstance(exc_info.value, ValidationError)


class TestDecodeBase64:
    """Tests for decode_base64()."""

    def test_roundtrip(self):
        data = bytes(range(256))
        assert decode_base64(base64.b64encode(data).decode()) == data

    def test_empty_string(self):
        assert decode_base64("") == b""

    def test_invalid_characters(self):
        with pytest.raises(InvalidBase64):
            decode_base64("not base64!!")

    def test_bad_padding(self):
        with pytest.raises(InvalidBase64):
            decode_base64("abc")

    def test_message(self):
        with pytest.raises(InvalidBase64, match="Decoding base64 string failed"):
            decode_base64("%%%")
