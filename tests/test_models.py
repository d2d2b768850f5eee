"""Tests for option rendering and header-decoded results."""

import httpx

from ossclient.models import (
    AppendObjectResult,
    InitiateMultipartUploadResult,
    ObjectHeaderOptions,
    ObjectMetadata,
    UploadPartResult,
    UploadSession,
)


class TestObjectHeaderOptions:
    """Tests for ObjectHeaderOptions.to_headers()."""

    def test_empty(self):
        assert ObjectHeaderOptions().to_headers() == {}

    def test_standard_headers(self):
        headers = ObjectHeaderOptions(
            content_type="text/plain",
            cache_control="no-cache",
            storage_class="IA",
            server_side_encryption="KMS",
            server_side_encryption_key_id="key-1",
        ).to_headers()
        assert headers == {
            "content-type": "text/plain",
            "cache-control": "no-cache",
            "x-oss-storage-class": "IA",
            "x-oss-server-side-encryption": "KMS",
            "x-oss-server-side-encryption-key-id": "key-1",
        }

    def test_forbid_overwrite_false_is_sent(self):
        assert ObjectHeaderOptions(forbid_overwrite=False).to_headers() == {"x-oss-forbid-overwrite": "false"}
        assert ObjectHeaderOptions(forbid_overwrite=True).to_headers() == {"x-oss-forbid-overwrite": "true"}

    def test_metadata_names_lowercased(self):
        headers = ObjectHeaderOptions(metadata={"Owner": "alice"}).to_headers()
        assert headers == {"x-oss-meta-owner": "alice"}

    def test_tags_url_encoded(self):
        headers = ObjectHeaderOptions(tags={"team": "a b", "env": "x&y"}).to_headers()
        assert headers["x-oss-tagging"] == "team=a%20b&env=x%26y"


class TestHeaderResults:
    """Tests for the from_headers() constructors."""

    def test_upload_part_result(self):
        result = UploadPartResult.from_headers(
            httpx.Headers(
                {
                    "ETag": '"ABC123"',
                    "Content-MD5": "md5==",
                    "x-oss-hash-crc64ecma": "42",
                    "x-oss-request-id": "RID",
                }
            )
        )
        assert result == UploadPartResult(etag="ABC123", content_md5="md5==", hash_crc64ecma="42", request_id="RID")

    def test_append_result(self):
        result = AppendObjectResult.from_headers(httpx.Headers({"x-oss-next-append-position": "12"}))
        assert result.next_append_position == 12
        assert result.request_id == ""

    def test_object_metadata(self):
        metadata = ObjectMetadata.from_headers(
            httpx.Headers(
                {
                    "Content-Length": "1024",
                    "ETag": '"E-2"',
                    "Content-Type": "image/png",
                    "x-oss-object-type": "Multipart",
                    "x-oss-meta-Project": "demo",
                    "x-oss-request-id": "RID",
                }
            )
        )
        assert metadata.content_length == 1024
        assert metadata.etag == "E-2"
        assert metadata.content_type == "image/png"
        assert metadata.object_type == "Multipart"
        assert metadata.metadata == {"project": "demo"}
        assert metadata.next_append_position is None

    def test_object_metadata_empty(self):
        metadata = ObjectMetadata.from_headers(httpx.Headers())
        assert metadata.content_length == 0
        assert metadata.metadata == {}


class TestInitiateResult:
    """Tests for InitiateMultipartUploadResult.session."""

    def test_session(self):
        result = InitiateMultipartUploadResult(bucket="b", key="k", upload_id="U1")
        assert result.session == UploadSession("b", "k", "U1")
