"""Tests for single-shot object operations."""

import base64
from pathlib import Path

import pytest

from conftest import BUCKET
from ossclient.callback import CallbackBodyParameter, CallbackBodyType, CallbackBuilder
from ossclient.errors import (
    InvalidBase64,
    InvalidFilePath,
    InvalidObjectKey,
    InvalidPosition,
    NotFound,
    ServiceError,
    ValidationError,
)
from ossclient.models import (
    AppendObjectOptions,
    CallbackResponse,
    CopyObjectOptions,
    GetObjectOptions,
    PutObjectApiResponse,
    PutObjectOptions,
)
from ossclient.object import build_get_object_request, build_put_object_request
from ossclient.request import BytesBody, RequestMethod, format_byte_range


class TestPutRequest:
    """Tests for build_put_object_request()."""

    def test_content_type_guessed_from_key(self):
        request = build_put_object_request(BUCKET, "a/photo.png", BytesBody(b""))
        assert request.headers["content-type"] == "image/png"

    def test_content_type_default(self):
        request = build_put_object_request(BUCKET, "a/blob", BytesBody(b""))
        assert request.headers["content-type"] == "application/octet-stream"

    def test_explicit_options(self):
        options = PutObjectOptions(
            content_type="text/plain", storage_class="IA", object_acl="private", metadata={"a": "b"}
        )
        request = build_put_object_request(BUCKET, "a.txt", BytesBody(b""), options)
        assert request.http_method == RequestMethod.PUT
        assert request.headers["content-type"] == "text/plain"
        assert request.headers["x-oss-storage-class"] == "IA"
        assert request.headers["x-oss-object-acl"] == "private"
        assert request.headers["x-oss-meta-a"] == "b"

    def test_get_request_range_and_conditions(self):
        options = GetObjectOptions(range=format_byte_range(0, 499), if_none_match="E", version_id="v2")
        request = build_get_object_request(BUCKET, "a.txt", options)
        assert request.headers["range"] == "bytes=0-499"
        assert request.headers["if-none-match"] == "E"
        assert request.query == {"versionId": "v2"}


class TestPut:
    """Tests for the put_object_* operations."""

    async def test_put_from_buffer(self, client, fake_oss):
        result = await client.objects.put_object_from_buffer(BUCKET, "a.txt", b"hello")
        assert isinstance(result, PutObjectApiResponse)
        assert result.etag == fake_oss.objects[(BUCKET, "a.txt")].etag.strip('"')
        assert result.request_id
        assert fake_oss.objects[(BUCKET, "a.txt")].content_type == "text/plain"

    async def test_key_slashes_stripped(self, client, fake_oss):
        await client.objects.put_object_from_buffer(BUCKET, "/dir/a.txt/", b"x")
        assert (BUCKET, "dir/a.txt") in fake_oss.objects

    async def test_put_from_file(self, client, fake_oss, tmp_path: Path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"f" * 3000)
        await client.objects.put_object_from_file(BUCKET, "data.bin", path)
        assert fake_oss.objects[(BUCKET, "data.bin")].data == b"f" * 3000

    async def test_put_from_missing_file(self, client, fake_oss, tmp_path: Path):
        with pytest.raises(InvalidFilePath):
            await client.objects.put_object_from_file(BUCKET, "data.bin", tmp_path / "nope")
        assert fake_oss.requests == []

    async def test_put_from_base64(self, client, fake_oss):
        await client.objects.put_object_from_base64(BUCKET, "b.bin", base64.b64encode(b"\x00\x01").decode())
        assert fake_oss.objects[(BUCKET, "b.bin")].data == b"\x00\x01"

    async def test_put_invalid_base64_sends_nothing(self, client, fake_oss):
        with pytest.raises(InvalidBase64):
            await client.objects.put_object_from_base64(BUCKET, "b.bin", "@@not base64@@")
        assert fake_oss.requests == []

    async def test_put_with_json_callback(self, client):
        callback = (
            CallbackBuilder("https://example.com/cb")
            .body_type(CallbackBodyType.JSON)
            .body_parameter(CallbackBodyParameter.object("key"))
            .body_parameter(CallbackBodyParameter.mime_type("mime"))
            .body_parameter(CallbackBodyParameter.constant("source", "test"))
            .build()
        )
        result = await client.objects.put_object_from_buffer(
            BUCKET, "cb.json", b"{}", PutObjectOptions(callback=callback)
        )
        assert isinstance(result, CallbackResponse)
        assert result.body == '{"key":"cb.json","mime":"application/json","source":"test"}'

    async def test_put_with_user_metadata(self, client):
        await client.objects.put_object_from_buffer(
            BUCKET, "m.txt", b"x", PutObjectOptions(metadata={"project": "demo"})
        )
        metadata = await client.objects.head_object(BUCKET, "m.txt")
        assert metadata.metadata == {"project": "demo"}


class TestAppend:
    """Tests for append_object_*."""

    async def test_append_sequence(self, client, tmp_path: Path):
        first = await client.objects.append_object_from_buffer(BUCKET, "log.txt", b"line1\n", 0)
        assert first.next_append_position == 6

        path = tmp_path / "more.txt"
        path.write_bytes(b"line2\n")
        second = await client.objects.append_object_from_file(
            BUCKET, "log.txt", path, first.next_append_position, AppendObjectOptions()
        )
        assert second.next_append_position == 12

        metadata = await client.objects.head_object(BUCKET, "log.txt")
        assert metadata.object_type == "Appendable"
        assert metadata.next_append_position == 12

    async def test_wrong_position(self, client):
        await client.objects.append_object_from_buffer(BUCKET, "log.txt", b"abc", 0)
        with pytest.raises(ServiceError) as exc_info:
            await client.objects.append_object_from_buffer(BUCKET, "log.txt", b"def", 1)
        assert exc_info.value.code == "PositionNotEqualToLength"

    async def test_negative_position(self, client, fake_oss):
        with pytest.raises(InvalidPosition) as exc_info:
            await client.objects.append_object_from_buffer(BUCKET, "log.txt", b"abc", -1)
        assert isinstance(exc_info.value, ValidationError)
        assert fake_oss.requests == []

    async def test_append_from_base64(self, client, fake_oss):
        first = await client.objects.append_object_from_base64(
            BUCKET, "b64.log", base64.b64encode(b"hello ").decode(), 0
        )
        second = await client.objects.append_object_from_base64(
            BUCKET, "b64.log", base64.b64encode(b"world").decode(), first.next_append_position
        )
        assert second.next_append_position == 11
        assert fake_oss.objects[(BUCKET, "b64.log")].data == b"hello world"

    async def test_append_invalid_base64_sends_nothing(self, client, fake_oss):
        await client.objects.append_object_from_buffer(BUCKET, "b64.log", b"abc", 0)
        sent = len(fake_oss.requests)

        with pytest.raises(InvalidBase64):
            await client.objects.append_object_from_base64(BUCKET, "b64.log", "@@not base64@@", 3)
        assert len(fake_oss.requests) == sent
        assert fake_oss.objects[(BUCKET, "b64.log")].data == b"abc"


class TestGet:
    """Tests for get_object and get_object_to_file."""

    async def test_full_object(self, client):
        await client.objects.put_object_from_buffer(BUCKET, "full.bin", b"0123456789" * 300)
        metadata, stream = await client.objects.get_object(BUCKET, "full.bin")
        assert metadata.content_length == 3000
        assert await stream.read() == b"0123456789" * 300

    @pytest.mark.parametrize("size", [500, 501, 4096, 100_000])
    async def test_range_first_500_bytes(self, client, size):
        data = bytes(i % 251 for i in range(size))
        await client.objects.put_object_from_buffer(BUCKET, "ranged.bin", data)

        metadata, stream = await client.objects.get_object(
            BUCKET, "ranged.bin", GetObjectOptions(range="bytes=0-499")
        )
        body = await stream.read()
        assert len(body) == 500
        assert body == data[:500]
        assert metadata.content_length == 500

    async def test_open_range(self, client):
        await client.objects.put_object_from_buffer(BUCKET, "r.bin", b"abcdefghij")
        _, stream = await client.objects.get_object(BUCKET, "r.bin", GetObjectOptions(range=format_byte_range(7)))
        assert await stream.read() == b"hij"

    async def test_missing(self, client):
        with pytest.raises(NotFound):
            await client.objects.get_object(BUCKET, "missing.bin")

    async def test_to_file_creates_parents(self, client, tmp_path: Path):
        await client.objects.put_object_from_buffer(BUCKET, "dl.bin", b"d" * 5000)
        target = tmp_path / "nested" / "dir" / "dl.bin"

        metadata = await client.objects.get_object_to_file(BUCKET, "dl.bin", target)
        assert target.read_bytes() == b"d" * 5000
        assert metadata.content_length == 5000
        assert [p.name for p in target.parent.iterdir()] == ["dl.bin"]

    async def test_to_file_missing_object_leaves_nothing(self, client, tmp_path: Path):
        target = tmp_path / "out.bin"
        with pytest.raises(NotFound):
            await client.objects.get_object_to_file(BUCKET, "missing.bin", target)
        assert not target.exists()

    async def test_to_file_unusable_parent_sends_nothing(self, client, fake_oss, tmp_path: Path):
        await client.objects.put_object_from_buffer(BUCKET, "dl.bin", b"d")
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        sent = len(fake_oss.requests)

        with pytest.raises(OSError):
            await client.objects.get_object_to_file(BUCKET, "dl.bin", blocker / "sub" / "dl.bin")
        assert len(fake_oss.requests) == sent

    async def test_to_directory_rejected(self, client, tmp_path: Path):
        with pytest.raises(InvalidFilePath):
            await client.objects.get_object_to_file(BUCKET, "x.bin", tmp_path)


class TestMetadataAndExists:
    """Tests for get_object_metadata, head_object and exists."""

    async def test_metadata(self, client):
        await client.objects.put_object_from_buffer(BUCKET, "meta.txt", b"12345")
        metadata = await client.objects.get_object_metadata(BUCKET, "meta.txt")
        assert metadata.content_length == 5
        assert metadata.etag
        assert metadata.last_modified

    async def test_exists(self, client):
        assert await client.objects.exists(BUCKET, "e.txt") is False
        await client.objects.put_object_from_buffer(BUCKET, "e.txt", b"x")
        assert await client.objects.exists(BUCKET, "e.txt") is True

    async def test_exists_propagates_other_errors(self, client):
        with pytest.raises(InvalidObjectKey):
            await client.objects.exists(BUCKET, "")

    async def test_head_missing_raises(self, client):
        with pytest.raises(NotFound):
            await client.objects.head_object(BUCKET, "nope.txt")


class TestDeleteCopyFolders:
    """Tests for delete_object, copy_object and folder markers."""

    async def test_delete(self, client):
        await client.objects.put_object_from_buffer(BUCKET, "d.txt", b"x")
        await client.objects.delete_object(BUCKET, "d.txt")
        assert await client.objects.exists(BUCKET, "d.txt") is False

    async def test_delete_missing_is_ok(self, client):
        await client.objects.delete_object(BUCKET, "never-existed.txt")

    async def test_copy(self, client, fake_oss):
        await client.objects.put_object_from_buffer(BUCKET, "src.txt", b"copy me")
        result = await client.objects.copy_object(
            BUCKET, "src.txt", BUCKET, "dst.txt", CopyObjectOptions(metadata_directive="COPY")
        )
        assert result.etag == fake_oss.objects[(BUCKET, "dst.txt")].etag.strip('"')
        assert fake_oss.objects[(BUCKET, "dst.txt")].data == b"copy me"

    async def test_create_and_delete_folder(self, client, fake_oss):
        await client.objects.create_folder(BUCKET, "/photos/2025")
        assert (BUCKET, "photos/2025/") in fake_oss.objects
        assert fake_oss.objects[(BUCKET, "photos/2025/")].data == b""

        await client.objects.delete_folder(BUCKET, "photos/2025/")
        assert (BUCKET, "photos/2025/") not in fake_oss.objects
