"""Request model for ossclient.

An ``OssRequest`` describes one HTTP call before it is signed: method,
target bucket and object key, headers, query parameters and exactly one
body variant. Setters return the builder itself so requests can be built
fluently; none of them validate. Validation lives in
``ossclient.validation`` and is applied by the operations.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import httpx

# Streaming chunk size for file bodies: 64 KB
_CHUNK_SIZE = 64 * 1024


class RequestMethod(str, Enum):
    """HTTP methods used by the OSS REST API."""

    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    HEAD = "HEAD"


@dataclass(frozen=True)
class EmptyBody:
    """No request body."""


@dataclass(frozen=True)
class BytesBody:
    """An in-memory request body."""

    data: bytes


@dataclass(frozen=True)
class FileBody:
    """A request body read from a local file.

    Attributes:
        path: The file to read.
        range: Optional half-open byte range ``(start, end)``. When set,
            only bytes in ``[start, end)`` are sent.
    """

    path: Path
    range: tuple[int, int] | None = None

    def length(self) -> int:
        """Number of bytes this body will send."""
        if self.range is not None:
            start, end = self.range
            return end - start
        return os.path.getsize(self.path)

    async def iter_chunks(self, chunk_size: int = _CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the file contents in chunks, never reading past ``end``."""
        if self.range is not None:
            offset, end = self.range
            remaining: int | None = end - offset
        else:
            offset, remaining = 0, None

        with open(self.path, "rb") as f:
            if offset > 0:
                f.seek(offset)

            while True:
                if remaining is not None:
                    to_read = min(chunk_size, remaining)
                    if to_read <= 0:
                        break
                else:
                    to_read = chunk_size

                chunk = f.read(to_read)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk


RequestBody = EmptyBody | BytesBody | FileBody


def format_byte_range(start: int, end: int | None = None) -> str:
    """Render an inclusive HTTP byte range: ``bytes=start-end`` or ``bytes=start-``."""
    if end is None:
        return f"bytes={start}-"
    return f"bytes={start}-{end}"


class OssRequest:
    """Fluent, mutable-until-sent description of an OSS HTTP call.

    Headers are case-insensitive and ``add_header`` replaces an existing
    value (last write wins). Query parameters are kept in a plain dict;
    an empty value renders as a bare key (``?uploads``).

    Example:
        request = (
            OssRequest()
            .method(RequestMethod.POST)
            .bucket("my-bucket")
            .object("videos/a.mp4")
            .add_query("uploads", "")
        )
    """

    def __init__(self) -> None:
        self.http_method: RequestMethod = RequestMethod.GET
        self.bucket_name: str = ""
        self.object_key: str = ""
        self.headers: httpx.Headers = httpx.Headers()
        self.query: dict[str, str] = {}
        self.request_body: RequestBody = EmptyBody()

    def method(self, method: RequestMethod) -> OssRequest:
        self.http_method = method
        return self

    def bucket(self, bucket: str) -> OssRequest:
        self.bucket_name = bucket
        return self

    def object(self, key: str) -> OssRequest:
        self.object_key = key
        return self

    def add_header(self, name: str, value: object) -> OssRequest:
        self.headers[name] = str(value)
        return self

    def add_query(self, name: str, value: object = "") -> OssRequest:
        self.query[name] = str(value)
        return self

    def body(self, body: RequestBody) -> OssRequest:
        self.request_body = body
        return self

    def content_length(self, length: int) -> OssRequest:
        return self.add_header("content-length", length)

    def body_length(self) -> int:
        """Number of bytes the attached body will send."""
        body = self.request_body
        if isinstance(body, BytesBody):
            return len(body.data)
        if isinstance(body, FileBody):
            return body.length()
        return 0

    def __repr__(self) -> str:
        return (
            f"OssRequest({self.http_method.value} bucket={self.bucket_name!r} "
            f"key={self.object_key!r} query={self.query!r})"
        )
