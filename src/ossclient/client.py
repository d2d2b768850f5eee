"""Transport executor for ossclient.

``Client`` owns one ``httpx.AsyncClient`` (and so one connection pool),
turns ``OssRequest`` values into signed ``httpx.Request`` objects, and
offers three response modes every operation funnels through:

    - ``send_text``: headers plus the full body decoded as text.
    - ``send_empty``: headers only, the body is discarded.
    - ``send_stream``: headers plus a ``ByteStream`` of body chunks.

Any non-2xx response becomes a ``ServiceError`` (``NotFound`` for 404).
Transport failures are the ``httpx`` exceptions and propagate unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import time
import urllib.parse
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from types import TracebackType

import httpx

from ossclient import metrics
from ossclient.auth import V4Signer
from ossclient.config import ClientConfig, config_from_env
from ossclient.errors import NotFound, ServiceError
from ossclient.multipart import MultipartCoordinator
from ossclient.object import ObjectOperations
from ossclient.request import BytesBody, FileBody, OssRequest
from ossclient.xml_utils import parse_error, parse_error_header

logger = logging.getLogger(__name__)

# Characters left unescaped in the object key part of the URL path
_KEY_SAFE = "/-_.~"

# Close tasks scheduled by dropped streams, kept alive until they finish
_pending_closes: set[asyncio.Task] = set()


class ByteStream:
    """Lazily consumed response body.

    Iterating yields the body as an ordered sequence of byte chunks. The
    underlying response (and its pooled connection) is released when the
    chunks are exhausted, when ``aclose()`` is called, when an ``async
    with`` block exits, or when the stream or an abandoned iterator is
    garbage collected.

    Example:
        metadata, stream = await client.objects.get_object(bucket, key)
        async with stream:
            async for chunk in stream:
                sink.write(chunk)
    """

    def __init__(self, response: httpx.Response, chunk_size: int) -> None:
        self._response = response
        self._chunk_size = chunk_size

    def __del__(self) -> None:
        if self._response.is_closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._response.aclose())
        _pending_closes.add(task)
        task.add_done_callback(_pending_closes.discard)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes(self._chunk_size):
                metrics.observe_received(len(chunk))
                yield chunk
        finally:
            await self._response.aclose()

    async def read(self) -> bytes:
        """Consume the remaining chunks and return them joined."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        """Release the response without consuming the rest of the body."""
        await self._response.aclose()

    @property
    def is_closed(self) -> bool:
        return self._response.is_closed

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def __aenter__(self) -> ByteStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class Client:
    """Asynchronous OSS client.

    Operations are grouped under ``client.multipart`` (the multipart
    upload coordinator) and ``client.objects`` (single-shot object calls).
    The client holds no per-upload state and is safe to share between
    concurrently running tasks.

    Args:
        config: Endpoint, credentials and HTTP settings.
        transport: Optional ``httpx`` transport, e.g. an
            ``httpx.ASGITransport`` in tests.
        clock: Optional callable returning the signing time.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._endpoint = self.config.endpoint.split("://", 1)[-1].strip("/")
        self._clock = clock
        self._signer = V4Signer(
            access_key_id=self.config.access_key_id,
            access_key_secret=self.config.access_key_secret,
            region=self.config.signing_region(),
            security_token=self.config.security_token,
            additional_headers=self.config.additional_headers,
        )
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
        )

        if self.config.metrics.enabled:
            metrics.init_metrics()

        self.multipart = MultipartCoordinator(self)
        self.objects = ObjectOperations(self)

    @classmethod
    def from_env(cls, **kwargs) -> Client:
        """Create a client configured from ``ALI_*`` environment variables.

        Logging is left untouched; call ``configure_logging`` to opt in.
        """
        return cls(config_from_env(), **kwargs)

    async def close(self) -> None:
        """Close the connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- Request preparation --------------------------------------------------

    def host_for(self, bucket: str) -> str:
        """Virtual-hosted host name: ``bucket.endpoint`` or the bare endpoint."""
        return f"{bucket}.{self._endpoint}" if bucket else self._endpoint

    def build_url(self, request: OssRequest) -> str:
        """Build the full request URL.

        Query parameters with an empty value are written as the bare name
        (``?uploads``).
        """
        path = "/" + urllib.parse.quote(request.object_key, safe=_KEY_SAFE)
        url = f"{self.config.scheme}://{self.host_for(request.bucket_name)}{path}"
        if request.query:
            query = "&".join(
                f"{urllib.parse.quote(name, safe='')}={urllib.parse.quote(value, safe='')}"
                if value
                else urllib.parse.quote(name, safe="")
                for name, value in request.query.items()
            )
            url = f"{url}?{query}"
        return url

    def prepare(self, request: OssRequest) -> httpx.Request:
        """Sign ``request`` and freeze it into an ``httpx.Request``.

        The returned request is built from copies of the headers and query,
        so later changes to ``request`` do not affect it.
        """
        headers = httpx.Headers(request.headers)
        headers["host"] = self.host_for(request.bucket_name)
        if "user-agent" not in headers:
            headers["user-agent"] = self.config.user_agent

        body = request.request_body
        content: bytes | AsyncIterator[bytes] | None = None
        if isinstance(body, BytesBody):
            content = body.data
            headers["content-length"] = str(len(body.data))
        elif isinstance(body, FileBody):
            content = body.iter_chunks(self.config.chunk_size)
            headers["content-length"] = str(body.length())

        now = self._clock() if self._clock is not None else None
        self._signer.sign(
            request.http_method.value,
            request.bucket_name,
            request.object_key,
            headers,
            dict(request.query),
            now=now,
        )

        return self._http.build_request(
            request.http_method.value,
            self.build_url(request),
            headers=headers,
            content=content,
        )

    # -- Response modes -------------------------------------------------------

    async def send_text(self, request: OssRequest) -> tuple[httpx.Headers, str]:
        """Send ``request`` and return the response headers and text body.

        Raises:
            ServiceError: On a non-2xx status (``NotFound`` for 404).
            httpx.TransportError: On connection failures and timeouts.
        """
        response = await self._send(request, stream=False)
        return response.headers, response.text

    async def send_empty(self, request: OssRequest) -> httpx.Headers:
        """Send ``request`` and return only the response headers."""
        response = await self._send(request, stream=False)
        return response.headers

    async def send_stream(self, request: OssRequest) -> tuple[httpx.Headers, ByteStream]:
        """Send ``request`` and return the headers and a lazy body stream.

        The caller must consume or close the stream; abandoning a partially
        consumed iterator releases the connection when it is finalized.
        """
        response = await self._send(request, stream=True)
        return response.headers, ByteStream(response, self.config.chunk_size)

    async def _send(self, request: OssRequest, stream: bool) -> httpx.Response:
        http_request = self.prepare(request)
        method = request.http_method.value

        start = time.monotonic()
        response = await self._http.send(http_request, stream=True)
        duration = time.monotonic() - start

        extra = {
            "method": method,
            "bucket": request.bucket_name,
            "key": request.object_key,
            "status": response.status_code,
            "duration_ms": round(duration * 1000, 2),
            "request_id": response.headers.get("x-oss-request-id", ""),
        }
        metrics.observe_request(method, response.status_code, duration, request.body_length())

        if not response.is_success:
            try:
                await response.aread()
            finally:
                await response.aclose()
            error = _error_from_response(response)
            logger.warning("%s %r failed: %s", method, request, error, extra=extra)
            raise error

        logger.debug("%s %r -> %d", method, request, response.status_code, extra=extra)

        if not stream:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            metrics.observe_received(len(body))
        return response


def _error_from_response(response: httpx.Response) -> ServiceError:
    """Map a non-2xx response to ``ServiceError`` or ``NotFound``."""
    fields: dict[str, str] = {}
    if response.content:
        fields = parse_error(response.content)
    if not fields and "x-oss-err" in response.headers:
        fields = parse_error_header(response.headers["x-oss-err"])

    error_cls = NotFound if response.status_code == 404 else ServiceError
    return error_cls(
        status=response.status_code,
        code=fields.get("code", ""),
        message=fields.get("message", ""),
        request_id=fields.get("request_id") or response.headers.get("x-oss-request-id", ""),
        host_id=fields.get("host_id", ""),
        ec=fields.get("ec") or response.headers.get("x-oss-ec", ""),
    )
