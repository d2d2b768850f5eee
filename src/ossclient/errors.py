"""Error definitions for ossclient.

Three families are raised by the library:

    - ``ValidationError`` subclasses: bad local input, raised before any
      request is sent.
    - ``ServiceError`` (and ``NotFound``): the service answered with a
      non-2xx status.
    - ``DecodeError``: the service answered 2xx but the body could not be
      decoded.

Transport failures (connection errors, timeouts) are the ``httpx``
exceptions and are not wrapped.
"""


class OssError(Exception):
    """Base class for all ossclient errors."""


# -- Local validation ---------------------------------------------------------


class ValidationError(OssError):
    """Invalid input detected locally.

    Attributes:
        message: Human-readable error description.
        value: The offending value, if any.
    """

    def __init__(self, message: str, value: object = None) -> None:
        super().__init__(message)
        self.message = message
        self.value = value


class InvalidBucketName(ValidationError):
    """The bucket name violates the naming rules."""

    def __init__(self, bucket: str = "") -> None:
        super().__init__(f"invalid bucket name: {bucket!r}", bucket)


class InvalidObjectKey(ValidationError):
    """The object key violates the naming rules."""

    def __init__(self, key: str = "") -> None:
        super().__init__(f"invalid object key: {key!r}", key)


class InvalidUploadId(ValidationError):
    """The multipart upload id is empty."""

    def __init__(self, upload_id: str = "") -> None:
        super().__init__("invalid upload id: [empty]", upload_id)


class InvalidPartNumber(ValidationError):
    """The part number is not within [1, 10000]."""

    def __init__(self, part_number: object = None) -> None:
        super().__init__(
            f"invalid part number: {part_number!r}, must be between 1 and 10000", part_number
        )


class InvalidBase64(ValidationError):
    """The payload is not valid base64."""

    def __init__(self, message: str = "Decoding base64 string failed") -> None:
        super().__init__(message)


class InvalidRange(ValidationError):
    """A byte range is empty, negative or malformed."""

    def __init__(self, value: object = None) -> None:
        super().__init__(f"invalid byte range: {value!r}", value)


class InvalidPosition(ValidationError):
    """An append position is negative or not an integer."""

    def __init__(self, position: object = None) -> None:
        super().__init__(f"invalid append position: {position!r}", position)


class InvalidFilePath(ValidationError):
    """A local file path cannot be used for the requested operation."""

    def __init__(self, path: object = None) -> None:
        super().__init__(f"invalid file path: {path!r}", path)


# -- Service responses ----------------------------------------------------------


class ServiceError(OssError):
    """The service returned a non-success HTTP status.

    Attributes:
        status: The HTTP status code.
        code: The OSS error code (e.g. "NoSuchKey"), empty if the response
            carried no error document.
        message: The error message from the service.
        request_id: The ``x-oss-request-id`` of the failed request.
        host_id: The ``HostId`` element of the error document.
        ec: The OSS detailed error code (``EC``).
    """

    def __init__(
        self,
        status: int,
        code: str = "",
        message: str = "",
        request_id: str = "",
        host_id: str = "",
        ec: str = "",
    ) -> None:
        detail = f"{code}: {message}" if code else message or "no error document"
        super().__init__(f"HTTP {status} {detail}")
        self.status = status
        self.code = code
        self.message = message
        self.request_id = request_id
        self.host_id = host_id
        self.ec = ec


class NotFound(ServiceError):
    """The service returned 404 (no such bucket, key or upload)."""


# -- Response decoding ----------------------------------------------------------


class DecodeError(OssError):
    """A success response body could not be decoded."""

    def __init__(self, message: str = "malformed XML response") -> None:
        super().__init__(message)
        self.message = message
