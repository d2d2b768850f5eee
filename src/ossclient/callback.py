"""Upload callback descriptor for ossclient.

A ``Callback`` asks the service to POST to a caller-supplied URL once a
put or a multipart completion succeeds, and to return that URL's response
body instead of the normal result. It is serialized into two request
headers:

    - ``x-oss-callback``: base64 of a compact JSON object carrying the URL,
      optional host and SNI flag, body template and body type.
    - ``x-oss-callback-var``: base64 of a JSON object of ``x:``-prefixed
      substitution variables (only when there are any).

Example:
    callback = (
        CallbackBuilder("https://example.com/notify")
        .body_parameter(CallbackBodyParameter.bucket("the_bucket"))
        .body_parameter(CallbackBodyParameter.object("the_key"))
        .body_parameter(CallbackBodyParameter.custom("uid", "user_id", "42"))
        .build()
    )
    request_headers = callback.to_headers()
"""

from __future__ import annotations

import base64
import json
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum

CALLBACK_HEADER = "x-oss-callback"
CALLBACK_VAR_HEADER = "x-oss-callback-var"
_VAR_PREFIX = "x:"


class CallbackBodyType(str, Enum):
    """Content type of the body the service POSTs to the callback URL."""

    FORM_URLENCODED = "application/x-www-form-urlencoded"
    JSON = "application/json"


class ParameterKind(str, Enum):
    PLACEHOLDER = "placeholder"
    CONSTANT = "constant"
    LITERAL = "literal"


def _var_name(name: str) -> str:
    return name if name.startswith(_VAR_PREFIX) else _VAR_PREFIX + name


@dataclass(frozen=True)
class CallbackBodyParameter:
    """One ``key=value`` entry of the callback body template.

    Use the classmethod factories rather than the constructor.

    Attributes:
        key: The field name in the callback body.
        value: A placeholder expression (``${bucket}``, ``${x:name}``), a
            constant, or a raw literal, depending on ``kind``.
        kind: How ``value`` is rendered.
        variable: A ``(name, value)`` substitution variable this parameter
            depends on, for ``custom`` parameters.
    """

    key: str
    value: str
    kind: ParameterKind = ParameterKind.PLACEHOLDER
    variable: tuple[str, str] | None = None

    # -- Service-populated fields --------------------------------------------

    @classmethod
    def bucket(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${bucket}")

    @classmethod
    def object(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${object}")

    @classmethod
    def etag(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${etag}")

    @classmethod
    def size(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${size}")

    @classmethod
    def crc64(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${crc64}")

    @classmethod
    def client_ip(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${clientIp}")

    @classmethod
    def content_md5(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${contentMd5}")

    @classmethod
    def mime_type(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${mimeType}")

    @classmethod
    def image_width(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${imageInfo.width}")

    @classmethod
    def image_height(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${imageInfo.height}")

    @classmethod
    def image_format(cls, key: str) -> CallbackBodyParameter:
        return cls(key, "${imageInfo.format}")

    # -- Caller-supplied values ---------------------------------------------

    @classmethod
    def custom(cls, key: str, prop: str, value: str) -> CallbackBodyParameter:
        """A ``${x:prop}`` placeholder plus the variable that fills it."""
        name = _var_name(prop)
        return cls(key, "${" + name + "}", ParameterKind.PLACEHOLDER, (name, value))

    @classmethod
    def constant(cls, key: str, value: str) -> CallbackBodyParameter:
        """A fixed value, encoded for the body type."""
        return cls(key, value, ParameterKind.CONSTANT)

    @classmethod
    def literal(cls, key: str, value: str) -> CallbackBodyParameter:
        """A raw value written as-is; may reference ``${x:name}`` variables."""
        return cls(key, value, ParameterKind.LITERAL)

    def render(self, body_type: CallbackBodyType) -> str:
        """Render this parameter as one entry of the body template."""
        if body_type == CallbackBodyType.JSON:
            if self.kind == ParameterKind.CONSTANT:
                value = json.dumps(self.value, ensure_ascii=False)
            else:
                value = self.value
            return f"{json.dumps(self.key, ensure_ascii=False)}:{value}"

        if self.kind == ParameterKind.CONSTANT:
            return f"{self.key}={urllib.parse.quote(self.value, safe='')}"
        return f"{self.key}={self.value}"


@dataclass
class Callback:
    """A fully described upload callback.

    Attributes:
        url: The URL the service POSTs to after a successful upload.
        host: Optional ``Host`` header value for the callback request.
        sni: Whether the service sends SNI when the URL is HTTPS.
        body_type: Encoding of the callback body.
        parameters: Ordered body template entries.
        variables: Extra substitution variables (``x:``-prefixed).
    """

    url: str
    host: str | None = None
    sni: bool | None = None
    body_type: CallbackBodyType = CallbackBodyType.FORM_URLENCODED
    parameters: list[CallbackBodyParameter] = field(default_factory=list)
    variables: dict[str, str] = field(default_factory=dict)

    def body_template(self) -> str:
        """The ``callbackBody`` template string."""
        entries = [p.render(self.body_type) for p in self.parameters]
        if self.body_type == CallbackBodyType.JSON:
            return "{" + ",".join(entries) + "}"
        return "&".join(entries)

    def all_variables(self) -> dict[str, str]:
        """Explicit variables merged with those contributed by parameters."""
        merged: dict[str, str] = {}
        for param in self.parameters:
            if param.variable is not None:
                name, value = param.variable
                merged[name] = value
        for name, value in self.variables.items():
            merged[_var_name(name)] = value
        return merged

    def to_headers(self) -> dict[str, str]:
        """Serialize into the ``x-oss-callback`` / ``x-oss-callback-var`` headers."""
        descriptor: dict[str, object] = {"callbackUrl": self.url}
        if self.host:
            descriptor["callbackHost"] = self.host
        descriptor["callbackBody"] = self.body_template()
        if self.sni is not None:
            descriptor["callbackSNI"] = self.sni
        descriptor["callbackBodyType"] = self.body_type.value

        headers = {CALLBACK_HEADER: _b64_json(descriptor)}
        variables = self.all_variables()
        if variables:
            headers[CALLBACK_VAR_HEADER] = _b64_json(variables)
        return headers


class CallbackBuilder:
    """Fluent construction of a ``Callback``."""

    def __init__(self, url: str) -> None:
        self._callback = Callback(url=url)

    def host(self, host: str) -> CallbackBuilder:
        self._callback.host = host
        return self

    def sni(self, enabled: bool) -> CallbackBuilder:
        self._callback.sni = enabled
        return self

    def body_type(self, body_type: CallbackBodyType) -> CallbackBuilder:
        self._callback.body_type = body_type
        return self

    def body_parameter(self, parameter: CallbackBodyParameter) -> CallbackBuilder:
        self._callback.parameters.append(parameter)
        return self

    def custom_variable(self, name: str, value: str) -> CallbackBuilder:
        self._callback.variables[_var_name(name)] = value
        return self

    def build(self) -> Callback:
        return self._callback


def _b64_json(value: object) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")
