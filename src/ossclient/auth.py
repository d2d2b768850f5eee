"""OSS Signature Version 4 request signing for ossclient.

Implements the ``OSS4-HMAC-SHA256`` algorithm: build a canonical request,
hash it into a string to sign scoped to date/region/service, derive a
signing key through an HMAC-SHA256 chain and attach the resulting
``Authorization`` header.

Signing is deterministic: given the same request, credentials and clock
value, the canonical request and signature are byte-identical.
"""

import hashlib
import hmac
import logging
import re
import urllib.parse
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)

# Constants
ALGORITHM = "OSS4-HMAC-SHA256"
KEY_PREFIX = "aliyun_v4"
SCOPE_TERMINATOR = "aliyun_v4_request"
SERVICE_NAME = "oss"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

# Headers always part of the canonical headers when present
_SIGNED_HEADER_NAMES = {"content-type", "content-md5"}
_SIGNED_HEADER_PREFIX = "x-oss-"

# Regex for the Authorization header
# Example: OSS4-HMAC-SHA256 Credential=LTAI.../20250101/cn-hangzhou/oss/aliyun_v4_request,
#          AdditionalHeaders=host,Signature=abcdef...
AUTH_HEADER_RE = re.compile(
    r"OSS4-HMAC-SHA256\s+"
    r"Credential=(?P<credential>[^,]+),\s*"
    r"(?:AdditionalHeaders=(?P<additional_headers>[^,]+),\s*)?"
    r"Signature=(?P<signature>[0-9a-f]{64})"
)


class V4Signer:
    """Signs outgoing requests with OSS Signature Version 4.

    Attributes:
        access_key_id: The access key identifier placed in the credential.
        region: The region in the credential scope (e.g. "cn-hangzhou").
        security_token: Optional STS token sent as ``x-oss-security-token``.
        additional_headers: Extra lowercase header names to sign
            (e.g. "host").
    """

    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        region: str,
        security_token: str = "",
        additional_headers: Iterable[str] = (),
    ) -> None:
        self.access_key_id = access_key_id
        self._access_key_secret = access_key_secret
        self.region = region
        self.security_token = security_token
        self.additional_headers = sorted({h.lower() for h in additional_headers})
        # Signing key cache: date -> signing_key bytes
        self._signing_key_cache: dict[str, bytes] = {}

    def sign(
        self,
        method: str,
        bucket: str,
        key: str,
        headers: httpx.Headers,
        query: Mapping[str, str],
        now: datetime | None = None,
    ) -> str:
        """Sign a request in place.

        Adds ``x-oss-date``, ``x-oss-content-sha256``, the security token
        (when configured) and ``Authorization`` to ``headers``.

        Args:
            method: HTTP method (uppercase).
            bucket: Target bucket, empty for service-level requests.
            key: Target object key, empty for bucket-level requests.
            headers: The outgoing headers; modified in place.
            query: Decoded query parameters.
            now: The signing time; defaults to the current UTC time.

        Returns:
            The computed signature (64 lowercase hex characters).
        """
        if now is None:
            now = datetime.now(timezone.utc)
        timestamp = now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
        date = timestamp[:8]

        headers["x-oss-date"] = timestamp
        headers["x-oss-content-sha256"] = UNSIGNED_PAYLOAD
        if self.security_token:
            headers["x-oss-security-token"] = self.security_token

        canonical_request = build_canonical_request(
            method=method,
            bucket=bucket,
            key=key,
            query=query,
            headers=headers,
            additional_headers=self.additional_headers,
        )
        scope = build_scope(date, self.region)
        string_to_sign = build_string_to_sign(timestamp, scope, canonical_request)
        signature = compute_signature(self._signing_key(date), string_to_sign)

        parts = [f"Credential={self.access_key_id}/{scope}"]
        if self.additional_headers:
            parts.append(f"AdditionalHeaders={';'.join(self.additional_headers)}")
        parts.append(f"Signature={signature}")
        headers["authorization"] = f"{ALGORITHM} " + ",".join(parts)

        logger.debug("Signed %s /%s/%s with scope %s", method, bucket, key, scope)
        return signature

    def _signing_key(self, date: str) -> bytes:
        """Derive (and cache) the signing key for a date."""
        cached = self._signing_key_cache.get(date)
        if cached is not None:
            return cached

        signing_key = derive_signing_key(self._access_key_secret, date, self.region, SERVICE_NAME)

        # Keys only change daily; keep the cache tiny
        if len(self._signing_key_cache) > 4:
            self._signing_key_cache.clear()
        self._signing_key_cache[date] = signing_key
        return signing_key


# ---------------------------------------------------------------------------
# Module-level utility functions
# ---------------------------------------------------------------------------


def derive_signing_key(secret_key: str, date: str, region: str, service: str) -> bytes:
    """Derive the V4 signing key via the HMAC-SHA256 chain.

    Args:
        secret_key: The access key secret.
        date: Date string (YYYYMMDD).
        region: The region, e.g. "cn-hangzhou".
        service: Service name ("oss").

    Returns:
        The 32-byte signing key.
    """
    k_date = hmac.new(
        (KEY_PREFIX + secret_key).encode("utf-8"),
        date.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    k_region = hmac.new(k_date, region.encode("utf-8"), hashlib.sha256).digest()
    k_service = hmac.new(k_region, service.encode("utf-8"), hashlib.sha256).digest()
    k_signing = hmac.new(k_service, SCOPE_TERMINATOR.encode("utf-8"), hashlib.sha256).digest()
    return k_signing


def build_scope(date: str, region: str) -> str:
    """Credential scope: ``YYYYMMDD/region/oss/aliyun_v4_request``."""
    return f"{date}/{region}/{SERVICE_NAME}/{SCOPE_TERMINATOR}"


def build_canonical_request(
    method: str,
    bucket: str,
    key: str,
    query: Mapping[str, str],
    headers: Mapping[str, str],
    additional_headers: Iterable[str] = (),
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    """Build the canonical request string.

    Args:
        method: HTTP method (uppercase).
        bucket: Bucket name, may be empty.
        key: Object key, may be empty.
        query: Decoded query parameters.
        headers: All request headers (names may be mixed case).
        additional_headers: Extra header names to sign.
        payload_hash: Always ``UNSIGNED-PAYLOAD`` for OSS.

    Returns:
        The canonical request string.
    """
    additional = sorted({h.lower() for h in additional_headers})
    parts = [
        method.upper(),
        _canonical_uri(bucket, key),
        _build_canonical_query_string(query),
        _build_canonical_headers(headers, additional),
        ";".join(additional),
        payload_hash,
    ]
    return "\n".join(parts)


def build_string_to_sign(timestamp: str, scope: str, canonical_request: str) -> str:
    """Build the string to sign.

    Args:
        timestamp: ISO 8601 basic timestamp (YYYYMMDDTHHMMSSZ).
        scope: Credential scope.
        canonical_request: The assembled canonical request string.

    Returns:
        The string to sign.
    """
    canonical_hash = hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()
    return f"{ALGORITHM}\n{timestamp}\n{scope}\n{canonical_hash}"


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Compute the final HMAC-SHA256 hex signature."""
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def parse_authorization_header(header: str) -> dict[str, str] | None:
    """Split an ``Authorization`` header into credential, additional headers and signature.

    Returns:
        A dict with keys ``credential``, ``additional_headers`` and
        ``signature``, or None if the header is not a V4 header.
    """
    match = AUTH_HEADER_RE.match(header)
    if not match:
        return None
    return {
        "credential": match.group("credential"),
        "additional_headers": match.group("additional_headers") or "",
        "signature": match.group("signature"),
    }


def _uri_encode(s: str, encode_slash: bool = True) -> str:
    """RFC 3986 URI encoding.

    Characters A-Z, a-z, 0-9, '-', '_', '.', '~' are not encoded.
    All other characters are percent-encoded with uppercase hex.
    Spaces become %20 (not +).
    """
    safe = "-_.~" if encode_slash else "-_.~/"
    return urllib.parse.quote(s, safe=safe)


def _canonical_uri(bucket: str, key: str) -> str:
    """Canonical resource path: ``/bucket/key``, ``/bucket/`` or ``/``."""
    if not bucket:
        return "/"
    return "/" + _uri_encode(bucket, encode_slash=False) + "/" + _uri_encode(key, encode_slash=False)


def _build_canonical_query_string(query: Mapping[str, str]) -> str:
    """Build the canonical query string from decoded parameters.

    Names and values are URI-encoded, then sorted by encoded name.
    Parameters with an empty value render as the bare name.
    """
    encoded = sorted(
        (_uri_encode(str(name)), _uri_encode(str(value))) for name, value in query.items()
    )
    return "&".join(f"{name}={value}" if value else name for name, value in encoded)


def _build_canonical_headers(headers: Mapping[str, str], additional: list[str]) -> str:
    """Build the canonical headers block (signable headers only, sorted)."""
    lower_headers: dict[str, str] = {}
    for name, value in headers.items():
        lower_name = name.lower()
        if (
            lower_name in _SIGNED_HEADER_NAMES
            or lower_name.startswith(_SIGNED_HEADER_PREFIX)
            or lower_name in additional
        ):
            lower_headers[lower_name] = _trim_header_value(value)

    return "".join(f"{name}:{lower_headers[name]}\n" for name in sorted(lower_headers))


def _trim_header_value(value: str) -> str:
    """Strip surrounding whitespace and collapse sequential spaces."""
    return re.sub(r" +", " ", value.strip())
