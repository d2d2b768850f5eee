"""Configuration loading and Pydantic models for ossclient."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

# oss-cn-hangzhou.aliyuncs.com, oss-cn-hangzhou-internal.aliyuncs.com
_ENDPOINT_REGION_RE = re.compile(r"^oss-(?P<region>[a-z0-9\-]+?)(?:-internal)?\.aliyuncs\.com$")


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    level: str = "INFO"
    format: str = "text"


class MetricsConfig(BaseModel):
    """Client-side Prometheus metrics configuration."""

    enabled: bool = False


class ClientConfig(BaseModel):
    """Top-level ossclient configuration.

    Attributes:
        endpoint: Service endpoint without scheme, e.g.
            "oss-cn-hangzhou.aliyuncs.com".
        region: Signing region; derived from ``endpoint`` when empty.
        access_key_id: Access key identifier.
        access_key_secret: Access key secret.
        security_token: Optional STS security token.
        scheme: "https" or "http".
        timeout: Total per-request timeout in seconds.
        connect_timeout: Connection timeout in seconds.
        chunk_size: Chunk size for streamed downloads, in bytes.
        additional_headers: Extra header names to include in the signature.
        user_agent: Value of the User-Agent header.
    """

    endpoint: str = "oss-cn-hangzhou.aliyuncs.com"
    region: str = ""
    access_key_id: str = ""
    access_key_secret: str = ""
    security_token: str = ""
    scheme: str = "https"
    timeout: float = 60.0
    connect_timeout: float = 10.0
    chunk_size: int = 64 * 1024
    additional_headers: list[str] = Field(default_factory=list)
    user_agent: str = "ossclient-python"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    def signing_region(self) -> str:
        """The region used in the credential scope."""
        return self.region or region_from_endpoint(self.endpoint)


def region_from_endpoint(endpoint: str) -> str:
    """Derive the region from a standard OSS endpoint.

    Args:
        endpoint: e.g. "oss-cn-hangzhou.aliyuncs.com" (a scheme prefix is
            tolerated).

    Returns:
        The region, e.g. "cn-hangzhou".

    Raises:
        ValueError: If the endpoint does not follow the standard pattern.
    """
    host = endpoint.split("://", 1)[-1].strip("/").lower()
    m = _ENDPOINT_REGION_RE.match(host)
    if not m:
        raise ValueError(f"Cannot derive region from endpoint '{endpoint}', set region explicitly")
    return m.group("region")


def _parse_credentials(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the credentials section from YAML data."""
    if data is None:
        return {}
    return {
        "access_key_id": data.get("access_key_id", ""),
        "access_key_secret": data.get("access_key_secret", ""),
        "security_token": data.get("security_token", ""),
    }


def _parse_http(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the http section from YAML data.

    Handles nested structure: http.timeout.total -> timeout, etc.
    """
    if data is None:
        return {}
    result: dict[str, Any] = {}
    for name in ("scheme", "chunk_size", "user_agent", "additional_headers"):
        if name in data:
            result[name] = data[name]
    timeout_section = data.get("timeout")
    if isinstance(timeout_section, dict):
        if "total" in timeout_section:
            result["timeout"] = timeout_section["total"]
        if "connect" in timeout_section:
            result["connect_timeout"] = timeout_section["connect"]
    elif timeout_section is not None:
        result["timeout"] = timeout_section
    return result


def load_config(path: Path) -> ClientConfig:
    """Load a ClientConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated ClientConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    values: dict[str, Any] = {}
    if "endpoint" in raw:
        values["endpoint"] = raw["endpoint"]
    if "region" in raw:
        values["region"] = raw["region"]
    values.update(_parse_credentials(raw.get("credentials")))
    values.update(_parse_http(raw.get("http")))

    return ClientConfig(
        logging=LoggingConfig(**(raw.get("logging") or {})),
        metrics=MetricsConfig(**(raw.get("metrics") or {})),
        **values,
    )


def config_from_env(environ: dict[str, str] | None = None) -> ClientConfig:
    """Build a ClientConfig from ``ALI_*`` environment variables.

    Reads ``ALI_ACCESS_KEY_ID``, ``ALI_ACCESS_KEY_SECRET``,
    ``ALI_OSS_ENDPOINT``, ``ALI_OSS_REGION`` and ``ALI_OSS_SECURITY_TOKEN``.
    Unset variables fall back to the model defaults.
    """
    env = os.environ if environ is None else environ
    mapping = {
        "ALI_ACCESS_KEY_ID": "access_key_id",
        "ALI_ACCESS_KEY_SECRET": "access_key_secret",
        "ALI_OSS_ENDPOINT": "endpoint",
        "ALI_OSS_REGION": "region",
        "ALI_OSS_SECURITY_TOKEN": "security_token",
    }
    values = {field: env[name] for name, field in mapping.items() if env.get(name)}
    return ClientConfig(**values)
