"""Shared pytest fixtures for ossclient tests.

Each test gets a fresh in-memory fake OSS service mounted behind
``httpx.ASGITransport`` and a ``Client`` wired to it, so no network access
is needed and state never leaks between tests.
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport

from fake_oss import FakeOss
from ossclient.client import Client
from ossclient.config import ClientConfig

ENDPOINT = "oss-cn-hangzhou.aliyuncs.com"
BUCKET = "test-bucket"
ACCESS_KEY_ID = "LTAI-test-key"
ACCESS_KEY_SECRET = "test-secret"

FIXED_NOW = datetime(2025, 1, 15, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def config() -> ClientConfig:
    """Create a test ClientConfig pointing at the fake endpoint."""
    return ClientConfig(
        endpoint=ENDPOINT,
        access_key_id=ACCESS_KEY_ID,
        access_key_secret=ACCESS_KEY_SECRET,
        chunk_size=1024,
    )


@pytest.fixture
def fake_oss() -> FakeOss:
    """A fresh in-memory fake of the storage service."""
    return FakeOss(
        endpoint=ENDPOINT,
        access_key_id=ACCESS_KEY_ID,
        access_key_secret=ACCESS_KEY_SECRET,
        region="cn-hangzhou",
    )


@pytest.fixture
async def client(config, fake_oss) -> Client:
    """Create an async ossclient Client talking to the fake service."""
    oss = Client(config, transport=ASGITransport(app=fake_oss.app))
    yield oss
    await oss.close()


@pytest.fixture
def fixed_clock():
    """A clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW
