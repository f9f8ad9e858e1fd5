"""Shared fixtures: a client pointed at a fake NAS and an aioresponses mock."""

import pytest
from aioresponses import aioresponses

from synology_client.api.client import SynologyHttpClient
from synology_client.api.session import SessionHandle
from synology_client.models.config import ClientConfig

from tests.mock_nas import BASE_URL, SID


@pytest.fixture
def config():
    return ClientConfig(base_url=BASE_URL, timeout_total=5)


@pytest.fixture
def session():
    return SessionHandle(token=SID)


@pytest.fixture
def mocked():
    with aioresponses() as m:
        yield m


@pytest.fixture
async def client(config):
    http_client = SynologyHttpClient(config)
    yield http_client
    await http_client.close()
