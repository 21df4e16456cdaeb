"""Shared fixtures for the ig_mcp test suite."""

import pytest

from ig_mcp.client import IGClient
from ig_mcp.models import IGCredentials

from tests.fakes import BASE_URL, FakeBroker, make_dispatcher, make_settings


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def credentials():
    return IGCredentials(username="trader", password="s3cret", api_key="ig-key")


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def ig_client(broker):
    client = IGClient(api_key="ig-key", base_url=BASE_URL, transport=broker.transport())
    yield client
    await client.aclose()


@pytest.fixture
async def dispatcher(broker):
    dispatcher = make_dispatcher(broker)
    yield dispatcher
    await dispatcher.aclose()
