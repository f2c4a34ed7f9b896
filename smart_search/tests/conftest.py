import pytest
import pytest_asyncio
from aiohttp import test_utils

from smart_search.tests.fakes import FakeClock, FakeOllama, RecordingSleep


@pytest_asyncio.fixture
async def fake_ollama():
    """Run a fake Ollama server for the duration of a test."""
    fake = FakeOllama()
    server = test_utils.TestServer(fake.make_app())
    await server.start_server()
    fake.url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
