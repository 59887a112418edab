import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from fastapi.testclient import TestClient

from ephemeral_paste.config import Settings
from ephemeral_paste.database import InMemoryPasteStore, RedisPasteStore
from ephemeral_paste.lifecycle import PasteLifecycle
from ephemeral_paste.main import create_app
from ephemeral_paste.sqlite_store import SqlitePasteStore


@pytest.fixture
def memory_store():
    return InMemoryPasteStore()


@pytest.fixture
async def sqlite_store(tmp_path):
    store = SqlitePasteStore(str(tmp_path / "pastes.db"))
    await store.init()
    return store


@pytest.fixture
async def redis_client():
    client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def redis_store(redis_client):
    return RedisPasteStore(redis_client, expiry_grace_seconds=60)


@pytest.fixture(params=["memory", "sqlite", "redis"])
async def store(request, tmp_path):
    """Every backend; each must honour the same contract."""
    if request.param == "memory":
        yield InMemoryPasteStore()
    elif request.param == "sqlite":
        sqlite = SqlitePasteStore(str(tmp_path / "contract.db"))
        await sqlite.init()
        yield sqlite
    else:
        client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
        yield RedisPasteStore(client, expiry_grace_seconds=60)
        await client.aclose()


@pytest.fixture
def lifecycle(store):
    return PasteLifecycle(store)


@pytest.fixture
def settings():
    s = Settings()
    s.TEST_MODE = True
    s.APP_DOMAIN = "http://paste.test/"
    return s


@pytest.fixture
def client(settings, memory_store):
    app = create_app(settings=settings, store=memory_store)
    with TestClient(app) as c:
        yield c
