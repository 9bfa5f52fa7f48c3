import asyncio
import os
import pathlib
import sys
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time
_DB_DIR = tempfile.mkdtemp(prefix="vendor_mdm_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/vendor_mdm.db"
os.environ["DOCUMENT_STORE_BACKEND"] = "memory"
os.environ["QUEUE_BACKEND"] = "memory"
os.environ["APP_ENV"] = "test"

from vendor_mdm.core.config import Settings  # noqa: E402
from vendor_mdm.db.base import Base, create_engine_for, create_session_factory  # noqa: E402
from vendor_mdm.main import create_app  # noqa: E402
from vendor_mdm.stores.documents import InMemoryDocumentStore  # noqa: E402
from vendor_mdm.stores.queue import InMemoryQueueBackend  # noqa: E402

START = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

# Same database the app under test opens from DATABASE_URL
engine = create_engine_for(os.environ["DATABASE_URL"])
session_factory = create_session_factory(engine)


class FrozenClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FailingDocumentStore(InMemoryDocumentStore):
    """Every write raises; reads behave normally."""

    async def upsert_item(self, container, item, partition_key):
        raise RuntimeError("document store unavailable")

    async def create_item(self, container, item, partition_key):
        raise RuntimeError("document store unavailable")


async def _recreate_schema() -> None:
    import vendor_mdm.domain  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_database():
    asyncio.run(_recreate_schema())
    yield


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        document_store_backend="memory",
        queue_backend="memory",
        company_name="Contoso Procurement",
        app_base_url="https://vendors.example.com",
        queue_max_deliveries=3,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def queue() -> InMemoryQueueBackend:
    return InMemoryQueueBackend()


@pytest.fixture
def client(settings, documents, queue, clock):
    app = create_app(settings, document_store=documents, queue_backend=queue, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def session():
    async with session_factory() as db_session:
        yield db_session


def run(coro):
    """Drive a store coroutine from a sync TestClient test."""
    return asyncio.run(coro)
