import pytest
from sqlalchemy import select

from vendor_mdm.core.exceptions import ConflictError
from vendor_mdm.db.base import create_engine_for, create_session_factory
from vendor_mdm.stores.bus import MessageBus, queue_for_event
from vendor_mdm.stores.documents import (
    DOMAIN_EVENTS,
    REFERENCE_DATA,
    InMemoryDocumentStore,
    SqlDocumentStore,
    build_document_store,
)
from vendor_mdm.stores.models import QueueMessageRow
from vendor_mdm.stores.queue import (
    INVITATION_EMAILS,
    VENDOR_CHANGES,
    InMemoryQueueBackend,
    SqlQueueBackend,
    build_queue_backend,
)

pytestmark = pytest.mark.anyio


@pytest.fixture(params=["memory", "sql"])
async def document_store(request, tmp_path):
    if request.param == "memory":
        store = InMemoryDocumentStore()
    else:
        store = SqlDocumentStore(f"sqlite+aiosqlite:///{tmp_path}/documents.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sql"])
async def queue_backend(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryQueueBackend()
    else:
        backend = SqlQueueBackend(f"sqlite+aiosqlite:///{tmp_path}/queue.db")
    await backend.initialize()
    yield backend
    await backend.close()


# ------------------------------------------------------------------
# Document store
# ------------------------------------------------------------------

async def test_upsert_replaces_and_reads_back(document_store):
    await document_store.upsert_item(REFERENCE_DATA, {"id": "US", "code": "US"}, "Country")
    await document_store.upsert_item(REFERENCE_DATA, {"id": "US", "code": "USA"}, "Country")
    assert await document_store.read_item(REFERENCE_DATA, "US", "Country") == {"id": "US", "code": "USA"}
    assert await document_store.read_item(REFERENCE_DATA, "US", "Currency") is None


async def test_create_refuses_to_overwrite(document_store):
    await document_store.create_item(DOMAIN_EVENTS, {"id": "e1"}, "InvitationCreated")
    with pytest.raises(ConflictError):
        await document_store.create_item(DOMAIN_EVENTS, {"id": "e1"}, "InvitationCreated")
    # Same id under another partition is a different item
    await document_store.create_item(DOMAIN_EVENTS, {"id": "e1"}, "InvitationResent")


async def test_query_by_partition_and_filters(document_store):
    await document_store.upsert_item(REFERENCE_DATA, {"id": "a", "isActive": True}, "Country")
    await document_store.upsert_item(REFERENCE_DATA, {"id": "b", "isActive": False}, "Country")
    await document_store.upsert_item(REFERENCE_DATA, {"id": "c", "isActive": True}, "Currency")

    country = await document_store.query_items(REFERENCE_DATA, partition_key="Country")
    assert {i["id"] for i in country} == {"a", "b"}
    active = await document_store.query_items(REFERENCE_DATA, filters={"isActive": True})
    assert {i["id"] for i in active} == {"a", "c"}


async def test_delete_reports_whether_item_existed(document_store):
    await document_store.upsert_item(REFERENCE_DATA, {"id": "a"}, "Country")
    assert await document_store.delete_item(REFERENCE_DATA, "a", "Country") is True
    assert await document_store.delete_item(REFERENCE_DATA, "a", "Country") is False


async def test_returned_items_are_copies():
    store = InMemoryDocumentStore()
    await store.upsert_item(REFERENCE_DATA, {"id": "a", "tags": ["x"]}, "Country")
    item = await store.read_item(REFERENCE_DATA, "a", "Country")
    item["tags"].append("y")
    assert (await store.read_item(REFERENCE_DATA, "a", "Country"))["tags"] == ["x"]


def test_unknown_backends_are_rejected():
    with pytest.raises(ValueError):
        build_document_store("cosmos", "")
    with pytest.raises(ValueError):
        build_queue_backend("servicebus", "")


# ------------------------------------------------------------------
# Queue
# ------------------------------------------------------------------

async def test_queue_is_fifo_per_queue_name(queue_backend):
    await queue_backend.enqueue(VENDOR_CHANGES, {"n": 1})
    await queue_backend.enqueue(INVITATION_EMAILS, {"n": 2})
    await queue_backend.enqueue(VENDOR_CHANGES, {"n": 3})

    first = await queue_backend.dequeue(VENDOR_CHANGES)
    assert first.body == {"n": 1}
    assert first.delivery_count == 1
    await queue_backend.ack(first.message_id)

    assert (await queue_backend.dequeue(VENDOR_CHANGES)).body == {"n": 3}
    assert await queue_backend.dequeue(VENDOR_CHANGES) is None
    assert await queue_backend.pending_count(INVITATION_EMAILS) == 1


async def test_nack_requeues_or_discards(queue_backend):
    await queue_backend.enqueue(INVITATION_EMAILS, {"n": 1})

    msg = await queue_backend.dequeue(INVITATION_EMAILS)
    assert await queue_backend.pending_count(INVITATION_EMAILS) == 0
    await queue_backend.nack(msg.message_id)
    assert await queue_backend.pending_count(INVITATION_EMAILS) == 1

    again = await queue_backend.dequeue(INVITATION_EMAILS)
    assert again.message_id == msg.message_id
    assert again.delivery_count == 2
    await queue_backend.nack(again.message_id, requeue=False)
    assert await queue_backend.pending_count(INVITATION_EMAILS) == 0
    assert await queue_backend.dequeue(INVITATION_EMAILS) is None


async def test_sql_queue_keeps_no_rows_for_acked_or_discarded_messages(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path}/queue.db"
    backend = SqlQueueBackend(url)
    await backend.initialize()
    for n in range(3):
        await backend.enqueue(INVITATION_EMAILS, {"n": n})

    acked = await backend.dequeue(INVITATION_EMAILS)
    await backend.ack(acked.message_id)
    discarded = await backend.dequeue(INVITATION_EMAILS)
    assert (await backend.nack(discarded.message_id, requeue=False)).body == {"n": 1}
    await backend.close()

    engine = create_engine_for(url)
    async with create_session_factory(engine)() as session:
        remaining = (await session.execute(select(QueueMessageRow.body))).scalars().all()
    await engine.dispose()
    assert remaining == [{"n": 2}]


async def test_reset_clears_everything(queue_backend):
    await queue_backend.enqueue(VENDOR_CHANGES, {"n": 1})
    await queue_backend.reset()
    assert await queue_backend.pending_count(VENDOR_CHANGES) == 0


# ------------------------------------------------------------------
# Bus
# ------------------------------------------------------------------

def test_event_routing():
    assert queue_for_event("invitation-created") == INVITATION_EMAILS
    assert queue_for_event("vendor-application-submitted") == VENDOR_CHANGES
    assert queue_for_event("vendor-change-request") == VENDOR_CHANGES
    assert queue_for_event("RequestApproved") == VENDOR_CHANGES


async def test_publish_wraps_data_in_envelope():
    backend = InMemoryQueueBackend()
    bus = MessageBus(backend, "P01")
    await bus.publish_event("invitation-created", {"token": "t"})
    await bus.publish_event("anything", {"x": 1}, queue_name="custom")

    [msg] = backend.peek_all(INVITATION_EMAILS)
    assert msg.body == {
        "eventType": "invitation-created",
        "data": {"token": "t"},
        "properties": {"sapEnvironmentCode": "P01", "eventType": "invitation-created"},
    }
    assert await backend.pending_count("custom") == 1
