"""Tests for the commit executor: single submit, failure handling, invalidation."""

import asyncio

from orderbot.core import store
from orderbot.core.commit import CommitExecutor
from orderbot.core.errors import BackendError
from orderbot.core.models import WizardSession, WizardStep
from orderbot.core.payload import build_commit_payload
from orderbot.services.query_cache import (
    supplier_leads_key,
    supplier_orders_key,
    supplier_projects_key,
)

from conftest import SUPPLIER_ID


def _ready_session() -> WizardSession:
    session = WizardSession()
    store.choose_lead(session, lead_id="lead-1", label="Anna", client_id="client-1")
    store.choose_project(session, project_id="proj-1", label="Kitchen")
    store.set_step_field(session, WizardStep.DETAILS, "title", "Tiles")
    store.update_item(session, 0, name="Tiles", quantity=2, unit_price=10)
    session.current_step = WizardStep.ITEMS
    return session


async def test_success_resets_and_records_order(backend, cache):
    session = _ready_session()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)

    result = await executor.submit(session, build_commit_payload(session, SUPPLIER_ID))

    assert result.ok
    assert result.order_id == "order-1"
    assert session.submitted
    assert session.order_id == "order-1"
    assert not session.is_submitting
    assert session.current_step == WizardStep.LEAD
    assert session.details.title == ""


async def test_second_submit_while_in_flight_is_noop(backend, cache):
    backend.gate = asyncio.Event()
    session = _ready_session()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)
    payload = build_commit_payload(session, SUPPLIER_ID)

    first = asyncio.create_task(executor.submit(session, payload))
    await asyncio.sleep(0)
    assert session.is_submitting

    second = await executor.submit(session, payload)
    backend.gate.set()
    first_result = await first

    assert second.skipped and not second.ok
    assert first_result.ok
    assert len(backend.order_requests) == 1


async def test_failure_keeps_every_step(backend, cache):
    backend.fail_with = BackendError("duplicate order", status_code=409)
    session = _ready_session()
    before = session.model_dump()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)

    result = await executor.submit(session, build_commit_payload(session, SUPPLIER_ID))

    assert not result.ok
    assert result.error == "duplicate order"
    assert session.model_dump() == before
    assert not session.is_submitting
    assert not session.submitted


async def test_failure_message_includes_backend_details(backend, cache):
    backend.fail_with = BackendError("Validation failed", details="title is required")
    session = _ready_session()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)

    result = await executor.submit(session, build_commit_payload(session, SUPPLIER_ID))

    assert result.error == "Validation failed: title is required"


async def test_failure_without_message_uses_default(backend, cache):
    backend.fail_with = BackendError("")
    session = _ready_session()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)

    result = await executor.submit(session, build_commit_payload(session, SUPPLIER_ID))

    assert result.error == "Failed to create order"


async def test_success_invalidates_affected_queries(backend, cache):
    await cache.set(supplier_orders_key(SUPPLIER_ID), ["o"])
    await cache.set(supplier_leads_key(SUPPLIER_ID), ["l"])
    await cache.set(supplier_projects_key(SUPPLIER_ID, "client-1"), ["p"])
    await cache.set(supplier_projects_key(SUPPLIER_ID, "client-2"), ["q"])
    await cache.set(supplier_leads_key("other-supplier"), ["x"])

    session = _ready_session()
    executor = CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID)
    await executor.submit(session, build_commit_payload(session, SUPPLIER_ID))

    assert supplier_orders_key(SUPPLIER_ID) not in cache
    assert supplier_leads_key(SUPPLIER_ID) not in cache
    assert supplier_projects_key(SUPPLIER_ID, "client-1") not in cache
    assert supplier_leads_key("other-supplier") in cache


async def test_failure_leaves_cache_alone(backend, cache):
    backend.fail_with = BackendError("boom")
    await cache.set(supplier_orders_key(SUPPLIER_ID), ["o"])
    session = _ready_session()

    await CommitExecutor(backend, cache, supplier_id=SUPPLIER_ID).submit(
        session, build_commit_payload(session, SUPPLIER_ID),
    )

    assert supplier_orders_key(SUPPLIER_ID) in cache
