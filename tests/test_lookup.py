"""Tests for dependent choice lists and the lead picker helpers."""

import asyncio

import pytest

from orderbot.core.errors import BackendError
from orderbot.core.lookup import (
    Choice,
    DependentChoices,
    LeadSummary,
    filter_leads,
    get_lead_status_label,
)


class GatedFetch:
    """fetch() callable whose responses are released per parent id."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    async def __call__(self, parent_id: str) -> list[Choice]:
        self.calls.append(parent_id)
        gate = self.gates.setdefault(parent_id, asyncio.Event())
        await gate.wait()
        return [Choice(id=f"{parent_id}-p", label=f"Project of {parent_id}")]

    def release(self, parent_id: str) -> None:
        self.gates.setdefault(parent_id, asyncio.Event()).set()


async def test_refresh_loads_choices():
    async def fetch(parent_id):
        return [Choice(id="p1", label="Kitchen")]

    choices = DependentChoices(fetch, name="projects")
    assert await choices.refresh("client-1") == [Choice(id="p1", label="Kitchen")]
    assert choices.parent_id == "client-1"
    assert not choices.loading


async def test_none_parent_gives_empty_list_without_fetch():
    fetch = GatedFetch()
    choices = DependentChoices(fetch)
    assert await choices.refresh(None) == []
    assert fetch.calls == []


async def test_late_response_for_old_parent_is_discarded():
    fetch = GatedFetch()
    choices = DependentChoices(fetch, name="projects")

    first = asyncio.create_task(choices.refresh("A"))
    await asyncio.sleep(0)
    second = asyncio.create_task(choices.refresh("B"))
    await asyncio.sleep(0)

    fetch.release("B")
    await second
    fetch.release("A")
    await first

    assert choices.parent_id == "B"
    assert [c.id for c in choices.choices] == ["B-p"]


async def test_response_after_close_is_dropped():
    fetch = GatedFetch()
    choices = DependentChoices(fetch)

    task = asyncio.create_task(choices.refresh("A"))
    await asyncio.sleep(0)
    choices.close()
    fetch.release("A")
    await task

    assert choices.closed
    assert choices.choices == []
    assert await choices.refresh("A") == []


async def test_response_after_clear_is_dropped():
    fetch = GatedFetch()
    choices = DependentChoices(fetch)

    task = asyncio.create_task(choices.refresh("A"))
    await asyncio.sleep(0)
    choices.clear()
    fetch.release("A")
    await task

    assert choices.parent_id is None
    assert choices.choices == []


async def test_failure_sets_notice_and_empty_list():
    async def fetch(parent_id):
        raise BackendError("Backend is unreachable")

    choices = DependentChoices(fetch, name="projects")
    assert await choices.refresh("client-1") == []
    assert choices.notice == "Could not load projects. You can continue without them."
    assert not choices.loading


async def test_next_refresh_clears_notice():
    calls = 0

    async def fetch(parent_id):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise BackendError("boom")
        return [Choice(id="p1", label="Kitchen")]

    choices = DependentChoices(fetch)
    await choices.refresh("c")
    await choices.refresh("c")
    assert choices.notice is None
    assert len(choices.choices) == 1


# ── Lead helpers ─────────────────────────────────────────────

LEADS = [
    LeadSummary(id="1", name="Anna Berg", email="ANNA@example.com", phone="+49 170 1111"),
    LeadSummary(id="2", name="Ben Ortiz", email=None, phone="0170 2222", client_id="c2"),
    LeadSummary(id="3", name="", email="x@y.z"),
]


@pytest.mark.parametrize("term, ids", [
    ("", ["1", "2", "3"]),
    ("  ", ["1", "2", "3"]),
    ("anna", ["1"]),
    ("BEN", ["2"]),
    ("example.com", ["1"]),
    ("2222", ["2"]),
    ("nobody", []),
])
def test_filter_leads(term, ids):
    assert [lead.id for lead in filter_leads(LEADS, term)] == ids


def test_lead_label_and_client_flag():
    assert LEADS[2].label == "No name"
    assert not LEADS[0].has_client
    assert LEADS[1].has_client


def test_status_label_falls_back_to_raw_status():
    assert get_lead_status_label("qualified") == "⭐ Qualified"
    assert get_lead_status_label("archived") == "archived"
