"""Shared fixtures: a controllable in-memory backend and query cache."""

import asyncio
from typing import Any

import pytest

from orderbot.core.errors import BackendError
from orderbot.core.lookup import Choice, LeadSummary
from orderbot.core.models import WizardSession, WizardStep
from orderbot.core.wizard import OrderWizard
from orderbot.services.query_cache import MemoryQueryCache

SUPPLIER_ID = "sup-1"


class FakeBackend:
    """
    Stand-in for BackendClient.

    Set `gate` to an asyncio.Event to hold create_order_bundle until the
    test releases it; set `fail_with` to make the next commit fail.
    """

    def __init__(self) -> None:
        self.leads: list[LeadSummary] = [
            LeadSummary(id="lead-1", name="Anna Berg", email="anna@example.com",
                        phone="+49 170 1111", status="qualified", client_id="client-1"),
            LeadSummary(id="lead-2", name="Ben Ortiz", email="ben@example.com",
                        phone="+49 170 2222", status="new", client_id=None),
        ]
        self.projects: dict[str, list[Choice]] = {
            "client-1": [Choice(id="proj-1", label="Kitchen refit"), Choice(id="proj-2", label="Attic")],
            "client-2": [Choice(id="proj-9", label="Garage")],
        }
        self.order_requests: list[dict[str, Any]] = []
        self.converted: list[str] = []
        self.lead_calls = 0
        self.project_calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.fail_with: BackendError | None = None
        self.fail_lookups = False
        self.supplier_id = SUPPLIER_ID
        self.closed = False

    async def get_user(self) -> str:
        return self.supplier_id

    async def list_leads(self, supplier_id: str) -> list[LeadSummary]:
        self.lead_calls += 1
        if self.fail_lookups:
            raise BackendError("Backend is unreachable")
        return list(self.leads)

    async def client_projects(self, client_id: str) -> list[Choice]:
        self.project_calls.append(client_id)
        if self.fail_lookups:
            raise BackendError("Backend is unreachable")
        return list(self.projects.get(client_id, []))

    async def create_order_bundle(self, request: dict[str, Any]) -> str:
        self.order_requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return f"order-{len(self.order_requests)}"

    async def convert_lead_to_client(self, lead_id: str) -> str:
        self.converted.append(lead_id)
        client_id = f"client-for-{lead_id}"
        self.projects.setdefault(client_id, [])
        return client_id

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def cache() -> MemoryQueryCache:
    return MemoryQueryCache()


@pytest.fixture
def session() -> WizardSession:
    return WizardSession()


@pytest.fixture
def wizard(backend, cache) -> OrderWizard:
    wizard = OrderWizard(SUPPLIER_ID, backend, cache)
    wizard.set_open(True)
    return wizard


def fill_create_flow(wizard: OrderWizard) -> None:
    """Walk a wizard through all four steps with new lead and project."""
    wizard.set_field(WizardStep.LEAD, "mode", "create")
    wizard.set_field(WizardStep.LEAD, "new.full_name", "Clara Jung")
    wizard.set_field(WizardStep.LEAD, "new.email", "clara@example.com")
    assert wizard.next().moved

    wizard.set_field(WizardStep.PROJECT, "mode", "create")
    wizard.set_field(WizardStep.PROJECT, "new.title", "Bathroom")
    wizard.set_field(WizardStep.PROJECT, "new.address.city", "Leipzig")
    assert wizard.next().moved

    wizard.set_field(WizardStep.DETAILS, "title", "Tiles and fittings")
    assert wizard.next().moved

    wizard.update_item(0, name="Tiles", quantity=3, unit_price=12.5)
    assert wizard.step == WizardStep.ITEMS
