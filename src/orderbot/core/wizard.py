"""
Order wizard — the platform-agnostic controller both surfaces drive.

Composes the step data store, validator, navigator, lookup lists,
commit assembler and commit executor around one WizardSession:

    lead (select | create) → project (select | create) → details → items → submit

Platform adapters (Telegram handlers, the HTTP API) call these methods
and render the results; this module never imports platform code.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, replace
from typing import Any

from orderbot.core import store
from orderbot.core.commit import CommitExecutor, CommitResult
from orderbot.core.errors import BackendError, WizardError
from orderbot.core.lookup import Choice, DependentChoices, LeadSummary, filter_leads
from orderbot.core.models import LeadSelect, WizardSession, WizardStep
from orderbot.core.navigation import NavigationResult, Navigator
from orderbot.core.payload import build_commit_payload, order_total
from orderbot.core.validation import ValidationResult, validate_all
from orderbot.services.backend_client import OrderBackend
from orderbot.services.query_cache import (
    QueryCache,
    supplier_leads_key,
    supplier_projects_key,
)

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[str], Awaitable[None] | None]

NO_CLIENT_MESSAGE = "This lead is not linked to a client. Convert it to a client first."


class OrderWizard:
    """One supplier's order-creation wizard: state, rules and remote calls, no rendering."""

    def __init__(
        self,
        supplier_id: str,
        backend: OrderBackend,
        cache: QueryCache,
        *,
        on_success: SuccessCallback | None = None,
        cache_ttl: int = 300,
    ) -> None:
        self.supplier_id = supplier_id
        self.backend = backend
        self.cache = cache
        self.on_success = on_success
        self.cache_ttl = cache_ttl

        self.session = WizardSession()
        self.navigator = Navigator(self.session)
        self.executor = CommitExecutor(backend, cache, supplier_id=supplier_id)
        self.leads: DependentChoices[LeadSummary] = self._new_lead_list()
        self.projects: DependentChoices[Choice] = self._new_project_list()
        self._open = False

    def _new_lead_list(self) -> DependentChoices[LeadSummary]:
        return DependentChoices(self._fetch_leads, name="leads")

    def _new_project_list(self) -> DependentChoices[Choice]:
        return DependentChoices(self._fetch_projects, name="projects")

    # ── Dialog visibility ────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._open

    def set_open(self, open_: bool) -> bool:
        """
        Open or close the wizard. Returns False if the change was refused.

        Opening starts a fresh session; closing resets it and drops any
        lookup still in flight. Closing is refused while submitting.
        """
        if open_:
            if not self._open:
                store.reset_all(self.session)
                if self.leads.closed:
                    self.leads = self._new_lead_list()
                if self.projects.closed:
                    self.projects = self._new_project_list()
                self._open = True
                logger.debug("Order wizard opened for supplier %s", self.supplier_id)
            return True

        if self.session.is_submitting:
            return False
        if self._open:
            store.reset_all(self.session)
            self._close_lookups()
            self._open = False
            logger.debug("Order wizard closed for supplier %s", self.supplier_id)
        return True

    def _close_lookups(self) -> None:
        self.leads.close()
        self.projects.close()

    # ── Navigation ───────────────────────────────────────────

    @property
    def step(self) -> WizardStep:
        return self.session.current_step

    def next(self) -> NavigationResult:
        return self.navigator.next()

    def back(self) -> NavigationResult:
        if self.session.is_submitting:
            return NavigationResult(moved=False, step=self.step)
        return self.navigator.back()

    def go_to(self, index: int) -> NavigationResult:
        return self.navigator.go_to(index)

    # ── Step data ────────────────────────────────────────────

    def set_field(self, step: int | WizardStep, path: str, value: Any) -> None:
        previous_client = self.session.lead_client_id
        store.set_step_field(self.session, step, path, value)
        self._on_lead_client_change(previous_client)

    def add_item(self) -> int:
        return store.add_item(self.session)

    def remove_item(self, index: int) -> bool:
        return store.remove_item(self.session, index)

    def update_item(self, index: int, **fields: Any) -> None:
        store.update_item(self.session, index, **fields)

    @property
    def order_total(self) -> float:
        return order_total(self.session.items)

    def _on_lead_client_change(self, previous_client: str | None) -> None:
        """A different (or no) client makes the project list and choice stale."""
        if self.session.lead_client_id == previous_client:
            return
        store.clear_project_choice(self.session)
        self.projects.clear()

    # ── Leads ────────────────────────────────────────────────

    async def load_leads(self) -> list[LeadSummary]:
        return await self.leads.refresh(self.supplier_id)

    def search_leads(self, term: str) -> list[LeadSummary]:
        return filter_leads(self.leads.choices, term)

    def find_lead(self, lead_id: str) -> LeadSummary | None:
        return next((lead for lead in self.leads.choices if lead.id == lead_id), None)

    async def select_lead(self, lead: LeadSummary) -> ValidationResult:
        """
        Choose an existing lead and load its client's projects.

        Leads without a linked client are rejected and step data is left
        as it was.
        """
        if not lead.has_client:
            return ValidationResult.failure(NO_CLIENT_MESSAGE)

        previous_client = self.session.lead_client_id
        store.choose_lead(
            self.session, lead_id=lead.id, label=lead.label, client_id=lead.client_id,
        )
        self._on_lead_client_change(previous_client)
        await self.projects.refresh(lead.client_id)
        return ValidationResult.success()

    async def convert_and_select_lead(self, lead: LeadSummary) -> ValidationResult:
        """Link a client-less lead to a client, select it, and continue at the project step."""
        try:
            client_id = await self.backend.convert_lead_to_client(lead.id)
        except BackendError as e:
            logger.warning("Lead %s conversion failed: %s", lead.id, e.message)
            return ValidationResult.failure(e.user_message)

        await self.cache.invalidate(supplier_leads_key(self.supplier_id))
        result = await self.select_lead(replace(lead, client_id=client_id))
        if result.ok:
            self.navigator.go_to(WizardStep.PROJECT)
        return result

    # ── Projects ─────────────────────────────────────────────

    def choose_project(self, project_id: str) -> ValidationResult:
        choice = next((c for c in self.projects.choices if c.id == project_id), None)
        if choice is None:
            return ValidationResult.failure("This project is not available for the selected lead")
        store.choose_project(self.session, project_id=choice.id, label=choice.label)
        return ValidationResult.success()

    # ── Submit ───────────────────────────────────────────────

    async def submit(self) -> CommitResult:
        """
        Validate everything, build the payload, and commit once.

        A second call while the first is in flight is a no-op. On success
        the wizard closes and on_success(order_id) fires exactly once.
        """
        if self.session.is_submitting:
            return CommitResult.already_submitting()
        if not self._open:
            raise WizardError("Wizard is not open")
        if self.step != WizardStep.ITEMS:
            return CommitResult.failure("Complete all steps before submitting")

        check = validate_all(self.session)
        if not check.ok:
            return CommitResult.failure(check.message)

        payload = build_commit_payload(self.session, self.supplier_id)
        result = await self.executor.submit(self.session, payload)
        if not result.ok:
            return result

        self._close_lookups()
        self._open = False
        if self.on_success is not None and result.order_id:
            outcome = self.on_success(result.order_id)
            if inspect.isawaitable(outcome):
                await outcome
        return result

    # ── Cached fetchers ──────────────────────────────────────

    async def _fetch_leads(self, supplier_id: str) -> list[LeadSummary]:
        async def compute() -> list[dict[str, Any]]:
            return [asdict(lead) for lead in await self.backend.list_leads(supplier_id)]

        rows = await self.cache.cached(supplier_leads_key(supplier_id), compute, ttl=self.cache_ttl)
        return [LeadSummary(**row) for row in rows]

    async def _fetch_projects(self, client_id: str) -> list[Choice]:
        async def compute() -> list[dict[str, Any]]:
            return [asdict(choice) for choice in await self.backend.client_projects(client_id)]

        key = supplier_projects_key(self.supplier_id, client_id)
        rows = await self.cache.cached(key, compute, ttl=self.cache_ttl)
        return [Choice(**row) for row in rows]

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view of the wizard for API responses and logs."""
        return {
            "open": self._open,
            "session": self.session.model_dump(mode="json"),
            "order_total": self.order_total,
            "lead_label": self.session.lead.label if isinstance(self.session.lead, LeadSelect) else None,
            "projects": [asdict(c) for c in self.projects.choices],
            "projects_notice": self.projects.notice,
        }


class WizardRegistry:
    """
    Live wizards keyed by owner (Telegram user id, API wizard id).

    Exactly one wizard per owner; nothing is persisted.
    """

    def __init__(self) -> None:
        self._wizards: dict[str, OrderWizard] = {}

    def open(self, key: str, wizard: OrderWizard) -> OrderWizard:
        """Register and open a wizard, replacing the owner's previous one."""
        existing = self._wizards.get(key)
        if existing is not None and not existing.set_open(False):
            raise WizardError("An order is being submitted, please wait")
        wizard.set_open(True)
        self._wizards[key] = wizard
        return wizard

    def get(self, key: str) -> OrderWizard | None:
        return self._wizards.get(key)

    def discard(self, key: str) -> bool:
        """Close and forget a wizard. Returns False while it is submitting."""
        wizard = self._wizards.get(key)
        if wizard is None:
            return True
        if not wizard.set_open(False):
            return False
        del self._wizards[key]
        return True

    def __len__(self) -> int:
        return len(self._wizards)

    def __contains__(self, key: str) -> bool:
        return key in self._wizards
