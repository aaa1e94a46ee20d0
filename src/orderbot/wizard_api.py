"""
HTTP API over the order wizard for the web front end.

Each POST /wizards opens one OrderWizard owned by the caller's access
token; every later call must present the same token. Wizards live in
memory only and disappear on commit, DELETE, or restart.

Run with:  uvicorn orderbot.wizard_api:app
"""

import hashlib
import logging
import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel

from orderbot.config import settings
from orderbot.core.errors import BackendAuthError, BackendError, WizardError
from orderbot.core.models import WizardStep
from orderbot.core.navigation import NavigationResult
from orderbot.core.validation import validate_all
from orderbot.core.wizard import OrderWizard, WizardRegistry
from orderbot.services.backend_client import BackendClient
from orderbot.services.query_cache import QueryCache, build_query_cache

logger = logging.getLogger(__name__)

BackendFactory = Callable[[str], BackendClient]

# (supplier_id, order_id) after an order is committed through the API
OrderNotifier = Callable[[str, str], Awaitable[None]]


# ── Request bodies ───────────────────────────────────────────


class FieldUpdate(BaseModel):
    step: int
    path: str
    value: Any = None


class LeadChoice(BaseModel):
    lead_id: str
    convert: bool = False  # link a client-less lead to a client first


class ProjectChoice(BaseModel):
    project_id: str


class ItemUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    product_id: str | None = None
    name: str | None = None
    description: str | None = None
    quantity: int | None = None
    unit_price: float | None = None


# ── Wizard ownership ─────────────────────────────────────────


@dataclass
class ApiWizard:
    wizard: OrderWizard
    backend: BackendClient
    token_digest: str


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _bearer(authorization: str | None) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def create_app(
    *,
    cache: QueryCache | None = None,
    backend_factory: BackendFactory = BackendClient,
    on_order_created: OrderNotifier | None = None,
) -> FastAPI:
    """Build the API; tests pass their own cache and backend factory."""
    registry = WizardRegistry()
    owned: dict[str, ApiWizard] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for entry in owned.values():
            await entry.backend.aclose()
        owned.clear()

    app = FastAPI(title="Order Wizard API", lifespan=lifespan)
    app.state.cache = cache or build_query_cache()
    app.state.wizards = registry

    def _lookup(wizard_id: str, authorization: str | None) -> OrderWizard:
        token = _bearer(authorization)
        entry = owned.get(wizard_id)
        if entry is None or entry.token_digest != _digest(token) or wizard_id not in registry:
            raise HTTPException(status_code=404, detail="Wizard not found")
        return entry.wizard

    async def _forget(wizard_id: str) -> None:
        entry = owned.pop(wizard_id, None)
        if entry is not None:
            await entry.backend.aclose()

    def _nav(wizard_id: str, wizard: OrderWizard, result: NavigationResult) -> dict[str, Any]:
        if not result.moved and result.message:
            raise HTTPException(status_code=422, detail=result.message)
        return {"wizard_id": wizard_id, "moved": result.moved, **wizard.snapshot()}

    # ── Lifecycle ────────────────────────────────────────────

    @app.post("/wizards", status_code=201)
    async def open_wizard(request: Request, authorization: str | None = Header(default=None)):
        token = _bearer(authorization)
        backend = backend_factory(token)
        try:
            supplier_id = await backend.get_user()
        except BackendAuthError as e:
            await backend.aclose()
            raise HTTPException(status_code=401, detail=e.message) from e
        except BackendError as e:
            await backend.aclose()
            raise HTTPException(status_code=502, detail=e.user_message) from e

        wizard = OrderWizard(
            supplier_id, backend, request.app.state.cache, cache_ttl=settings.cache_ttl,
        )
        wizard_id = uuid.uuid4().hex
        registry.open(wizard_id, wizard)
        owned[wizard_id] = ApiWizard(wizard=wizard, backend=backend, token_digest=_digest(token))
        await wizard.load_leads()
        logger.info("Wizard %s opened for supplier %s", wizard_id, supplier_id)
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    @app.get("/wizards/{wizard_id}")
    async def get_wizard(wizard_id: str, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    @app.delete("/wizards/{wizard_id}")
    async def close_wizard(wizard_id: str, authorization: str | None = Header(default=None)):
        _lookup(wizard_id, authorization)
        if not registry.discard(wizard_id):
            raise HTTPException(status_code=409, detail="The order is being submitted")
        await _forget(wizard_id)
        return {"wizard_id": wizard_id, "closed": True}

    # ── Step data ────────────────────────────────────────────

    @app.patch("/wizards/{wizard_id}/fields")
    async def set_field(
        wizard_id: str,
        update: FieldUpdate,
        authorization: str | None = Header(default=None),
    ):
        wizard = _lookup(wizard_id, authorization)
        try:
            wizard.set_field(update.step, update.path, update.value)
        except WizardError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    @app.post("/wizards/{wizard_id}/items", status_code=201)
    async def add_item(wizard_id: str, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        index = wizard.add_item()
        return {"wizard_id": wizard_id, "index": index, **wizard.snapshot()}

    @app.patch("/wizards/{wizard_id}/items/{index}")
    async def update_item(
        wizard_id: str,
        index: int,
        update: ItemUpdate,
        authorization: str | None = Header(default=None),
    ):
        wizard = _lookup(wizard_id, authorization)
        try:
            wizard.update_item(index, **update.model_dump(exclude_unset=True))
        except WizardError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    @app.delete("/wizards/{wizard_id}/items/{index}")
    async def remove_item(wizard_id: str, index: int, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        if not wizard.remove_item(index):
            raise HTTPException(status_code=422, detail="Item row cannot be removed; at least one row is kept")
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    # ── Navigation ───────────────────────────────────────────

    @app.post("/wizards/{wizard_id}/next")
    async def next_step(wizard_id: str, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        return _nav(wizard_id, wizard, wizard.next())

    @app.post("/wizards/{wizard_id}/back")
    async def previous_step(wizard_id: str, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        return _nav(wizard_id, wizard, wizard.back())

    # ── Lookups ──────────────────────────────────────────────

    @app.get("/wizards/{wizard_id}/leads")
    async def list_leads(
        wizard_id: str,
        q: str = "",
        authorization: str | None = Header(default=None),
    ):
        wizard = _lookup(wizard_id, authorization)
        return {
            "leads": [
                {**asdict(lead), "label": lead.label, "has_client": lead.has_client}
                for lead in wizard.search_leads(q)
            ],
            "notice": wizard.leads.notice,
        }

    @app.post("/wizards/{wizard_id}/lead")
    async def choose_lead(
        wizard_id: str,
        choice: LeadChoice,
        authorization: str | None = Header(default=None),
    ):
        wizard = _lookup(wizard_id, authorization)
        lead = wizard.find_lead(choice.lead_id)
        if lead is None:
            raise HTTPException(status_code=404, detail="Lead not found")

        if choice.convert and not lead.has_client:
            result = await wizard.convert_and_select_lead(lead)
            if not result.ok:
                raise HTTPException(status_code=502, detail=result.message)
        else:
            result = await wizard.select_lead(lead)
            if not result.ok:
                raise HTTPException(status_code=422, detail=result.message)
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    @app.get("/wizards/{wizard_id}/projects")
    async def list_projects(wizard_id: str, authorization: str | None = Header(default=None)):
        wizard = _lookup(wizard_id, authorization)
        return {
            "client_id": wizard.projects.parent_id,
            "projects": [asdict(choice) for choice in wizard.projects.choices],
            "notice": wizard.projects.notice,
        }

    @app.post("/wizards/{wizard_id}/project")
    async def choose_project(
        wizard_id: str,
        choice: ProjectChoice,
        authorization: str | None = Header(default=None),
    ):
        wizard = _lookup(wizard_id, authorization)
        result = wizard.choose_project(choice.project_id)
        if not result.ok:
            raise HTTPException(status_code=422, detail=result.message)
        return {"wizard_id": wizard_id, **wizard.snapshot()}

    # ── Submit ───────────────────────────────────────────────

    @app.post("/wizards/{wizard_id}/submit")
    async def submit(wizard_id: str, authorization: str | None = Header(default=None)):
        """
        Commit the order.

        409 while a submit is in flight, 422 when a step is invalid, 502
        with the backend's message when the commit fails.
        """
        wizard = _lookup(wizard_id, authorization)
        if wizard.session.is_submitting:
            raise HTTPException(status_code=409, detail="The order is already being submitted")
        if wizard.step != WizardStep.ITEMS:
            raise HTTPException(status_code=422, detail="Complete all steps before submitting")
        check = validate_all(wizard.session)
        if not check.ok:
            raise HTTPException(status_code=422, detail=check.message)

        result = await wizard.submit()
        if result.skipped:
            raise HTTPException(status_code=409, detail="The order is already being submitted")
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)

        registry.discard(wizard_id)
        await _forget(wizard_id)
        if on_order_created is not None:
            try:
                await on_order_created(wizard.supplier_id, result.order_id)
            except Exception:
                # The order exists; a failed notification must not turn it into an error
                logger.exception("Order %s notification failed", result.order_id)
        return {"wizard_id": wizard_id, "order_id": result.order_id}

    return app


app = create_app()
