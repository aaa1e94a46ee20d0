"""
State models for the order-creation wizard.

- WizardSession — the in-memory state of one open wizard
- LeadMode      — select an existing lead, or create a new one
- ProjectMode   — select an existing project, or create a new one
- OrderDetails  — title, dates, address, customer contact
- LineItem      — one order row (name, quantity, unit price)
- CommitPayload — the immutable request sent to the backend on submit

Models are pydantic so a session can be dumped to JSON for logs and the
HTTP API, and so field updates coming from text input are coerced to the
right types in one place.
"""

import enum
from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WizardStep(enum.IntEnum):
    LEAD = 0
    PROJECT = 1
    DETAILS = 2
    ITEMS = 3


STEP_COUNT = len(WizardStep)
LAST_STEP = WizardStep.ITEMS

STEP_TITLES: dict[WizardStep, str] = {
    WizardStep.LEAD: "Lead",
    WizardStep.PROJECT: "Project",
    WizardStep.DETAILS: "Order details",
    WizardStep.ITEMS: "Order items",
}


# ── Shared value objects ──────────────────────────────────────


class Address(BaseModel):
    street: str = ""
    city: str = ""
    zip: str = ""
    notes: str = ""

    def is_empty(self) -> bool:
        return not any(v.strip() for v in (self.street, self.city, self.zip, self.notes))


class NewLead(BaseModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""


class NewProject(BaseModel):
    title: str = ""
    address: Address = Field(default_factory=Address)


# ── Step modes (tagged unions on `kind`) ─────────────────────


class LeadSelect(BaseModel):
    kind: Literal["select"] = "select"
    reference_id: str | None = None
    label: str = ""
    client_id: str | None = None  # client the chosen lead is linked to


class LeadCreate(BaseModel):
    kind: Literal["create"] = "create"
    new: NewLead = Field(default_factory=NewLead)


class ProjectSelect(BaseModel):
    kind: Literal["select"] = "select"
    reference_id: str | None = None
    label: str = ""


class ProjectCreate(BaseModel):
    kind: Literal["create"] = "create"
    new: NewProject = Field(default_factory=NewProject)


LeadMode = Annotated[LeadSelect | LeadCreate, Field(discriminator="kind")]
ProjectMode = Annotated[ProjectSelect | ProjectCreate, Field(discriminator="kind")]

MODE_KINDS = ("select", "create")


# ── Order details & items ────────────────────────────────────


class OrderDetails(BaseModel):
    title: str = ""
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    address: Address = Field(default_factory=Address)
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LineItem(BaseModel):
    product_id: str | None = None  # optional link to a catalog product
    name: str = ""
    description: str = ""
    quantity: int = 1
    unit_price: float = 0.0

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price

    @property
    def is_included(self) -> bool:
        """Soft-invalid rows (no name, or quantity <= 0) are left out of the commit."""
        return bool(self.name.strip()) and self.quantity > 0


def blank_item() -> LineItem:
    return LineItem(name="", quantity=1, unit_price=0.0)


# ── Session ───────────────────────────────────────────────────


class WizardSession(BaseModel):
    """
    One in-progress order wizard.

    Created when the wizard opens, reset on close or after a successful
    commit. Never persisted.
    """

    current_step: WizardStep = WizardStep.LEAD
    lead: LeadMode = Field(default_factory=LeadSelect)
    project: ProjectMode = Field(default_factory=ProjectSelect)
    details: OrderDetails = Field(default_factory=OrderDetails)
    items: list[LineItem] = Field(default_factory=lambda: [blank_item()])
    is_submitting: bool = False
    submitted: bool = False
    order_id: str | None = None

    @property
    def lead_client_id(self) -> str | None:
        if isinstance(self.lead, LeadSelect):
            return self.lead.client_id
        return None


# ── Commit payload ────────────────────────────────────────────

_FROZEN = ConfigDict(frozen=True)


class PayloadAddress(BaseModel):
    model_config = _FROZEN

    street: str = ""
    city: str = ""
    zip: str = ""
    notes: str = ""


class PayloadNewLead(BaseModel):
    model_config = _FROZEN

    full_name: str
    email: str | None = None
    phone: str | None = None


class PayloadNewProject(BaseModel):
    model_config = _FROZEN

    title: str
    address: PayloadAddress


class LeadRef(BaseModel):
    model_config = _FROZEN

    mode: Literal["select", "create"]
    lead_id: str | None = None
    new: PayloadNewLead | None = None


class ProjectRef(BaseModel):
    model_config = _FROZEN

    mode: Literal["select", "create"]
    project_id: str | None = None
    new: PayloadNewProject | None = None


class PayloadItem(BaseModel):
    model_config = _FROZEN

    product_id: str | None = None
    product_name: str
    description: str | None = None
    quantity: int
    unit_price: float


class PayloadOrder(BaseModel):
    model_config = _FROZEN

    title: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    address: PayloadAddress
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    items: tuple[PayloadItem, ...]
    total: float  # proposal only, the backend prices the order


class CommitPayload(BaseModel):
    """The single request built on submit. Immutable once constructed."""

    model_config = _FROZEN

    supplier_id: str
    lead: LeadRef
    project: ProjectRef
    order: PayloadOrder

    def to_request(self) -> dict[str, Any]:
        """JSON body for the remote create-order-bundle operation."""
        order = self.order.model_dump(mode="json", exclude={"total"})
        order["shipping_address"] = order["address"]
        return {
            "supplier_id": self.supplier_id,
            "lead": self.lead.model_dump(mode="json", exclude_none=True),
            "project": self.project.model_dump(mode="json", exclude_none=True),
            "order": order,
        }
