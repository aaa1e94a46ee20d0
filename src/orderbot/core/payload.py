"""
Commit assembler — turns a WizardSession into one CommitPayload.

Pure and deterministic. Incomplete item rows (no name, or quantity <= 0)
are dropped silently here even though the ITEMS step already rejects
them; the total is a client-side proposal and the backend remains the
source of truth for pricing.
"""

from collections.abc import Iterable
from typing import assert_never

from orderbot.core.models import (
    Address,
    CommitPayload,
    LeadCreate,
    LeadRef,
    LeadSelect,
    LineItem,
    PayloadAddress,
    PayloadItem,
    PayloadNewLead,
    PayloadNewProject,
    PayloadOrder,
    ProjectCreate,
    ProjectRef,
    ProjectSelect,
    WizardSession,
)


def line_total(item: LineItem) -> float:
    return item.quantity * item.unit_price


def included_items(items: Iterable[LineItem]) -> list[LineItem]:
    """Rows that make it into the commit."""
    # TODO: confirm with product whether incomplete rows should be dropped
    # here or rejected; the items step gate already rejects them.
    return [item for item in items if item.is_included]


def order_total(items: Iterable[LineItem]) -> float:
    """Sum of line totals over included rows only."""
    return sum((line_total(item) for item in included_items(items)), 0.0)


def _optional(value: str) -> str | None:
    value = value.strip()
    return value or None


def _address(address: Address) -> PayloadAddress:
    return PayloadAddress(**address.model_dump())


def _lead_ref(session: WizardSession) -> LeadRef:
    match session.lead:
        case LeadSelect(reference_id=ref):
            return LeadRef(mode="select", lead_id=ref)
        case LeadCreate(new=new):
            return LeadRef(
                mode="create",
                new=PayloadNewLead(
                    full_name=new.full_name.strip(),
                    email=_optional(new.email),
                    phone=_optional(new.phone),
                ),
            )
        case _ as unreachable:
            assert_never(unreachable)


def _project_ref(session: WizardSession) -> ProjectRef:
    match session.project:
        case ProjectSelect(reference_id=ref):
            return ProjectRef(mode="select", project_id=ref)
        case ProjectCreate(new=new):
            return ProjectRef(
                mode="create",
                new=PayloadNewProject(title=new.title.strip(), address=_address(new.address)),
            )
        case _ as unreachable:
            assert_never(unreachable)


def build_commit_payload(session: WizardSession, supplier_id: str) -> CommitPayload:
    """
    Assemble the create-order-bundle request.

    Customer contact fields left blank fall back to the new lead's
    contact details (create mode only).
    """
    details = session.details
    new_lead = session.lead.new if isinstance(session.lead, LeadCreate) else None

    items = included_items(session.items)
    order = PayloadOrder(
        title=details.title.strip(),
        description=_optional(details.description),
        start_date=details.start_date,
        end_date=details.end_date,
        address=_address(details.address),
        customer_name=_optional(details.customer_name)
        or (_optional(new_lead.full_name) if new_lead else None),
        customer_email=_optional(details.customer_email)
        or (_optional(new_lead.email) if new_lead else None),
        customer_phone=_optional(details.customer_phone)
        or (_optional(new_lead.phone) if new_lead else None),
        items=tuple(
            PayloadItem(
                product_id=item.product_id,
                product_name=item.name.strip(),
                description=_optional(item.description),
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in items
        ),
        total=order_total(items),
    )

    return CommitPayload(
        supplier_id=supplier_id,
        lead=_lead_ref(session),
        project=_project_ref(session),
        order=order,
    )
