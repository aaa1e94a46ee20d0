"""
Telegram-specific message formatters — HTML output.

Core wizard code returns raw state. All HTML formatting belongs here,
never in core/. User-entered text is escaped before it is embedded.
"""

from html import escape
from typing import assert_never

from orderbot.core.input_parsing import format_date
from orderbot.core.lookup import LeadSummary, get_lead_status_label
from orderbot.core.models import (
    STEP_COUNT,
    STEP_TITLES,
    Address,
    LeadCreate,
    LeadSelect,
    LineItem,
    ProjectCreate,
    ProjectSelect,
    WizardStep,
)
from orderbot.core.wizard import OrderWizard

STEP_ICONS = {
    WizardStep.LEAD: "👤",
    WizardStep.PROJECT: "🏠",
    WizardStep.DETAILS: "📝",
    WizardStep.ITEMS: "📦",
}


def format_money(amount: float) -> str:
    return f"{amount:,.2f}"


def _value(text: str | None) -> str:
    return escape(text) if text else "—"


def _address_line(address: Address) -> str:
    if address.is_empty():
        return "—"
    parts = [address.street, address.zip, address.city]
    return escape(", ".join(p for p in parts if p.strip()))


def format_step_header(step: WizardStep) -> str:
    return (
        f"{STEP_ICONS[step]} <b>New order</b> · "
        f"Step {step + 1} of {STEP_COUNT}: <b>{STEP_TITLES[step]}</b>"
    )


# ── Step bodies ──────────────────────────────────────────────


def _lead_body(wizard: OrderWizard) -> list[str]:
    lead = wizard.session.lead
    match lead:
        case LeadSelect():
            if lead.reference_id:
                lines = [f"Selected: ✅ <b>{escape(lead.label)}</b>"]
            else:
                lines = ["Choose an existing lead:"]
            if wizard.leads.notice:
                lines.append(f"⚠️ {escape(wizard.leads.notice)}")
            elif not wizard.leads.choices:
                lines.append("<i>No leads yet. Switch to «New lead» to create one.</i>")
            else:
                lines.append("<i>⚠️ marks leads not linked to a client yet.</i>")
            return lines
        case LeadCreate():
            return [
                "New lead:",
                f"  Full name: {_value(lead.new.full_name)}",
                f"  Email: {_value(lead.new.email)}",
                f"  Phone: {_value(lead.new.phone)}",
            ]
        case _:
            assert_never(lead)


def _project_body(wizard: OrderWizard) -> list[str]:
    project = wizard.session.project
    match project:
        case ProjectSelect():
            if project.reference_id:
                lines = [f"Selected: ✅ <b>{escape(project.label)}</b>"]
            else:
                lines = ["Choose a project of this client:"]
            if wizard.projects.notice:
                lines.append(f"⚠️ {escape(wizard.projects.notice)}")
            elif wizard.session.lead_client_id is None:
                lines.append("<i>Projects are listed once an existing lead is chosen.</i>")
            elif not wizard.projects.choices:
                lines.append("<i>This client has no projects. Switch to «New project».</i>")
            return lines
        case ProjectCreate():
            return [
                "New project:",
                f"  Title: {_value(project.new.title)}",
                f"  Address: {_address_line(project.new.address)}",
            ]
        case _:
            assert_never(project)


def _details_body(wizard: OrderWizard) -> list[str]:
    d = wizard.session.details
    return [
        f"Title: {_value(d.title)}",
        f"Description: {_value(d.description)}",
        f"📅 {format_date(d.start_date)} → {format_date(d.end_date)}",
        f"📍 Delivery: {_address_line(d.address)}",
        f"Customer: {_value(d.customer_name)}",
        f"  Email: {_value(d.customer_email)}",
        f"  Phone: {_value(d.customer_phone)}",
    ]


def format_item_line(index: int, item: LineItem) -> str:
    name = escape(item.name.strip()) or "<i>no name</i>"
    line = (
        f"{index + 1}. {name} — {item.quantity} × {format_money(item.unit_price)}"
        f" = <b>{format_money(item.line_total)}</b>"
    )
    if not item.is_included:
        line += " <i>(not counted)</i>"
    return line


def _items_body(wizard: OrderWizard) -> list[str]:
    lines = [format_item_line(i, item) for i, item in enumerate(wizard.session.items)]
    lines.append("")
    lines.append(f"💰 Total: <b>{format_money(wizard.order_total)}</b>")
    return lines


_BODIES = {
    WizardStep.LEAD: _lead_body,
    WizardStep.PROJECT: _project_body,
    WizardStep.DETAILS: _details_body,
    WizardStep.ITEMS: _items_body,
}


def format_step(wizard: OrderWizard, error: str | None = None) -> str:
    """
    Full screen for the wizard's current step.

    An error (validation or commit failure) is shown under the header.
    """
    step = wizard.step
    lines = [format_step_header(step), ""]
    if error:
        lines.append(f"❌ {escape(error)}")
        lines.append("")
    lines.extend(_BODIES[step](wizard))
    return "\n".join(lines)


def format_item(index: int, item: LineItem) -> str:
    return "\n".join([
        f"📦 <b>Item {index + 1}</b>",
        "",
        f"Name: {_value(item.name)}",
        f"Description: {_value(item.description)}",
        f"Quantity: {item.quantity}",
        f"Unit price: {format_money(item.unit_price)}",
        f"Line total: <b>{format_money(item.line_total)}</b>",
    ])


def format_lead_conversion(lead: LeadSummary) -> str:
    contact = " · ".join(escape(c) for c in (lead.email, lead.phone) if c)
    lines = [
        f"⚠️ <b>{escape(lead.label)}</b> is not linked to a client yet.",
        f"Status: {get_lead_status_label(lead.status)}",
    ]
    if contact:
        lines.append(contact)
    lines.append("")
    lines.append("Orders can only be created for clients. Convert this lead?")
    return "\n".join(lines)


def format_order_created(order_id: str) -> str:
    return f"✅ <b>Order created!</b>\n\nOrder ID: <code>{escape(order_id)}</code>"
