"""
Telegram inline keyboard builders for the order wizard.

These helpers produce aiogram InlineKeyboardMarkup objects.
They are Telegram-specific and belong in the adapter layer.

Callback data scheme (prefix "ow:"):
  ow:lmode:<kind>         switch lead mode (select | create)
  ow:leads:<page>         page through the lead list
  ow:lead:<id>            pick an existing lead
  ow:lconv:<id>           convert a client-less lead, then pick it
  ow:lsearch              ask for a lead search term
  ow:pmode:<kind>         switch project mode
  ow:proj:<id>            pick an existing project
  ow:edit:<field_key>     type a value for a step field
  ow:item:add             append an item row
  ow:item:del:<i>         remove item row i
  ow:item:<i>             open item row i
  ow:ifield:<i>:<key>     type a value for a field of item row i
  ow:items                back to the item list
  ow:show                 redraw the current step
  ow:next | ow:back | ow:submit | ow:cancel
"""

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from orderbot.adapters.telegram.order_fields import FIELDS, FIELDS_BY_STEP, ITEM_FIELD_KEYS
from orderbot.core.lookup import Choice, LeadSummary
from orderbot.core.models import LineItem, WizardStep

PREFIX = "ow"
LEADS_PER_PAGE = 6


def _button(text: str, *parts: object) -> InlineKeyboardButton:
    data = ":".join([PREFIX, *(str(p) for p in parts)])
    return InlineKeyboardButton(text=text, callback_data=data)


def _mode_row(action: str, kind: str, select_label: str, create_label: str) -> list[InlineKeyboardButton]:
    """Two-way toggle; the active mode gets a ✅ prefix."""
    return [
        _button(("✅ " if kind == "select" else "") + select_label, action, "select"),
        _button(("✅ " if kind == "create" else "") + create_label, action, "create"),
    ]


def nav_row(step: WizardStep) -> list[InlineKeyboardButton]:
    """Back / Next (or Submit on the last step) / Cancel."""
    row = []
    if step != WizardStep.LEAD:
        row.append(_button("⬅️ Back", "back"))
    if step == WizardStep.ITEMS:
        row.append(_button("✅ Create order", "submit"))
    else:
        row.append(_button("Next ➡️", "next"))
    row.append(_button("❌ Cancel", "cancel"))
    return row


def _field_rows(step: WizardStep) -> list[list[InlineKeyboardButton]]:
    """One "✏️ Label" button per editable field, two per row."""
    buttons = [_button(f"✏️ {FIELDS[key].label}", "edit", key) for key in FIELDS_BY_STEP[step]]
    return [buttons[i:i + 2] for i in range(0, len(buttons), 2)]


# ── Step 1: Lead ─────────────────────────────────────────────


def lead_select_keyboard(
    leads: Sequence[LeadSummary],
    page: int = 0,
    selected_id: str | None = None,
) -> InlineKeyboardMarkup:
    """
    Paged list of leads.

    Leads without a linked client are marked ⚠️; picking one offers
    conversion instead of selection.
    """
    rows = [_mode_row("lmode", "select", "Existing lead", "New lead")]

    pages = max(1, -(-len(leads) // LEADS_PER_PAGE))
    page = min(max(page, 0), pages - 1)
    start = page * LEADS_PER_PAGE
    for lead in leads[start:start + LEADS_PER_PAGE]:
        if lead.id == selected_id:
            mark = "✅ "
        elif not lead.has_client:
            mark = "⚠️ "
        else:
            mark = ""
        rows.append([_button(f"{mark}{lead.label}", "lead", lead.id)])

    paging = []
    if page > 0:
        paging.append(_button("◀️", "leads", page - 1))
    if pages > 1:
        paging.append(_button(f"{page + 1}/{pages}", "leads", page))
    if page < pages - 1:
        paging.append(_button("▶️", "leads", page + 1))
    if paging:
        rows.append(paging)

    rows.append([_button("🔍 Search", "lsearch")])
    rows.append(nav_row(WizardStep.LEAD))
    return InlineKeyboardMarkup(inline_keyboard=rows)


def lead_create_keyboard() -> InlineKeyboardMarkup:
    rows = [_mode_row("lmode", "create", "Existing lead", "New lead")]
    rows.extend(_field_rows(WizardStep.LEAD))
    rows.append(nav_row(WizardStep.LEAD))
    return InlineKeyboardMarkup(inline_keyboard=rows)


def convert_lead_keyboard(lead_id: str) -> InlineKeyboardMarkup:
    """Offer to link a client-less lead to a client account."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("🔗 Convert to client", "lconv", lead_id)],
        [_button("⬅️ Back to leads", "leads", 0)],
    ])


# ── Step 2: Project ──────────────────────────────────────────


def project_select_keyboard(
    projects: Sequence[Choice],
    selected_id: str | None = None,
) -> InlineKeyboardMarkup:
    rows = [_mode_row("pmode", "select", "Existing project", "New project")]
    for project in projects:
        mark = "✅ " if project.id == selected_id else ""
        rows.append([_button(f"{mark}{project.label or 'Untitled'}", "proj", project.id)])
    rows.append(nav_row(WizardStep.PROJECT))
    return InlineKeyboardMarkup(inline_keyboard=rows)


def project_create_keyboard() -> InlineKeyboardMarkup:
    rows = [_mode_row("pmode", "create", "Existing project", "New project")]
    rows.extend(_field_rows(WizardStep.PROJECT))
    rows.append(nav_row(WizardStep.PROJECT))
    return InlineKeyboardMarkup(inline_keyboard=rows)


# ── Step 3: Details ──────────────────────────────────────────


def details_keyboard() -> InlineKeyboardMarkup:
    rows = _field_rows(WizardStep.DETAILS)
    rows.append(nav_row(WizardStep.DETAILS))
    return InlineKeyboardMarkup(inline_keyboard=rows)


# ── Step 4: Items ────────────────────────────────────────────


def items_keyboard(items: Sequence[LineItem]) -> InlineKeyboardMarkup:
    """
    One row per item: open it, or delete it.

    The delete button is hidden while only one row is left.
    """
    rows = []
    for index, item in enumerate(items):
        row = [_button(f"✏️ {index + 1}. {item.name.strip() or 'New item'}", "item", index)]
        if len(items) > 1:
            row.append(_button("🗑", "item", "del", index))
        rows.append(row)
    rows.append([_button("➕ Add item", "item", "add")])
    rows.append(nav_row(WizardStep.ITEMS))
    return InlineKeyboardMarkup(inline_keyboard=rows)


def item_edit_keyboard(index: int) -> InlineKeyboardMarkup:
    buttons = [_button(f"✏️ {FIELDS[key].label}", "ifield", index, key) for key in ITEM_FIELD_KEYS]
    rows = [buttons[i:i + 2] for i in range(0, len(buttons), 2)]
    rows.append([_button("⬅️ Back to items", "items")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def cancel_input_keyboard() -> InlineKeyboardMarkup:
    """Shown under text prompts: return to the step without typing."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("↩️ Back to step", "show")],
    ])
