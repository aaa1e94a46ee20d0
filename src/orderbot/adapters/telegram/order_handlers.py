"""
Telegram handlers for the order creation wizard.

The OrderWizard owns all data and rules; these handlers translate
button presses and typed text into wizard calls and render the result.
The FSM state only records what the next text message means.

Flow:
  /neworder → lead (pick | create) → project (pick | create)
  → details → items → create order
"""

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from orderbot.adapters.telegram.formatters import (
    format_item,
    format_lead_conversion,
    format_order_created,
    format_step,
)
from orderbot.adapters.telegram.fsm_states import OrderCreation
from orderbot.adapters.telegram.keyboards import (
    cancel_input_keyboard,
    convert_lead_keyboard,
    details_keyboard,
    item_edit_keyboard,
    items_keyboard,
    lead_create_keyboard,
    lead_select_keyboard,
    project_create_keyboard,
    project_select_keyboard,
)
from orderbot.adapters.telegram.middleware import SupplierContext
from orderbot.adapters.telegram.order_fields import FIELDS, parse_field_input
from orderbot.config import settings
from orderbot.core.errors import WizardError
from orderbot.core.input_parsing import is_clear_marker
from orderbot.core.models import LeadSelect, ProjectSelect, WizardStep
from orderbot.core.wizard import OrderWizard, WizardRegistry
from orderbot.services.query_cache import QueryCache

logger = logging.getLogger(__name__)
router = Router(name="order_creation")

NOT_A_SUPPLIER = "🚫 This bot is only available to registered suppliers."
NO_ACTIVE_ORDER = "No order in progress. Send /neworder to start one."
BUSY_SUBMITTING = "⏳ The order is being created, please wait."


def _key(user_id: int) -> str:
    return f"tg:{user_id}"


# ── Rendering ────────────────────────────────────────────────


async def _step_screen(wizard: OrderWizard, state: FSMContext) -> InlineKeyboardMarkup:
    """Keyboard for the current step (lead list honours search and paging)."""
    session = wizard.session
    match wizard.step:
        case WizardStep.LEAD:
            if not isinstance(session.lead, LeadSelect):
                return lead_create_keyboard()
            data = await state.get_data()
            search = data.get("lead_search")
            leads = wizard.search_leads(search) if search else wizard.leads.choices
            return lead_select_keyboard(
                leads, page=data.get("lead_page", 0), selected_id=session.lead.reference_id,
            )
        case WizardStep.PROJECT:
            if not isinstance(session.project, ProjectSelect):
                return project_create_keyboard()
            return project_select_keyboard(
                wizard.projects.choices, selected_id=session.project.reference_id,
            )
        case WizardStep.DETAILS:
            return details_keyboard()
        case WizardStep.ITEMS:
            return items_keyboard(session.items)


async def _show_step(
    message: Message,
    wizard: OrderWizard,
    state: FSMContext,
    *,
    error: str | None = None,
    edit: bool = True,
) -> None:
    text = format_step(wizard, error=error)
    markup = await _step_screen(wizard, state)
    if edit:
        await _edit(message, text, markup)
    else:
        await message.answer(text, reply_markup=markup)


async def _edit(message: Message, text: str, markup: InlineKeyboardMarkup | None = None) -> None:
    """edit_text that tolerates re-rendering an unchanged screen."""
    try:
        await message.edit_text(text, reply_markup=markup)
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise


async def _wizard_for(callback: CallbackQuery, wizards: WizardRegistry) -> OrderWizard | None:
    wizard = wizards.get(_key(callback.from_user.id))
    if wizard is None or not wizard.is_open:
        await callback.answer(NO_ACTIVE_ORDER, show_alert=True)
        return None
    return wizard


# ── Entry point / cancel ─────────────────────────────────────


@router.message(Command("start"))
async def cmd_start(message: Message, supplier: SupplierContext | None) -> None:
    if supplier is None:
        await message.answer(NOT_A_SUPPLIER)
        return
    await message.answer(
        "👋 <b>Order assistant</b>\n\n"
        "/neworder — create an order for a lead or client\n"
        "/cancel — discard the order in progress"
    )


@router.message(Command("neworder"))
async def cmd_new_order(
    message: Message,
    state: FSMContext,
    supplier: SupplierContext | None,
    cache: QueryCache,
    wizards: WizardRegistry,
) -> None:
    """Open a fresh wizard, replacing any unfinished one."""
    if supplier is None:
        await message.answer(NOT_A_SUPPLIER)
        return

    wizard = OrderWizard(
        supplier.supplier_id, supplier.backend, cache, cache_ttl=settings.cache_ttl,
    )
    try:
        wizards.open(_key(message.from_user.id), wizard)  # type: ignore[union-attr]
    except WizardError as e:
        await message.answer(f"⏳ {e}")
        return

    await state.clear()
    await state.set_state(OrderCreation.browsing)
    await wizard.load_leads()
    logger.info("Supplier %s started a new order", supplier.supplier_id)
    await _show_step(message, wizard, state, edit=False)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, wizards: WizardRegistry) -> None:
    if not wizards.discard(_key(message.from_user.id)):  # type: ignore[union-attr]
        await message.answer(BUSY_SUBMITTING)
        return
    await state.clear()
    await message.answer("❌ Order creation cancelled.")


@router.callback_query(F.data == "ow:cancel")
async def cb_cancel(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    if not wizards.discard(_key(callback.from_user.id)):
        await callback.answer(BUSY_SUBMITTING, show_alert=True)
        return
    await callback.answer()
    await state.clear()
    await _edit(callback.message, "❌ Order creation cancelled.")  # type: ignore[arg-type]


# ── Navigation ───────────────────────────────────────────────


@router.callback_query(F.data == "ow:next")
async def cb_next(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    result = wizard.next()
    await _show_step(callback.message, wizard, state, error=result.message or None)  # type: ignore[arg-type]


@router.callback_query(F.data == "ow:back")
async def cb_back(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    wizard.back()
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


@router.callback_query(F.data.in_({"ow:show", "ow:items"}))
async def cb_show(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    await state.set_state(OrderCreation.browsing)
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


# ── Step 1: Lead ─────────────────────────────────────────────


@router.callback_query(F.data.startswith("ow:lmode:"))
async def cb_lead_mode(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    kind = callback.data.split(":")[2]  # type: ignore[union-attr]
    wizard.set_field(WizardStep.LEAD, "mode", kind)
    if kind == "select" and not wizard.leads.choices:
        await wizard.load_leads()
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:leads:"))
async def cb_lead_page(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    await state.update_data(lead_page=int(callback.data.split(":")[2]))  # type: ignore[union-attr]
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:lead:"))
async def cb_pick_lead(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    """Pick a lead; client-less leads get a conversion offer instead."""
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    lead = wizard.find_lead(callback.data.split(":", 2)[2])  # type: ignore[union-attr]
    if lead is None:
        await callback.answer("Lead not found, refresh the list.", show_alert=True)
        return

    await callback.answer()
    if not lead.has_client:
        await _edit(
            callback.message,  # type: ignore[arg-type]
            format_lead_conversion(lead),
            convert_lead_keyboard(lead.id),
        )
        return

    result = await wizard.select_lead(lead)
    await _show_step(callback.message, wizard, state, error=result.message or None)  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:lconv:"))
async def cb_convert_lead(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    lead = wizard.find_lead(callback.data.split(":", 2)[2])  # type: ignore[union-attr]
    if lead is None:
        await callback.answer("Lead not found, refresh the list.", show_alert=True)
        return

    await callback.answer("Converting…")
    result = await wizard.convert_and_select_lead(lead)
    if result.ok:
        logger.info("Lead %s converted to a client by supplier %s", lead.id, wizard.supplier_id)
    await _show_step(callback.message, wizard, state, error=result.message or None)  # type: ignore[arg-type]


@router.callback_query(F.data == "ow:lsearch")
async def cb_lead_search(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    await state.set_state(OrderCreation.searching_leads)
    await _edit(
        callback.message,  # type: ignore[arg-type]
        "🔍 Type part of a name, email or phone (or «-» to show all leads):",
        cancel_input_keyboard(),
    )


@router.message(OrderCreation.searching_leads)
async def process_lead_search(message: Message, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = wizards.get(_key(message.from_user.id))  # type: ignore[union-attr]
    if wizard is None or not wizard.is_open:
        await state.clear()
        await message.answer(NO_ACTIVE_ORDER)
        return

    term = (message.text or "").strip()
    await state.update_data(lead_search=None if is_clear_marker(term) else term or None, lead_page=0)
    await state.set_state(OrderCreation.browsing)
    error = None
    if term and not is_clear_marker(term) and not wizard.search_leads(term):
        error = f"No leads match «{term}»"
    await _show_step(message, wizard, state, error=error, edit=False)


# ── Step 2: Project ──────────────────────────────────────────


@router.callback_query(F.data.startswith("ow:pmode:"))
async def cb_project_mode(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    kind = callback.data.split(":")[2]  # type: ignore[union-attr]
    wizard.set_field(WizardStep.PROJECT, "mode", kind)
    client_id = wizard.session.lead_client_id
    if kind == "select" and client_id and wizard.projects.parent_id != client_id:
        await wizard.projects.refresh(client_id)
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:proj:"))
async def cb_pick_project(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    result = wizard.choose_project(callback.data.split(":", 2)[2])  # type: ignore[union-attr]
    await _show_step(callback.message, wizard, state, error=result.message or None)  # type: ignore[arg-type]


# ── Field entry (all steps) ──────────────────────────────────


async def _ask_for_field(
    callback: CallbackQuery,
    state: FSMContext,
    field_key: str,
    item_index: int | None = None,
) -> None:
    spec = FIELDS.get(field_key)
    if spec is None:
        await callback.answer("Unknown field", show_alert=True)
        return
    await callback.answer()
    await state.set_state(OrderCreation.entering_field)
    await state.update_data(field_key=field_key, item_index=item_index)
    await _edit(callback.message, spec.prompt, cancel_input_keyboard())  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:edit:"))
async def cb_edit_field(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    if await _wizard_for(callback, wizards) is None:
        return
    await _ask_for_field(callback, state, callback.data.split(":", 2)[2])  # type: ignore[union-attr]


@router.callback_query(F.data.startswith("ow:ifield:"))
async def cb_edit_item_field(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    if await _wizard_for(callback, wizards) is None:
        return
    _, _, index, field_key = callback.data.split(":", 3)  # type: ignore[union-attr]
    await _ask_for_field(callback, state, field_key, int(index))


@router.message(OrderCreation.entering_field)
async def process_field_value(message: Message, state: FSMContext, wizards: WizardRegistry) -> None:
    """Parse the typed value and store it in the wizard."""
    wizard = wizards.get(_key(message.from_user.id))  # type: ignore[union-attr]
    if wizard is None or not wizard.is_open:
        await state.clear()
        await message.answer(NO_ACTIVE_ORDER)
        return

    data = await state.get_data()
    spec = FIELDS.get(data.get("field_key", ""))
    if spec is None:
        await state.set_state(OrderCreation.browsing)
        await _show_step(message, wizard, state, edit=False)
        return
    item_index = data.get("item_index")

    ok, value, error = parse_field_input(spec, message.text or "")
    if not ok:
        await message.answer(error, reply_markup=cancel_input_keyboard())
        return

    try:
        wizard.set_field(spec.step, spec.path_for(item_index), value)
    except WizardError as e:
        await message.answer(f"❌ {e}", reply_markup=cancel_input_keyboard())
        return

    await state.set_state(OrderCreation.browsing)
    if item_index is not None and item_index < len(wizard.session.items):
        await message.answer(
            format_item(item_index, wizard.session.items[item_index]),
            reply_markup=item_edit_keyboard(item_index),
        )
    else:
        await _show_step(message, wizard, state, edit=False)


# ── Step 4: Items ────────────────────────────────────────────


@router.callback_query(F.data == "ow:item:add")
async def cb_add_item(callback: CallbackQuery, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    await callback.answer()
    index = wizard.add_item()
    await _edit(
        callback.message,  # type: ignore[arg-type]
        format_item(index, wizard.session.items[index]),
        item_edit_keyboard(index),
    )


@router.callback_query(F.data.startswith("ow:item:del:"))
async def cb_remove_item(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    if not wizard.remove_item(int(callback.data.split(":")[3])):  # type: ignore[union-attr]
        await callback.answer("At least one item row is required.", show_alert=True)
        return
    await callback.answer("Item removed")
    await _show_step(callback.message, wizard, state)  # type: ignore[arg-type]


@router.callback_query(F.data.startswith("ow:item:"))
async def cb_open_item(callback: CallbackQuery, wizards: WizardRegistry) -> None:
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    index = int(callback.data.split(":")[2])  # type: ignore[union-attr]
    if not 0 <= index < len(wizard.session.items):
        await callback.answer("Item not found", show_alert=True)
        return
    await callback.answer()
    await _edit(
        callback.message,  # type: ignore[arg-type]
        format_item(index, wizard.session.items[index]),
        item_edit_keyboard(index),
    )


# ── Submit ───────────────────────────────────────────────────


@router.callback_query(F.data == "ow:submit")
async def cb_submit(callback: CallbackQuery, state: FSMContext, wizards: WizardRegistry) -> None:
    """Create the order. A second tap while the first is in flight is ignored."""
    wizard = await _wizard_for(callback, wizards)
    if wizard is None:
        return
    if wizard.session.is_submitting:
        await callback.answer(BUSY_SUBMITTING)
        return

    await callback.answer("Creating order…")
    result = await wizard.submit()
    if result.skipped:
        return
    if not result.ok:
        await _show_step(callback.message, wizard, state, error=result.error)  # type: ignore[arg-type]
        return

    wizards.discard(_key(callback.from_user.id))
    await state.clear()
    await _edit(callback.message, format_order_created(result.order_id or ""))  # type: ignore[arg-type]
