"""Tests for the Telegram inline keyboards."""

from orderbot.adapters.telegram.keyboards import items_keyboard, lead_select_keyboard, nav_row
from orderbot.core.lookup import LeadSummary
from orderbot.core.models import LineItem, WizardStep


def _callbacks(markup):
    return [button.callback_data for row in markup.inline_keyboard for button in row]


def test_callback_data_fits_telegram_limit():
    leads = [LeadSummary(id="0b8f3d2e-6a53-4c1e-9a7d-3f0a4f1c2b9e", name="x" * 80)]
    for data in _callbacks(lead_select_keyboard(leads)):
        assert len(data.encode()) <= 64


def test_lead_list_pages_and_marks_clientless():
    leads = [LeadSummary(id=str(i), name=f"Lead {i}", client_id="c" if i % 2 else None) for i in range(8)]
    markup = lead_select_keyboard(leads, page=1)
    texts = [b.text for row in markup.inline_keyboard for b in row]
    assert "⚠️ Lead 6" in texts
    assert "Lead 7" in texts
    assert "Lead 0" not in texts
    assert "ow:leads:0" in _callbacks(markup)


def test_selected_lead_is_ticked():
    leads = [LeadSummary(id="a", name="Anna", client_id="c1")]
    texts = [b.text for row in lead_select_keyboard(leads, selected_id="a").inline_keyboard for b in row]
    assert "✅ Anna" in texts


def test_nav_row_offers_submit_on_last_step():
    assert [b.callback_data for b in nav_row(WizardStep.LEAD)] == ["ow:next", "ow:cancel"]
    assert [b.callback_data for b in nav_row(WizardStep.ITEMS)] == ["ow:back", "ow:submit", "ow:cancel"]


def test_single_item_has_no_delete_button():
    assert "ow:item:del:0" not in _callbacks(items_keyboard([LineItem()]))
    assert "ow:item:del:1" in _callbacks(items_keyboard([LineItem(), LineItem()]))
