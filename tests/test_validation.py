"""Tests for step validation rules."""

from datetime import date

import pytest

from orderbot.core import store
from orderbot.core.models import LineItem, WizardStep
from orderbot.core.validation import validate_all, validate_step


def test_lead_select_requires_a_choice(session):
    result = validate_step(WizardStep.LEAD, session)
    assert not result.ok
    assert result.message == "Please choose a lead"


def test_lead_create_requires_full_name(session):
    store.set_lead_mode(session, "create")
    store.set_step_field(session, WizardStep.LEAD, "new.full_name", "   ")
    assert validate_step(WizardStep.LEAD, session).message == "Please enter the lead's full name"


def test_lead_create_email_and_phone_optional(session):
    store.set_lead_mode(session, "create")
    store.set_step_field(session, WizardStep.LEAD, "new.full_name", "Clara Jung")
    assert validate_step(WizardStep.LEAD, session).ok


def test_project_select_requires_a_choice(session):
    assert validate_step(WizardStep.PROJECT, session).message == "Please choose a project"


def test_project_create_requires_title(session):
    store.set_project_mode(session, "create")
    assert validate_step(WizardStep.PROJECT, session).message == "Please enter a project title"
    store.set_step_field(session, WizardStep.PROJECT, "new.title", "Attic")
    assert validate_step(WizardStep.PROJECT, session).ok


def test_details_require_title(session):
    assert validate_step(WizardStep.DETAILS, session).message == "Please enter an order title"


def test_end_before_start_fails(session):
    store.set_step_field(session, WizardStep.DETAILS, "title", "Windows")
    store.set_step_field(session, WizardStep.DETAILS, "start_date", date(2025, 6, 10))
    store.set_step_field(session, WizardStep.DETAILS, "end_date", date(2025, 6, 1))

    result = validate_step(WizardStep.DETAILS, session)

    assert not result.ok
    assert "before the start date" in result.message


def test_equal_dates_accepted(session):
    store.set_step_field(session, WizardStep.DETAILS, "title", "Windows")
    store.set_step_field(session, WizardStep.DETAILS, "start_date", date(2025, 6, 10))
    store.set_step_field(session, WizardStep.DETAILS, "end_date", date(2025, 6, 10))
    assert validate_step(WizardStep.DETAILS, session).ok


def test_single_date_accepted(session):
    store.set_step_field(session, WizardStep.DETAILS, "title", "Windows")
    store.set_step_field(session, WizardStep.DETAILS, "end_date", date(2025, 6, 1))
    assert validate_step(WizardStep.DETAILS, session).ok


@pytest.mark.parametrize("item, message", [
    (LineItem(name="", quantity=1, unit_price=5), "Item 1: every item needs a name"),
    (LineItem(name="Tiles", quantity=0, unit_price=5), "Item 1: quantity must be greater than 0"),
    (LineItem(name="Tiles", quantity=1, unit_price=-1), "Item 1: price cannot be negative"),
])
def test_item_rules(session, item, message):
    session.items = [item]
    assert validate_step(WizardStep.ITEMS, session).message == message


def test_items_reports_row_number(session):
    session.items = [LineItem(name="Tiles"), LineItem(name="Grout", quantity=-2)]
    assert validate_step(WizardStep.ITEMS, session).message.startswith("Item 2:")


def test_empty_item_list_fails(session):
    session.items = []
    assert validate_step(WizardStep.ITEMS, session).message == "Add at least one item"


def test_free_item_is_valid(session):
    session.items = [LineItem(name="Sample", quantity=1, unit_price=0)]
    assert validate_step(WizardStep.ITEMS, session).ok


def test_unknown_step_fails_without_raising(session):
    assert not validate_step(9, session).ok


def test_validate_all_returns_first_failure(session):
    store.set_lead_mode(session, "create")
    store.set_step_field(session, WizardStep.LEAD, "new.full_name", "Clara Jung")
    assert validate_all(session).message == "Please choose a project"
