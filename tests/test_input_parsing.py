"""Tests for chat input parsing and the Telegram field table."""

from datetime import date

import pytest

from orderbot.adapters.telegram.order_fields import FIELDS, parse_field_input
from orderbot.core.input_parsing import format_date, parse_date, parse_money, parse_quantity
from orderbot.core.models import WizardStep


@pytest.mark.parametrize("text", ["15.03.2026", "15/03/2026", "2026-03-15", " 15.03.2026 "])
def test_parse_date_formats(text):
    assert parse_date(text) == date(2026, 3, 15)


@pytest.mark.parametrize("text", ["31.02.2026", "tomorrow", ""])
def test_parse_date_rejects(text):
    assert parse_date(text) is None


def test_format_date():
    assert format_date(date(2026, 3, 5)) == "05.03.2026"
    assert format_date(None) == "—"


def test_parse_quantity():
    assert parse_quantity("1 000") == 1000
    assert parse_quantity("2.5") is None


@pytest.mark.parametrize("text, value", [("120", 120.0), ("99,50", 99.5), ("1 250.75", 1250.75)])
def test_parse_money(text, value):
    assert parse_money(text) == value


@pytest.mark.parametrize("text", ["abc", "inf", "nan"])
def test_parse_money_rejects(text):
    assert parse_money(text) is None


# ── Field table ──────────────────────────────────────────────


def test_optional_field_cleared_with_dash():
    assert parse_field_input(FIELDS["lead_email"], "-") == (True, "", "")
    assert parse_field_input(FIELDS["start_date"], "-") == (True, None, "")


def test_required_field_rejects_empty():
    ok, _, error = parse_field_input(FIELDS["title"], "   ")
    assert not ok and error


def test_typed_fields_parse():
    assert parse_field_input(FIELDS["end_date"], "01.07.2026")[1] == date(2026, 7, 1)
    assert parse_field_input(FIELDS["item_price"], "12,5")[1] == 12.5
    assert parse_field_input(FIELDS["item_quantity"], "3")[1] == 3


def test_bad_date_reports_format():
    ok, _, error = parse_field_input(FIELDS["start_date"], "March")
    assert not ok
    assert "DD.MM.YYYY" in error


def test_item_paths_take_row_index():
    assert FIELDS["item_name"].path_for(2) == "2.name"
    assert FIELDS["title"].path_for(None) == "title"


def test_every_field_targets_its_step():
    assert FIELDS["project_zip"].step == WizardStep.PROJECT
    assert all(spec.prompt for spec in FIELDS.values())
