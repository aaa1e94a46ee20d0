"""
Editable wizard fields as exposed in the Telegram chat.

Each entry maps a short key (safe for callback_data) to the core step
and field path, how the typed text is parsed, and the prompt shown.
Item fields carry "{i}" in the path and are formatted with the row index.
"""

from dataclasses import dataclass
from typing import Any, Literal

from orderbot.core.input_parsing import (
    is_clear_marker,
    parse_date,
    parse_money,
    parse_quantity,
)
from orderbot.core.models import WizardStep

FieldKind = Literal["text", "date", "int", "money"]


@dataclass(frozen=True)
class FieldSpec:
    step: WizardStep
    path: str
    label: str
    prompt: str
    kind: FieldKind = "text"
    optional: bool = False

    def path_for(self, item_index: int | None = None) -> str:
        return self.path.format(i=item_index) if "{i}" in self.path else self.path


FIELDS: dict[str, FieldSpec] = {
    # Step 1 — new lead
    "lead_name": FieldSpec(WizardStep.LEAD, "new.full_name", "Full name",
                           "Enter the lead's <b>full name</b>:"),
    "lead_email": FieldSpec(WizardStep.LEAD, "new.email", "Email",
                            "Enter the lead's <b>email</b> (or «-» to clear):", optional=True),
    "lead_phone": FieldSpec(WizardStep.LEAD, "new.phone", "Phone",
                            "Enter the lead's <b>phone</b> (or «-» to clear):", optional=True),
    # Step 2 — new project
    "project_title": FieldSpec(WizardStep.PROJECT, "new.title", "Title",
                               "Enter the <b>project title</b>:"),
    "project_street": FieldSpec(WizardStep.PROJECT, "new.address.street", "Street",
                                "Enter the project's <b>street</b> (or «-» to clear):", optional=True),
    "project_city": FieldSpec(WizardStep.PROJECT, "new.address.city", "City",
                              "Enter the project's <b>city</b> (or «-» to clear):", optional=True),
    "project_zip": FieldSpec(WizardStep.PROJECT, "new.address.zip", "ZIP",
                             "Enter the project's <b>ZIP code</b> (or «-» to clear):", optional=True),
    # Step 3 — order details
    "title": FieldSpec(WizardStep.DETAILS, "title", "Title",
                       "Enter the <b>order title</b>:"),
    "description": FieldSpec(WizardStep.DETAILS, "description", "Description",
                             "Enter a <b>description</b> (or «-» to clear):", optional=True),
    "customer_name": FieldSpec(WizardStep.DETAILS, "customer_name", "Customer name",
                               "Enter the <b>customer name</b> (or «-» to clear):", optional=True),
    "customer_email": FieldSpec(WizardStep.DETAILS, "customer_email", "Customer email",
                                "Enter the <b>customer email</b> (or «-» to clear):", optional=True),
    "customer_phone": FieldSpec(WizardStep.DETAILS, "customer_phone", "Customer phone",
                                "Enter the <b>customer phone</b> (or «-» to clear):", optional=True),
    "start_date": FieldSpec(WizardStep.DETAILS, "start_date", "Start date",
                            "📅 Enter the <b>start date</b> (DD.MM.YYYY, or «-» to clear):",
                            kind="date", optional=True),
    "end_date": FieldSpec(WizardStep.DETAILS, "end_date", "End date",
                          "📅 Enter the <b>end date</b> (DD.MM.YYYY, or «-» to clear):",
                          kind="date", optional=True),
    "street": FieldSpec(WizardStep.DETAILS, "address.street", "Street",
                        "Enter the delivery <b>street</b> (or «-» to clear):", optional=True),
    "city": FieldSpec(WizardStep.DETAILS, "address.city", "City",
                      "Enter the delivery <b>city</b> (or «-» to clear):", optional=True),
    # Step 4 — item rows
    "item_name": FieldSpec(WizardStep.ITEMS, "{i}.name", "Name",
                           "Enter the <b>item name</b>:"),
    "item_description": FieldSpec(WizardStep.ITEMS, "{i}.description", "Description",
                                  "Enter the item <b>description</b> (or «-» to clear):", optional=True),
    "item_quantity": FieldSpec(WizardStep.ITEMS, "{i}.quantity", "Quantity",
                               "Enter the <b>quantity</b> (whole number):", kind="int"),
    "item_price": FieldSpec(WizardStep.ITEMS, "{i}.unit_price", "Unit price",
                            "Enter the <b>unit price</b> (e.g. 120 or 99,50):", kind="money"),
}

FIELDS_BY_STEP: dict[WizardStep, list[str]] = {
    step: [key for key, spec in FIELDS.items() if spec.step == step and "{i}" not in spec.path]
    for step in WizardStep
}

ITEM_FIELD_KEYS = ["item_name", "item_quantity", "item_price", "item_description"]

_INVALID_INPUT: dict[FieldKind, str] = {
    "text": "Please enter a value:",
    "date": "❌ Invalid date format.\nEnter the date as <b>DD.MM.YYYY</b> (e.g. 15.03.2026):",
    "int": "Please enter a whole number (e.g. 2):",
    "money": "Please enter a valid amount (e.g. 120 or 99,50):",
}


def parse_field_input(spec: FieldSpec, text: str) -> tuple[bool, Any, str]:
    """
    Turn typed text into a value for the field.

    Returns (ok, value, error_message).
    """
    text = text.strip()
    if spec.optional and is_clear_marker(text):
        return True, None if spec.kind == "date" else "", ""
    if not text:
        return False, None, _INVALID_INPUT["text"]

    if spec.kind == "text":
        return True, text, ""
    if spec.kind == "date":
        value = parse_date(text)
    elif spec.kind == "int":
        value = parse_quantity(text)
    else:
        value = parse_money(text)

    if value is None:
        return False, None, _INVALID_INPUT[spec.kind]
    return True, value, ""
