"""
Step data store — holds the values entered on every wizard step.

Navigating backward never loses input because all steps live on the
same WizardSession. Nothing here validates step rules; that is the
validator's job. Values are only coerced to the field's declared type.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from orderbot.core.errors import WizardError
from orderbot.core.models import (
    MODE_KINDS,
    LeadCreate,
    LeadMode,
    LeadSelect,
    LineItem,
    OrderDetails,
    ProjectCreate,
    ProjectMode,
    ProjectSelect,
    WizardSession,
    WizardStep,
    blank_item,
)

logger = logging.getLogger(__name__)

_LEAD_ADAPTER: TypeAdapter = TypeAdapter(LeadMode)
_PROJECT_ADAPTER: TypeAdapter = TypeAdapter(ProjectMode)
_ITEMS_ADAPTER: TypeAdapter = TypeAdapter(list[LineItem])

# Set only through choose_lead / choose_project
_PICKED_FIELDS: dict[WizardStep, frozenset[str]] = {
    WizardStep.LEAD: frozenset({"reference_id", "label", "client_id"}),
    WizardStep.PROJECT: frozenset({"reference_id", "label"}),
}


def _as_step(step: int | WizardStep) -> WizardStep:
    try:
        return WizardStep(step)
    except ValueError:
        raise WizardError(f"Unknown wizard step: {step!r}") from None


def _assign(container: Any, parts: list[str], value: Any, path: str) -> None:
    """Set value at a dotted path inside plain dicts/lists."""
    key = parts[0]
    if isinstance(container, list):
        try:
            index = int(key)
        except ValueError:
            raise WizardError(f"Unknown field: {path}") from None
        if not 0 <= index < len(container):
            raise WizardError(f"Unknown field: {path}")
        if len(parts) == 1:
            container[index] = value
        else:
            _assign(container[index], parts[1:], value, path)
        return

    if not isinstance(container, dict) or key not in container or key == "kind":
        raise WizardError(f"Unknown field: {path}")
    if len(parts) == 1:
        container[key] = value
    else:
        _assign(container[key], parts[1:], value, path)


# ── Generic field update ─────────────────────────────────────


def set_step_field(
    session: WizardSession,
    step: int | WizardStep,
    field_path: str,
    value: Any,
) -> None:
    """
    Merge a value into one step's data.

    Paths are dotted and relative to the step:
      LEAD     "mode", "new.full_name", "new.phone"
      PROJECT  "mode", "new.title", "new.address.city"
      DETAILS  "title", "start_date", "address.street"
      ITEMS    "2.quantity", "0.name"

    Raises WizardError for unknown paths, for the picked lead/project
    (use choose_lead / choose_project), and for values that cannot be
    coerced to the field type.
    """
    step = _as_step(step)
    parts = field_path.split(".") if field_path else []
    if not parts:
        raise WizardError("Empty field path")
    if parts[0] in _PICKED_FIELDS.get(step, ()):
        raise WizardError(f"{field_path} is set by choosing from the list")

    if field_path == "mode":
        if step == WizardStep.LEAD:
            set_lead_mode(session, value)
            return
        if step == WizardStep.PROJECT:
            set_project_mode(session, value)
            return

    try:
        if step == WizardStep.LEAD:
            data = session.lead.model_dump()
            _assign(data, parts, value, field_path)
            session.lead = _LEAD_ADAPTER.validate_python(data)
        elif step == WizardStep.PROJECT:
            data = session.project.model_dump()
            _assign(data, parts, value, field_path)
            session.project = _PROJECT_ADAPTER.validate_python(data)
        elif step == WizardStep.DETAILS:
            data = session.details.model_dump()
            _assign(data, parts, value, field_path)
            session.details = OrderDetails.model_validate(data)
        else:
            items = [item.model_dump() for item in session.items]
            _assign(items, parts, value, field_path)
            session.items = _ITEMS_ADAPTER.validate_python(items)
    except ValidationError as e:
        raise WizardError(f"Invalid value for {field_path}: {e.errors()[0]['msg']}") from e

    logger.debug("Step %s field %s updated", step.name, field_path)


# ── Mode switching ───────────────────────────────────────────


def _check_kind(kind: str) -> None:
    if kind not in MODE_KINDS:
        raise WizardError(f"Unknown mode: {kind!r}")


def set_lead_mode(session: WizardSession, kind: str) -> None:
    """Switch the lead step between select/create; switching starts the step over."""
    _check_kind(kind)
    if session.lead.kind == kind:
        return
    session.lead = LeadSelect() if kind == "select" else LeadCreate()


def set_project_mode(session: WizardSession, kind: str) -> None:
    """Switch the project step between select/create; switching starts the step over."""
    _check_kind(kind)
    if session.project.kind == kind:
        return
    session.project = ProjectSelect() if kind == "select" else ProjectCreate()


# ── Named accessors ──────────────────────────────────────────


def choose_lead(
    session: WizardSession,
    *,
    lead_id: str,
    label: str,
    client_id: str | None,
) -> None:
    session.lead = LeadSelect(reference_id=lead_id, label=label, client_id=client_id)


def choose_project(session: WizardSession, *, project_id: str, label: str) -> None:
    session.project = ProjectSelect(reference_id=project_id, label=label)


def clear_project_choice(session: WizardSession) -> None:
    """Drop a selected project (its parent client changed). Create-mode input is kept."""
    if isinstance(session.project, ProjectSelect):
        session.project = ProjectSelect()


def add_item(session: WizardSession, item: LineItem | None = None) -> int:
    """Append an item row and return its index."""
    session.items.append(item if item is not None else blank_item())
    return len(session.items) - 1


def remove_item(session: WizardSession, index: int) -> bool:
    """Remove an item row. The last remaining row is never removed."""
    if len(session.items) <= 1 or not 0 <= index < len(session.items):
        return False
    del session.items[index]
    return True


def update_item(session: WizardSession, index: int, **fields: Any) -> None:
    for name, value in fields.items():
        set_step_field(session, WizardStep.ITEMS, f"{index}.{name}", value)


def reset_all(session: WizardSession) -> None:
    """Restore every step to its initial empty shape (in place)."""
    fresh = WizardSession()
    for name in WizardSession.model_fields:
        setattr(session, name, getattr(fresh, name))
