"""
Step validator — decides whether the wizard may leave a step.

Validation never raises: every check returns a ValidationResult with a
human-readable message for inline display.

Note the deliberate asymmetry with the commit assembler: the ITEMS step
is strict here (any incomplete row blocks submission), while the
assembler additionally drops incomplete rows on its own.
"""

from dataclasses import dataclass
from typing import assert_never

from orderbot.core.models import (
    LeadCreate,
    LeadSelect,
    ProjectCreate,
    ProjectSelect,
    WizardSession,
    WizardStep,
)


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    message: str = ""

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        return cls(ok=False, message=message)


OK = ValidationResult.success()


def _validate_lead(session: WizardSession) -> ValidationResult:
    match session.lead:
        case LeadSelect(reference_id=ref):
            if not ref:
                return ValidationResult.failure("Please choose a lead")
        case LeadCreate(new=new):
            if not new.full_name.strip():
                return ValidationResult.failure("Please enter the lead's full name")
        case _ as unreachable:
            assert_never(unreachable)
    return OK


def _validate_project(session: WizardSession) -> ValidationResult:
    match session.project:
        case ProjectSelect(reference_id=ref):
            if not ref:
                return ValidationResult.failure("Please choose a project")
        case ProjectCreate(new=new):
            if not new.title.strip():
                return ValidationResult.failure("Please enter a project title")
        case _ as unreachable:
            assert_never(unreachable)
    return OK


def _validate_details(session: WizardSession) -> ValidationResult:
    details = session.details
    if not details.title.strip():
        return ValidationResult.failure("Please enter an order title")
    if details.start_date and details.end_date and details.end_date < details.start_date:
        return ValidationResult.failure("End date must not be before the start date")
    return OK


def _validate_items(session: WizardSession) -> ValidationResult:
    if not session.items:
        return ValidationResult.failure("Add at least one item")
    for number, item in enumerate(session.items, start=1):
        if not item.name.strip():
            return ValidationResult.failure(f"Item {number}: every item needs a name")
        if item.quantity <= 0:
            return ValidationResult.failure(f"Item {number}: quantity must be greater than 0")
        if item.unit_price < 0:
            return ValidationResult.failure(f"Item {number}: price cannot be negative")
    return OK


_VALIDATORS = {
    WizardStep.LEAD: _validate_lead,
    WizardStep.PROJECT: _validate_project,
    WizardStep.DETAILS: _validate_details,
    WizardStep.ITEMS: _validate_items,
}


def validate_step(step: int | WizardStep, session: WizardSession) -> ValidationResult:
    """Check one step's rules against the session."""
    try:
        step = WizardStep(step)
    except ValueError:
        return ValidationResult.failure(f"Unknown step: {step}")
    return _VALIDATORS[step](session)


def validate_all(session: WizardSession) -> ValidationResult:
    """Run every step in order; the first failure wins. Used as the submit guard."""
    for step in WizardStep:
        result = validate_step(step, session)
        if not result.ok:
            return result
    return OK
