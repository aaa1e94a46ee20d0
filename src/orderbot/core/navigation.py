"""
Navigation controller — owns the current step index and gates transitions.

States are the step indices 0..N-1 plus a terminal "submitted" state:

    i → i+1        guarded by validate_step(i)
    i → i-1        unguarded (the wizard disables it while submitting)
    N-1 → submitted  guarded by full validation + a successful commit
"""

import logging
from dataclasses import dataclass

from orderbot.core.errors import WizardError
from orderbot.core.models import LAST_STEP, STEP_COUNT, WizardSession, WizardStep
from orderbot.core.validation import validate_step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationResult:
    moved: bool
    step: WizardStep
    message: str = ""


class Navigator:
    """Step transitions over one WizardSession."""

    def __init__(self, session: WizardSession) -> None:
        self.session = session

    @property
    def step(self) -> WizardStep:
        return self.session.current_step

    @property
    def is_first(self) -> bool:
        return self.session.current_step == WizardStep.LEAD

    @property
    def is_last(self) -> bool:
        return self.session.current_step == LAST_STEP

    def next(self) -> NavigationResult:
        """Advance if the current step validates; otherwise stay and report why."""
        current = self.session.current_step
        result = validate_step(current, self.session)
        if not result.ok:
            logger.debug("Step %s rejected: %s", current.name, result.message)
            return NavigationResult(moved=False, step=current, message=result.message)

        if current == LAST_STEP:
            return NavigationResult(moved=False, step=current)

        self.session.current_step = WizardStep(current + 1)
        return NavigationResult(moved=True, step=self.session.current_step)

    def back(self) -> NavigationResult:
        """Go one step back (floored at the first step). Step data is untouched."""
        current = self.session.current_step
        if current == WizardStep.LEAD:
            return NavigationResult(moved=False, step=current)
        self.session.current_step = WizardStep(current - 1)
        return NavigationResult(moved=True, step=self.session.current_step)

    def go_to(self, index: int) -> NavigationResult:
        """Jump to a step (used by sub-flows). Out-of-range indices are rejected."""
        if not 0 <= index < STEP_COUNT:
            raise WizardError(f"Step index out of range: {index}")
        self.session.current_step = WizardStep(index)
        return NavigationResult(moved=True, step=self.session.current_step)

    @property
    def submitted(self) -> bool:
        """Terminal state; entered by the commit executor after a confirmed commit."""
        return self.session.submitted
