"""
Remote lookup adapter — choice lists that depend on an earlier selection.

The project list depends on the client of the lead chosen in step 1; the
lead list depends on the supplier. Each list is refreshed whenever its
parent changes, cleared when the parent is cleared, and guarded against
late responses:

    refresh("client-A")   ─┐ (slow)
    refresh("client-B")   ─┼─ response B → shown
                           └─ response A → discarded (stale)

A remote failure leaves an empty list plus a notice; it never aborts the
wizard.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from orderbot.core.errors import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Choice:
    """One selectable entry (e.g. a project of the selected client)."""

    id: str
    label: str


@dataclass(frozen=True)
class LeadSummary:
    """A supplier's lead as shown in the lead picker."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    status: str = "new"
    client_id: str | None = None

    @property
    def label(self) -> str:
        return self.name or "No name"

    @property
    def has_client(self) -> bool:
        return bool(self.client_id)


class DependentChoices(Generic[T]):
    """A choice list keyed by a parent id, with stale-response protection."""

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Sequence[T]]],
        *,
        name: str = "choices",
    ) -> None:
        self._fetch = fetch
        self.name = name
        self.parent_id: str | None = None
        self.choices: list[T] = []
        self.notice: str | None = None
        self.loading = False
        self._token = 0
        self._closed = False

    def _is_current(self, token: int, parent_id: str) -> bool:
        return not self._closed and token == self._token and parent_id == self.parent_id

    async def refresh(self, parent_id: str | None) -> list[T]:
        """Load choices for a parent. Returns whatever list is current afterwards."""
        if self._closed:
            return []

        self._token += 1
        token = self._token
        self.parent_id = parent_id
        self.notice = None
        self.choices = []

        if parent_id is None:
            self.loading = False
            return self.choices

        self.loading = True
        try:
            result = await self._fetch(parent_id)
        except BackendError as e:
            if not self._is_current(token, parent_id):
                return self.choices
            logger.warning("Failed to load %s for %s: %s", self.name, parent_id, e.message)
            self.loading = False
            self.notice = f"Could not load {self.name}. You can continue without them."
            return self.choices

        if not self._is_current(token, parent_id):
            logger.debug("Discarding stale %s response for %s", self.name, parent_id)
            return self.choices

        self.choices = list(result)
        self.loading = False
        return self.choices

    def clear(self) -> None:
        """Forget the parent and its choices; any in-flight response becomes stale."""
        self._token += 1
        self.parent_id = None
        self.choices = []
        self.notice = None
        self.loading = False

    def close(self) -> None:
        """Tie-in to the wizard lifetime: responses arriving after close are dropped."""
        self.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


# ── Lead picker helpers ──────────────────────────────────────

LEAD_STATUS_LABELS: dict[str, str] = {
    "new": "🆕 New",
    "contacted": "📞 Contacted",
    "qualified": "⭐ Qualified",
}


def get_lead_status_label(status: str) -> str:
    return LEAD_STATUS_LABELS.get(status, status)


def filter_leads(leads: Sequence[LeadSummary], term: str) -> list[LeadSummary]:
    """
    Search leads by name, email or phone.

    Name and email match case-insensitively; phone is a plain substring
    match. An empty term returns every lead.
    """
    term = term.strip()
    if not term:
        return list(leads)
    lowered = term.lower()
    return [
        lead for lead in leads
        if lowered in (lead.name or "").lower()
        or lowered in (lead.email or "").lower()
        or term in (lead.phone or "")
    ]
