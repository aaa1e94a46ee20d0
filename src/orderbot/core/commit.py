"""
Commit executor — performs the one remote transactional call per submit.

    submit ──► is_submitting? ── yes ──► skipped (no second remote call)
                   │ no
                   ▼
           create_order_bundle ── BackendError ──► failure(message), session untouched
                   │ ok
                   ▼
           invalidate caches → reset step data → submitted(order_id)

No automatic retry: the user resubmits after correcting the input.
"""

import logging
from dataclasses import dataclass

from orderbot.core.errors import BackendError
from orderbot.core.models import CommitPayload, WizardSession
from orderbot.core.store import reset_all
from orderbot.services.backend_client import OrderBackend
from orderbot.services.query_cache import QueryCache, commit_invalidation_keys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    ok: bool
    order_id: str | None = None
    error: str | None = None
    skipped: bool = False

    @classmethod
    def success(cls, order_id: str) -> "CommitResult":
        return cls(ok=True, order_id=order_id)

    @classmethod
    def failure(cls, error: str) -> "CommitResult":
        return cls(ok=False, error=error)

    @classmethod
    def already_submitting(cls) -> "CommitResult":
        return cls(ok=False, skipped=True)


class CommitExecutor:
    """Runs the create-order-bundle call and applies its outcome to the session."""

    def __init__(
        self,
        backend: OrderBackend,
        cache: QueryCache,
        *,
        supplier_id: str,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.supplier_id = supplier_id

    async def submit(self, session: WizardSession, payload: CommitPayload) -> CommitResult:
        if session.is_submitting:
            logger.info("Submit ignored for supplier %s: commit already in flight", self.supplier_id)
            return CommitResult.already_submitting()

        session.is_submitting = True
        try:
            try:
                order_id = await self.backend.create_order_bundle(payload.to_request())
            except BackendError as e:
                logger.error(
                    "Order commit failed for supplier %s (status=%s): %s | details=%r",
                    self.supplier_id, e.status_code, e.message, e.details,
                )
                return CommitResult.failure(e.user_message)

            # Read before reset: the lead's client scopes the projects key
            client_id = session.lead_client_id
            for key in commit_invalidation_keys(self.supplier_id, client_id):
                await self.cache.invalidate(key)

            reset_all(session)
            session.submitted = True
            session.order_id = order_id
        finally:
            session.is_submitting = False

        logger.info(
            "Order %s created by supplier %s (%d items, proposed total %.2f)",
            order_id, self.supplier_id, len(payload.order.items), payload.order.total,
        )
        return CommitResult.success(order_id)
