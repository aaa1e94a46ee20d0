"""
Telegram middleware for supplier resolution.

This middleware runs before every handler and injects:
  - `supplier` — SupplierContext for the Telegram user (or None)
  - `cache`    — the shared QueryCache
  - `wizards`  — the WizardRegistry holding live order wizards

A Telegram user is a supplier when SUPPLIER_TELEGRAM_TOKENS maps their id
to a backend access token. The supplier id behind the token is resolved
once via the backend and cached.

Usage in handlers:
    @router.message(Command("neworder"))
    async def cmd_new_order(message: Message, supplier: SupplierContext | None, wizards: WizardRegistry):
        ...
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from orderbot.config import settings
from orderbot.core.errors import BackendAuthError, BackendError
from orderbot.core.wizard import WizardRegistry
from orderbot.services.backend_client import BackendClient
from orderbot.services.query_cache import QueryCache, query_key

logger = logging.getLogger(__name__)

USER_CACHE_TTL = 600


@dataclass(frozen=True)
class SupplierContext:
    telegram_id: int
    supplier_id: str
    backend: BackendClient


class SupplierMiddleware(BaseMiddleware):
    """
    Injects supplier, cache and wizard registry into every handler.

    Backend clients are created once per Telegram user and reused.
    """

    def __init__(
        self,
        cache: QueryCache,
        wizards: WizardRegistry,
        tokens: dict[int, str] | None = None,
    ) -> None:
        self.cache = cache
        self.wizards = wizards
        self.tokens = tokens if tokens is not None else settings.supplier_tokens
        self._clients: dict[int, BackendClient] = {}

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        tg_user = None
        if isinstance(event, (Message, CallbackQuery)):
            tg_user = event.from_user

        data["cache"] = self.cache
        data["wizards"] = self.wizards
        data["supplier"] = await self._resolve(tg_user.id) if tg_user else None
        return await handler(event, data)

    async def _resolve(self, telegram_id: int) -> SupplierContext | None:
        token = self.tokens.get(telegram_id)
        if not token:
            return None

        client = self._clients.get(telegram_id)
        if client is None:
            client = BackendClient(token)
            self._clients[telegram_id] = client

        cache_key = query_key("user", "tg", telegram_id)
        supplier_id = await self.cache.get(cache_key)
        if supplier_id is None:
            try:
                supplier_id = await client.get_user()
            except BackendAuthError:
                logger.warning("Access token for Telegram user %d was rejected", telegram_id)
                return None
            except BackendError as e:
                logger.error("Could not resolve supplier for Telegram user %d: %s", telegram_id, e.message)
                return None
            await self.cache.set(cache_key, supplier_id, ttl=USER_CACHE_TTL)

        logger.debug("SupplierMiddleware: tg_user.id=%d → supplier %s", telegram_id, supplier_id)
        return SupplierContext(telegram_id=telegram_id, supplier_id=supplier_id, backend=client)

    async def telegram_ids_for(self, supplier_id: str) -> list[int]:
        """Telegram users already resolved to this supplier."""
        found = []
        for telegram_id in self.tokens:
            if await self.cache.get(query_key("user", "tg", telegram_id)) == supplier_id:
                found.append(telegram_id)
        return found

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
