"""
Telegram adapter — implements PlatformAdapter using aiogram 3.x.

One bot identity serves every supplier listed in SUPPLIER_TELEGRAM_TOKENS;
the middleware maps each Telegram user to their own backend session.
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, BotCommandScopeAllPrivateChats

from orderbot.adapters.base import OutgoingMessage, PlatformAdapter
from orderbot.adapters.telegram.formatters import format_order_created
from orderbot.adapters.telegram.middleware import SupplierMiddleware
from orderbot.adapters.telegram.order_handlers import router as order_router
from orderbot.config import settings
from orderbot.core.wizard import WizardRegistry
from orderbot.services.query_cache import QueryCache, build_query_cache

logger = logging.getLogger(__name__)

_PARSE_MODES = {
    "html": ParseMode.HTML,
    "markdown": ParseMode.MARKDOWN_V2,
    "plain": None,
}


class TelegramAdapter(PlatformAdapter):
    """Telegram implementation of the platform adapter."""

    def __init__(
        self,
        cache: QueryCache | None = None,
        wizards: WizardRegistry | None = None,
    ) -> None:
        self.dp = Dispatcher()
        self.cache = cache or build_query_cache()
        self.wizards = wizards or WizardRegistry()
        self.middleware = SupplierMiddleware(self.cache, self.wizards)
        self._bot: Bot | None = None

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError("Telegram bot is not started")
        return self._bot

    async def send_message(self, message: OutgoingMessage) -> None:
        """Send a text message via Telegram."""
        await self.bot.send_message(
            chat_id=int(message.chat_id),
            text=message.text,
            parse_mode=_PARSE_MODES.get(message.format_type),
        )

    async def notify_order_created(self, supplier_id: str, order_id: str) -> None:
        """Tell the supplier's Telegram users about an order created on the web."""
        if self._bot is None:
            logger.debug("Bot not running; order %s notification skipped", order_id)
            return

        sent = 0
        for telegram_id in await self.middleware.telegram_ids_for(supplier_id):
            try:
                await self.send_message(OutgoingMessage(
                    chat_id=str(telegram_id),
                    text=format_order_created(order_id) + "\n\n<i>Submitted from the web wizard.</i>",
                    format_type="html",
                ))
                sent += 1
            except Exception:
                logger.exception(
                    "Failed to announce order %s to Telegram user %d", order_id, telegram_id,
                )
        logger.info("Order %s announced to %d user(s) of supplier %s", order_id, sent, supplier_id)

    async def start(self) -> None:
        """Start polling for Telegram updates."""
        if not settings.telegram_bot_token:
            raise RuntimeError("No bot to run. Set TELEGRAM_BOT_TOKEN in .env")
        if not self.middleware.tokens:
            logger.warning("SUPPLIER_TELEGRAM_TOKENS is empty; nobody can create orders")

        logger.info("Starting Telegram bot (polling mode)...")
        self._bot = Bot(
            token=settings.telegram_bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        me = await self._bot.me()
        logger.info("Bot identity: @%s (id=%d), %d supplier(s)", me.username, me.id, len(self.middleware.tokens))

        self.dp.include_router(order_router)
        self.dp.message.outer_middleware(self.middleware)
        self.dp.callback_query.outer_middleware(self.middleware)
        await self._set_command_scopes(self._bot)

        await self.dp.start_polling(self._bot)

    async def _set_command_scopes(self, bot: Bot) -> None:
        """Register the command menu for private chats."""
        commands = [
            BotCommand(command="neworder", description="Create a new order"),
            BotCommand(command="cancel", description="Discard the order in progress"),
        ]
        try:
            await bot.set_my_commands(commands, scope=BotCommandScopeAllPrivateChats())
        except Exception as e:
            logger.warning("Failed to set command scopes: %s", e)

    async def stop(self) -> None:
        """Shut down the bot and backend sessions gracefully."""
        logger.info("Stopping Telegram bot...")
        await self.middleware.aclose()
        if self._bot is not None:
            await self._bot.session.close()
        logger.info("Telegram bot stopped")
