"""Tests for order announcements sent through the Telegram adapter."""

from orderbot.adapters.base import OutgoingMessage
from orderbot.adapters.telegram.bot import TelegramAdapter
from orderbot.services.query_cache import MemoryQueryCache, query_key


async def make_adapter(sent: list[OutgoingMessage], failing: set[str]) -> TelegramAdapter:
    cache = MemoryQueryCache()
    for telegram_id in (11, 22, 33):
        await cache.set(query_key("user", "tg", telegram_id), "sup-1")

    adapter = TelegramAdapter(cache=cache)
    adapter.middleware.tokens = {11: "token-a", 22: "token-b", 33: "token-c"}
    adapter._bot = object()

    async def send_message(message: OutgoingMessage) -> None:
        if message.chat_id in failing:
            raise RuntimeError("Forbidden: bot was blocked by the user")
        sent.append(message)

    adapter.send_message = send_message
    return adapter


async def test_order_announced_to_every_supplier_user():
    sent = []
    adapter = await make_adapter(sent, failing=set())

    await adapter.notify_order_created("sup-1", "order-7")

    assert [m.chat_id for m in sent] == ["11", "22", "33"]
    assert "order-7" in sent[0].text
    assert sent[0].format_type == "html"


async def test_one_blocked_user_does_not_stop_the_others():
    sent = []
    adapter = await make_adapter(sent, failing={"11"})

    await adapter.notify_order_created("sup-1", "order-7")

    assert [m.chat_id for m in sent] == ["22", "33"]


async def test_nothing_sent_while_bot_is_stopped():
    sent = []
    adapter = await make_adapter(sent, failing=set())
    adapter._bot = None

    await adapter.notify_order_created("sup-1", "order-7")

    assert sent == []
