"""Tests for Telegram supplier resolution."""

from orderbot.adapters.telegram.middleware import SupplierMiddleware
from orderbot.core.wizard import WizardRegistry
from orderbot.services.query_cache import MemoryQueryCache, query_key


def make_middleware(cache):
    return SupplierMiddleware(cache, WizardRegistry(), tokens={11: "token-a", 22: "token-b", 33: "token-c"})


async def test_cached_supplier_id_skips_backend():
    cache = MemoryQueryCache()
    await cache.set(query_key("user", "tg", 11), "sup-1")
    middleware = make_middleware(cache)

    supplier = await middleware._resolve(11)

    assert supplier.supplier_id == "sup-1"
    assert supplier.telegram_id == 11
    assert await middleware._resolve(11) is not None
    assert len(middleware._clients) == 1
    await middleware.aclose()


async def test_unknown_telegram_user_is_not_a_supplier():
    middleware = make_middleware(MemoryQueryCache())
    assert await middleware._resolve(99) is None
    assert middleware._clients == {}


async def test_telegram_ids_for_supplier():
    cache = MemoryQueryCache()
    await cache.set(query_key("user", "tg", 11), "sup-1")
    await cache.set(query_key("user", "tg", 22), "sup-2")
    await cache.set(query_key("user", "tg", 33), "sup-1")

    assert await make_middleware(cache).telegram_ids_for("sup-1") == [11, 33]
