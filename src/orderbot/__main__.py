"""
Main entry point for the supplier order bot.

Runs the Telegram bot and the wizard HTTP API on one event loop; both
share the query cache.

Run with:  python -m orderbot
"""

import asyncio
import logging

from orderbot.config import settings


def setup_logging() -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def main() -> None:
    """Initialize and start the bot and the API."""
    setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting supplier order bot...")
    logger.info("Backend: %s (cache: %s)", settings.backend_url, settings.cache_backend)

    # Import adapters here to avoid loading aiogram before logging is configured
    import uvicorn

    from orderbot.adapters.telegram.bot import TelegramAdapter
    from orderbot.core.scheduler import start_scheduler, stop_scheduler
    from orderbot.services.query_cache import build_query_cache
    from orderbot.wizard_api import create_app

    cache = build_query_cache()
    adapter = TelegramAdapter(cache=cache)
    api = uvicorn.Server(uvicorn.Config(
        create_app(cache=cache, on_order_created=adapter.notify_order_created),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    ))

    start_scheduler(cache)

    try:
        if settings.telegram_bot_token:
            await asyncio.gather(adapter.start(), api.serve())
        else:
            logger.warning("TELEGRAM_BOT_TOKEN is not set; running the HTTP API only")
            await api.serve()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        stop_scheduler()
        await adapter.stop()


if __name__ == "__main__":
    asyncio.run(main())
