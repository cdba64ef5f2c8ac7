# enigma/main.py
import sys

from aiohttp import web
from loguru import logger

from enigma.config.settings import settings
from enigma.containers import Container
from enigma.core.app import create_app
from enigma.utils.logging_setup import setup_logging


def main() -> None:
    setup_logging(
        level=settings.log_level,
        format="json" if settings.logging.json_enabled else "text",
        debug_loggers=settings.logging.debug_loggers,
    )

    logger.info("=" * 60)
    logger.info(f"🧩 {settings.logging.service_name}")
    logger.info("=" * 60)
    logger.info(f"📝 Log level: {settings.log_level}")
    logger.info(f"🛡️ Reputation check: {'on' if settings.reputation_check_enabled else 'off'}")
    logger.info("=" * 60)

    container = Container()
    app = create_app(container.deps())

    try:
        web.run_app(app, host=settings.HOST, port=settings.PORT, access_log=None, print=None)
    except Exception as e:
        logger.exception(f"❌ Fatal error: {e}")
        sys.exit(1)
    finally:
        logger.info("👋 Server stopped")


if __name__ == "__main__":
    main()
