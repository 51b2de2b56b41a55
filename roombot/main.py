"""
roombot - Application Entry Point
=================================

Bootstrap
---------
- Config validation
- Persistence stack initialization (ApplicationContext)
- Runs until SIGTERM / SIGINT
- Graceful shutdown with a final data flush
"""

import asyncio
import signal
import sys
from dataclasses import asdict

from roombot.core.config.config import Config
from roombot.core.infra.application_context import ApplicationContext
from roombot.core.logging.logger import get_logger, get_logging_health, shutdown_logging

logger = get_logger(__name__)


# ============================================================================
# Application Entrypoint
# ============================================================================

async def main() -> None:
    """
    Lifecycle:
        1. Validate configuration
        2. Initialize persistence stack and background tasks
        3. Wait for a stop signal
        4. Shut down gracefully
    """
    logger.info("========== ROOMBOT INITIALIZATION START ==========")
    try:
        Config.validate()
        logger.info("✓ Configuration validated")
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    context = ApplicationContext()
    stop_event = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), stop_event)

    try:
        await context.initialize()
        if await context.remote.check_connection():
            logger.info("✓ Remote store reachable")
        else:
            logger.warning("Remote store unreachable; serving backup/default data")

        logger.info("Room bot running for room %r", Config.ROOM_NAME)
        await stop_event.wait()

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    finally:
        await context.shutdown()
        logger.info("Logging pipeline health", extra=asdict(get_logging_health()))
        logger.info("========== SHUTDOWN COMPLETE ==========")


# ============================================================================
# Process Startup
# ============================================================================

def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    """Install signal handlers that request a graceful shutdown."""
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug("Signal %s not supported on this platform (likely Windows)", sig)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot manually stopped via keyboard interrupt.")
    except Exception as exc:
        logger.critical(f"Startup failure: {exc}", exc_info=True)
        sys.exit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
