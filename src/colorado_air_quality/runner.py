"""
Collection service runner.

Starts the metrics exporter and the daily scheduler loop, and shuts down
cleanly on SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal
import sys

from colorado_air_quality.metrics import get_metrics
from colorado_air_quality.service import AirQualityService
from colorado_air_quality.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure standardized logging for the project."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request URL, which includes the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run(settings: Settings) -> None:
    """Run the service until a shutdown signal arrives."""
    service = AirQualityService.from_settings(settings)

    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        logger.info("Received signal %d, initiating graceful shutdown...", signum)
        service.scheduler.stop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, handler, signum)

    logger.info("Monitoring %d regions", len(service.list_regions()))
    try:
        await service.run_forever()
    finally:
        await service.close()
        logger.info("Collection service stopped")


def main():
    """Main Entry Point."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level)

        if settings.metrics_enabled:
            logger.info("Starting metrics server on port %d", settings.metrics_port)
            get_metrics().start_server(settings.metrics_port)

        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Collection service interrupted by user")
    except Exception as e:
        print(f"Failed to run collection service: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
