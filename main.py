"""
RecallGuard - Main Entry Point

Loads configuration, configures logging and serves the API with uvicorn.
Set MATCHING_SCHEDULE_INTERVAL_SECONDS to run matching passes periodically;
otherwise passes run on demand via POST /api/matching/run.
"""

import asyncio
import logging
import sys

import uvicorn

from recallguard.api.app import create_app
from recallguard.config.settings import get_config
from recallguard.utils.logging_context import setup_logging


async def main():
    """Start the API server."""
    try:
        config = get_config()
    except Exception as e:
        print(f"FATAL: Configuration error: {e}", file=sys.stderr)
        print("Ensure .env file exists with required values", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.api.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting RecallGuard in {config.environment} mode")

    app = create_app(config)

    logger.info(f"API listening on {config.api.host}:{config.api.port}")
    if config.matching.schedule_interval_seconds > 0:
        logger.info(f"Scheduled matching every {config.matching.schedule_interval_seconds:.0f}s")

    server = uvicorn.Server(
        uvicorn.Config(
            app=app,
            host=config.api.host,
            port=config.api.port,
            log_level=config.api.log_level.lower(),
            access_log=False,
        )
    )
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
