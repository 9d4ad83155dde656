"""
Main entry point for the Whisper gateway.
Run this module (or the whisper-gateway script) to start the service.
"""

import logging
import os
import sys

from whisper_gateway.app import create_app
from whisper_gateway.config import resolve_config

logger = logging.getLogger("whisper_gateway")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def main() -> None:
    configure_logging()
    config = resolve_config()

    # Validate configuration
    errors = config.validate()
    if errors:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        logger.warning("Server will start but may not function correctly")

    logger.info("=" * 60)
    logger.info("Whisper Gateway")
    logger.info("=" * 60)
    logger.info(f"Starting Flask app on {config.host}:{config.port}")
    logger.info(f"Whisper binary: {config.whisper_binary_path}")
    logger.info(f"Whisper model: {config.model_path}")
    logger.info(f"Working directory: {config.work_dir}")
    logger.info(f"Keep files: {config.retain_artifacts}")
    logger.info("=" * 60)

    app = create_app(config)
    app.run(host=config.host, port=config.port, debug=config.debug, threaded=True)


if __name__ == "__main__":
    main()
