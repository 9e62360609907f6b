"""Main entry point for serving a contract with uvicorn."""

import os

import uvicorn
from loguru import logger

from contractum.core.config import get_settings
from contractum.core.logging import setup_logging

APP_FACTORY = "contractum.api.main:create_app"


def main() -> None:
    """Serve the contract configured in the settings."""
    settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    # Container platforms pass the listening port through PORT
    port = int(os.environ.get("PORT", settings.api_port))

    # Configure uvicorn to use our logging
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {
                "class": "contractum.core.logging.InterceptHandler",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.error": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }

    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info(
        "Serving {} on http://{}:{} ({})",
        settings.contract_path,
        settings.api_host,
        port,
        mode,
    )
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
