"""Run the relay with uvicorn: ``python -m app``."""
import logging
import sys

import uvicorn

from app.core.config import get_settings
from app.core.errors import ConfigurationError
from app.main import create_app

logger = logging.getLogger("app")


def main() -> None:
    settings = get_settings()
    try:
        application = create_app(settings)
    except ConfigurationError as exc:
        logger.critical("Failed to start relay service: %s", exc)
        sys.exit(1)
    uvicorn.run(application, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
