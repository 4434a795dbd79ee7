import logging

import uvicorn

from .config import get_settings
from .logging import setup_logging
from .main import create_app

logger = logging.getLogger("taskboard")


def run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Serving taskboard on http://%s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
