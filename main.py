import logging
import sys

import uvicorn

from cloudly.config import settings
from cloudly.db import init_db
from cloudly.log import configure_logging

logger = logging.getLogger("cloudly")


def run_backend():
    configure_logging()
    try:
        init_db()
    except Exception:
        logger.error("Failed to start server: database unavailable")
        sys.exit(1)

    uvicorn.run(
        "cloudly.main:app",
        host=settings.host,
        port=settings.port,
        reload=False
    )


if __name__ == "__main__":
    run_backend()
