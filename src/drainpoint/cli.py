import logging
import sys

import uvicorn

from drainpoint import config
from drainpoint.request_context import RequestContextFilter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s app=%(app)s]: %(message)s"


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def main():
    configure_logging()

    uvicorn.run(
        "drainpoint.drain_app:create_app",
        factory=True,
        host=config.HOST,
        port=config.PORT,
        reload=config.RELOAD,
        log_level=config.LOG_LEVEL,
        log_config=None,
    )
