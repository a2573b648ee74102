"""Process-wide logging setup for the CLI and the HTTP server."""
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# urllib3/httpx/httpcore log every connection; openai logs every request
# including headers.
NOISY_LOGGERS = (
    "urllib3",
    "urllib3.connectionpool",
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "openai",
    "uvicorn.access",
)


def configure_logging(level: Optional[str] = "info") -> None:
    """Configure the root logger and clamp third-party loggers to WARNING.

    An unknown *level* name leaves the root level at INFO.
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    configured_level = getattr(logging, (level or "info").upper(), None)
    if isinstance(configured_level, int):
        logging.getLogger().setLevel(configured_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
