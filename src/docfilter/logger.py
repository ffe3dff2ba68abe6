"""Logging for docfilter.

Repositories and translators each hold a `Logger` named after their class.
Ignored filter conditions are reported with `warning`; pipeline traces go
through `message`, which follows the configured LOG_LEVEL.
"""

import logging
from typing import Optional

from docfilter.settings import settings as api_settings

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_configured = False


def setup_global_logging(level: str = "INFO") -> None:
    """Configure the root logger once.

    Args:
        level: Log level name; unknown names fall back to INFO
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=_LEVELS.get(level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _configured = True


class Logger:
    """Named logger used for filter diagnostics and repository traces."""

    def __init__(self, name: Optional[str] = None) -> None:
        if not _configured:
            setup_global_logging(api_settings.LOG_LEVEL)
        self.name = name or "docfilter"
        self._logger = logging.getLogger(self.name)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def message(self, msg: str, *args, **kwargs) -> None:
        """Log at LOG_LEVEL (INFO when unset)."""
        level = (api_settings.LOG_LEVEL or "INFO").upper()
        self._logger.log(_LEVELS.get(level, logging.INFO), msg, *args, **kwargs)
