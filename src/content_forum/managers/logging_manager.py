"""
# Logging Manager

Central factory for application loggers. Every module obtains its logger here so that
formatting, level and handlers are configured exactly once.

## Prefixes

Loggers carry a short bracketed prefix identifying the subsystem, e.g. `[Post Service]`
or `[DATABASE]`. The prefix is injected into each record and rendered by `LOG_FORMAT`.

```python
from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[Post Service]")
logger.info("Created post %s", post_id)
```
"""

import logging
import sys
import threading
from typing import Optional

from content_forum.config import settings

ROOT_LOGGER_NAME = "content_forum"

_configured = False
_configure_lock = threading.Lock()


class PrefixAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps every record with a subsystem prefix."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("prefix", self.extra.get("prefix", ""))
        return msg, kwargs


class _PrefixDefaultFilter(logging.Filter):
    # Records emitted by third-party libraries have no prefix attribute.
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "prefix"):
            record.prefix = ""
        return True


def _configure_root() -> None:
    global _configured
    with _configure_lock:
        if _configured:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        level = getattr(logging, settings.DEFAULT_LOG_LEVEL.upper(), logging.INFO)
        root.setLevel(level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
        handler.addFilter(_PrefixDefaultFilter())
        root.addHandler(handler)
        root.propagate = False

        _configured = True


def get_logger(name: Optional[str] = None, prefix: str = "") -> PrefixAdapter:
    """
    Return a configured logger for the given subsystem.

    Args:
        name: Child logger name under `content_forum`. Defaults to the root application logger.
        prefix: Bracketed subsystem tag rendered before the message.

    Returns:
        PrefixAdapter: Logger adapter exposing the usual `debug/info/warning/error` API.
    """
    _configure_root()
    logger_name = f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME
    return PrefixAdapter(logging.getLogger(logger_name), {"prefix": prefix})
