"""Logging for ``ledger_book``.

Everything logs under the ``ledger_book`` logger tree. Library modules only
call ``get_logger("ledger_book.<module>")``; the CLI (or a host application)
calls ``configure_logging()`` once to route that tree to a stream.

Until then the tree carries a ``NullHandler``, so embedding the engine in
another program stays silent unless that program configures logging itself.

The level comes from the ``level`` argument, else ``LEDGER_BOOK_LOG_LEVEL``,
else INFO. Recomputation traces (merged row counts, dropped records) are
logged at DEBUG; source failures and ignored settings at WARNING.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

ROOT_LOGGER = "ledger_book"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# The handler installed by configure_logging(), if any.
_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``LEDGER_BOOK_LOG_LEVEL``) into a numeric level."""

    if level is None:
        level = os.getenv("LEDGER_BOOK_LOG_LEVEL")
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name) if name else None
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Attach one stream handler to the ``ledger_book`` logger; later calls are no-ops."""

    global _handler
    root = logging.getLogger(ROOT_LOGGER)
    if _handler is not None:
        return root

    for h in [h for h in root.handlers if isinstance(h, logging.NullHandler)]:
        root.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.setLevel(resolved)
    root.addHandler(handler)
    root.setLevel(resolved)
    # Records would otherwise be printed twice when the host configures root.
    root.propagate = False

    _handler = handler
    return root


def reset_logging() -> None:
    """Undo ``configure_logging()``: drop its handler and propagate to root again."""

    global _handler
    root = logging.getLogger(ROOT_LOGGER)
    if _handler is not None:
        root.removeHandler(_handler)
        _handler = None
    root.setLevel(logging.NOTSET)
    root.propagate = True


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if _handler is None and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["ROOT_LOGGER", "configure_logging", "get_logger", "reset_logging", "resolve_level"]
