"""Logging setup for the CLI process.

The root logger is the single source of truth; modules only ever do
``logger = logging.getLogger(__name__)``. Output goes to stderr through a
Rich handler so it never interleaves with the rendered chat on stdout.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore")


def _to_level(name: str, default: int = logging.WARNING) -> int:
    value = logging.getLevelName(str(name).strip().upper())
    return value if isinstance(value, int) else default


def configure_logging(level: str = "WARNING", *, console: Console | None = None) -> None:
    """Install the Rich handler on the root logger (safe to call more than once)."""

    resolved = _to_level(level)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    logging.basicConfig(level=resolved, format="%(name)s: %(message)s", datefmt="[%X]", handlers=[handler], force=True)

    # httpx logs every request at INFO; only show it when debugging.
    noisy_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
