"""Logging setup: stdlib logging rendered through Rich.

Modules log through ``logging.getLogger(__name__)``; entry points (CLI callback,
``kbsync serve``) call :func:`configure_logging` once.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore", "urllib3", "uvicorn.access")

_configured = False


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a RichHandler on the ``kbsync`` logger.

    Safe to call more than once; later calls only change the level.
    """
    global _configured

    root = logging.getLogger("kbsync")
    root.setLevel(level.upper())
    if _configured:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
