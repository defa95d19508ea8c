from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from .console import ConsoleOptions, make_console

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# # Third-party loggers held at WARNING or above
_QUIET_LOGGERS = ("urllib3", "matplotlib", "PIL")


def _file_handler(log_file: str, level: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(path, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATEFMT))
    return fh


def setup_logging(
    *,
    level: str = "INFO",
    log_file: str | None = None,
    console_width: int | None = None,
    no_color: bool = False,
) -> None:
    """
    Rich console logging on stderr, plus a plain-text copy in `log_file`.
    Calling it again replaces the handlers.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    debug = numeric_level <= logging.DEBUG

    rich_handler = RichHandler(
        console=make_console(ConsoleOptions(width=console_width, no_color=no_color, stderr=True)),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        # # Titles and user names may contain square brackets
        markup=False,
        show_path=debug,
    )
    handlers: list[logging.Handler] = [rich_handler]
    if log_file:
        handlers.append(_file_handler(log_file, numeric_level))

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
