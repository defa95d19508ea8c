from __future__ import annotations

import os
import shutil
from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme as RichTheme

WIDTH_ENV = "UNWRAPPED_CONSOLE_WIDTH"

STYLES = {
    "info": "cyan",
    "ok": "green",
    "warn": "yellow",
    "err": "red",
    "dim": "dim",
    "k": "bold",
    "num": "bold magenta",
}


@dataclass(frozen=True)
class ConsoleOptions:
    width: int | None = None
    no_color: bool = False
    # # Logs use stderr; tables, JSON and link lists own stdout
    stderr: bool = False


def resolve_width(width: int | None = None) -> int:
    # # Explicit option, then the env pin, then the terminal
    if width is not None:
        return width
    raw = os.getenv(WIDTH_ENV, "").strip()
    if raw.isdigit():
        return int(raw)
    return shutil.get_terminal_size(fallback=(120, 40)).columns


def make_console(opts: ConsoleOptions | None = None) -> Console:
    opts = opts or ConsoleOptions()
    return Console(
        width=resolve_width(opts.width),
        theme=RichTheme(STYLES),
        color_system=None if opts.no_color else "auto",
        soft_wrap=False,
        highlight=False,
        stderr=opts.stderr,
    )
