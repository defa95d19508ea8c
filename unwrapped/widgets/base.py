# # Widget interface: one HTML card per widget; charts go through the AssetWriter.

from __future__ import annotations

import dataclasses
from html import escape
from typing import Any, Dict

from ..context import RunContext
from ..metrics.stats_model import UserYearStats
from ..output.assets import AssetWriter


@dataclasses.dataclass
class WidgetResult:
    html: str


class BaseWidget:
    key: str = "base"

    def __init__(self, ctx: RunContext, config: Dict[str, Any]):
        self.ctx = ctx
        self.config = config

    def limit(self, default: int) -> int:
        try:
            return max(int(self.config.get("limit", default)), 0)
        except (TypeError, ValueError):
            return default

    def render(self, stats: UserYearStats, assets: AssetWriter) -> WidgetResult:
        raise NotImplementedError


def esc(v: Any) -> str:
    return escape("" if v is None else str(v))


def table_rows(rows) -> str:
    # # rows: iterable of cell tuples; first cell is text, the rest are numbers
    out = []
    for cells in rows:
        first, *rest = cells
        tds = "".join(f"<td class='mono'>{esc(c)}</td>" for c in rest)
        out.append(f"<tr><td>{esc(first)}</td>{tds}</tr>")
    if not out:
        return "<tr><td>—</td><td class='mono'>—</td></tr>"
    return "\n".join(out)
