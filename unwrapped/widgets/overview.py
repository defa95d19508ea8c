# # Overview widget: headline totals.

from __future__ import annotations

from .base import BaseWidget, WidgetResult
from .registry import register_widget
from ..util import format_minutes


def _kpi(label: str, value) -> str:
    return f'<div><div class="sub">{label}</div><div class="kpi mono">{value}</div></div>'


@register_widget("overview")
class OverviewWidget(BaseWidget):
    key = "overview"

    def render(self, stats, assets) -> WidgetResult:
        lib = (
            f"{stats.percentage_of_library_watched:.1f}%"
            if stats.library_percentage_available
            else "n/a"
        )
        kpis = "\n    ".join([
            _kpi("Watch Time", format_minutes(stats.total_minutes)),
            _kpi("Plays", f"{stats.total_plays:,}"),
            _kpi("Days Active", f"{stats.days_active} ({stats.percentage_of_days_active:.1f}%)"),
            _kpi("Devices", stats.unique_devices),
            _kpi("Movies", f"{stats.total_movies} ({stats.unique_movies} unique)"),
            _kpi("Episodes", f"{stats.total_episodes} ({stats.unique_episodes} unique)"),
            _kpi("Shows", stats.unique_shows),
            _kpi("Library Watched", lib),
        ])
        html = f"""
<div class="card wide">
  <div class="sub">Your Year</div>
  <div class="kpis">
    {kpis}
  </div>
</div>
"""
        return WidgetResult(html=html)
