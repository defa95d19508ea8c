# # Highlights widget: streak, binge, memorable day, first/last watch and badges.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, esc
from .registry import register_widget
from ..util import format_minutes


def _when(v) -> str:
    return v.strftime("%b %d") if v is not None else "n/a"


@register_widget("highlights")
class HighlightsWidget(BaseWidget):
    key = "highlights"

    def render(self, stats, assets) -> WidgetResult:
        if stats.longest_binge_plays:
            binge = f"{format_minutes(stats.longest_binge_minutes)} over {stats.longest_binge_plays} plays"
            if stats.longest_binge_show:
                binge += f" of {esc(stats.longest_binge_show)}"
        else:
            binge = "n/a"

        items = [
            ("Longest streak", f"{stats.longest_streak_days} days "
                               f"({_when(stats.longest_streak_start)} to {_when(stats.longest_streak_end)})"
                               if stats.longest_streak_days else "n/a"),
            ("Longest binge", binge),
            ("Biggest day", f"{_when(stats.most_memorable_day_date)} · {format_minutes(stats.most_memorable_day_minutes)}"
                            if stats.most_memorable_day_date else "n/a"),
            ("First watch", f"{esc(stats.first_watch_title)} · {_when(stats.first_watch_date)}"
                            if stats.first_watch_title else "n/a"),
            ("Last watch", f"{esc(stats.last_watch_title)} · {_when(stats.last_watch_date)}"
                           if stats.last_watch_title else "n/a"),
            ("Rewatches", str(stats.rewatches)),
            ("Seasons completed", str(stats.total_seasons_completed)),
        ]
        rows = "\n".join(f"<tr><td>{k}</td><td>{v}</td></tr>" for k, v in items)

        badges = "".join(
            f'<span class="badge earned" title="{esc(b.get("description"))}">{esc(b.get("name"))}</span>'
            for b in stats.badges
        ) or '<span class="badge">No badges this year</span>'

        html = f"""
<div class="card">
  <div class="sub">Highlights</div>
  <table><tbody>
    {rows}
  </tbody></table>
  <div style="margin-top:12px;">{badges}</div>
</div>
"""
        return WidgetResult(html=html)
