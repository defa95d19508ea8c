# # Top titles widget: movies, shows and episodes side by side.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, table_rows
from .registry import register_widget
from ..util import format_minutes


def _column(label: str, rows: str) -> str:
    return f"""
    <div>
      <div class="badge">{label}</div>
      <table><thead><tr><th>Title</th><th class="mono">Plays</th><th class="mono">Time</th></tr></thead><tbody>
        {rows}
      </tbody></table>
    </div>"""


@register_widget("top-titles")
class TopTitlesWidget(BaseWidget):
    key = "top-titles"

    def render(self, stats, assets) -> WidgetResult:
        n = self.limit(10)
        movies = table_rows(
            (m["title"] if not m.get("year") else f"{m['title']} ({m['year']})", m["plays"], format_minutes(m["minutes"]))
            for m in stats.top_movies[:n]
        )
        shows = table_rows(
            (s["title"], s["plays"], format_minutes(s["minutes"])) for s in stats.top_shows[:n]
        )
        episodes = table_rows(
            (f"{e['show']}: {e['title']}", e["plays"], format_minutes(e["minutes"])) for e in stats.top_episodes[:n]
        )
        html = f"""
<div class="card wide">
  <div class="sub">Top Titles</div>
  <div class="cols">{_column("Movies", movies)}{_column("Shows", shows)}{_column("Episodes", episodes)}
  </div>
</div>
"""
        return WidgetResult(html=html)
