# # Top people widget: genres, actors and directors.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, table_rows
from .registry import register_widget


@register_widget("top-people")
class TopPeopleWidget(BaseWidget):
    key = "top-people"

    def render(self, stats, assets) -> WidgetResult:
        n = self.limit(5)
        genres = table_rows((g["name"], g["plays"], f"{g['percentage']:.1f}%") for g in stats.top_genres[:n])
        actors = table_rows((a["name"], a["plays"]) for a in stats.top_actors[:n])
        directors = table_rows((d["name"], d["plays"]) for d in stats.top_directors[:n])

        html = f"""
<div class="card wide">
  <div class="sub">Genres &amp; People</div>
  <div class="cols">
    <div>
      <div class="badge">Genres</div>
      <table><thead><tr><th>Genre</th><th class="mono">Plays</th><th class="mono">Share</th></tr></thead><tbody>
        {genres}
      </tbody></table>
    </div>
    <div>
      <div class="badge">Actors</div>
      <table><thead><tr><th>Name</th><th class="mono">Plays</th></tr></thead><tbody>
        {actors}
      </tbody></table>
    </div>
    <div>
      <div class="badge">Directors</div>
      <table><thead><tr><th>Name</th><th class="mono">Plays</th></tr></thead><tbody>
        {directors}
      </tbody></table>
    </div>
  </div>
</div>
"""
        return WidgetResult(html=html)
