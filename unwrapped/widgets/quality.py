# # Quality widget: direct play / direct stream / transcode mix and resolutions.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, table_rows
from .registry import register_widget
from ..util import format_minutes


def _bar(label: str, pct: int, var: str) -> str:
    return f"""
    <div style="margin-top:8px;">
      <div class="sub">{label} <b class="mono">{pct}%</b></div>
      <div style="height:10px;border-radius:6px;background:rgba(255,255,255,.08);">
        <div style="height:10px;width:{pct}%;border-radius:6px;background:var({var});"></div>
      </div>
    </div>"""


@register_widget("quality")
class QualityWidget(BaseWidget):
    key = "quality"

    def render(self, stats, assets) -> WidgetResult:
        q = stats.quality_stats
        bars = (
            _bar("Direct Play", q.direct_play, "--accent")
            + _bar("Direct Stream", q.direct_stream, "--accent2")
            + _bar("Transcode", q.transcode, "--accent3")
        )
        res = sorted(q.resolutions.items(), key=lambda kv: (-kv[1], kv[0]))
        resolutions = table_rows((name, format_minutes(minutes)) for name, minutes in res[: self.limit(6)])

        html = f"""
<div class="card">
  <div class="sub">Playback Quality</div>
  {bars}
  <table><thead><tr><th>Resolution</th><th class="mono">Time</th></tr></thead><tbody>
    {resolutions}
  </tbody></table>
</div>
"""
        return WidgetResult(html=html)
