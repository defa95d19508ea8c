# # Devices widget: devices (with their usual platform) and platforms.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, table_rows
from .registry import register_widget
from ..util import format_minutes


@register_widget("devices")
class DevicesWidget(BaseWidget):
    key = "devices"

    def render(self, stats, assets) -> WidgetResult:
        n = self.limit(5)
        devices = table_rows(
            (f"{d['device']} ({d['platform']})" if d.get("platform") else d["device"], d["plays"], format_minutes(d["minutes"]))
            for d in stats.top_devices[:n]
        )
        platforms = table_rows(
            (p["platform"], p["plays"], format_minutes(p["minutes"])) for p in stats.top_platforms[:n]
        )
        html = f"""
<div class="card">
  <div class="sub">Devices &amp; Platforms</div>
  <table><thead><tr><th>Device</th><th class="mono">Plays</th><th class="mono">Time</th></tr></thead><tbody>
    {devices}
  </tbody></table>
  <table><thead><tr><th>Platform</th><th class="mono">Plays</th><th class="mono">Time</th></tr></thead><tbody>
    {platforms}
  </tbody></table>
</div>
"""
        return WidgetResult(html=html)
