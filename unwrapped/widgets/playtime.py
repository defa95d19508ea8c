# # Chart widgets: watch time by month, weekday and hour of day.

from __future__ import annotations

from .base import BaseWidget, WidgetResult
from .registry import register_widget
from ..output.charts import hours_of, series_chart


class _PlaytimeChart(BaseWidget):
    title = ""
    xlabel = ""
    field = ""
    asset = ""
    default_kind = "bar"
    default_color = "accent"
    rotate = 0

    def labels(self, rows):
        return [str(r["label"]) for r in rows]

    def render(self, stats, assets) -> WidgetResult:
        rows = getattr(stats, self.field)
        chart = self.config.get("chart") if isinstance(self.config.get("chart"), dict) else {}
        png = series_chart(
            self.ctx.theme,
            self.labels(rows),
            hours_of(rows),
            title=self.title,
            xlabel=self.xlabel,
            kind=str(chart.get("type", self.default_kind)).lower(),
            color=str(chart.get("color", self.default_color)),
            rotate=self.rotate,
        )
        url = assets.write_bytes(f"charts/{self.asset}.png", png)
        html = f"""
<div class="card">
  <div class="sub">{self.title}</div>
  <div style="margin-top:10px;"><img class="chart" src="{url}" alt="{self.asset}"></div>
</div>
"""
        return WidgetResult(html=html)


@register_widget("playtime-by-month")
class PlaytimeByMonthWidget(_PlaytimeChart):
    key = "playtime-by-month"
    title = "Watch Time by Month"
    xlabel = "Month"
    field = "monthly_stats"
    asset = "month"
    default_kind = "line"
    rotate = 45

    def labels(self, rows):
        return [str(r["label"])[:3] for r in rows]


@register_widget("playtime-by-dow")
class PlaytimeByDowWidget(_PlaytimeChart):
    key = "playtime-by-dow"
    title = "Watch Time by Day of Week"
    xlabel = "Day"
    field = "day_of_week_stats"
    asset = "dow"
    default_color = "accent2"


@register_widget("playtime-by-hour")
class PlaytimeByHourWidget(_PlaytimeChart):
    key = "playtime-by-hour"
    title = "Watch Time by Hour"
    xlabel = "Hour"
    field = "hourly_stats"
    asset = "hour"
    default_color = "accent3"
    rotate = 45
