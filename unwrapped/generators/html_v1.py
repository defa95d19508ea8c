# # HTML generator: runs the layout's widgets in order and wraps them into index.html.

from __future__ import annotations

import logging
from html import escape
from pathlib import Path

from .base import BaseGenerator
from .registry import register_generator
from ..metrics.stats_model import UserYearStats
from ..output.assets import AssetWriter
from ..output.html_shell import wrap_page
from ..util import format_hour_12h
from ..widgets.registry import get_widget

log = logging.getLogger(__name__)


@register_generator("html_v1")
class HtmlV1Generator(BaseGenerator):
    def render_user(self, stats: UserYearStats, out_dir: Path, assets: AssetWriter) -> Path:
        chunks = []
        for spec in self.ctx.layout.enabled_widgets():
            widget = get_widget(spec.key)(self.ctx, spec.config)
            chunks.append(widget.render(stats, assets).html)

        peak_hour = format_hour_12h(stats.most_active_hour) if stats.most_active_hour is not None else "n/a"
        subtitle = (
            f"for <b>{escape(self.ctx.user_name or str(stats.user_id or ''))}</b>"
            f" • peak hour: <b>{peak_hour}</b>"
            f" • peak day: <b>{escape(stats.most_active_day_of_week or 'n/a')}</b>"
        )
        html = wrap_page(
            title=f"Plex Unwrapped {stats.year}",
            subtitle=subtitle,
            body_html="\n".join(chunks),
            theme=self.ctx.theme,
        )

        out_dir.mkdir(parents=True, exist_ok=True)
        page = out_dir / "index.html"
        page.write_text(html, encoding="utf-8")
        log.debug("Wrote %s (%d widgets)", page, len(chunks))
        return page
