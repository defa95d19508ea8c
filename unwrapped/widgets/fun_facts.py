# # Fun facts widget.

from __future__ import annotations

from .base import BaseWidget, WidgetResult, esc
from .registry import register_widget


@register_widget("fun-facts")
class FunFactsWidget(BaseWidget):
    key = "fun-facts"

    def render(self, stats, assets) -> WidgetResult:
        facts = stats.fun_facts[: self.limit(len(stats.fun_facts))]
        body = "\n".join(f"<li>{esc(f)}</li>" for f in facts) or "<li>Nothing to report yet.</li>"
        html = f"""
<div class="card wide">
  <div class="sub">Fun Facts</div>
  <ul class="facts">
    {body}
  </ul>
</div>
"""
        return WidgetResult(html=html)
