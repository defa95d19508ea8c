# # HTML shell: page chrome and the one stylesheet every widget relies on.

from __future__ import annotations

from html import escape

from ..themes import Theme


def _rgb(c) -> str:
    return f"{c[0]},{c[1]},{c[2]}"


def build_css(theme: Theme) -> str:
    return f"""
:root{{
  --bg1: rgb({_rgb(theme.bg1)});
  --bg2: rgb({_rgb(theme.bg2)});
  --accent: rgb({_rgb(theme.accent)});
  --accent2: rgb({_rgb(theme.accent2)});
  --accent3: rgb({_rgb(theme.accent3)});
  --text: rgba(255,255,255,.92);
  --muted: rgba(255,255,255,.68);
  --card: rgba(255,255,255,.07);
  --stroke: rgba(255,255,255,.13);
}}
html,body{{
  margin:0;
  min-height:100%;
  font-family: ui-sans-serif, system-ui, -apple-system, "Segoe UI", Roboto, Arial, sans-serif;
  color: var(--text);
  background: linear-gradient(160deg, var(--bg1), var(--bg2)) fixed;
}}
.container{{ max-width:1120px; margin:0 auto; padding:28px 18px 60px; }}
.hero{{ padding:22px; border:1px solid var(--stroke); border-radius:18px; background:var(--card); }}
h1{{ margin:0; font-size:34px; letter-spacing:-0.02em; color:var(--accent); }}
.sub{{ color:var(--muted); font-size:14px; margin-top:4px; }}
.badge{{ display:inline-block; padding:5px 10px; border:1px solid var(--stroke); border-radius:999px; color:var(--muted); font-size:12px; margin:2px 4px 2px 0; }}
.badge.earned{{ color:var(--text); border-color:var(--accent2); }}
.grid{{ display:grid; grid-template-columns:repeat(12,1fr); gap:14px; margin-top:14px; }}
.card{{ grid-column: span 6; border-radius:18px; border:1px solid var(--stroke); background:var(--card); padding:16px; }}
.card.wide{{ grid-column: span 12; }}
.card.third{{ grid-column: span 4; }}
.kpi{{ font-size:22px; font-weight:800; }}
.kpis{{ display:grid; grid-template-columns:repeat(4,1fr); gap:12px; margin-top:10px; }}
.cols{{ display:grid; grid-template-columns:repeat(3,1fr); gap:12px; margin-top:10px; }}
img.chart{{ width:100%; border-radius:14px; border:1px solid var(--stroke); }}
table{{ width:100%; border-collapse:collapse; margin-top:8px; }}
td,th{{ padding:7px 6px; border-bottom:1px solid rgba(255,255,255,.10); text-align:left; }}
th{{ color:var(--muted); font-weight:650; font-size:12px; }}
.mono{{ font-variant-numeric: tabular-nums; }}
ul.facts{{ margin:10px 0 0; padding-left:18px; line-height:1.6; }}
@media (max-width: 760px){{ .card, .card.third{{ grid-column: span 12; }} .kpis, .cols{{ grid-template-columns:1fr 1fr; }} }}
"""


def wrap_page(title: str, subtitle: str, body_html: str, theme: Theme) -> str:
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{escape(title)}</title>
  <style>{build_css(theme)}</style>
</head>
<body>
  <div class="container">
    <div class="hero">
      <h1>{escape(title)}</h1>
      <div class="sub">{subtitle}</div>
    </div>
    <div class="grid">
      {body_html}
    </div>
  </div>
</body>
</html>
"""
