from __future__ import annotations

from typing import Optional

import pandas as pd
from rich import box
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table

from .console import ConsoleOptions, make_console
from .metrics.normalize import NormalizeReport
from .metrics.stats_model import UserYearStats
from .util import format_hour_12h, format_minutes


def _safe_str(v: object) -> str:
    if v is None:
        return ""
    if isinstance(v, (tuple, list)):
        return ", ".join(str(x) for x in v)
    return str(v)


def _table(title: str) -> Table:
    return Table(title=title, box=box.SIMPLE_HEAVY, show_lines=False, expand=False, padding=(0, 1))


def render_debug_sample(
    df: pd.DataFrame,
    report: NormalizeReport,
    *,
    user_id: str = "",
    width: Optional[int] = None,
    no_color: bool = False,
    sample_rows: int = 25,
) -> None:
    console = make_console(ConsoleOptions(width=width, no_color=no_color))

    console.print(
        Panel.fit(
            f"[k]Debug Sample[/k] {user_id}\n"
            f"[info]Received[/info]: {report.received:,}  "
            f"[info]Kept[/info]: {report.kept:,}  "
            f"[warn]Malformed[/warn]: {report.malformed:,}  "
            f"[info]Non-plays[/info]: {report.non_plays:,}  "
            f"[info]Out of year[/info]: {report.out_of_year:,}  "
            f"[info]Duplicates[/info]: {report.duplicates:,}",
            border_style="warn" if report.malformed else "info",
        )
    )

    # # Column name -> rich column options; every column is no-wrap so rows stay one line
    col_specs = {
        "started_at":    dict(justify="left",  max_width=19),
        "media_kind":    dict(justify="left",  max_width=7),
        "rating_key":    dict(justify="right", max_width=8),
        "display_title": dict(justify="left",  max_width=40),
        "minutes":       dict(justify="right", max_width=8),
        "device":        dict(justify="left",  max_width=20),
        "platform":      dict(justify="left",  max_width=12),
        "decision":      dict(justify="left",  max_width=13),
        "genres":        dict(justify="left",  max_width=24),
    }
    cols = [c for c in col_specs if c in df.columns]

    t = _table("Normalized events")
    for c in cols:
        t.add_column(c, no_wrap=True, overflow="ellipsis", **col_specs[c])

    view = df[cols].head(sample_rows).copy()
    if "started_at" in view.columns:
        view["started_at"] = view["started_at"].astype(str).str.slice(0, 19)
    if "minutes" in view.columns:
        view["minutes"] = view["minutes"].map(lambda m: f"{float(m):.1f}")

    for _, r in view.iterrows():
        t.add_row(*[_safe_str(r.get(c)) for c in cols])
    console.print(t)


def render_stats_summary(
    stats: UserYearStats,
    *,
    user_name: str = "",
    width: Optional[int] = None,
    no_color: bool = False,
) -> None:
    console = make_console(ConsoleOptions(width=width, no_color=no_color))

    lib = (
        f"{stats.percentage_of_library_watched:.2f}%"
        if stats.library_percentage_available
        else "unavailable"
    )
    peak_hour = format_hour_12h(stats.most_active_hour) if stats.most_active_hour is not None else "-"
    console.print(
        Panel.fit(
            f"[k]{stats.year} Unwrapped[/k] for {escape(user_name or str(stats.user_id or '?'))}\n"
            f"[info]Watch time[/info]: [num]{format_minutes(stats.total_minutes)}[/num]  "
            f"[info]Plays[/info]: [num]{stats.total_plays:,}[/num]  "
            f"[info]Days active[/info]: [num]{stats.days_active}[/num] ({stats.percentage_of_days_active:.1f}%)\n"
            f"[info]Peak[/info]: {stats.most_active_month or '-'} / {stats.most_active_day_of_week or '-'} / {peak_hour}  "
            f"[info]Streak[/info]: {stats.longest_streak_days}d  "
            f"[info]Library[/info]: {lib}",
            border_style="ok",
        )
    )

    t = _table("Top titles")
    t.add_column("#", justify="right")
    t.add_column("Movie", no_wrap=True, overflow="ellipsis", max_width=36)
    t.add_column("Plays", justify="right")
    t.add_column("Show", no_wrap=True, overflow="ellipsis", max_width=36)
    t.add_column("Plays", justify="right")
    for i in range(max(len(stats.top_movies), len(stats.top_shows))):
        m = stats.top_movies[i] if i < len(stats.top_movies) else {}
        s = stats.top_shows[i] if i < len(stats.top_shows) else {}
        t.add_row(
            str(i + 1),
            _safe_str(m.get("title")),
            _safe_str(m.get("plays")),
            _safe_str(s.get("title")),
            _safe_str(s.get("plays")),
        )
    console.print(t)

    q = stats.quality_stats
    console.print(
        f"[info]Quality[/info]: direct play {q.direct_play}%  direct stream {q.direct_stream}%  transcode {q.transcode}%"
    )
    if stats.badges:
        console.print("[info]Badges[/info]: " + ", ".join(b["name"] for b in stats.badges))
    for fact in stats.fun_facts:
        console.print(f"  • {fact}", markup=False)
