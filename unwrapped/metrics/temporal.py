# # Temporal patterns: streaks, binges, memorable day, peak month/day/hour, first/last watch.

from __future__ import annotations

import dataclasses
import datetime as dt
from typing import Any, List, Optional

import pandas as pd


@dataclasses.dataclass
class Streak:
    days: int = 0
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None


@dataclasses.dataclass
class Binge:
    minutes: float = 0.0
    plays: int = 0
    show: Optional[str] = None
    start: Optional[dt.datetime] = None


@dataclasses.dataclass
class Boundary:
    title: Optional[str] = None
    at: Optional[dt.datetime] = None


def longest_streak(by_day: pd.DataFrame) -> Streak:
    """
    Longest run of consecutive calendar days with at least one play.
    When several runs share the maximum length, the most recent run wins.
    """
    if by_day.empty:
        return Streak()

    days = pd.Series(pd.to_datetime(by_day.index)).sort_values().reset_index(drop=True)
    # # A new run starts wherever the gap to the previous active day is not exactly one day
    new_run = days.diff().dt.days.ne(1)
    run_id = new_run.cumsum()
    runs = days.groupby(run_id).agg(["min", "max", "count"])

    best = int(runs["count"].max())
    pick = runs[runs["count"].eq(best)].iloc[-1]
    return Streak(days=best, start=pick["min"].date(), end=pick["max"].date())


def longest_binge(df: pd.DataFrame, gap_minutes: float) -> Binge:
    """
    Sessions are maximal chains of plays whose start times are at most
    `gap_minutes` apart. The session with the most minutes wins (ties: earliest).
    Its show is the show with the most minutes inside the session; movie-only
    sessions have no show.
    """
    if df.empty:
        return Binge()

    # # Gaps are measured on the UTC instant so DST transitions do not stretch or shrink them
    s = df.sort_values(["instant", "rating_key"], kind="mergesort").reset_index(drop=True)
    breaks = s["instant"].diff() > pd.Timedelta(minutes=float(gap_minutes))
    s["session"] = breaks.cumsum()

    sessions = s.groupby("session").agg(
        minutes=("minutes", "sum"),
        plays=("minutes", "count"),
        start=("started_at", "first"),
    )
    best_minutes = sessions["minutes"].max()
    sid = sessions.index[sessions["minutes"].eq(best_minutes)][0]
    best = sessions.loc[sid]

    rows = s[s["session"].eq(sid)]
    return Binge(
        minutes=round(float(best["minutes"]), 2),
        plays=int(best["plays"]),
        show=_session_show(rows),
        start=pd.Timestamp(best["start"]).to_pydatetime(),
    )


def _session_show(rows: pd.DataFrame) -> Optional[str]:
    eps = rows[rows["show_id"].notna()].copy()
    if eps.empty:
        return None
    eps["pos"] = range(len(eps))
    per_show = eps.groupby("show_id").agg(
        minutes=("minutes", "sum"),
        pos=("pos", "min"),
        label=("show_name", "first"),
    )
    per_show = per_show.sort_values(["minutes", "pos"], ascending=[False, True], kind="mergesort")
    return str(per_show.iloc[0]["label"])


def most_memorable_day(by_day: pd.DataFrame) -> tuple[Optional[dt.date], float]:
    if by_day.empty:
        return None, 0.0
    # # idxmax returns the first max; index is ascending so ties go to the earliest date
    day = by_day["minutes"].idxmax()
    return pd.Timestamp(day).date(), round(float(by_day.loc[day, "minutes"]), 2)


def peak_key(bucket: pd.DataFrame) -> Optional[Any]:
    """
    Argmax over a calendar-ordered bucket's minutes; ties resolve to the
    earliest key in calendar order. None when nothing was watched.
    """
    if bucket.empty or float(bucket["minutes"].sum()) <= 0:
        return None
    return bucket["minutes"].idxmax()


def first_and_last(df: pd.DataFrame) -> tuple[Boundary, Boundary]:
    if df.empty:
        return Boundary(), Boundary()

    # # Exact timestamp ties prefer the larger rating key, at both ends
    first = df.sort_values(["instant", "rating_key"], ascending=[True, False], kind="mergesort").iloc[0]
    last = df.sort_values(["instant", "rating_key"], ascending=[False, False], kind="mergesort").iloc[0]
    return (
        Boundary(title=str(first["display_title"]), at=pd.Timestamp(first["started_at"]).to_pydatetime()),
        Boundary(title=str(last["display_title"]), at=pd.Timestamp(last["started_at"]).to_pydatetime()),
    )


def distribution(bucket: pd.DataFrame, key_name: str, labels: List[str]) -> List[dict]:
    return [
        {
            key_name: int(k),
            "label": labels[i],
            "plays": int(r["plays"]),
            "minutes": round(float(r["minutes"]), 2),
        }
        for i, (k, r) in enumerate(bucket.iterrows())
    ]
