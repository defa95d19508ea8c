# # Normalize raw history records into a canonical, de-duplicated event frame plus named buckets.

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import math
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd

from ..data.events import PlayDecision, WatchEvent
from ..errors import MalformedEventError

log = logging.getLogger(__name__)

EVENT_COLUMNS = [
    "started_at",
    "instant",
    "rating_key",
    "media_kind",
    "title",
    "display_title",
    "year",
    "show_id",
    "show_key",
    "show_name",
    "season",
    "episode",
    "minutes",
    "device",
    "platform",
    "decision",
    "resolution",
    "genres",
    "actors",
    "directors",
]

DECISION_ORDER = [d.value for d in PlayDecision]


@dataclasses.dataclass
class NormalizeReport:
    received: int = 0
    malformed: int = 0
    non_plays: int = 0
    out_of_year: int = 0
    duplicates: int = 0
    kept: int = 0


@dataclasses.dataclass
class Buckets:
    # # Every bucket: index = key, columns = plays (int), minutes (float)
    by_day: pd.DataFrame
    by_month: pd.DataFrame
    by_dow: pd.DataFrame
    by_hour: pd.DataFrame
    by_device: pd.DataFrame
    by_platform: pd.DataFrame
    by_decision: pd.DataFrame
    by_resolution: pd.DataFrame


def year_bounds(year: int) -> Tuple[dt.datetime, dt.datetime]:
    # # Half-open: Jan 1 00:00:00 <= t < next Jan 1 00:00:00
    return dt.datetime(year, 1, 1), dt.datetime(year + 1, 1, 1)


def to_local(ts: dt.datetime, timezone: str) -> dt.datetime:
    if ts.tzinfo is None:
        return ts
    return pd.Timestamp(ts).tz_convert(timezone).tz_localize(None).to_pydatetime()


def to_instant(ts: dt.datetime, timezone: str) -> dt.datetime:
    """
    Naive UTC for ordering and gaps. Naive input is local wall-clock time;
    ambiguous fall-back times resolve to the DST reading and skipped
    spring-forward times shift forward.
    """
    stamp = pd.Timestamp(ts)
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize(timezone, ambiguous=True, nonexistent="shift_forward")
    return stamp.tz_convert("UTC").tz_localize(None).to_pydatetime()


def _canonical_rank(ev: WatchEvent) -> tuple:
    # # Picks one survivor among (rating_key, started_at) duplicates independent of input order
    return (
        -ev.duration_watched_minutes,
        ev.title,
        ev.show_title or "",
        ev.device,
        ev.platform,
        ev.play_decision.value,
        ev.resolution,
        ev.media_kind.value,
        -1 if ev.season_number is None else ev.season_number,
        -1 if ev.episode_number is None else ev.episode_number,
        tuple(sorted(ev.genres)),
        tuple(sorted(ev.actors)),
        tuple(sorted(ev.directors)),
    )


def normalize_events(records: Iterable[Any], *, year: int, timezone: str) -> Tuple[List[WatchEvent], NormalizeReport]:
    report = NormalizeReport()
    start, end = year_bounds(year)
    groups: Dict[tuple, List[WatchEvent]] = {}

    for rec in records:
        report.received += 1
        try:
            ev = rec if isinstance(rec, WatchEvent) else WatchEvent.from_record(rec)
            if not math.isfinite(ev.duration_watched_minutes):
                raise MalformedEventError("duration is not finite", field="duration_watched_minutes")
        except MalformedEventError as exc:
            report.malformed += 1
            log.debug("Skipping malformed record (%s): %s", exc.field or "record", exc)
            continue

        if ev.duration_watched_minutes <= 0:
            report.non_plays += 1
            continue

        local = to_local(ev.started_at, timezone)
        if not (start <= local < end):
            report.out_of_year += 1
            continue

        # # Local wall-clock time feeds the calendar buckets; the instant keys dedupe and ordering
        ev = dataclasses.replace(ev, started_at=local, instant=to_instant(ev.started_at, timezone))
        groups.setdefault(ev.dedupe_key, []).append(ev)

    events: List[WatchEvent] = []
    for dupes in groups.values():
        report.duplicates += len(dupes) - 1
        events.append(min(dupes, key=_canonical_rank))

    events.sort(key=lambda e: (e.instant, e.rating_key))
    report.kept = len(events)

    if report.malformed or report.duplicates:
        log.debug(
            "Normalized %d records: kept=%d malformed=%d non_plays=%d out_of_year=%d duplicates=%d",
            report.received, report.kept, report.malformed, report.non_plays, report.out_of_year, report.duplicates,
        )
    return events, report


def _display_title(ev: WatchEvent) -> str:
    if ev.is_episode and ev.show_title:
        return f"{ev.show_title} - {ev.title}"
    return ev.title


def events_frame(events: List[WatchEvent]) -> pd.DataFrame:
    rows = [
        {
            "started_at": ev.started_at,
            "instant": ev.instant,
            "rating_key": ev.rating_key,
            "media_kind": ev.media_kind.value,
            "title": ev.title,
            "display_title": _display_title(ev),
            "year": ev.year,
            "show_id": ev.show_id,
            "show_key": ev.show_key,
            "show_name": (ev.show_title or ev.title) if ev.is_episode else None,
            "season": ev.season_number,
            "episode": ev.episode_number,
            "minutes": float(ev.duration_watched_minutes),
            "device": ev.device,
            "platform": ev.platform,
            "decision": ev.play_decision.value,
            "resolution": ev.resolution,
            "genres": tuple(sorted(ev.genres)),
            "actors": tuple(sorted(ev.actors)),
            "directors": tuple(sorted(ev.directors)),
        }
        for ev in events
    ]
    df = pd.DataFrame(rows, columns=EVENT_COLUMNS)

    df["started_at"] = pd.to_datetime(df["started_at"])
    df["instant"] = pd.to_datetime(df["instant"])
    df["rating_key"] = df["rating_key"].astype("int64")
    df["minutes"] = df["minutes"].astype(float)
    for col in ["year", "show_key", "season", "episode"]:
        df[col] = df[col].astype("Int64")

    df["date"] = df["started_at"].dt.normalize()
    df["month"] = df["started_at"].dt.month.astype(int)
    # # dayofweek is Monday=0; buckets use Sunday=0
    df["dow"] = ((df["started_at"].dt.dayofweek + 1) % 7).astype(int)
    df["hour"] = df["started_at"].dt.hour.astype(int)
    return df.reset_index(drop=True)


def _bucket(df: pd.DataFrame, key: str, index: List[Any] | None = None) -> pd.DataFrame:
    g = (
        df.groupby(key, sort=True)["minutes"]
        .agg(["count", "sum"])
        .rename(columns={"count": "plays", "sum": "minutes"})
    )
    if index is not None:
        g = g.reindex(index, fill_value=0)
    g["plays"] = g["plays"].astype(int)
    g["minutes"] = g["minutes"].astype(float)
    return g


def build_buckets(df: pd.DataFrame) -> Buckets:
    return Buckets(
        by_day=_bucket(df, "date"),
        by_month=_bucket(df, "month", list(range(1, 13))),
        by_dow=_bucket(df, "dow", list(range(7))),
        by_hour=_bucket(df, "hour", list(range(24))),
        by_device=_bucket(df, "device"),
        by_platform=_bucket(df, "platform"),
        by_decision=_bucket(df, "decision", DECISION_ORDER),
        by_resolution=_bucket(df, "resolution"),
    )
