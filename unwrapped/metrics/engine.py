# # Aggregation engine: (history records, engine config, optional metadata) -> UserYearStats.
# # Pure: no I/O, no globals; the same input in any order gives the same output.

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Optional

import pandas as pd

from ..config import EngineConfig
from ..data.supplementary import Supplementary
from ..util import DOW_ORDER, MONTH_NAMES, clamp, format_hour_12h
from .facts import (
    FactContext,
    evaluate_badges,
    evaluate_fun_facts,
    library_percentage,
    percentage_of_days,
    quality_mix,
    rewatch_count,
)
from .normalize import NormalizeReport, build_buckets, events_frame, normalize_events
from .ranking import rank_all, seasons_completed_by_show
from .stats_model import UNAVAILABLE, UserYearStats
from . import temporal


@dataclasses.dataclass
class AggregationResult:
    stats: UserYearStats
    report: NormalizeReport

    @property
    def skipped_malformed(self) -> int:
        return self.report.malformed


def aggregate_user_year(
    records: Iterable[Any],
    config: EngineConfig,
    *,
    supplementary: Optional[Supplementary] = None,
    user_id: Optional[str] = None,
) -> AggregationResult:
    events, report = normalize_events(records, year=config.year, timezone=config.timezone)
    stats = UserYearStats(year=config.year, user_id=user_id)

    df = events_frame(events)
    buckets = build_buckets(df)

    # # Distributions are always fixed-length, even for an empty year
    stats.monthly_stats = temporal.distribution(buckets.by_month, "month", MONTH_NAMES)
    stats.day_of_week_stats = temporal.distribution(buckets.by_dow, "day", DOW_ORDER)
    stats.hourly_stats = temporal.distribution(buckets.by_hour, "hour", [format_hour_12h(h) for h in range(24)])
    stats.percentage_of_library_watched = library_percentage(0, 0, supplementary)

    if df.empty:
        return AggregationResult(stats=validate_stats(stats, config), report=report)

    movies = df[df["media_kind"].eq("movie")]
    episodes = df[df["media_kind"].eq("episode")]

    # # Counters
    stats.total_minutes = round(float(df["minutes"].sum()), 2)
    stats.total_plays = int(len(df))
    stats.total_movies = int(len(movies))
    stats.total_episodes = int(len(episodes))
    stats.unique_movies = int(movies["rating_key"].nunique())
    stats.unique_shows = int(episodes["show_id"].nunique())
    stats.unique_episodes = int(episodes["rating_key"].nunique())
    stats.unique_devices = int(len(buckets.by_device))
    stats.days_active = int(len(buckets.by_day))

    # # Ranked lists
    for name, ranked in rank_all(df, config).items():
        setattr(stats, name, ranked)

    # # Temporal
    month = temporal.peak_key(buckets.by_month)
    dow = temporal.peak_key(buckets.by_dow)
    hour = temporal.peak_key(buckets.by_hour)
    stats.most_active_month = MONTH_NAMES[int(month) - 1] if month is not None else None
    stats.most_active_day_of_week = DOW_ORDER[int(dow)] if dow is not None else None
    stats.most_active_hour = int(hour) if hour is not None else None

    streak = temporal.longest_streak(buckets.by_day)
    stats.longest_streak_days = streak.days
    stats.longest_streak_start = streak.start
    stats.longest_streak_end = streak.end

    binge = temporal.longest_binge(df, config.binge_gap_minutes)
    stats.longest_binge_minutes = binge.minutes
    stats.longest_binge_plays = binge.plays
    stats.longest_binge_show = binge.show
    stats.longest_binge_start = binge.start

    stats.most_memorable_day_date, stats.most_memorable_day_minutes = temporal.most_memorable_day(buckets.by_day)

    first, last = temporal.first_and_last(df)
    stats.first_watch_title, stats.first_watch_date = first.title, first.at
    stats.last_watch_title, stats.last_watch_date = last.title, last.at

    # # Derived
    stats.percentage_of_days_active = percentage_of_days(stats.days_active, config.year)
    stats.percentage_of_library_watched = library_percentage(stats.unique_movies, stats.unique_shows, supplementary)
    stats.rewatches = rewatch_count(df)
    stats.total_seasons_completed = int(seasons_completed_by_show(df).sum())
    stats.quality_stats = quality_mix(buckets.by_decision, buckets.by_resolution)

    # # Rule tables run last: they read the assembled stats
    ctx = FactContext(stats=stats, supplementary=supplementary, watched_titles=_watched_titles(df))
    stats.badges = evaluate_badges(ctx)
    stats.fun_facts = evaluate_fun_facts(ctx, config.max_fun_facts)

    return AggregationResult(stats=validate_stats(stats, config), report=report)


def _watched_titles(df: pd.DataFrame) -> frozenset:
    titles = set(df.loc[df["media_kind"].eq("movie"), "title"].astype(str))
    titles.update(df["show_name"].dropna().astype(str))
    return frozenset(titles)


_LIST_CAPS = {
    "top_movies": "max_top_titles",
    "top_shows": "max_top_titles",
    "top_episodes": "max_top_titles",
    "top_genres": "max_top_people",
    "top_actors": "max_top_people",
    "top_directors": "max_top_people",
    "top_devices": "max_top_devices",
    "top_platforms": "max_top_devices",
}

_COUNT_FIELDS = (
    "total_plays", "total_movies", "total_episodes", "unique_movies", "unique_shows",
    "unique_episodes", "unique_devices", "days_active", "longest_streak_days",
    "longest_binge_plays", "rewatches", "total_seasons_completed",
)

_MINUTE_FIELDS = ("total_minutes", "longest_binge_minutes", "most_memorable_day_minutes")


def validate_stats(stats: UserYearStats, config: EngineConfig) -> UserYearStats:
    """
    Enforce output invariants in place: ranked lists within caps, counts and
    minutes non-negative, percentages within [0, 100], fun facts bounded.
    """
    for name, cap_attr in _LIST_CAPS.items():
        cap = max(int(getattr(config, cap_attr)), 0)
        setattr(stats, name, list(getattr(stats, name))[:cap])

    for name in _COUNT_FIELDS:
        setattr(stats, name, max(int(getattr(stats, name)), 0))
    for name in _MINUTE_FIELDS:
        setattr(stats, name, max(float(getattr(stats, name)), 0.0))

    stats.percentage_of_days_active = clamp(float(stats.percentage_of_days_active), 0.0, 100.0)
    if stats.percentage_of_library_watched != UNAVAILABLE:
        stats.percentage_of_library_watched = clamp(float(stats.percentage_of_library_watched), 0.0, 100.0)

    q = stats.quality_stats
    q.direct_play = int(clamp(q.direct_play, 0, 100))
    q.direct_stream = int(clamp(q.direct_stream, 0, 100))
    q.transcode = int(clamp(q.transcode, 0, 100))

    stats.fun_facts = list(stats.fun_facts)[: max(int(config.max_fun_facts), 0)]
    return stats
