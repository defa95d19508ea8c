# # Derived facts: quality mix, library share, rewatches, and the ordered badge / fun-fact rule tables.

from __future__ import annotations

import calendar
import dataclasses
from typing import Callable, Dict, FrozenSet, List, Optional, Union

import pandas as pd

from ..data.supplementary import Supplementary
from ..util import clamp, format_minutes, round_half_up
from .stats_model import UNAVAILABLE, QualityStats, UserYearStats


def quality_mix(by_decision: pd.DataFrame, by_resolution: pd.DataFrame) -> QualityStats:
    """
    Each play decision's share of total minutes, rounded half-up on its own.
    The three values may sum to 99..101; no bucket is adjusted to force 100.
    """
    total = float(by_decision["minutes"].sum())

    def pct(key: str) -> int:
        if total <= 0 or key not in by_decision.index:
            return 0
        return int(clamp(round_half_up(float(by_decision.loc[key, "minutes"]) / total * 100.0), 0, 100))

    return QualityStats(
        direct_play=pct("direct_play"),
        direct_stream=pct("direct_stream"),
        transcode=pct("transcode"),
        plays_by_decision={str(k): int(v) for k, v in by_decision["plays"].items()},
        resolutions={str(k): round(float(v), 2) for k, v in by_resolution["minutes"].items()},
    )


def library_percentage(unique_movies: int, unique_shows: int, supplementary: Optional[Supplementary]) -> Union[float, str]:
    if supplementary is None:
        return UNAVAILABLE

    watched = 0
    size = 0
    if supplementary.library_movie_count is not None:
        watched += unique_movies
        size += int(supplementary.library_movie_count)
    if supplementary.library_show_count is not None:
        watched += unique_shows
        size += int(supplementary.library_show_count)

    if size <= 0:
        return UNAVAILABLE
    return round(clamp(watched / size * 100.0, 0.0, 100.0), 2)


def rewatch_count(df: pd.DataFrame) -> int:
    movies = df[df["media_kind"].eq("movie")]
    if movies.empty:
        return 0
    plays = movies.groupby("rating_key").size()
    return int((plays >= 2).sum())


def percentage_of_days(days_active: int, year: int) -> float:
    days_in_year = 366 if calendar.isleap(year) else 365
    return round(clamp(days_active / days_in_year * 100.0, 0.0, 100.0), 1)


# # ---------------------------------------------------------------------------
# # Rule tables: evaluated top to bottom, non-firing rules are skipped.


@dataclasses.dataclass(frozen=True)
class FactContext:
    stats: UserYearStats
    supplementary: Optional[Supplementary] = None
    watched_titles: FrozenSet[str] = frozenset()

    def requested_titles(self) -> int:
        if self.supplementary is None:
            return 0
        counts = self.supplementary.request_counts_by_title
        return sum(1 for t in self.watched_titles if counts.get(t, 0) > 0)


@dataclasses.dataclass(frozen=True)
class FactRule:
    key: str
    applies: Callable[[FactContext], bool]
    render: Callable[[FactContext], str]


@dataclasses.dataclass(frozen=True)
class BadgeRule:
    id: str
    name: str
    description: str
    applies: Callable[[FactContext], bool]


def _top_show_episodes(c: FactContext) -> int:
    return int(c.stats.top_shows[0]["episodes"]) if c.stats.top_shows else 0


def _memorable_day_label(c: FactContext) -> str:
    d = c.stats.most_memorable_day_date
    return f"{calendar.month_name[d.month]} {d.day}" if d else ""


FUN_FACT_RULES: List[FactRule] = [
    FactRule(
        "favorite_weekday",
        lambda c: c.stats.most_active_day_of_week is not None,
        lambda c: f"{c.stats.most_active_day_of_week}s are your go-to watch day",
    ),
    FactRule(
        "top_show_episodes",
        lambda c: _top_show_episodes(c) > 20,
        lambda c: f"You crushed {_top_show_episodes(c)} episodes of {c.stats.top_shows[0]['title']}",
    ),
    FactRule(
        "original_quality",
        lambda c: c.stats.total_plays > 0 and c.stats.quality_stats.direct_play > c.stats.quality_stats.transcode,
        lambda c: f"{c.stats.quality_stats.direct_play}% of your watch time was in original quality",
    ),
    FactRule(
        "movies_or_shows",
        lambda c: c.stats.total_movies != c.stats.total_episodes,
        lambda c: "You're definitely more of a {} person".format(
            "movies" if c.stats.total_movies > c.stats.total_episodes else "TV shows"
        ),
    ),
    FactRule(
        "days_active_share",
        lambda c: 0 < c.stats.days_active < 200,
        lambda c: f"You watched on {round_half_up(c.stats.percentage_of_days_active)}% of days this year",
    ),
    FactRule(
        "favorite_device",
        lambda c: bool(c.stats.top_devices),
        lambda c: f"{c.stats.top_devices[0]['device']} was your favorite way to watch",
    ),
    FactRule(
        "memorable_day",
        lambda c: c.stats.most_memorable_day_date is not None,
        lambda c: f"Your biggest day was {_memorable_day_label(c)}: {format_minutes(c.stats.most_memorable_day_minutes)} of watching",
    ),
    FactRule(
        "streak",
        lambda c: c.stats.longest_streak_days >= 2,
        lambda c: f"You watched {c.stats.longest_streak_days} days in a row",
    ),
    FactRule(
        "binge",
        lambda c: c.stats.longest_binge_show is not None and c.stats.longest_binge_minutes >= 120,
        lambda c: f"Your longest binge was {format_minutes(c.stats.longest_binge_minutes)} of {c.stats.longest_binge_show}",
    ),
    FactRule(
        "requests",
        lambda c: c.requested_titles() > 0,
        lambda c: f"{c.requested_titles()} of the titles you watched started as a request",
    ),
    FactRule(
        "rewatches",
        lambda c: c.stats.rewatches > 0,
        lambda c: f"You came back to {c.stats.rewatches} movie{'s' if c.stats.rewatches != 1 else ''} more than once",
    ),
]


BADGE_RULES: List[BadgeRule] = [
    BadgeRule("marathon_master", "Marathon Master", "Watched 4+ hours in a single session",
              lambda c: c.stats.longest_binge_minutes >= 240),
    BadgeRule("night_owl", "Night Owl", "Peak viewing hour is late at night",
              lambda c: c.stats.most_active_hour is not None and (c.stats.most_active_hour >= 22 or c.stats.most_active_hour <= 3)),
    BadgeRule("early_bird", "Early Bird", "Peak viewing hour is early morning",
              lambda c: c.stats.most_active_hour is not None and 5 <= c.stats.most_active_hour <= 8),
    BadgeRule("completionist", "Completionist", "Finished 3+ seasons",
              lambda c: c.stats.total_seasons_completed >= 3),
    BadgeRule("streak_keeper", "Streak Keeper", "Watched something 7+ days in a row",
              lambda c: c.stats.longest_streak_days >= 7),
    BadgeRule("cinephile", "Cinephile", "Played 50+ movies",
              lambda c: c.stats.total_movies >= 50),
    BadgeRule("series_devotee", "Series Devotee", "Played 100+ episodes",
              lambda c: c.stats.total_episodes >= 100),
    BadgeRule("purist", "Purist", "75%+ of watch time was direct play",
              lambda c: c.stats.total_plays > 0 and c.stats.quality_stats.direct_play >= 75),
    BadgeRule("device_hopper", "Device Hopper", "Watched on 4+ devices",
              lambda c: c.stats.unique_devices >= 4),
    BadgeRule("weekend_warrior", "Weekend Warrior", "Saturday or Sunday is the peak day",
              lambda c: c.stats.most_active_day_of_week in ("Saturday", "Sunday")),
    BadgeRule("rewatcher", "Rewatcher", "Rewatched 3+ movies",
              lambda c: c.stats.rewatches >= 3),
]


def evaluate_fun_facts(ctx: FactContext, limit: int, rules: Optional[List[FactRule]] = None) -> List[str]:
    out: List[str] = []
    if ctx.stats.total_plays <= 0 or limit <= 0:
        return out
    for rule in (FUN_FACT_RULES if rules is None else rules):
        if rule.applies(ctx):
            out.append(rule.render(ctx))
            if len(out) >= limit:
                break
    return out


def evaluate_badges(ctx: FactContext, rules: Optional[List[BadgeRule]] = None) -> List[Dict[str, str]]:
    if ctx.stats.total_plays <= 0:
        return []
    return [
        {"id": r.id, "name": r.name, "description": r.description}
        for r in (BADGE_RULES if rules is None else rules)
        if r.applies(ctx)
    ]
