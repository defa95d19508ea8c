# # UserYearStats: the per-user, per-year snapshot handed to persistence and renderers.

from __future__ import annotations

import dataclasses
import datetime as dt
import json
from typing import Any, Dict, List, Optional, Union

# # Library percentage when the library size is not known (distinct from 0.0).
UNAVAILABLE = "unavailable"


@dataclasses.dataclass
class QualityStats:
    direct_play: int = 0
    direct_stream: int = 0
    transcode: int = 0
    plays_by_decision: Dict[str, int] = dataclasses.field(default_factory=dict)
    resolutions: Dict[str, float] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class UserYearStats:
    year: int
    user_id: Optional[str] = None

    # # Counters
    total_minutes: float = 0.0
    total_plays: int = 0
    total_movies: int = 0
    total_episodes: int = 0
    unique_movies: int = 0
    unique_shows: int = 0
    unique_episodes: int = 0
    unique_devices: int = 0
    days_active: int = 0

    # # Ranked lists
    top_movies: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_shows: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_episodes: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_genres: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_actors: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_directors: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_devices: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    top_platforms: List[Dict[str, Any]] = dataclasses.field(default_factory=list)

    # # Distributions (fixed length: 12 / 7 / 24)
    monthly_stats: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    day_of_week_stats: List[Dict[str, Any]] = dataclasses.field(default_factory=list)
    hourly_stats: List[Dict[str, Any]] = dataclasses.field(default_factory=list)

    # # Temporal
    most_active_month: Optional[str] = None
    most_active_day_of_week: Optional[str] = None
    most_active_hour: Optional[int] = None
    longest_streak_days: int = 0
    longest_streak_start: Optional[dt.date] = None
    longest_streak_end: Optional[dt.date] = None
    longest_binge_minutes: float = 0.0
    longest_binge_plays: int = 0
    longest_binge_show: Optional[str] = None
    longest_binge_start: Optional[dt.datetime] = None
    most_memorable_day_date: Optional[dt.date] = None
    most_memorable_day_minutes: float = 0.0

    # # Boundaries
    first_watch_title: Optional[str] = None
    first_watch_date: Optional[dt.datetime] = None
    last_watch_title: Optional[str] = None
    last_watch_date: Optional[dt.datetime] = None

    # # Derived
    percentage_of_days_active: float = 0.0
    percentage_of_library_watched: Union[float, str] = UNAVAILABLE
    rewatches: int = 0
    total_seasons_completed: int = 0
    quality_stats: QualityStats = dataclasses.field(default_factory=QualityStats)

    # # Qualitative
    fun_facts: List[str] = dataclasses.field(default_factory=list)
    badges: List[Dict[str, str]] = dataclasses.field(default_factory=list)

    @property
    def library_percentage_available(self) -> bool:
        return self.percentage_of_library_watched != UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(dataclasses.asdict(self))

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserYearStats":
        # # Unknown keys are ignored so stored documents survive vocabulary changes
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}

        q = kwargs.get("quality_stats")
        if isinstance(q, dict):
            qnames = {f.name for f in dataclasses.fields(QualityStats)}
            kwargs["quality_stats"] = QualityStats(**{k: v for k, v in q.items() if k in qnames})

        for name in ("longest_streak_start", "longest_streak_end", "most_memorable_day_date"):
            if isinstance(kwargs.get(name), str):
                kwargs[name] = dt.date.fromisoformat(kwargs[name])
        for name in ("longest_binge_start", "first_watch_date", "last_watch_date"):
            if isinstance(kwargs.get(name), str):
                kwargs[name] = dt.datetime.fromisoformat(kwargs[name])

        return cls(**kwargs)


def _jsonable(v: Any) -> Any:
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, (dt.datetime, dt.date)):
        return v.isoformat()
    return v
