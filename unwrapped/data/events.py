# # WatchEvent: the typed input record for the aggregation engine, parsed from adapter mappings.

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import math
from typing import Any, FrozenSet, Iterable, Mapping, Optional

import pandas as pd

from ..errors import MalformedEventError
from ..util import norm_str


class MediaKind(str, enum.Enum):
    MOVIE = "movie"
    EPISODE = "episode"


class PlayDecision(str, enum.Enum):
    DIRECT_PLAY = "direct_play"
    DIRECT_STREAM = "direct_stream"
    TRANSCODE = "transcode"


# # Tautulli / Plex spellings seen in history rows
_DECISION_ALIASES = {
    "direct_play": PlayDecision.DIRECT_PLAY,
    "direct play": PlayDecision.DIRECT_PLAY,
    "directplay": PlayDecision.DIRECT_PLAY,
    "direct_stream": PlayDecision.DIRECT_STREAM,
    "direct stream": PlayDecision.DIRECT_STREAM,
    "directstream": PlayDecision.DIRECT_STREAM,
    "copy": PlayDecision.DIRECT_STREAM,
    "transcode": PlayDecision.TRANSCODE,
}

_KIND_ALIASES = {
    "movie": MediaKind.MOVIE,
    "episode": MediaKind.EPISODE,
}

REQUIRED_FIELDS = ("media_kind", "rating_key", "title", "started_at", "duration_watched_minutes")

UNKNOWN = "Unknown"


@dataclasses.dataclass(frozen=True)
class WatchEvent:
    media_kind: MediaKind
    rating_key: int
    title: str
    started_at: dt.datetime
    duration_watched_minutes: float
    device: str = UNKNOWN
    platform: str = UNKNOWN
    play_decision: PlayDecision = PlayDecision.DIRECT_PLAY
    resolution: str = UNKNOWN
    show_title: Optional[str] = None
    show_key: Optional[int] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    year: Optional[int] = None
    genres: FrozenSet[str] = frozenset()
    actors: FrozenSet[str] = frozenset()
    directors: FrozenSet[str] = frozenset()
    # # Naive UTC instant of started_at, filled in during normalization
    instant: Optional[dt.datetime] = None

    @property
    def is_episode(self) -> bool:
        return self.media_kind is MediaKind.EPISODE

    @property
    def show_id(self) -> Optional[str]:
        # # Show identity: grandparent rating key when known, else the show title
        if not self.is_episode:
            return None
        if self.show_key is not None:
            return f"key:{self.show_key}"
        return f"title:{self.show_title or self.title}"

    @property
    def dedupe_key(self) -> tuple:
        return (self.rating_key, self.instant or self.started_at)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "WatchEvent":
        if not isinstance(record, Mapping):
            raise MalformedEventError(f"record is not a mapping: {type(record).__name__}")

        for name in REQUIRED_FIELDS:
            v = record.get(name)
            if v is None or (isinstance(v, str) and not v.strip()):
                raise MalformedEventError(f"missing required field {name!r}", field=name)

        kind = _KIND_ALIASES.get(norm_str(record["media_kind"]).lower())
        if kind is None:
            raise MalformedEventError(f"unknown media kind {record['media_kind']!r}", field="media_kind")

        decision_raw = norm_str(record.get("play_decision")).lower()
        if decision_raw:
            decision = _DECISION_ALIASES.get(decision_raw)
            if decision is None:
                raise MalformedEventError(f"unknown play decision {decision_raw!r}", field="play_decision")
        else:
            decision = PlayDecision.DIRECT_PLAY

        return cls(
            media_kind=kind,
            rating_key=_parse_int(record["rating_key"], "rating_key"),
            title=norm_str(record["title"]),
            started_at=parse_timestamp(record["started_at"]),
            duration_watched_minutes=_parse_minutes(record["duration_watched_minutes"]),
            device=norm_str(record.get("device")) or UNKNOWN,
            platform=norm_str(record.get("platform")) or UNKNOWN,
            play_decision=decision,
            resolution=norm_str(record.get("resolution")) or UNKNOWN,
            show_title=norm_str(record.get("show_title")) or None,
            show_key=_parse_optional_int(record.get("show_key"), "show_key"),
            season_number=_parse_optional_int(record.get("season_number"), "season_number"),
            episode_number=_parse_optional_int(record.get("episode_number"), "episode_number"),
            year=_parse_optional_int(record.get("year"), "year"),
            genres=_tags(record.get("genres")),
            actors=_tags(record.get("actors")),
            directors=_tags(record.get("directors")),
        )


def parse_timestamp(value: Any) -> dt.datetime:
    """
    Accepts datetime / pandas Timestamp, ISO-8601 strings, or epoch seconds
    (milliseconds are detected by magnitude). Returns a python datetime,
    tz-aware when the input carried a zone or was an epoch value (UTC).
    """
    try:
        if isinstance(value, bool):
            raise TypeError("bool is not a timestamp")
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise ValueError("non-finite epoch")
            sec = value / 1000.0 if value > 1_000_000_000_000 else value
            ts = pd.Timestamp(sec, unit="s", tz="UTC")
        else:
            ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedEventError(f"unparseable timestamp {value!r}", field="started_at") from exc

    if ts is pd.NaT or pd.isna(ts):
        raise MalformedEventError(f"unparseable timestamp {value!r}", field="started_at")
    return ts.to_pydatetime()


def _parse_minutes(value: Any) -> float:
    if isinstance(value, bool):
        raise MalformedEventError("duration is a bool", field="duration_watched_minutes")
    try:
        minutes = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedEventError(f"duration is not a number: {value!r}", field="duration_watched_minutes") from exc
    if not math.isfinite(minutes):
        raise MalformedEventError(f"duration is not finite: {value!r}", field="duration_watched_minutes")
    return minutes


def _parse_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise MalformedEventError(f"{field} is a bool", field=field)
    if isinstance(value, float):
        if not value.is_integer():
            raise MalformedEventError(f"{field} is not an integer: {value!r}", field=field)
        return int(value)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise MalformedEventError(f"{field} is not an integer: {value!r}", field=field) from exc


def _parse_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or norm_str(value) == "":
        return None
    return _parse_int(value, field)


def _tags(value: Any) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value
    out = set()
    for v in items:
        s = norm_str(v)
        if s:
            out.add(s)
    return frozenset(out)
