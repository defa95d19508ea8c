# # Minimal Tautulli API client: users, paginated history, item metadata, library sizes.

from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..errors import HistorySourceError
from ..util import norm_str
from .supplementary import Supplementary

log = logging.getLogger(__name__)

# # HTTP statuses worth retrying; anything else 4xx is a configuration problem
TRANSIENT_STATUS = {429, 500, 502, 503, 504}


@dataclass
class TautulliConn:
    url: str
    api_key: str
    timeout_seconds: int = 25

    @property
    def endpoint(self) -> str:
        return self.url.rstrip("/") + "/api/v2"


class TautulliClient:
    def __init__(self, conn: TautulliConn, page_size: int = 1000):
        self.conn = conn
        self.page_size = max(int(page_size), 1)
        # # Called from worker threads: one Session per thread, shared metadata cache behind a lock
        self._local = threading.local()
        self._meta_lock = threading.Lock()
        self._meta_cache: Dict[int, Dict[str, Any]] = {}

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _get(self, cmd: str, **params: Any) -> Any:
        query: Dict[str, Any] = {k: v for k, v in params.items() if v is not None}
        query["cmd"] = cmd
        query["apikey"] = self.conn.api_key

        try:
            r = self.session.get(self.conn.endpoint, params=query, timeout=self.conn.timeout_seconds)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise HistorySourceError(f"Tautulli {cmd}: {exc}", transient=True) from exc

        if r.status_code in TRANSIENT_STATUS:
            raise HistorySourceError(f"Tautulli {cmd}: HTTP {r.status_code}", transient=True)
        try:
            r.raise_for_status()
            payload = r.json()
        except (requests.HTTPError, ValueError) as exc:
            raise HistorySourceError(f"Tautulli {cmd}: {exc}", transient=False) from exc

        resp = payload.get("response") or {}
        if resp.get("result") != "success":
            raise HistorySourceError(f"Tautulli {cmd}: {resp.get('message') or 'request failed'}", transient=False)
        return resp.get("data")

    def list_users(self) -> List[Dict[str, str]]:
        data = self._get("get_users") or []
        users = []
        for u in data:
            uid = norm_str(u.get("user_id"))
            # # user_id 0 is Tautulli's "Local" pseudo-user
            if not uid or uid == "0":
                continue
            users.append({
                "user_id": uid,
                "username": norm_str(u.get("username")),
                "friendly_name": norm_str(u.get("friendly_name")) or norm_str(u.get("username")),
                "email": norm_str(u.get("email")),
            })
        return users

    def iter_history(self, user_id: str, year: int) -> Iterator[Dict[str, Any]]:
        # # One day of slack either side; the engine applies the exact year window in local time
        after = (dt.date(year, 1, 1) - dt.timedelta(days=1)).isoformat()
        before = (dt.date(year, 12, 31) + dt.timedelta(days=1)).isoformat()

        start = 0
        while True:
            data = self._get(
                "get_history",
                user_id=user_id,
                after=after,
                before=before,
                start=start,
                length=self.page_size,
                grouping=0,
                order_column="started",
                order_dir="asc",
            ) or {}
            rows = data.get("data") or []
            for row in rows:
                yield row

            start += len(rows)
            if len(rows) < self.page_size:
                break
            total = data.get("recordsFiltered")
            if total is not None and start >= int(total):
                break

    def fetch_metadata(self, rating_key: Optional[int]) -> Dict[str, Any]:
        if rating_key is None:
            return {}
        with self._meta_lock:
            cached = self._meta_cache.get(rating_key)
        if cached is not None:
            return cached
        # # Two threads may fetch the same item; both results are identical
        meta = self._get("get_metadata", rating_key=rating_key) or {}
        with self._meta_lock:
            return self._meta_cache.setdefault(rating_key, meta)

    def fetch_user_records(self, user_id: str, year: int) -> List[Dict[str, Any]]:
        records = []
        for row in self.iter_history(user_id, year):
            item_meta = self.fetch_metadata(_int_or_none(row.get("rating_key")))
            show_meta = {}
            if norm_str(row.get("media_type")) == "episode":
                show_meta = self.fetch_metadata(_int_or_none(row.get("grandparent_rating_key")))
            records.append(history_row_to_record(row, item_meta, show_meta))
        log.debug("Fetched %d history rows for user %s", len(records), user_id)
        return records

    def fetch_supplementary(self) -> Supplementary:
        movies = 0
        shows = 0
        seen_movie = seen_show = False
        for lib in self._get("get_libraries") or []:
            kind = norm_str(lib.get("section_type"))
            count = _int_or_none(lib.get("count")) or 0
            if kind == "movie":
                movies += count
                seen_movie = True
            elif kind == "show":
                shows += count
                seen_show = True
        return Supplementary(
            library_movie_count=movies if seen_movie else None,
            library_show_count=shows if seen_show else None,
        )


def _int_or_none(v: Any) -> Optional[int]:
    s = norm_str(v)
    if not s:
        return None
    try:
        return int(float(s))
    except ValueError:
        return None


def _tag_names(meta: Dict[str, Any], key: str) -> List[str]:
    # # Tautulli returns plain string lists; older versions return [{"tag": ...}]
    out = []
    for v in meta.get(key) or []:
        name = norm_str(v.get("tag") if isinstance(v, dict) else v)
        if name:
            out.append(name)
    return out


def _resolution(meta: Dict[str, Any]) -> str:
    media = meta.get("media_info") or []
    if not media:
        return ""
    first = media[0] or {}
    return norm_str(first.get("video_full_resolution")) or norm_str(first.get("video_resolution"))


def _watched_minutes(row: Dict[str, Any]) -> Any:
    # # play_duration (newer Tautulli) already excludes pauses
    try:
        if row.get("play_duration") is not None:
            return float(row["play_duration"]) / 60.0
        if row.get("duration") is not None:
            return (float(row["duration"]) - float(row.get("paused_counter") or 0)) / 60.0
    except (TypeError, ValueError):
        return row.get("play_duration", row.get("duration"))
    return None


def history_row_to_record(
    row: Dict[str, Any],
    item_meta: Optional[Dict[str, Any]] = None,
    show_meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Map one get_history row (+ metadata) onto the engine's record shape.
    Fields are passed through unvalidated; the engine decides what is malformed.
    """
    item_meta = item_meta or {}
    show_meta = show_meta or {}
    is_episode = norm_str(row.get("media_type")) == "episode"

    minutes = _watched_minutes(row)
    genres = _tag_names(item_meta, "genres") or (_tag_names(show_meta, "genres") if is_episode else [])
    actors = _tag_names(item_meta, "actors") or (_tag_names(show_meta, "actors") if is_episode else [])

    return {
        "media_kind": norm_str(row.get("media_type")),
        "rating_key": row.get("rating_key"),
        "title": norm_str(row.get("title")),
        "show_title": norm_str(row.get("grandparent_title")) if is_episode else None,
        "show_key": row.get("grandparent_rating_key") if is_episode else None,
        "season_number": row.get("parent_media_index") if is_episode else None,
        "episode_number": row.get("media_index") if is_episode else None,
        "year": row.get("year"),
        "started_at": row.get("started") or row.get("date"),
        "duration_watched_minutes": minutes,
        "device": norm_str(row.get("player")),
        "platform": norm_str(row.get("platform")),
        "play_decision": norm_str(row.get("transcode_decision")),
        "resolution": _resolution(item_meta),
        "genres": genres,
        "actors": actors,
        "directors": _tag_names(item_meta, "directors"),
    }
