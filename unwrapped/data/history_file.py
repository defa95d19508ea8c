# # Offline history source: a JSON export with users, per-user records and optional library sizes.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from ..util import norm_str
from .supplementary import Supplementary


class JsonHistorySource:
    """
    Accepted layouts:
      {"users": [...], "history": {"<user_id>": [record, ...]}, "library": {...}}
      [record-with-user_id, ...]
    Records use the engine's field names. Users without an explicit entry
    are derived from the history keys.
    """

    def __init__(self, path: Path):
        if not path.exists():
            raise FileNotFoundError(f"History file not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8"))

        self._users: List[Dict[str, str]] = []
        self._history: Dict[str, List[Dict[str, Any]]] = {}
        self._library: Dict[str, Any] = {}

        if isinstance(data, list):
            for rec in data:
                uid = norm_str(rec.get("user_id")) if isinstance(rec, dict) else ""
                self._history.setdefault(uid, []).append(rec)
        else:
            for uid, recs in (data.get("history") or {}).items():
                self._history[str(uid)] = list(recs or [])
            self._users = [
                {
                    "user_id": norm_str(u.get("user_id")),
                    "username": norm_str(u.get("username")),
                    "friendly_name": norm_str(u.get("friendly_name")) or norm_str(u.get("username")),
                    "email": norm_str(u.get("email")),
                }
                for u in data.get("users") or []
                if norm_str(u.get("user_id"))
            ]
            self._library = data.get("library") or {}

        known = {u["user_id"] for u in self._users}
        for uid in sorted(self._history):
            if uid and uid not in known:
                self._users.append({"user_id": uid, "username": uid, "friendly_name": uid, "email": ""})

    def list_users(self) -> List[Dict[str, str]]:
        return [dict(u) for u in self._users]

    def fetch_user_records(self, user_id: str, year: int) -> List[Dict[str, Any]]:
        # # Year filtering is the engine's job; hand back everything for the user
        return list(self._history.get(str(user_id), []))

    def fetch_supplementary(self) -> Supplementary:
        def _count(key: str):
            v = self._library.get(key)
            return None if v is None else int(v)

        return Supplementary(
            library_movie_count=_count("movie_count"),
            library_show_count=_count("show_count"),
        )
