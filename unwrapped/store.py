# # SQLite persistence: generations, per-user stats snapshots, access tokens, email logs.

from __future__ import annotations

import dataclasses
import datetime as dt
import json
import sqlite3
from typing import Any, Dict, List, Optional

from .errors import DuplicateStatsError
from .metrics.stats_model import UserYearStats

SCHEMA = """
CREATE TABLE IF NOT EXISTS generations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    year INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'completed', 'failed', 'cancelled')),
    started_at TEXT,
    completed_at TEXT,
    total_users INTEGER DEFAULT 0,
    processed_users INTEGER DEFAULT 0,
    successful_users INTEGER DEFAULT 0,
    failed_users INTEGER DEFAULT 0,
    error_log TEXT,
    triggered_by TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_year_stats (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    generation_id INTEGER REFERENCES generations(id) ON DELETE SET NULL,
    year INTEGER NOT NULL,
    stats_json TEXT NOT NULL,
    skipped_malformed INTEGER DEFAULT 0,
    processing_time_seconds REAL,
    generated_at TEXT NOT NULL,
    UNIQUE (user_id, year)
);

CREATE TABLE IF NOT EXISTS access_tokens (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    token_hash TEXT UNIQUE NOT NULL,
    user_year_stats_id INTEGER NOT NULL REFERENCES user_year_stats(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    year INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT,
    last_accessed_at TEXT,
    access_count INTEGER DEFAULT 0 CHECK (access_count >= 0),
    is_active INTEGER DEFAULT 1,
    created_by TEXT DEFAULT 'system',
    revoked_at TEXT,
    revoked_reason TEXT
);

CREATE TABLE IF NOT EXISTS email_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT,
    generation_id INTEGER REFERENCES generations(id) ON DELETE SET NULL,
    email_to TEXT NOT NULL,
    email_subject TEXT,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'sent', 'failed')),
    error_message TEXT,
    message_id TEXT,
    sent_at TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_stats_generation ON user_year_stats(generation_id);
CREATE INDEX IF NOT EXISTS idx_tokens_stats ON access_tokens(user_year_stats_id);
CREATE INDEX IF NOT EXISTS idx_email_generation ON email_logs(generation_id);
"""

GENERATION_FIELDS = {
    "status", "started_at", "completed_at", "total_users", "processed_users",
    "successful_users", "failed_users", "error_log",
}


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclasses.dataclass
class StoredStats:
    id: int
    user_id: str
    year: int
    generation_id: Optional[int]
    stats: UserYearStats
    skipped_malformed: int
    generated_at: str


class StatsStore:
    """
    Thin sqlite3 wrapper. Not thread-safe: the orchestrator performs all writes
    from a single thread; UNIQUE(user_id, year) backs the one-snapshot rule.
    """

    def __init__(self, path: str = ":memory:"):
        self.path = path
        self.conn = sqlite3.connect(path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")
        self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "StatsStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # # Generations

    def create_generation(self, year: int, triggered_by: str = "cli") -> int:
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO generations (year, status, triggered_by, created_at) VALUES (?, 'pending', ?, ?)",
                (int(year), triggered_by, utcnow().isoformat()),
            )
        return int(cur.lastrowid)

    def update_generation(self, generation_id: int, **fields: Any) -> None:
        unknown = set(fields) - GENERATION_FIELDS
        if unknown:
            raise KeyError(f"Unknown generation fields: {sorted(unknown)}")
        if not fields:
            return
        cols = ", ".join(f"{k} = ?" for k in fields)
        values = [v.isoformat() if isinstance(v, dt.datetime) else v for v in fields.values()]
        with self.conn:
            self.conn.execute(f"UPDATE generations SET {cols} WHERE id = ?", (*values, generation_id))

    def record_user_outcome(self, generation_id: int, success: bool) -> None:
        col = "successful_users" if success else "failed_users"
        with self.conn:
            self.conn.execute(
                f"UPDATE generations SET processed_users = processed_users + 1, {col} = {col} + 1 WHERE id = ?",
                (generation_id,),
            )

    def get_generation(self, generation_id: int) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT * FROM generations WHERE id = ?", (generation_id,)).fetchone()
        return dict(row) if row else None

    # # Stats snapshots

    def save_user_stats(
        self,
        user_id: str,
        stats: UserYearStats,
        *,
        generation_id: Optional[int] = None,
        skipped_malformed: int = 0,
        processing_time_seconds: Optional[float] = None,
        replace: bool = False,
    ) -> int:
        params = (
            str(user_id), generation_id, int(stats.year), stats.to_json(),
            int(skipped_malformed), processing_time_seconds, utcnow().isoformat(),
        )
        if replace:
            sql = (
                "INSERT INTO user_year_stats (user_id, generation_id, year, stats_json, skipped_malformed, "
                "processing_time_seconds, generated_at) VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (user_id, year) DO UPDATE SET generation_id = excluded.generation_id, "
                "stats_json = excluded.stats_json, skipped_malformed = excluded.skipped_malformed, "
                "processing_time_seconds = excluded.processing_time_seconds, generated_at = excluded.generated_at"
            )
        else:
            sql = (
                "INSERT INTO user_year_stats (user_id, generation_id, year, stats_json, skipped_malformed, "
                "processing_time_seconds, generated_at) VALUES (?, ?, ?, ?, ?, ?, ?)"
            )
        try:
            with self.conn:
                self.conn.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise DuplicateStatsError(str(user_id), int(stats.year)) from exc

        row = self.conn.execute(
            "SELECT id FROM user_year_stats WHERE user_id = ? AND year = ?", (str(user_id), int(stats.year))
        ).fetchone()
        return int(row["id"])

    def _stored(self, row: sqlite3.Row) -> StoredStats:
        return StoredStats(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            year=int(row["year"]),
            generation_id=row["generation_id"],
            stats=UserYearStats.from_dict(json.loads(row["stats_json"])),
            skipped_malformed=int(row["skipped_malformed"] or 0),
            generated_at=str(row["generated_at"]),
        )

    def get_user_stats(self, user_id: str, year: int) -> Optional[StoredStats]:
        row = self.conn.execute(
            "SELECT * FROM user_year_stats WHERE user_id = ? AND year = ?", (str(user_id), int(year))
        ).fetchone()
        return self._stored(row) if row else None

    def get_stats_by_id(self, stats_id: int) -> Optional[StoredStats]:
        row = self.conn.execute("SELECT * FROM user_year_stats WHERE id = ?", (stats_id,)).fetchone()
        return self._stored(row) if row else None

    def list_stats_for_generation(self, generation_id: int) -> List[StoredStats]:
        rows = self.conn.execute(
            "SELECT * FROM user_year_stats WHERE generation_id = ? ORDER BY user_id", (generation_id,)
        ).fetchall()
        return [self._stored(r) for r in rows]

    # # Access tokens (hash only; the raw token is never stored)

    def insert_token(
        self,
        token_hash: str,
        stats_id: int,
        user_id: str,
        year: int,
        expires_at: Optional[dt.datetime],
        created_by: str = "system",
    ) -> int:
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO access_tokens (token_hash, user_year_stats_id, user_id, year, created_at, expires_at, created_by) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    token_hash, stats_id, str(user_id), int(year), utcnow().isoformat(),
                    expires_at.isoformat() if expires_at else None, created_by,
                ),
            )
        return int(cur.lastrowid)

    def find_token(self, token_hash: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT * FROM access_tokens WHERE token_hash = ?", (token_hash,)).fetchone()
        return dict(row) if row else None

    def tokens_for_stats(self, stats_id: int) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM access_tokens WHERE user_year_stats_id = ? ORDER BY id", (stats_id,)
        ).fetchall()
        return [dict(r) for r in rows]

    def touch_token(self, token_id: int) -> None:
        with self.conn:
            self.conn.execute(
                "UPDATE access_tokens SET access_count = access_count + 1, last_accessed_at = ? WHERE id = ?",
                (utcnow().isoformat(), token_id),
            )

    def deactivate_token(self, token_id: int, reason: str = "") -> None:
        with self.conn:
            self.conn.execute(
                "UPDATE access_tokens SET is_active = 0, revoked_at = ?, revoked_reason = ? WHERE id = ?",
                (utcnow().isoformat(), reason or None, token_id),
            )

    # # Email logs

    def create_email_log(self, user_id: str, generation_id: Optional[int], email_to: str, subject: str) -> int:
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO email_logs (user_id, generation_id, email_to, email_subject, created_at) VALUES (?, ?, ?, ?, ?)",
                (str(user_id), generation_id, email_to, subject, utcnow().isoformat()),
            )
        return int(cur.lastrowid)

    def mark_email_sent(self, log_id: int, message_id: str) -> None:
        with self.conn:
            self.conn.execute(
                "UPDATE email_logs SET status = 'sent', message_id = ?, sent_at = ? WHERE id = ?",
                (message_id, utcnow().isoformat(), log_id),
            )

    def mark_email_failed(self, log_id: int, error: str) -> None:
        with self.conn:
            self.conn.execute(
                "UPDATE email_logs SET status = 'failed', error_message = ? WHERE id = ?",
                (error, log_id),
            )

    def email_logs_for_generation(self, generation_id: int) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM email_logs WHERE generation_id = ? ORDER BY id", (generation_id,)
        ).fetchall()
        return [dict(r) for r in rows]
