# # Share tokens: one capability per stored stats snapshot; only the sha256 hash is persisted.

from __future__ import annotations

import dataclasses
import datetime as dt
import hashlib
import secrets
from typing import Optional
from urllib.parse import quote

from ..errors import TokenError
from ..store import StatsStore, StoredStats, utcnow

TOKEN_BYTES = 32


@dataclasses.dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: int
    expires_at: Optional[dt.datetime]


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token(
    store: StatsStore,
    stored: StoredStats,
    *,
    expiration_days: int = 90,
    created_by: str = "generation",
) -> IssuedToken:
    token = secrets.token_urlsafe(TOKEN_BYTES)
    # # 0 (or less) means the link never expires
    expires_at = utcnow() + dt.timedelta(days=expiration_days) if expiration_days > 0 else None
    token_id = store.insert_token(
        hash_token(token), stored.id, stored.user_id, stored.year, expires_at, created_by=created_by
    )
    return IssuedToken(token=token, token_id=token_id, expires_at=expires_at)


def resolve_token(store: StatsStore, token: str, *, now: Optional[dt.datetime] = None) -> StoredStats:
    row = store.find_token(hash_token(token))
    if row is None:
        raise TokenError("Unknown token")
    if not row["is_active"]:
        raise TokenError("Token has been revoked")
    if row["expires_at"]:
        now = now or utcnow()
        if dt.datetime.fromisoformat(row["expires_at"]) <= now:
            raise TokenError("Token has expired")

    stored = store.get_stats_by_id(int(row["user_year_stats_id"]))
    if stored is None:
        raise TokenError("Stats for token no longer exist")
    store.touch_token(int(row["id"]))
    return stored


def revoke_token(store: StatsStore, token: str, reason: str = "") -> None:
    row = store.find_token(hash_token(token))
    if row is None:
        raise TokenError("Unknown token")
    store.deactivate_token(int(row["id"]), reason)


def wrapped_url(app_url: str, token: str, lang: str = "") -> str:
    url = f"{app_url.rstrip('/')}/wrapped/{quote(token, safe='')}"
    return f"{url}?lang={quote(lang, safe='')}" if lang else url
