import datetime as dt

import pytest

from unwrapped.distribution.tokens import hash_token, issue_token, resolve_token, revoke_token, wrapped_url
from unwrapped.errors import DuplicateStatsError, TokenError
from unwrapped.metrics.stats_model import UserYearStats
from unwrapped.store import utcnow


def _stats(user_id="1", plays=3):
    return UserYearStats(
        year=2025,
        user_id=user_id,
        total_plays=plays,
        longest_streak_start=dt.date(2025, 3, 1),
        first_watch_date=dt.datetime(2025, 1, 2, 20, 15),
    )


def test_snapshot_round_trip(store):
    gid = store.create_generation(2025)
    sid = store.save_user_stats("1", _stats(), generation_id=gid, skipped_malformed=2, processing_time_seconds=0.4)

    got = store.get_stats_by_id(sid)
    assert got.user_id == "1" and got.year == 2025 and got.generation_id == gid
    assert got.skipped_malformed == 2
    assert got.stats == _stats()
    assert [s.id for s in store.list_stats_for_generation(gid)] == [sid]


def test_one_snapshot_per_user_year(store):
    store.save_user_stats("1", _stats(plays=3))
    with pytest.raises(DuplicateStatsError):
        store.save_user_stats("1", _stats(plays=4))

    sid = store.save_user_stats("1", _stats(plays=5), replace=True)
    assert store.get_stats_by_id(sid).stats.total_plays == 5
    assert store.get_user_stats("1", 2024) is None


def test_generation_counters(store):
    gid = store.create_generation(2025, triggered_by="test")
    store.update_generation(gid, status="processing", started_at=utcnow(), total_users=2)
    store.record_user_outcome(gid, True)
    store.record_user_outcome(gid, False)

    gen = store.get_generation(gid)
    assert gen["status"] == "processing"
    assert (gen["processed_users"], gen["successful_users"], gen["failed_users"]) == (2, 1, 1)
    with pytest.raises(KeyError):
        store.update_generation(gid, year=1999)


def test_tokens_store_only_the_hash(store):
    stored = store.get_stats_by_id(store.save_user_stats("1", _stats()))
    issued = issue_token(store, stored, expiration_days=30)

    row = store.find_token(hash_token(issued.token))
    assert row is not None
    assert issued.token not in row.values()
    assert resolve_token(store, issued.token).user_id == "1"
    assert store.tokens_for_stats(stored.id)[0]["access_count"] == 1


def test_expired_and_revoked_tokens_are_rejected(store):
    stored = store.get_stats_by_id(store.save_user_stats("1", _stats()))
    issued = issue_token(store, stored, expiration_days=1)

    with pytest.raises(TokenError, match="expired"):
        resolve_token(store, issued.token, now=utcnow() + dt.timedelta(days=2))

    revoke_token(store, issued.token, reason="user asked")
    with pytest.raises(TokenError, match="revoked"):
        resolve_token(store, issued.token)

    with pytest.raises(TokenError, match="Unknown"):
        resolve_token(store, "not-a-token")


def test_zero_expiration_never_expires(store):
    stored = store.get_stats_by_id(store.save_user_stats("1", _stats()))
    issued = issue_token(store, stored, expiration_days=0)

    assert issued.expires_at is None
    assert resolve_token(store, issued.token, now=utcnow() + dt.timedelta(days=3650)).id == stored.id


def test_wrapped_url():
    assert wrapped_url("https://x.example/", "a b") == "https://x.example/wrapped/a%20b"
    assert wrapped_url("https://x.example", "t", lang="de") == "https://x.example/wrapped/t?lang=de"
