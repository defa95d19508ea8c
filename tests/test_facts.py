from unwrapped.data.supplementary import Supplementary
from unwrapped.metrics.facts import (
    BadgeRule,
    FactContext,
    FactRule,
    evaluate_badges,
    evaluate_fun_facts,
    library_percentage,
    percentage_of_days,
    quality_mix,
    rewatch_count,
)
from unwrapped.metrics.normalize import build_buckets, events_frame, normalize_events
from unwrapped.metrics.stats_model import UNAVAILABLE, UserYearStats


def _buckets(records):
    events, _ = normalize_events(records, year=2025, timezone="UTC")
    df = events_frame(events)
    return df, build_buckets(df)


def test_quality_mix_rounds_each_bucket_on_its_own(make_movie):
    _, b = _buckets([
        make_movie(1, "2025-02-01T10:00:00", 60, play_decision="direct play"),
        make_movie(2, "2025-02-02T10:00:00", 60, play_decision="direct stream"),
        make_movie(3, "2025-02-03T10:00:00", 60, play_decision="transcode"),
    ])
    q = quality_mix(b.by_decision, b.by_resolution)

    assert (q.direct_play, q.direct_stream, q.transcode) == (33, 33, 33)
    assert q.plays_by_decision == {"direct_play": 1, "direct_stream": 1, "transcode": 1}


def test_quality_mix_of_nothing_is_zero():
    b = build_buckets(events_frame([]))
    q = quality_mix(b.by_decision, b.by_resolution)
    assert (q.direct_play, q.direct_stream, q.transcode) == (0, 0, 0)


def test_library_percentage_sentinel_when_size_unknown():
    assert library_percentage(3, 2, None) == UNAVAILABLE
    assert library_percentage(3, 2, Supplementary()) == UNAVAILABLE
    assert library_percentage(3, 2, Supplementary(library_movie_count=0)) == UNAVAILABLE


def test_library_percentage_uses_only_known_sections():
    assert library_percentage(3, 50, Supplementary(library_movie_count=10)) == 30.0
    assert library_percentage(3, 2, Supplementary(library_movie_count=10, library_show_count=10)) == 25.0
    assert library_percentage(30, 0, Supplementary(library_movie_count=10)) == 100.0


def test_rewatch_count_counts_titles_not_plays(make_movie, make_episode):
    df, _ = _buckets([
        make_movie(1, "2025-02-01T10:00:00"),
        make_movie(1, "2025-02-02T10:00:00"),
        make_movie(1, "2025-02-03T10:00:00"),
        make_movie(2, "2025-02-04T10:00:00"),
        make_episode(3, "2025-02-05T10:00:00"),
        make_episode(3, "2025-02-06T10:00:00"),
    ])
    assert rewatch_count(df) == 1


def test_percentage_of_days_handles_leap_years():
    assert percentage_of_days(365, 2025) == 100.0
    assert percentage_of_days(183, 2024) == 50.0


def test_fun_facts_follow_rule_order_and_limit():
    stats = UserYearStats(year=2025, total_plays=3)
    rules = [
        FactRule("a", lambda c: True, lambda c: "first"),
        FactRule("b", lambda c: False, lambda c: "never"),
        FactRule("c", lambda c: True, lambda c: "second"),
        FactRule("d", lambda c: True, lambda c: "third"),
    ]
    ctx = FactContext(stats=stats)

    assert evaluate_fun_facts(ctx, limit=2, rules=rules) == ["first", "second"]
    assert evaluate_fun_facts(ctx, limit=0, rules=rules) == []


def test_no_facts_or_badges_without_plays():
    ctx = FactContext(stats=UserYearStats(year=2025, longest_streak_days=9))
    assert evaluate_fun_facts(ctx, limit=6) == []
    assert evaluate_badges(ctx) == []


def test_default_badges_fire_from_stats():
    stats = UserYearStats(
        year=2025,
        total_plays=10,
        most_active_hour=23,
        most_active_day_of_week="Saturday",
        longest_streak_days=8,
        longest_binge_minutes=250.0,
    )
    ids = [b["id"] for b in evaluate_badges(FactContext(stats=stats))]
    assert ids == ["marathon_master", "night_owl", "streak_keeper", "weekend_warrior"]


def test_custom_badge_table():
    rules = [BadgeRule("x", "X", "always", lambda c: True)]
    out = evaluate_badges(FactContext(stats=UserYearStats(year=2025, total_plays=1)), rules=rules)
    assert out == [{"id": "x", "name": "X", "description": "always"}]


def test_request_fact_counts_watched_requested_titles():
    stats = UserYearStats(year=2025, total_plays=2, total_movies=1, total_episodes=1)
    supp = Supplementary(request_counts_by_title={"Heat": 2, "Alien": 1})
    ctx = FactContext(stats=stats, supplementary=supp, watched_titles=frozenset({"Heat", "Lost"}))

    assert ctx.requested_titles() == 1
    assert "1 of the titles you watched started as a request" in evaluate_fun_facts(ctx, limit=10)
