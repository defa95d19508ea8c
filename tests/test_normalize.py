import datetime as dt
import math

import pytest

from unwrapped.data.events import MediaKind, PlayDecision, WatchEvent, parse_timestamp
from unwrapped.errors import MalformedEventError
from unwrapped.metrics.normalize import build_buckets, events_frame, normalize_events


def test_malformed_records_are_counted_not_raised(make_movie):
    records = [
        make_movie(1, "2025-03-01T20:00:00"),
        {"title": "no kind"},
        make_movie(2, "2025-03-01T21:00:00", minutes="abc"),
        make_movie(3, "2025-03-01T22:00:00", minutes=math.nan),
        make_movie(4, "not a date"),
        "not a mapping",
    ]
    events, report = normalize_events(records, year=2025, timezone="UTC")

    assert [e.rating_key for e in events] == [1]
    assert report.received == 6
    assert report.malformed == 5
    assert report.kept == 1


def test_zero_and_negative_durations_are_non_plays(make_movie):
    records = [
        make_movie(1, "2025-03-01T20:00:00", minutes=0),
        make_movie(2, "2025-03-02T20:00:00", minutes=-5),
        make_movie(3, "2025-03-03T20:00:00", minutes=0.5),
    ]
    events, report = normalize_events(records, year=2025, timezone="UTC")

    assert [e.rating_key for e in events] == [3]
    assert report.non_plays == 2
    assert report.malformed == 0


def test_year_window_is_half_open(make_movie):
    records = [
        make_movie(1, "2024-12-31T23:59:00"),
        make_movie(2, "2025-01-01T00:00:00"),
        make_movie(3, "2025-12-31T23:59:59"),
        make_movie(4, "2026-01-01T00:00:00"),
    ]
    events, report = normalize_events(records, year=2025, timezone="UTC")

    assert [e.rating_key for e in events] == [2, 3]
    assert report.out_of_year == 2


def test_year_window_applies_in_local_time(make_movie):
    # # 03:00 UTC on Jan 1 is still Dec 31 in New York
    epoch = int(dt.datetime(2025, 1, 1, 3, 0, tzinfo=dt.timezone.utc).timestamp())
    events, report = normalize_events([make_movie(1, epoch)], year=2025, timezone="America/New_York")

    assert events == []
    assert report.out_of_year == 1


def test_duplicates_keep_one_survivor_regardless_of_order(make_movie):
    a = make_movie(7, "2025-05-05T10:00:00", minutes=30)
    b = make_movie(7, "2025-05-05T10:00:00", minutes=90)

    first, report = normalize_events([a, b], year=2025, timezone="UTC")
    second, _ = normalize_events([b, a], year=2025, timezone="UTC")

    assert report.duplicates == 1
    assert first == second
    assert first[0].duration_watched_minutes == 90


def test_events_are_sorted_chronologically(make_movie):
    records = [
        make_movie(3, "2025-06-01T10:00:00"),
        make_movie(1, "2025-02-01T10:00:00"),
        make_movie(2, "2025-02-01T10:00:00"),
    ]
    events, _ = normalize_events(records, year=2025, timezone="UTC")
    assert [e.rating_key for e in events] == [1, 2, 3]


def test_from_record_parses_aliases_and_tags(make_episode):
    ev = WatchEvent.from_record(make_episode(
        10, "2025-01-05T12:00:00", play_decision="copy", show_key="99", genres="Comedy, Drama,", actors=None,
    ))

    assert ev.media_kind is MediaKind.EPISODE
    assert ev.play_decision is PlayDecision.DIRECT_STREAM
    assert ev.show_id == "key:99"
    assert ev.genres == frozenset({"Comedy", "Drama"})
    assert ev.actors == frozenset()


def test_from_record_rejects_unknown_kind(make_movie):
    with pytest.raises(MalformedEventError) as exc:
        WatchEvent.from_record(make_movie(1, "2025-01-01T00:00:00", media_kind="track"))
    assert exc.value.field == "media_kind"


def test_parse_timestamp_detects_epoch_milliseconds():
    sec = 1_735_732_800  # 2025-01-01T12:00:00Z
    assert parse_timestamp(sec) == parse_timestamp(sec * 1000)
    assert parse_timestamp(sec).tzinfo is not None


def test_buckets_are_fixed_length_with_sunday_first(make_movie):
    # # 2025-01-05 is a Sunday
    events, _ = normalize_events([make_movie(1, "2025-01-05T21:30:00", minutes=60)], year=2025, timezone="UTC")
    b = build_buckets(events_frame(events))

    assert len(b.by_month) == 12
    assert len(b.by_dow) == 7
    assert len(b.by_hour) == 24
    assert b.by_dow.loc[0, "plays"] == 1
    assert b.by_hour.loc[21, "minutes"] == 60.0
    assert list(b.by_decision.index) == ["direct_play", "direct_stream", "transcode"]


def test_empty_frame_still_builds_buckets():
    b = build_buckets(events_frame([]))
    assert b.by_day.empty
    assert int(b.by_month["plays"].sum()) == 0


def test_fall_back_repeated_hour_keeps_both_plays(make_episode):
    # # 05:30Z and 06:30Z on Nov 2 are both 01:30 local in New York
    records = [make_episode(1, "2025-11-02T05:30:00Z"), make_episode(1, "2025-11-02T06:30:00Z")]
    events, report = normalize_events(records, year=2025, timezone="America/New_York")

    assert report.duplicates == 0
    assert len(events) == 2
    assert [e.started_at for e in events] == [dt.datetime(2025, 11, 2, 1, 30)] * 2
    assert [e.instant for e in events] == [dt.datetime(2025, 11, 2, 5, 30), dt.datetime(2025, 11, 2, 6, 30)]
