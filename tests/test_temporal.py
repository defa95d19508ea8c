import datetime as dt

from unwrapped.metrics import temporal
from unwrapped.metrics.normalize import build_buckets, events_frame, normalize_events


def _frame(records):
    events, _ = normalize_events(records, year=2025, timezone="UTC")
    return events_frame(events)


def test_longest_streak_picks_the_longest_run(make_movie):
    days = ["2025-01-01", "2025-01-02", "2025-01-03"] + [f"2025-03-{d}" for d in range(10, 16)] + ["2025-05-01"]
    df = _frame([make_movie(i, f"{d}T20:00:00") for i, d in enumerate(days, start=1)])

    streak = temporal.longest_streak(build_buckets(df).by_day)
    assert streak.days == 6
    assert streak.start == dt.date(2025, 3, 10)
    assert streak.end == dt.date(2025, 3, 15)


def test_longest_streak_ties_go_to_the_most_recent_run(make_movie):
    days = ["2025-01-01", "2025-01-02", "2025-02-01", "2025-02-02"]
    df = _frame([make_movie(i, f"{d}T20:00:00") for i, d in enumerate(days, start=1)])

    streak = temporal.longest_streak(build_buckets(df).by_day)
    assert (streak.days, streak.start) == (2, dt.date(2025, 2, 1))


def test_several_plays_on_one_day_count_once(make_movie):
    df = _frame([make_movie(1, "2025-01-01T08:00:00"), make_movie(2, "2025-01-01T23:00:00")])
    assert temporal.longest_streak(build_buckets(df).by_day).days == 1


def test_binge_merges_plays_within_the_gap(make_episode):
    df = _frame([
        make_episode(1, "2025-04-01T18:00:00", show="Dark", minutes=60),
        make_episode(2, "2025-04-01T21:59:00", show="Dark", minutes=60),
    ])
    binge = temporal.longest_binge(df, 240)

    assert binge.plays == 2
    assert binge.minutes == 120.0
    assert binge.show == "Dark"
    assert binge.start == dt.datetime(2025, 4, 1, 18, 0)


def test_binge_splits_when_the_gap_is_exceeded(make_episode):
    df = _frame([
        make_episode(1, "2025-04-01T18:00:00", show="Dark", minutes=60),
        make_episode(2, "2025-04-01T22:01:00", show="Dark", minutes=50),
    ])
    binge = temporal.longest_binge(df, 240)

    assert binge.plays == 1
    assert binge.minutes == 60.0


def test_binge_show_is_the_one_with_most_minutes(make_episode, make_movie):
    df = _frame([
        make_movie(9, "2025-04-01T17:00:00", minutes=120),
        make_episode(1, "2025-04-01T19:00:00", show="A", minutes=30),
        make_episode(2, "2025-04-01T19:30:00", show="B", minutes=40),
        make_episode(3, "2025-04-01T20:10:00", show="A", minutes=30),
    ])
    binge = temporal.longest_binge(df, 240)

    assert binge.plays == 4
    assert binge.show == "A"


def test_movie_only_binge_has_no_show(make_movie):
    binge = temporal.longest_binge(_frame([make_movie(1, "2025-04-01T17:00:00")]), 240)
    assert binge.show is None
    assert binge.plays == 1


def test_memorable_day_ties_go_to_the_earliest_date(make_movie):
    df = _frame([make_movie(1, "2025-06-02T10:00:00", 90), make_movie(2, "2025-06-01T10:00:00", 90)])
    day, minutes = temporal.most_memorable_day(build_buckets(df).by_day)
    assert day == dt.date(2025, 6, 1)
    assert minutes == 90.0


def test_peak_key_is_none_without_minutes():
    b = build_buckets(events_frame([]))
    assert temporal.peak_key(b.by_month) is None
    assert temporal.peak_key(b.by_hour) is None


def test_first_and_last_watch(make_movie):
    df = _frame([
        make_movie(2, "2025-12-30T10:00:00", title="Last"),
        make_movie(1, "2025-01-02T10:00:00", title="First"),
    ])
    first, last = temporal.first_and_last(df)
    assert first.title == "First"
    assert last.title == "Last"
    assert last.at == dt.datetime(2025, 12, 30, 10, 0)


def test_binge_gap_uses_elapsed_time_across_spring_forward(make_episode):
    # # 3h45m apart in real time, 4h45m apart on the New York wall clock
    events, _ = normalize_events(
        [
            make_episode(1, "2025-03-09T05:30:00Z", show="Dark", minutes=60),
            make_episode(2, "2025-03-09T09:15:00Z", show="Dark", minutes=60),
        ],
        year=2025,
        timezone="America/New_York",
    )
    binge = temporal.longest_binge(events_frame(events), 240)

    assert binge.plays == 2
    assert binge.minutes == 120.0
    assert binge.start == dt.datetime(2025, 3, 9, 0, 30)


def test_first_and_last_watch_ties_prefer_the_larger_rating_key(make_movie):
    df = _frame([
        make_movie(5, "2025-03-01T10:00:00", title="Small"),
        make_movie(9, "2025-03-01T10:00:00", title="Big"),
    ])
    first, last = temporal.first_and_last(df)
    assert first.title == "Big"
    assert last.title == "Big"


def test_peak_month_ties_go_to_the_earliest_month(make_movie):
    df = _frame([make_movie(1, "2025-09-10T10:00:00", 60), make_movie(2, "2025-03-10T10:00:00", 60)])
    assert temporal.peak_key(build_buckets(df).by_month) == 3


def test_peak_weekday_ties_go_to_sunday_first(make_movie):
    # # 2025-06-02 is a Monday, 2025-06-08 a Sunday
    df = _frame([make_movie(1, "2025-06-02T10:00:00", 60), make_movie(2, "2025-06-08T10:00:00", 60)])
    assert temporal.peak_key(build_buckets(df).by_dow) == 0


def test_peak_hour_ties_go_to_the_earliest_hour(make_movie):
    df = _frame([make_movie(1, "2025-06-02T22:00:00", 60), make_movie(2, "2025-06-03T07:00:00", 60)])
    assert temporal.peak_key(build_buckets(df).by_hour) == 7
