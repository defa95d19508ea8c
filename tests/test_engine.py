import datetime as dt
import random

from unwrapped.config import EngineConfig
from unwrapped.data.supplementary import Supplementary
from unwrapped.metrics.engine import aggregate_user_year
from unwrapped.metrics.stats_model import UNAVAILABLE, UserYearStats


def _year_of_history(make_movie, make_episode):
    records = []
    key = 100
    for day in range(1, 29):
        key += 1
        records.append(make_episode(
            key, f"2025-02-{day:02d}T21:00:00", show="Severance", season=1 + day // 10, episode=1 + day % 10,
            minutes=50, actors=["Adam Scott"],
        ))
        if day % 3 == 0:
            records.append(make_movie(
                day % 4, f"2025-02-{day:02d}T18:30:00", minutes=110,
                title=f"Film {day % 4}", directors=["Someone"], device="Shield", platform="Android",
            ))
    records.append(make_movie(50, "2025-07-04T23:10:00", minutes=95, play_decision="direct stream", resolution="4k"))
    return records


def test_empty_input_gives_a_valid_zero_snapshot(engine_cfg):
    result = aggregate_user_year([], engine_cfg, user_id="7")
    s = result.stats

    assert s.user_id == "7"
    assert (s.total_plays, s.total_minutes, s.days_active, s.unique_devices) == (0, 0.0, 0, 0)
    assert s.top_movies == [] and s.top_genres == [] and s.top_devices == []
    assert len(s.monthly_stats) == 12
    assert len(s.day_of_week_stats) == 7
    assert len(s.hourly_stats) == 24
    assert all(m["plays"] == 0 for m in s.monthly_stats)
    assert s.most_active_month is None and s.most_active_hour is None
    assert s.longest_streak_days == 0 and s.longest_binge_show is None
    assert s.first_watch_title is None
    assert s.percentage_of_library_watched == UNAVAILABLE
    assert s.fun_facts == [] and s.badges == []
    assert result.skipped_malformed == 0


def test_library_percentage_is_computed_even_for_an_empty_year(engine_cfg):
    s = aggregate_user_year([], engine_cfg, supplementary=Supplementary(library_movie_count=40)).stats
    assert s.percentage_of_library_watched == 0.0


def test_output_does_not_depend_on_input_order(make_movie, make_episode, engine_cfg):
    records = _year_of_history(make_movie, make_episode)
    shuffled = list(records)
    random.Random(7).shuffle(shuffled)

    a = aggregate_user_year(records, engine_cfg, user_id="1").stats
    b = aggregate_user_year(shuffled, engine_cfg, user_id="1").stats
    assert a.to_json() == b.to_json()


def test_counters_and_temporal_fields(make_movie, make_episode, engine_cfg):
    s = aggregate_user_year(_year_of_history(make_movie, make_episode), engine_cfg).stats

    assert s.total_episodes == 28
    assert s.total_movies == 10
    assert s.total_plays == 38
    assert s.unique_movies == 5
    assert s.unique_shows == 1
    assert s.days_active == 29
    assert s.longest_streak_days == 28
    assert s.longest_streak_start == dt.date(2025, 2, 1)
    assert s.most_active_month == "February"
    assert s.top_shows[0]["title"] == "Severance"
    assert s.top_actors[0]["name"] == "Adam Scott"
    assert s.first_watch_title == "Severance - Episode 101"
    assert s.last_watch_date == dt.datetime(2025, 7, 4, 23, 10)
    assert 0.0 <= s.percentage_of_days_active <= 100.0
    assert s.percentage_of_library_watched == UNAVAILABLE
    assert len(s.fun_facts) <= engine_cfg.max_fun_facts
    assert "streak_keeper" in [b["id"] for b in s.badges]


def test_duplicates_are_not_double_counted(make_movie, engine_cfg):
    rec = make_movie(1, "2025-03-03T20:00:00", minutes=120)
    s = aggregate_user_year([rec, dict(rec), dict(rec)], engine_cfg).stats

    assert s.total_plays == 1
    assert s.total_minutes == 120.0
    assert s.rewatches == 0


def test_previous_year_events_are_excluded(make_movie, engine_cfg):
    s = aggregate_user_year(
        [make_movie(1, "2024-12-31T23:59:00"), make_movie(2, "2025-01-01T00:00:30")],
        engine_cfg,
    ).stats

    assert s.total_plays == 1
    assert s.first_watch_title == "Movie 2"
    assert s.monthly_stats[0]["plays"] == 1


def test_malformed_records_are_reported(make_movie, engine_cfg):
    result = aggregate_user_year([make_movie(1, "2025-03-03T20:00:00"), {"media_kind": "movie"}], engine_cfg)
    assert result.skipped_malformed == 1
    assert result.stats.total_plays == 1


def test_ranked_lists_respect_configured_caps(make_movie):
    cfg = EngineConfig(year=2025, max_top_titles=3, max_top_devices=1, max_fun_facts=2)
    records = [
        make_movie(i, f"2025-05-{i:02d}T20:00:00", device=f"Device {i}") for i in range(1, 11)
    ]
    s = aggregate_user_year(records, cfg).stats

    assert len(s.top_movies) == 3
    assert len(s.top_devices) == 1
    assert len(s.fun_facts) <= 2


def test_stats_document_survives_a_json_round_trip(make_movie, make_episode, engine_cfg):
    s = aggregate_user_year(_year_of_history(make_movie, make_episode), engine_cfg, user_id="3").stats
    back = UserYearStats.from_dict(s.to_dict())

    assert back == s


def test_repeated_fall_back_hour_counts_both_plays(make_episode):
    cfg = EngineConfig(year=2025, timezone="America/New_York")
    s = aggregate_user_year(
        [make_episode(1, "2025-11-02T05:30:00Z", minutes=30), make_episode(1, "2025-11-02T06:30:00Z", minutes=30)],
        cfg,
    ).stats

    assert s.total_plays == 2
    assert s.total_minutes == 60.0
    assert s.hourly_stats[1]["plays"] == 2
    assert s.first_watch_date == dt.datetime(2025, 11, 2, 1, 30)
