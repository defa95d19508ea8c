import matplotlib

matplotlib.use("Agg")

import pytest  # noqa: E402

from unwrapped.config import Config, EngineConfig  # noqa: E402
from unwrapped.store import StatsStore  # noqa: E402


def _movie(rating_key, started_at, minutes=100.0, **kw):
    rec = {
        "media_kind": "movie",
        "rating_key": rating_key,
        "title": kw.pop("title", f"Movie {rating_key}"),
        "started_at": started_at,
        "duration_watched_minutes": minutes,
        "device": "Living Room TV",
        "platform": "Roku",
        "play_decision": "direct play",
        "resolution": "1080",
        "genres": ["Drama"],
    }
    rec.update(kw)
    return rec


def _episode(rating_key, started_at, show="The Show", season=1, episode=1, minutes=45.0, **kw):
    rec = {
        "media_kind": "episode",
        "rating_key": rating_key,
        "title": kw.pop("title", f"Episode {rating_key}"),
        "show_title": show,
        "season_number": season,
        "episode_number": episode,
        "started_at": started_at,
        "duration_watched_minutes": minutes,
        "device": "Phone",
        "platform": "iOS",
        "play_decision": "transcode",
        "resolution": "720",
        "genres": ["Comedy"],
    }
    rec.update(kw)
    return rec


@pytest.fixture
def make_movie():
    return _movie


@pytest.fixture
def make_episode():
    return _episode


@pytest.fixture
def engine_cfg():
    return EngineConfig(year=2025, timezone="UTC")


@pytest.fixture
def cfg(tmp_path):
    return Config(
        year=2025,
        timezone="UTC",
        db_path=":memory:",
        out_dir=str(tmp_path / "out"),
        max_workers=2,
        fetch_max_attempts=3,
        fetch_backoff_seconds=0.5,
        app_url="https://wrapped.example",
    )


@pytest.fixture
def store():
    s = StatsStore(":memory:")
    yield s
    s.close()
