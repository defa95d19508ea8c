# # Config loader: JSON -> dataclass, plus the frozen engine settings derived from it.

from __future__ import annotations

import dataclasses
import json
from pathlib import Path


@dataclasses.dataclass(frozen=True)
class EngineConfig:
    year: int = 2025
    timezone: str = "UTC"
    binge_gap_minutes: float = 240.0
    max_top_titles: int = 10
    max_top_people: int = 5
    max_top_devices: int = 5
    max_fun_facts: int = 6


@dataclasses.dataclass
class Config:
    # # Tautulli
    tautulli_url: str = "http://127.0.0.1:8181"
    tautulli_api_key: str = ""
    http_timeout_seconds: int = 25
    history_page_size: int = 1000
    fetch_max_attempts: int = 4
    fetch_backoff_seconds: float = 1.0
    fetch_backoff_max_seconds: float = 30.0

    # # Data
    year: int = 2025
    timezone: str = "UTC"
    history_file: str = ""
    request_counts_file: str = ""

    # # Engine
    binge_gap_minutes: float = 240.0
    max_top_titles: int = 10
    max_top_people: int = 5
    max_top_devices: int = 5
    max_fun_facts: int = 6

    # # Orchestration
    max_workers: int = 4
    db_path: str = "./unwrapped.db"

    # # Output
    out_dir: str = "./out"
    app_url: str = "http://localhost:3000"
    token_expiration_days: int = 90

    # # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from_name: str = "Plex Unwrapped"
    smtp_from_email: str = ""
    email_rate_limit_per_minute: int = 10
    test_mode: bool = False

    def engine(self) -> EngineConfig:
        return EngineConfig(
            year=int(self.year),
            timezone=str(self.timezone),
            binge_gap_minutes=float(self.binge_gap_minutes),
            max_top_titles=int(self.max_top_titles),
            max_top_people=int(self.max_top_people),
            max_top_devices=int(self.max_top_devices),
            max_fun_facts=int(self.max_fun_facts),
        )


def load_config(path: Path) -> Config:
    cfg = Config()
    if not path.exists():
        return cfg

    data = json.loads(path.read_text(encoding="utf-8"))
    for k, v in data.items():
        if hasattr(cfg, k):
            setattr(cfg, k, v)
    return cfg
