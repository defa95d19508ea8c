# # Generator interface.

from __future__ import annotations

from pathlib import Path

from ..context import RunContext
from ..metrics.stats_model import UserYearStats
from ..output.assets import AssetWriter


class BaseGenerator:
    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    def render_user(self, stats: UserYearStats, out_dir: Path, assets: AssetWriter) -> Path:
        raise NotImplementedError
