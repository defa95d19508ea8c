# # Static page rendering: one folder per user with index.html + chart PNGs.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import Config
from .context import RunContext
from .generators import html_v1  # noqa: F401  (registers "html_v1")
from .generators.registry import get_generator
from .layout import Layout
from .metrics.stats_model import UserYearStats
from .output.assets import AssetWriter, safe_dir_name
from .store import StatsStore
from .themes import pick_theme
from .widgets import (  # noqa: F401  (widget modules register themselves on import)
    devices,
    fun_facts,
    highlights,
    overview,
    playtime,
    quality,
    top_people,
    top_titles,
)

log = logging.getLogger(__name__)


def render_user_page(
    stats: UserYearStats,
    cfg: Config,
    layout: Layout,
    out_root: Path,
    *,
    user_name: str = "",
    share_url: str = "",
) -> Path:
    uid = str(stats.user_id or "user")
    theme = pick_theme(seed=uid, palette=layout.palette)
    ctx = RunContext(cfg=cfg, layout=layout, theme=theme, user_name=user_name or uid, share_url=share_url)

    user_out = out_root / safe_dir_name(f"{uid}_{user_name}" if user_name else uid)
    gen = get_generator(layout.generator)(ctx)
    return gen.render_user(stats, user_out, AssetWriter(root=user_out))


def render_generation(
    store: StatsStore,
    generation_id: int,
    cfg: Config,
    layout: Layout,
    users: Optional[List[Dict[str, str]]] = None,
    links: Optional[Dict[str, str]] = None,
) -> Dict[str, Path]:
    out_root = Path(cfg.out_dir)
    out_root.mkdir(parents=True, exist_ok=True)
    names = {u["user_id"]: u.get("friendly_name") or u.get("username") or "" for u in users or []}
    links = links or {}

    pages: Dict[str, Path] = {}
    for stored in store.list_stats_for_generation(generation_id):
        pages[stored.user_id] = render_user_page(
            stored.stats,
            cfg,
            layout,
            out_root,
            user_name=names.get(stored.user_id, ""),
            share_url=links.get(stored.user_id, ""),
        )
    log.info("Rendered %d pages into %s", len(pages), out_root)
    return pages
