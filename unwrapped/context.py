# # Per-user render context handed to generators and widgets.

from __future__ import annotations

import dataclasses

from .config import Config
from .layout import Layout
from .themes import Theme


@dataclasses.dataclass
class RunContext:
    cfg: Config
    layout: Layout
    theme: Theme
    user_name: str = ""
    share_url: str = ""
