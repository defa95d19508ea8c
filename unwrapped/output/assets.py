# # Writes per-user page assets (chart PNGs) under the user's output folder.

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path


@dataclass
class AssetWriter:
    root: Path

    def write_bytes(self, rel_path: str, data: bytes) -> str:
        # # Returns the URL relative to index.html
        p = self.root / rel_path
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        return rel_path.replace("\\", "/")


def safe_dir_name(name: str, fallback: str = "user") -> str:
    out = re.sub(r"[^A-Za-z0-9_-]+", "", name.replace(" ", "_"))
    return out or fallback
