# # Optional library / request metadata used only for derived facts.

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Dict, Optional


@dataclasses.dataclass(frozen=True)
class Supplementary:
    library_movie_count: Optional[int] = None
    library_show_count: Optional[int] = None
    request_counts_by_title: Dict[str, int] = dataclasses.field(default_factory=dict)

    def merged(self, other: "Supplementary") -> "Supplementary":
        # # Fields set on `other` win
        counts = dict(self.request_counts_by_title)
        counts.update(other.request_counts_by_title)
        return Supplementary(
            library_movie_count=other.library_movie_count if other.library_movie_count is not None else self.library_movie_count,
            library_show_count=other.library_show_count if other.library_show_count is not None else self.library_show_count,
            request_counts_by_title=counts,
        )


def load_request_counts(path: Path) -> Dict[str, int]:
    """
    Reads {"Title": count, ...} or [{"title": ..., "count": ...}, ...].
    Missing file -> empty mapping.
    """
    if not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    out: Dict[str, int] = {}
    if isinstance(data, dict):
        items = data.items()
    else:
        items = ((d.get("title"), d.get("count")) for d in data if isinstance(d, dict))
    for title, count in items:
        try:
            n = int(count)
        except (TypeError, ValueError):
            continue
        if title and n > 0:
            out[str(title)] = n
    return out
