# # Page layout: which widgets render, in what order, with per-widget options.

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, List

DEFAULT_WIDGETS = [
    "overview",
    "highlights",
    "playtime-by-month",
    "playtime-by-dow",
    "playtime-by-hour",
    "top-titles",
    "top-people",
    "devices",
    "quality",
    "fun-facts",
]


@dataclasses.dataclass
class WidgetSpec:
    key: str
    enabled: bool = True
    config: Dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class Layout:
    generator: str = "html_v1"
    palette: str = "auto"
    widgets: List[WidgetSpec] = dataclasses.field(default_factory=list)

    @classmethod
    def default(cls) -> "Layout":
        return cls(widgets=[WidgetSpec(k) for k in DEFAULT_WIDGETS])

    def enabled_widgets(self) -> List[WidgetSpec]:
        return [w for w in self.widgets if w.enabled]


def _coerce_widgets(raw: Any) -> List[WidgetSpec]:
    # # List form: [{"key": "top-titles", "limit": 5}, "overview", ...]
    if isinstance(raw, list):
        out: List[WidgetSpec] = []
        for entry in raw:
            if isinstance(entry, str):
                out.append(WidgetSpec(entry))
            elif isinstance(entry, dict) and "key" in entry:
                opts = {k: v for k, v in entry.items() if k not in {"key", "enabled"}}
                out.append(WidgetSpec(str(entry["key"]), bool(entry.get("enabled", True)), opts))
        return out

    # # Dict form: {"top-titles": {"limit": 5}, "quality": {"enabled": false}}
    if isinstance(raw, dict):
        out = []
        for key, opts in raw.items():
            opts = opts if isinstance(opts, dict) else {}
            out.append(WidgetSpec(
                str(key),
                bool(opts.get("enabled", True)),
                {k: v for k, v in opts.items() if k != "enabled"},
            ))
        return out

    return []


def load_layout(path: Path) -> Layout:
    if not path.exists():
        return Layout.default()

    data = json.loads(path.read_text(encoding="utf-8"))
    theme = data.get("theme") or {}
    widgets = _coerce_widgets(data.get("widgets"))
    return Layout(
        generator=str(data.get("generator", "html_v1")),
        palette=str(theme.get("palette", data.get("palette", "auto"))),
        widgets=widgets or Layout.default().widgets,
    )
