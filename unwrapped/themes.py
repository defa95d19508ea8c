# # Page palettes; a user always gets the same one unless the layout pins a palette.

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Dict, Tuple

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    name: str
    accent: RGB
    accent2: RGB
    accent3: RGB
    bg1: RGB
    bg2: RGB

    def mpl(self, attr: str) -> Tuple[float, float, float]:
        # # matplotlib wants 0..1 floats
        return tuple(c / 255.0 for c in getattr(self, attr))


PALETTES: Dict[str, Theme] = {
    "Amber":   Theme("Amber",   accent=(229, 160, 13),  accent2=(255, 107, 53),  accent3=(120, 200, 255), bg1=(12, 10, 6),  bg2=(36, 24, 8)),
    "Ember":   Theme("Ember",   accent=(255, 107, 53),  accent2=(255, 61, 127),  accent3=(255, 214, 102), bg1=(16, 8, 8),   bg2=(40, 12, 20)),
    "Lagoon":  Theme("Lagoon",  accent=(32, 210, 200),  accent2=(99, 140, 255),  accent3=(180, 255, 120), bg1=(6, 14, 16),  bg2=(8, 22, 36)),
    "Orchid":  Theme("Orchid",  accent=(190, 130, 255), accent2=(255, 110, 180), accent3=(110, 230, 200), bg1=(12, 8, 18), bg2=(28, 10, 28)),
    "Moss":    Theme("Moss",    accent=(140, 220, 90),  accent2=(240, 200, 70),  accent3=(90, 180, 255),  bg1=(8, 12, 8),  bg2=(16, 26, 12)),
}

DEFAULT_PALETTE = "Amber"


def pick_theme(seed: str, palette: str = "auto") -> Theme:
    if palette and palette != "auto":
        return PALETTES.get(palette, PALETTES[DEFAULT_PALETTE])

    names = sorted(PALETTES)
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return PALETTES[names[digest[0] % len(names)]]
