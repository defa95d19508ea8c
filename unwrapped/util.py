# # Shared helpers: minute formatting, calendar labels, safe string normalization.

from __future__ import annotations

import math
from typing import Any

import pandas as pd


# # Calendar order used for tie-breaks and chart axes (week starts on Sunday).
DOW_ORDER = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def safe_isna(v: Any) -> bool:
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False


def norm_str(v: Any) -> str:
    # # Robust against pandas NaN / float values
    if v is None:
        return ""
    if safe_isna(v):
        return ""
    return str(v).strip()


def round_half_up(x: float) -> int:
    return int(math.floor(float(x) + 0.5))


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def format_minutes(minutes: float) -> str:
    if minutes is None or (isinstance(minutes, float) and math.isnan(minutes)):
        minutes = 0.0
    total = int(round(float(minutes)))
    days, rem = divmod(total, 1440)
    hours, mins = divmod(rem, 60)
    if days:
        return f"{days}d {hours:02}h {mins:02}m"
    return f"{hours}h {mins:02}m"


def format_hour_12h(hour: int) -> str:
    h = int(hour) % 24
    ampm = "AM" if h < 12 else "PM"
    h12 = 12 if (h % 12) == 0 else (h % 12)
    return f"{h12} {ampm}"
