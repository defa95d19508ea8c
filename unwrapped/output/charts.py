# # matplotlib helpers shared by the chart widgets: dark axes in the page palette, PNG bytes out.

from __future__ import annotations

import io
from typing import Any, Dict, List, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from ..themes import Theme  # noqa: E402


def apply_dark_axes(theme: Theme) -> None:
    plt.rcParams.update({
        "figure.facecolor": theme.mpl("bg1"),
        "axes.facecolor": theme.mpl("bg1"),
        "savefig.facecolor": theme.mpl("bg1"),
        "text.color": (1, 1, 1, 0.92),
        "axes.labelcolor": (1, 1, 1, 0.92),
        "xtick.color": (1, 1, 1, 0.92),
        "ytick.color": (1, 1, 1, 0.92),
        "grid.color": (1, 1, 1, 0.14),
        "axes.edgecolor": (1, 1, 1, 0.25),
        "font.family": "DejaVu Sans",
    })


def hours_of(rows: List[Dict[str, Any]]) -> List[float]:
    return [float(r.get("minutes") or 0.0) / 60.0 for r in rows]


def series_chart(
    theme: Theme,
    labels: Sequence[str],
    values: Sequence[float],
    *,
    title: str,
    xlabel: str,
    kind: str = "bar",
    color: str = "accent",
    rotate: int = 0,
) -> bytes:
    apply_dark_axes(theme)
    rgb = theme.mpl(color if color in ("accent", "accent2", "accent3") else "accent")

    fig, ax = plt.subplots(figsize=(11, 4))
    try:
        ax.grid(True, axis="y")
        xs = list(range(len(labels)))
        if kind == "line":
            ax.plot(xs, values, marker="o", linewidth=2.5, color=rgb, alpha=0.95)
        else:
            ax.bar(xs, values, color=rgb, alpha=0.90)
        ax.set_title(title)
        ax.set_ylabel("Hours")
        ax.set_xlabel(xlabel)
        ax.set_xticks(xs)
        ax.set_xticklabels(list(labels), rotation=rotate, ha="right" if rotate else "center")

        buf = io.BytesIO()
        fig.tight_layout()
        fig.savefig(buf, format="png", dpi=140, bbox_inches="tight")
        return buf.getvalue()
    finally:
        plt.close(fig)
