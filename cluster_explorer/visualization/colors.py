"""Stable colour assignment for cluster identifiers."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import pandas as pd
from matplotlib import colors as mcolors

# Fixed cluster palette.  Semantic status colours live in app.theme and are
# absent from this list.
CLUSTER_PALETTE: Tuple[str, ...] = (
    "#4F46E5",  # indigo-600
    "#0EA5E9",  # sky-500
    "#D946EF",  # fuchsia-500
    "#F59E0B",  # amber-500
    "#8B5CF6",  # violet-500
    "#14B8A6",  # teal-500
    "#EC4899",  # pink-500
    "#92400E",  # amber-800
    "#84CC16",  # lime-500
    "#475569",  # slate-600
)


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert a hex colour string (e.g. ``'#1f77b4'``) to ``(R, G, B)``."""
    try:
        rgb_float = mcolors.to_rgb(hex_color)
        return tuple(int(round(c * 255)) for c in rgb_float)
    except ValueError:
        return (0, 0, 0)


def contrast_color(hex_color: str) -> str:
    """Black or white, whichever reads better on top of *hex_color*."""
    r, g, b = hex_to_rgb(hex_color)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000000" if luminance > 0.5 else "#FFFFFF"


class ClusterColorMap:
    """Maps cluster ids to palette colours.

    The colour depends only on ``cluster_id % len(palette)``, so every view
    (2D scatter, 3D scene, legend, selector badges) agrees without sharing
    any mutable state.
    """

    def __init__(self, palette: Sequence[str] = CLUSTER_PALETTE) -> None:
        if not palette:
            raise ValueError("palette must contain at least one colour")
        self._palette = tuple(palette)

    @property
    def palette(self) -> Tuple[str, ...]:
        return self._palette

    def __len__(self) -> int:
        return len(self._palette)

    def color(self, cluster_id: int) -> str:
        return self._palette[int(cluster_id) % len(self._palette)]

    def mapping(self, cluster_ids: Iterable[int]) -> dict[int, str]:
        """Return ``{cluster_id: colour}`` for *cluster_ids*."""
        return {int(c): self.color(c) for c in cluster_ids}

    def __call__(self, series: pd.Series) -> Tuple[list[str], dict[int, str], list[int]]:
        """Map a series of cluster ids to colours.

        Returns
        -------
        color_values : list[str]
            One colour per element of *series*.
        mapping : dict[int, str]
            Cluster id -> hex colour for the ids present.
        unique_ids : list[int]
            Sorted unique cluster ids.
        """
        ids = series.astype(int)
        unique_ids = sorted(ids.unique().tolist())
        mapping = self.mapping(unique_ids)
        return ids.map(mapping).tolist(), mapping, unique_ids


_default = ClusterColorMap()


def cluster_color(cluster_id: int) -> str:
    """Colour of *cluster_id* in the default palette."""
    return _default.color(cluster_id)
