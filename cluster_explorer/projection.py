"""Projection of N-dimensional feature vectors onto 2 or 3 display axes.

Every chosen axis gets a :class:`LinearScale` whose domain is the observed
``[min, max]`` of the items, padded by 10% of the extent on each side.
Cluster centers go through the same scales as the items, so a centroid is
always drawn consistently with its members.

All functions here are pure: identical inputs give identical outputs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .config import Viewport
from .models import DatasetSnapshot

DOMAIN_MARGIN = 0.1
DEGENERATE_EPSILON = 1e-6

Range = Tuple[float, float]


@dataclass(frozen=True)
class LinearScale:
    """Maps a feature domain linearly onto an output range.

    A degenerate scale (constant feature) sends every value to the middle
    of the output range.
    """

    feature: str
    domain: Range
    output: Range
    degenerate: bool = False

    @property
    def midpoint(self) -> float:
        return (self.output[0] + self.output[1]) / 2.0

    def __call__(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        if self.degenerate:
            return np.full(values.shape, self.midpoint)
        d0, d1 = self.domain
        o0, o1 = self.output
        return o0 + (values - d0) / (d1 - d0) * (o1 - o0)

    def ticks(self, count: int = 5) -> Tuple[list[float], list[str]]:
        """Evenly spaced tick positions with their feature-value labels."""
        if self.degenerate:
            value = (self.domain[0] + self.domain[1]) / 2.0
            return [self.midpoint], [f"{value:.2f}"]
        values = np.linspace(self.domain[0], self.domain[1], count)
        return self(values).tolist(), [f"{v:.2f}" for v in values]


def padded_domain(values, margin: float = DOMAIN_MARGIN) -> Tuple[Range, bool]:
    """Observed ``[min, max]`` of *values* padded by ``margin * extent``.

    Returns
    -------
    domain : (float, float)
    degenerate : bool
        ``True`` when every value is equal (or *values* is empty); the domain
        is then widened by a fixed epsilon instead.
    """
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return (-DEGENERATE_EPSILON, DEGENERATE_EPSILON), True
    lo = float(values.min())
    hi = float(values.max())
    extent = hi - lo
    if extent <= 0 or not math.isfinite(extent):
        return (lo - DEGENERATE_EPSILON, hi + DEGENERATE_EPSILON), True
    return (lo - margin * extent, hi + margin * extent), False


def build_scale(feature: str, values, output: Range, margin: float = DOMAIN_MARGIN) -> LinearScale:
    domain, degenerate = padded_domain(values, margin)
    return LinearScale(feature, domain, (float(output[0]), float(output[1])), degenerate)


@dataclass(frozen=True)
class Projection:
    """Projected coordinates for one (snapshot, axes, output ranges) triple.

    ``item_coords`` has shape ``(n_items, n_axes)`` in snapshot order;
    ``center_coords`` has shape ``(n_centers, n_axes)`` in center order.
    """

    generation: int
    axes: Tuple[str, ...]
    scales: Tuple[LinearScale, ...]
    item_ids: Tuple[str, ...]
    item_clusters: Tuple[int, ...]
    item_coords: np.ndarray
    center_ids: Tuple[int, ...]
    center_coords: np.ndarray

    @property
    def dimensions(self) -> int:
        return len(self.axes)

    def coords_of(self, item_id: str) -> Optional[Tuple[float, ...]]:
        try:
            idx = self.item_ids.index(item_id)
        except ValueError:
            return None
        return tuple(float(v) for v in self.item_coords[idx])

    def axis(self, index: int) -> np.ndarray:
        return self.item_coords[:, index]

    def center_axis(self, index: int) -> np.ndarray:
        return self.center_coords[:, index]


def project(
    snapshot: DatasetSnapshot,
    axes: Sequence[str],
    outputs: Sequence[Range],
    margin: float = DOMAIN_MARGIN,
) -> Projection:
    """Project *snapshot* onto *axes*, one output range per axis.

    Raises
    ------
    ValueError
        If an axis is not one of ``snapshot.features_used`` or the number of
        output ranges does not match the number of axes.
    """
    axes = tuple(axes)
    if len(axes) not in (2, 3):
        raise ValueError(f"expected 2 or 3 axes, got {len(axes)}")
    if len(outputs) != len(axes):
        raise ValueError("one output range is required per axis")
    unknown = [a for a in axes if a not in snapshot.features_used]
    if unknown:
        raise ValueError(f"unknown axis features: {unknown}")

    item_values = np.array(
        [[t.features[a] for a in axes] for t in snapshot.items], dtype=float
    ).reshape(len(snapshot.items), len(axes))
    center_values = np.array(
        [[c.features[a] for a in axes] for c in snapshot.centers], dtype=float
    ).reshape(len(snapshot.centers), len(axes))

    scales = tuple(
        build_scale(a, item_values[:, i], outputs[i], margin) for i, a in enumerate(axes)
    )
    item_coords = np.column_stack([s(item_values[:, i]) for i, s in enumerate(scales)]) \
        if len(snapshot.items) else np.empty((0, len(axes)))
    center_coords = np.column_stack([s(center_values[:, i]) for i, s in enumerate(scales)]) \
        if len(snapshot.centers) else np.empty((0, len(axes)))

    item_coords.setflags(write=False)
    center_coords.setflags(write=False)
    return Projection(
        generation=snapshot.generation,
        axes=axes,
        scales=scales,
        item_ids=tuple(t.id for t in snapshot.items),
        item_clusters=tuple(t.cluster for t in snapshot.items),
        item_coords=item_coords,
        center_ids=tuple(c.cluster_id for c in snapshot.centers),
        center_coords=center_coords,
    )


def project_planar(snapshot: DatasetSnapshot, x: str, y: str, viewport: Viewport) -> Projection:
    """2D projection into viewport pixels (y grows downwards)."""
    return project(snapshot, (x, y), (viewport.x_range, viewport.y_range))


def project_spatial(
    snapshot: DatasetSnapshot, x: str, y: str, z: str, extent: Range = (-5.0, 5.0)
) -> Projection:
    """3D projection into a cube spanning *extent* on every axis."""
    return project(snapshot, (x, y, z), (extent, extent, extent))


class ProjectionCache:
    """Memoises the latest projection per view.

    A new projection is computed exactly when the snapshot generation, the
    axes or the output ranges change.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[tuple, Projection]] = {}
        self.computations = 0

    def get(
        self,
        view: str,
        snapshot: DatasetSnapshot,
        axes: Sequence[str],
        outputs: Sequence[Range],
    ) -> Projection:
        key = (snapshot.generation, tuple(axes), tuple(tuple(o) for o in outputs))
        cached = self._entries.get(view)
        if cached is not None and cached[0] == key:
            return cached[1]
        projection = project(snapshot, axes, outputs)
        self.computations += 1
        self._entries[view] = (key, projection)
        return projection

    def clear(self) -> None:
        self._entries.clear()


# ------------------------------------------------------------------ #
#  Spatial scene rotation
# ------------------------------------------------------------------ #

def rotation_angle(elapsed_s: float, period_s: float) -> float:
    """Scene rotation in radians after *elapsed_s* seconds, one turn per *period_s*."""
    if period_s <= 0:
        raise ValueError("period_s must be positive")
    return 2.0 * math.pi * ((elapsed_s % period_s) / period_s)


def camera_eye(angle: float, radius: float = 1.9, height: float = 0.9) -> Dict[str, float]:
    """Plotly ``scene.camera.eye`` orbiting the origin at *angle* radians."""
    return {
        "x": radius * math.cos(angle),
        "y": radius * math.sin(angle),
        "z": height,
    }
