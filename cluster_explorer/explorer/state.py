"""Interaction state: hover, cluster selection, axis choice, cluster count.

Separating this state from the Dash UI keeps every transition testable
without a browser.  Rejected transitions are silent no-ops that return
``False``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..config import MAX_CLUSTERS, MIN_CLUSTERS
from ..features import FeatureRegistry
from ..logger import get_logger
from ..models import DatasetSnapshot

logger = get_logger(__name__)


class ViewMode(str, Enum):
    PLANAR = "planar"
    SPATIAL = "spatial"

    @property
    def n_axes(self) -> int:
        return 2 if self is ViewMode.PLANAR else 3


@dataclass(frozen=True)
class HoverState:
    """Either idle (``item_id is None``) or hovering one item at ``(x, y)``."""

    item_id: Optional[str] = None
    x: float = 0.0
    y: float = 0.0

    @property
    def is_idle(self) -> bool:
        return self.item_id is None


IDLE = HoverState()


@dataclass(frozen=True)
class SelectionState:
    cluster_id: Optional[int] = None
    planar_axes: Tuple[str, ...] = ()
    spatial_axes: Tuple[str, ...] = ()
    n_clusters: int = 5
    mode: ViewMode = ViewMode.PLANAR

    def axes(self, mode: Optional[ViewMode] = None) -> Tuple[str, ...]:
        mode = mode or self.mode
        return self.planar_axes if mode is ViewMode.PLANAR else self.spatial_axes


class InteractionStateMachine:
    """Owns :class:`HoverState` and :class:`SelectionState`.

    Parameters
    ----------
    n_clusters : int
        Initial cluster-count parameter (bounded to ``[2, 10]``).
    """

    def __init__(self, n_clusters: int = 5) -> None:
        if not MIN_CLUSTERS <= n_clusters <= MAX_CLUSTERS:
            raise ValueError(f"n_clusters must be in [{MIN_CLUSTERS}, {MAX_CLUSTERS}]")
        self.hover: HoverState = IDLE
        self.selection = SelectionState(n_clusters=n_clusters)
        self.registry = FeatureRegistry(())
        self._snapshot: Optional[DatasetSnapshot] = None
        self._select_listeners: List[Callable[[int], None]] = []

    @property
    def generation(self) -> int:
        return self._snapshot.generation if self._snapshot is not None else 0

    def on_cluster_selected(self, callback: Callable[[int], None]) -> None:
        """Register *callback(cluster_id)*, invoked after every accepted selection."""
        self._select_listeners.append(callback)

    # ------------------------------------------------------------------ #
    #  Hover
    # ------------------------------------------------------------------ #

    def pointer_enter(self, item_id: str, x: float, y: float) -> bool:
        if self._snapshot is None or self._snapshot.track(item_id) is None:
            return False
        self.hover = HoverState(item_id, float(x), float(y))
        return True

    def pointer_move(self, item_id: str, x: float, y: float) -> bool:
        """Update coordinates while over the same item; entering another item re-targets."""
        if self.hover.item_id == item_id:
            self.hover = replace(self.hover, x=float(x), y=float(y))
            return True
        return self.pointer_enter(item_id, x, y)

    def pointer_leave(self) -> None:
        self.hover = IDLE

    # ------------------------------------------------------------------ #
    #  Selection
    # ------------------------------------------------------------------ #

    def select_cluster(self, cluster_id: int) -> bool:
        if self._snapshot is None or cluster_id not in self._snapshot.cluster_ids:
            return False
        self.selection = replace(self.selection, cluster_id=int(cluster_id))
        for callback in self._select_listeners:
            callback(int(cluster_id))
        return True

    def set_axis(self, index: int, feature: str, mode: Optional[ViewMode] = None) -> bool:
        """Choose *feature* for axis *index* (0=x, 1=y, 2=z) of *mode*."""
        mode = mode or self.selection.mode
        if feature not in self.registry or not 0 <= index < mode.n_axes:
            return False
        axes = list(self.selection.axes(mode))
        if axes[index] == feature:
            return False
        axes[index] = feature
        field_name = "planar_axes" if mode is ViewMode.PLANAR else "spatial_axes"
        self.selection = replace(self.selection, **{field_name: tuple(axes)})
        return True

    def set_cluster_count(self, n_clusters: int) -> bool:
        if isinstance(n_clusters, bool) or not isinstance(n_clusters, int):
            return False
        if not MIN_CLUSTERS <= n_clusters <= MAX_CLUSTERS:
            return False
        self.selection = replace(self.selection, n_clusters=n_clusters)
        return True

    def set_mode(self, mode: ViewMode) -> None:
        self.selection = replace(self.selection, mode=ViewMode(mode))

    # ------------------------------------------------------------------ #
    #  Snapshot replacement
    # ------------------------------------------------------------------ #

    def apply_snapshot(
        self, snapshot: DatasetSnapshot, preferred_cluster: Optional[int] = None
    ) -> Optional[int]:
        """Adopt a new snapshot.

        Hover always returns to idle.  The selected cluster survives when it
        still exists, otherwise the lowest cluster id is chosen.
        *preferred_cluster* only counts for the first snapshot, where there
        is no earlier selection to keep.  Axes survive when their features do.

        Returns
        -------
        int or None
            The cluster id selected after the replacement.
        """
        first = self._snapshot is None
        self.hover = IDLE
        self._snapshot = snapshot
        self.registry = FeatureRegistry(snapshot.features_used)

        cluster_ids = snapshot.cluster_ids
        current = self.selection.cluster_id
        if current in cluster_ids:
            cluster_id = current
        elif first and preferred_cluster in cluster_ids:
            cluster_id = preferred_cluster
        else:
            cluster_id = cluster_ids[0] if cluster_ids else None

        self.selection = replace(
            self.selection,
            cluster_id=cluster_id,
            planar_axes=self._reconcile_axes(self.selection.planar_axes, 2),
            spatial_axes=self._reconcile_axes(self.selection.spatial_axes, 3),
        )
        logger.debug(
            "Interaction state reset for generation %d (cluster=%s)",
            snapshot.generation, cluster_id,
        )
        if cluster_id is not None:
            for callback in self._select_listeners:
                callback(cluster_id)
        return cluster_id

    def _reconcile_axes(self, axes: Tuple[str, ...], count: int) -> Tuple[str, ...]:
        defaults = self.registry.default_axes(count)
        if len(axes) != count:
            return defaults
        kept = [a for a in axes if a in self.registry]
        # Vanished features are replaced by ones not already on an axis
        spare = iter([n for n in self.registry if n not in kept] + list(defaults))
        return tuple(a if a in self.registry else next(spare) for a in axes)
