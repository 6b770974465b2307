"""ExplorerSession: the one writer of explorer state.

Wires the snapshot store, interaction state machine, reconfiguration
protocol and recommendation orchestrator together.  Every method is meant
to run on the explorer's event loop (see :mod:`.runtime`); readers such as
the Dash layer only consume the immutable objects it hands out.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..client import ClusterServiceClient
from ..config import ExplorerConfig
from ..errors import FetchError, InvalidParameterError
from ..features import format_feature_name, format_value
from ..logger import get_logger
from ..models import ClusterParams, DatasetSnapshot, RecommendationState
from ..projection import (
    Projection,
    ProjectionCache,
    camera_eye,
    rotation_angle,
)
from .reconfigure import ReconfigurationProtocol, SnapshotStore
from .recommendations import RecommendationOrchestrator
from .state import HoverState, InteractionStateMachine, SelectionState, ViewMode

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionView:
    """Consistent read-only picture of the session at one instant."""

    snapshot: Optional[DatasetSnapshot]
    selection: SelectionState
    hover: HoverState
    recommendations: RecommendationState
    feature_set: Tuple[str, ...]
    loading: bool
    recompute_busy: bool
    error: Optional[str]

    @property
    def generation(self) -> int:
        return self.snapshot.generation if self.snapshot is not None else 0


class ExplorerSession:
    """Explorer state for one user.

    Parameters
    ----------
    config : ExplorerConfig
    client : ClusterServiceClient, optional
        Built from *config* when omitted.
    token_provider : callable, optional
        Returns the session token supplied by the auth layer.
    clock : callable, optional
        Monotonic time source for the spatial rotation.
    """

    def __init__(
        self,
        config: ExplorerConfig,
        client: Optional[ClusterServiceClient] = None,
        token_provider: Callable[[], Optional[str]] = lambda: None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.client = client or ClusterServiceClient(
            config.api_base_url, timeout=config.request_timeout
        )
        self._token_provider = token_provider
        self._clock = clock
        self._started = clock()

        self.store = SnapshotStore()
        self.interaction = InteractionStateMachine(config.default_n_clusters)
        self.protocol = ReconfigurationProtocol(self.client, self.store)
        self.recommendations = RecommendationOrchestrator(
            self.client,
            token_provider,
            seed_size=config.seed_size,
            limit=config.recommendation_limit,
        )
        self.projections = ProjectionCache()

        self.tracks: Tuple[dict, ...] = ()
        self.feature_set: Tuple[str, ...] = tuple(config.default_features)
        self.loading = False
        self.load_error: Optional[str] = None
        self.parameter_error: Optional[str] = None
        self.preferred_cluster: Optional[int] = None

        # Orchestrator must see the snapshot before the state machine
        # re-selects a cluster on it.
        self.store.subscribe(self._on_snapshot)
        self.interaction.on_cluster_selected(self._on_cluster_selected)

    @property
    def snapshot(self) -> Optional[DatasetSnapshot]:
        return self.store.current

    def _on_snapshot(self, snapshot: DatasetSnapshot) -> None:
        self.recommendations.set_snapshot(snapshot)
        # A share-link cluster is only the initial selection
        preferred, self.preferred_cluster = self.preferred_cluster, None
        self.interaction.apply_snapshot(snapshot, preferred)

    def _on_cluster_selected(self, cluster_id: int) -> None:
        self.recommendations.select(cluster_id)

    # ------------------------------------------------------------------ #
    #  Loading and reconfiguration
    # ------------------------------------------------------------------ #

    async def load(self, tracks: Optional[Sequence[dict]] = None) -> Optional[DatasetSnapshot]:
        """Initial load: fetch the user's tracks (unless given) and cluster them."""
        self.loading = True
        self.load_error = None
        try:
            if tracks is None:
                tracks = await self.client.fetch_user_tracks(self._token_provider() or "")
            self.tracks = tuple(tracks)
            if not self.tracks:
                logger.info("User has no tracks to cluster")
                return None
            return await self.recompute()
        except FetchError as e:
            logger.warning("Initial load failed: %s", e)
            self.load_error = str(e)
            return None
        finally:
            self.loading = False

    async def recompute(
        self,
        n_clusters: Optional[int] = None,
        features: Optional[Sequence[str]] = None,
    ) -> Optional[DatasetSnapshot]:
        """Confirm the pending parameters and recluster.

        Failures are recorded on :attr:`protocol.last_error` and leave the
        current snapshot in place.
        """
        try:
            params = ClusterParams(
                n_clusters if n_clusters is not None else self.interaction.selection.n_clusters,
                tuple(features) if features is not None else self.feature_set,
            )
        except InvalidParameterError as e:
            logger.warning("Recompute rejected: %s", e)
            self.parameter_error = str(e)
            return None
        self.parameter_error = None
        self.interaction.set_cluster_count(params.n_clusters)
        try:
            return await self.protocol.request_recompute(self.tracks, params)
        except FetchError:
            return None

    def set_feature_set(self, features: Sequence[str]) -> bool:
        """Stage the feature subset for the next recompute (known features only)."""
        known = self.available_features()
        chosen = tuple(f for f in features if f in known)
        if not chosen or len(chosen) != len(tuple(features)):
            return False
        self.feature_set = chosen
        return True

    def available_features(self) -> Tuple[str, ...]:
        names = list(self.config.default_features)
        if self.snapshot is not None:
            names += [f for f in self.snapshot.features_used if f not in names]
        return tuple(names)

    # ------------------------------------------------------------------ #
    #  Interaction
    # ------------------------------------------------------------------ #

    def select_cluster(self, cluster_id: int) -> bool:
        return self.interaction.select_cluster(cluster_id)

    def retry_recommendations(self) -> bool:
        return self.recommendations.retry() is not None

    def set_axis(self, index: int, feature: str, mode: Optional[ViewMode] = None) -> bool:
        return self.interaction.set_axis(index, feature, mode)

    def set_cluster_count(self, n_clusters: int) -> bool:
        return self.interaction.set_cluster_count(n_clusters)

    def set_mode(self, mode: ViewMode) -> None:
        self.interaction.set_mode(mode)

    def pointer_enter(self, item_id: str, x: float, y: float) -> bool:
        return self.interaction.pointer_enter(item_id, x, y)

    def pointer_move(self, item_id: str, x: float, y: float) -> bool:
        return self.interaction.pointer_move(item_id, x, y)

    def pointer_leave(self) -> None:
        self.interaction.pointer_leave()

    def close(self) -> None:
        self.recommendations.close()

    # ------------------------------------------------------------------ #
    #  Read models
    # ------------------------------------------------------------------ #

    def view(self) -> SessionView:
        error = self.load_error or self.parameter_error
        if error is None and self.protocol.last_error is not None:
            error = str(self.protocol.last_error)
        return SessionView(
            snapshot=self.snapshot,
            selection=self.interaction.selection,
            hover=self.interaction.hover,
            recommendations=self.recommendations.state,
            feature_set=self.feature_set,
            loading=self.loading,
            recompute_busy=self.protocol.busy,
            error=error,
        )

    def projection(self, mode: ViewMode, viewport=None) -> Optional[Projection]:
        """Cached projection of the current snapshot for *mode*."""
        snapshot = self.snapshot
        if snapshot is None:
            return None
        axes = self.interaction.selection.axes(mode)
        if mode is ViewMode.PLANAR:
            viewport = viewport or self.config.viewport
            outputs = (viewport.x_range, viewport.y_range)
        else:
            outputs = (self.config.spatial_extent,) * 3
        return self.projections.get(mode.value, snapshot, axes, outputs)

    def tooltip(self) -> Optional[Dict[str, object]]:
        """Content for the hovered track, or ``None`` when idle."""
        hover = self.interaction.hover
        snapshot = self.snapshot
        if hover.is_idle or snapshot is None:
            return None
        track = snapshot.track(hover.item_id)
        if track is None:
            return None
        axes = self.interaction.selection.axes()
        return {
            "name": track.name,
            "artist": track.artist,
            "cluster": track.cluster,
            "x": hover.x,
            "y": hover.y,
            "values": [
                (format_feature_name(a), format_value(track.value(a), "decimal"))
                for a in dict.fromkeys(axes)
            ],
        }

    def camera(self) -> Dict[str, float]:
        """Spatial camera position for the current instant."""
        angle = rotation_angle(self._clock() - self._started, self.config.rotation_period_s)
        return camera_eye(angle)
