"""Immutable data model shared by every explorer component."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import MAX_CLUSTERS, MIN_CLUSTERS
from .errors import InvalidParameterError


def _frozen_features(values: Mapping[str, float], order: Sequence[str]) -> Mapping[str, float]:
    return MappingProxyType({name: float(values[name]) for name in order})


@dataclass(frozen=True, eq=False)
class Track:
    """One clustered item.

    ``features`` holds exactly the snapshot's ``features_used``, in that order.
    """

    id: str
    name: str
    artist: str
    cluster: int
    features: Mapping[str, float]
    album_cover: Optional[str] = None
    external_url: Optional[str] = None

    def value(self, feature: str) -> float:
        return self.features[feature]


@dataclass(frozen=True, eq=False)
class ClusterCenter:
    """Centroid of one cluster in feature space."""

    cluster_id: int
    features: Mapping[str, float]

    def value(self, feature: str) -> float:
        return self.features[feature]


@dataclass(frozen=True)
class RecommendationItem:
    """A recommended track as returned by ``POST /recommendations``."""

    id: str
    name: str
    artists: Tuple[str, ...] = ()
    image_url: Optional[str] = None
    external_url: Optional[str] = None

    @property
    def artist(self) -> str:
        return self.artists[0] if self.artists else "Unknown artist"


@dataclass(frozen=True)
class ClusterParams:
    """Parameters of one recompute request."""

    n_clusters: int
    features: Tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.n_clusters, bool) or not isinstance(self.n_clusters, int):
            raise InvalidParameterError(f"n_clusters must be an integer, got {self.n_clusters!r}")
        if not MIN_CLUSTERS <= self.n_clusters <= MAX_CLUSTERS:
            raise InvalidParameterError(
                f"n_clusters must be in [{MIN_CLUSTERS}, {MAX_CLUSTERS}], got {self.n_clusters}"
            )
        unique: List[str] = []
        for name in self.features:
            if name not in unique:
                unique.append(name)
        if not unique:
            raise InvalidParameterError("at least one feature is required")
        object.__setattr__(self, "features", tuple(unique))


@dataclass(frozen=True, eq=False)
class DatasetSnapshot:
    """Immutable, versioned result of one clustering round trip.

    ``generation`` is the concurrency token: every replacement of the
    displayed snapshot carries a strictly larger value.
    """

    items: Tuple[Track, ...]
    centers: Tuple[ClusterCenter, ...]
    features_used: Tuple[str, ...]
    generation: int
    inertia: Optional[float] = None
    _members: Dict[int, Tuple[Track, ...]] = field(init=False, repr=False)
    _by_id: Dict[str, Track] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        features = tuple(self.features_used)
        object.__setattr__(self, "features_used", features)
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "centers", tuple(self.centers))

        by_id: Dict[str, Track] = {}
        members: Dict[int, List[Track]] = {}
        for track in self.items:
            if track.id in by_id:
                raise ValueError(f"duplicate track id {track.id!r}")
            if track.cluster < 0:
                raise ValueError(f"track {track.id!r} has negative cluster {track.cluster}")
            _check_features(f"track {track.id!r}", track.features, features)
            by_id[track.id] = track
            members.setdefault(track.cluster, []).append(track)

        center_ids = []
        for center in self.centers:
            _check_features(f"center {center.cluster_id}", center.features, features)
            center_ids.append(center.cluster_id)
        if len(set(center_ids)) != len(center_ids):
            raise ValueError("duplicate cluster center ids")
        if set(center_ids) != set(members):
            raise ValueError(
                f"center clusters {sorted(set(center_ids))} do not match "
                f"track clusters {sorted(members)}"
            )

        object.__setattr__(self, "_by_id", by_id)
        object.__setattr__(self, "_members", {k: tuple(v) for k, v in members.items()})

    @classmethod
    def build(
        cls,
        items: Iterable[dict],
        centers: Iterable[dict],
        features_used: Sequence[str],
        generation: int,
        inertia: Optional[float] = None,
    ) -> "DatasetSnapshot":
        """Build a snapshot from plain dicts (``id``, ``name``, ``cluster``, features...)."""
        features = tuple(features_used)
        tracks = tuple(
            Track(
                id=str(d["id"]),
                name=str(d.get("name", "")),
                artist=str(d.get("artist", "")),
                cluster=int(d["cluster"]),
                features=_frozen_features(d, features),
                album_cover=d.get("album_cover"),
                external_url=d.get("external_url"),
            )
            for d in items
        )
        cluster_centers = tuple(
            ClusterCenter(cluster_id=int(d["cluster_id"]), features=_frozen_features(d, features))
            for d in centers
        )
        return cls(tracks, cluster_centers, features, generation, inertia)

    @property
    def cluster_ids(self) -> List[int]:
        """Distinct cluster ids, ascending."""
        return sorted(self._members)

    def members(self, cluster_id: int) -> Tuple[Track, ...]:
        """Tracks of *cluster_id* in snapshot order (empty when unknown)."""
        return self._members.get(cluster_id, ())

    def cluster_sizes(self) -> Dict[int, int]:
        return {cid: len(self._members[cid]) for cid in self.cluster_ids}

    def track(self, track_id: str) -> Optional[Track]:
        return self._by_id.get(track_id)

    def center(self, cluster_id: int) -> Optional[ClusterCenter]:
        for center in self.centers:
            if center.cluster_id == cluster_id:
                return center
        return None

    def __len__(self) -> int:
        return len(self.items)


def _check_features(owner: str, values: Mapping[str, float], features: Sequence[str]) -> None:
    if tuple(values) != tuple(features):
        raise ValueError(f"{owner} features {list(values)} do not match {list(features)}")
    for name, value in values.items():
        if not math.isfinite(value):
            raise ValueError(f"{owner} has non-finite value for {name!r}")


class RequestStatus(str, Enum):
    """Lifecycle of a recommendation request."""

    IDLE = "idle"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    FAILED = "failed"


@dataclass(frozen=True)
class RecommendationState:
    """Recommendations for one (cluster, generation) pair."""

    cluster_id: Optional[int] = None
    generation: int = 0
    status: RequestStatus = RequestStatus.IDLE
    items: Tuple[RecommendationItem, ...] = ()
    seed_ids: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def key(self) -> Tuple[Optional[int], int]:
        return (self.cluster_id, self.generation)

    @property
    def is_empty_result(self) -> bool:
        """Fulfilled with zero recommendations (not an error)."""
        return self.status is RequestStatus.FULFILLED and not self.items
