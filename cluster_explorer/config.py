"""Explorer configuration.

Defaults mirror the hosted service; every field can be overridden through
``CLUSTER_EXPLORER_*`` environment variables or the command line.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Tuple

MIN_CLUSTERS = 2
MAX_CLUSTERS = 10

DEFAULT_FEATURES: Tuple[str, ...] = (
    "danceability",
    "energy",
    "speechiness",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
)

_ENV_PREFIX = "CLUSTER_EXPLORER_"


@dataclass(frozen=True)
class Viewport:
    """Planar drawing area in pixels, with margins kept free for the axes."""

    width: int = 800
    height: int = 500
    margin_top: int = 40
    margin_right: int = 40
    margin_bottom: int = 60
    margin_left: int = 60

    def __post_init__(self) -> None:
        if self.width <= self.margin_left + self.margin_right:
            raise ValueError("Viewport.width must exceed the horizontal margins")
        if self.height <= self.margin_top + self.margin_bottom:
            raise ValueError("Viewport.height must exceed the vertical margins")

    @property
    def x_range(self) -> Tuple[float, float]:
        return (float(self.margin_left), float(self.width - self.margin_right))

    @property
    def y_range(self) -> Tuple[float, float]:
        # Screen y grows downwards, so larger values map to the top margin
        return (float(self.height - self.margin_bottom), float(self.margin_top))

    def resized(self, width: int) -> "Viewport":
        """Return a copy with a new width (container resize)."""
        return replace(self, width=width)


@dataclass
class ExplorerConfig:
    """Runtime settings for the explorer session and the Dash app."""

    api_base_url: str = "http://127.0.0.1:5000/api"
    request_timeout: float = 30.0
    recommendation_limit: int = 10
    seed_size: int = 5
    default_n_clusters: int = 5
    default_features: Tuple[str, ...] = DEFAULT_FEATURES
    viewport: Viewport = field(default_factory=Viewport)
    spatial_extent: Tuple[float, float] = (-5.0, 5.0)
    frame_interval_ms: int = 100
    rotation_period_s: float = 60.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not MIN_CLUSTERS <= self.default_n_clusters <= MAX_CLUSTERS:
            raise ValueError(
                f"default_n_clusters must be in [{MIN_CLUSTERS}, {MAX_CLUSTERS}], "
                f"got {self.default_n_clusters}"
            )
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.recommendation_limit <= 0 or self.seed_size <= 0:
            raise ValueError("recommendation_limit and seed_size must be positive")
        if self.frame_interval_ms <= 0 or self.rotation_period_s <= 0:
            raise ValueError("frame_interval_ms and rotation_period_s must be positive")
        lo, hi = self.spatial_extent
        if lo >= hi:
            raise ValueError("spatial_extent must be an increasing (min, max) pair")
        if not self.default_features:
            raise ValueError("default_features must not be empty")
        self.default_features = tuple(self.default_features)

    @classmethod
    def from_env(cls, environ: dict | None = None, **overrides) -> "ExplorerConfig":
        """Build a config from ``CLUSTER_EXPLORER_*`` variables plus *overrides*.

        Parameters
        ----------
        environ : dict, optional
            Mapping to read from; defaults to ``os.environ``.
        **overrides
            Explicit values (e.g. parsed CLI flags).  ``None`` values are
            ignored so unset flags fall through to the environment.
        """
        environ = os.environ if environ is None else environ
        values: dict = {}
        for f in fields(cls):
            if f.name == "viewport":
                continue
            raw = environ.get(_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.name == "default_features":
                values[f.name] = tuple(s.strip() for s in raw.split(",") if s.strip())
            elif f.name == "spatial_extent":
                lo, hi = raw.split(",")
                values[f.name] = (float(lo), float(hi))
            elif f.name in ("request_timeout", "rotation_period_s"):
                values[f.name] = float(raw)
            elif f.name in ("recommendation_limit", "seed_size",
                            "default_n_clusters", "frame_interval_ms"):
                values[f.name] = int(raw)
            else:
                values[f.name] = raw

        width = environ.get(_ENV_PREFIX + "VIEWPORT_WIDTH")
        height = environ.get(_ENV_PREFIX + "VIEWPORT_HEIGHT")
        if width or height:
            values["viewport"] = Viewport(
                width=int(width) if width else Viewport.width,
                height=int(height) if height else Viewport.height,
            )

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
