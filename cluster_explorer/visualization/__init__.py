"""Colour helpers shared by the 2D and 3D views."""

from .colors import (
    CLUSTER_PALETTE,
    ClusterColorMap,
    cluster_color,
    contrast_color,
    hex_to_rgb,
)

__all__ = [
    "CLUSTER_PALETTE",
    "ClusterColorMap",
    "cluster_color",
    "contrast_color",
    "hex_to_rgb",
]
