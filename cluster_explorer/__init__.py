"""cluster_explorer: interactive exploration of clustered music tracks."""

from .config import ExplorerConfig, Viewport
from .client import ClusterServiceClient
from .errors import ExplorerError, FetchError, InvalidParameterError
from .features import FeatureRegistry, format_feature_name, format_value
from .io import load_tracks, parse_cluster_response, parse_recommendations
from .models import (
    ClusterCenter,
    ClusterParams,
    DatasetSnapshot,
    RecommendationItem,
    RecommendationState,
    RequestStatus,
    Track,
)
from .projection import LinearScale, Projection, ProjectionCache, project
from .visualization.colors import ClusterColorMap, cluster_color, hex_to_rgb
from .explorer import ExplorerSession, InteractionStateMachine, ViewMode

__all__ = [
    # config
    "ExplorerConfig",
    "Viewport",
    # service
    "ClusterServiceClient",
    "ExplorerError",
    "FetchError",
    "InvalidParameterError",
    # data
    "Track",
    "ClusterCenter",
    "ClusterParams",
    "DatasetSnapshot",
    "RecommendationItem",
    "RecommendationState",
    "RequestStatus",
    "load_tracks",
    "parse_cluster_response",
    "parse_recommendations",
    # features
    "FeatureRegistry",
    "format_feature_name",
    "format_value",
    # projection
    "LinearScale",
    "Projection",
    "ProjectionCache",
    "project",
    # visualization
    "ClusterColorMap",
    "cluster_color",
    "hex_to_rgb",
    # explorer
    "ExplorerSession",
    "InteractionStateMachine",
    "ViewMode",
]
