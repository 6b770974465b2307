"""Full Dash layout: left sidebar (controls), main cluster view, right sidebar.

Both view panels (2D and 3D) are always present in the DOM so that callback
inputs are never missing.  Visibility is toggled via a callback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dash import dcc, html

from ..config import MAX_CLUSTERS, MIN_CLUSTERS
from ..features import format_feature_name
from . import theme

if TYPE_CHECKING:
    from .app import ServerState


def build_layout(state: ServerState) -> html.Div:
    """Return the complete app layout."""
    config = state.session.config
    feature_options = [
        {"label": format_feature_name(f), "value": f} for f in config.default_features
    ]

    return html.Div(
        className="app-container",
        children=[
            dcc.Location(id="url", refresh=False),
            # ── Left sidebar ──
            html.Div(
                className="left-sidebar",
                style={"width": theme.SIDEBAR_WIDTH},
                children=[
                    html.Div("Music Cluster Explorer", className="sidebar-header"),
                    dcc.Tabs(
                        id="view-tabs",
                        value="planar",
                        className="custom-tabs",
                        children=[
                            dcc.Tab(label="2D Visualization", value="planar", className="tab"),
                            dcc.Tab(label="3D Visualization", value="spatial", className="tab"),
                        ],
                    ),
                    html.Div(id="panel-planar-controls", children=_planar_controls()),
                    html.Div(id="panel-spatial-controls", children=_spatial_controls(),
                             style={"display": "none"}),
                    _clustering_controls(feature_options, config.default_n_clusters),
                    html.Div(
                        id="status-bar",
                        className="sidebar-status",
                        children="Loading your tracks...",
                    ),
                ],
            ),
            # ── Main area ──
            html.Div(
                className="main-area",
                children=[
                    html.Div(id="error-banner", className="error-banner",
                             style={"display": "none"}),
                    html.Div(id="loading-placeholder", className="loading-spinner"),
                    html.Div(
                        id="panel-planar",
                        children=[
                            dcc.Graph(
                                id="planar-graph",
                                clear_on_unhover=True,
                                config={"displayModeBar": False},
                                style={"width": "100%"},
                            ),
                        ],
                    ),
                    html.Div(
                        id="panel-spatial",
                        style={"display": "none"},
                        children=[
                            dcc.Graph(
                                id="spatial-graph",
                                clear_on_unhover=True,
                                config={"displayModeBar": False},
                                style={"height": "600px", "width": "100%"},
                            ),
                            dcc.Checklist(
                                id="auto-rotate",
                                options=[{"label": "Auto-rotate", "value": "on"}],
                                value=["on"],
                                className="ctrl-row",
                            ),
                            html.Div(
                                "Drag to rotate • Scroll to zoom • Right-drag to pan",
                                className="instructions-overlay",
                            ),
                        ],
                    ),
                    dcc.Tooltip(id="track-tooltip", direction="right"),
                ],
            ),
            # ── Right sidebar ──
            html.Div(
                className="right-sidebar",
                style={"width": theme.RIGHT_SIDEBAR_WIDTH},
                children=[
                    html.Div(
                        className="right-sidebar-section",
                        children=[
                            html.H4("Clusters"),
                            html.P("Select a cluster to see its tracks and get recommendations:",
                                   className="hint"),
                            html.Div(id="cluster-selector", className="cluster-selector"),
                            html.A("Share", id="share-link", href="", className="btn-primary",
                                   style={"display": "none"}),
                        ],
                    ),
                    html.Div(
                        className="right-sidebar-section",
                        children=[
                            html.H4(id="members-heading", children="Cluster Tracks"),
                            html.Div(id="members-panel", className="tracks-grid"),
                        ],
                    ),
                    html.Div(
                        className="right-sidebar-section",
                        children=[
                            html.H4(id="recommendations-heading", children="Recommendations"),
                            html.Div(id="recommendations-panel", className="tracks-grid"),
                            html.Button(
                                "Retry", id="recommendations-retry-btn",
                                className="btn-warning mt-4",
                                style={"display": "none"},
                            ),
                        ],
                    ),
                ],
            ),
            # ── Hidden stores / timers ──
            dcc.Store(id="generation-store", data=0),
            dcc.Store(id="selected-cluster-store", data=None),
            dcc.Store(id="recommendations-signature", data=None),
            dcc.Store(id="viewport-store", data=config.viewport.width),
            dcc.Interval(id="frame-tick", interval=config.frame_interval_ms),
            dcc.Interval(id="rotation-tick", interval=config.frame_interval_ms),
        ],
    )


# ------------------------------------------------------------------ #
#  Sidebar panels, always in the DOM
# ------------------------------------------------------------------ #

def _axis_dropdown(component_id: str, label: str) -> list:
    return [
        html.Label(label),
        html.Div(
            className="ctrl-row",
            children=[dcc.Dropdown(id=component_id, options=[], clearable=False)],
        ),
    ]


def _planar_controls() -> html.Div:
    return html.Div(
        className="tab-content",
        children=[
            *_axis_dropdown("planar-x-axis", "X-Axis Feature"),
            *_axis_dropdown("planar-y-axis", "Y-Axis Feature"),
        ],
    )


def _spatial_controls() -> html.Div:
    return html.Div(
        className="tab-content",
        children=[
            *_axis_dropdown("spatial-x-axis", "X-Axis Feature"),
            *_axis_dropdown("spatial-y-axis", "Y-Axis Feature"),
            *_axis_dropdown("spatial-z-axis", "Z-Axis Feature"),
        ],
    )


def _clustering_controls(feature_options: list[dict], n_clusters: int) -> html.Div:
    return html.Div(
        className="tab-content",
        children=[
            html.Label("Number of Clusters"),
            html.Div(
                className="ctrl-row",
                children=[
                    dcc.Slider(
                        id="n-clusters",
                        min=MIN_CLUSTERS, max=MAX_CLUSTERS, step=1, value=n_clusters,
                        marks={i: str(i) for i in range(MIN_CLUSTERS, MAX_CLUSTERS + 1)},
                        updatemode="mouseup",
                    ),
                ],
            ),
            html.Label("Features"),
            html.Div(
                className="ctrl-row feature-checklist",
                children=[
                    dcc.Checklist(
                        id="feature-set",
                        options=feature_options,
                        value=[o["value"] for o in feature_options],
                    ),
                ],
            ),
            html.Button(
                "Update Clustering", id="recompute-btn",
                className="btn-primary mt-8",
                style={"width": "100%"},
            ),
            html.Div(id="recompute-status", className="ctrl-row mt-4"),
        ],
    )
