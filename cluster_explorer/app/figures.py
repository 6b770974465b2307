"""Build the planar (Scatter) and spatial (Scatter3d) cluster figures."""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import plotly.graph_objects as go

from ..config import Viewport
from ..features import format_feature_name
from ..io import snapshot_to_frame
from ..models import DatasetSnapshot
from ..projection import Projection
from ..visualization.colors import ClusterColorMap
from . import theme

_TRANSITION = dict(duration=500, easing="cubic-in-out")


def build_planar_figure(
    snapshot: Optional[DatasetSnapshot],
    projection: Optional[Projection],
    color_map: ClusterColorMap,
    viewport: Viewport,
    *,
    selected_cluster: Optional[int] = None,
    opacity: float = 0.7,
    point_size: int = 9,
) -> go.Figure:
    """Build the 2D scatter of *projection*.

    Coordinates are viewport pixels; axis ticks are relabelled with the
    feature values they correspond to.

    Parameters
    ----------
    snapshot : DatasetSnapshot or None
        Source of names/artists for customdata.  ``None`` gives an empty figure.
    projection : Projection or None
        Planar projection of *snapshot*.
    color_map : ClusterColorMap
    viewport : Viewport
        Drawing area the projection was computed for.
    selected_cluster : int, optional
        Members of this cluster are drawn fully opaque.
    opacity, point_size
        Marker styling for the other points.
    """
    fig = go.Figure()
    if snapshot is None or projection is None or not len(snapshot):
        fig.update_layout(_planar_layout(viewport, None))
        return fig

    frame = snapshot_to_frame(snapshot)
    color_values, _, _ = color_map(frame["cluster"])
    clusters = frame["cluster"].to_numpy()
    opacities = np.where(clusters == selected_cluster, 1.0, opacity) \
        if selected_cluster is not None else np.full(len(clusters), opacity)

    fig.add_trace(go.Scatter(
        x=projection.axis(0),
        y=projection.axis(1),
        mode="markers",
        name="Tracks",
        showlegend=False,
        marker=dict(
            size=point_size,
            opacity=opacities,
            color=color_values,
            line=dict(width=0.5, color=theme.BASE3),
        ),
        customdata=_customdata(frame),
        hoverinfo="none",
    ))

    fig.add_trace(go.Scatter(
        x=projection.center_axis(0),
        y=projection.center_axis(1),
        mode="markers",
        name="Centers",
        showlegend=False,
        marker=dict(
            size=18,
            symbol="diamond",
            color=[color_map.color(c) for c in projection.center_ids],
            line=dict(width=2, color=theme.BASE3),
        ),
        customdata=[[c] for c in projection.center_ids],
        hoverinfo="skip",
    ))

    _add_legend(fig, snapshot, color_map, go.Scatter)
    fig.update_layout(_planar_layout(viewport, projection))
    return fig


def build_spatial_figure(
    snapshot: Optional[DatasetSnapshot],
    projection: Optional[Projection],
    color_map: ClusterColorMap,
    *,
    extent=(-5.0, 5.0),
    camera_eye: Optional[Dict[str, float]] = None,
    selected_cluster: Optional[int] = None,
    point_size: int = 5,
) -> go.Figure:
    """Build the 3D scene of *projection* inside the cube *extent*."""
    fig = go.Figure()
    if snapshot is None or projection is None or not len(snapshot):
        fig.update_layout(_spatial_layout(None, extent, camera_eye))
        return fig

    frame = snapshot_to_frame(snapshot)
    color_values, _, _ = color_map(frame["cluster"])
    clusters = frame["cluster"].to_numpy()
    fig.add_trace(go.Scatter3d(
        x=projection.axis(0),
        y=projection.axis(1),
        z=projection.axis(2),
        mode="markers",
        name="Tracks",
        showlegend=False,
        marker=dict(
            size=[point_size + 2 if c == selected_cluster else point_size for c in clusters],
            color=color_values,
            opacity=0.85,
        ),
        customdata=_customdata(frame),
        hoverinfo="none",
    ))
    fig.add_trace(go.Scatter3d(
        x=projection.center_axis(0),
        y=projection.center_axis(1),
        z=projection.center_axis(2),
        mode="markers",
        name="Centers",
        showlegend=False,
        marker=dict(
            size=10,
            symbol="diamond",
            color=[color_map.color(c) for c in projection.center_ids],
            line=dict(width=1, color=theme.BASE3),
        ),
        hoverinfo="skip",
    ))

    _add_legend(fig, snapshot, color_map, go.Scatter3d)
    fig.update_layout(_spatial_layout(projection, extent, camera_eye))
    return fig


def _customdata(frame):
    # Hover events carry (track id, cluster) back to the callbacks
    return np.column_stack((frame["id"].astype(object), frame["cluster"].astype(object)))


def _add_legend(fig: go.Figure, snapshot: DatasetSnapshot, color_map: ClusterColorMap, trace_cls) -> None:
    """One dummy trace per cluster so the legend lists every cluster colour."""
    for cluster_id in snapshot.cluster_ids:
        kwargs = dict(x=[None], y=[None])
        if trace_cls is go.Scatter3d:
            kwargs["z"] = [None]
        fig.add_trace(trace_cls(
            mode="markers",
            marker=dict(size=10, color=color_map.color(cluster_id)),
            name=f"Cluster {cluster_id}",
            showlegend=True,
            **kwargs,
        ))


def _planar_layout(viewport: Viewport, projection: Optional[Projection]) -> dict:
    """Axes fixed to the viewport so projected pixels land where computed."""
    xaxis = dict(
        range=[0, viewport.width],
        showgrid=False,
        zeroline=False,
        color=theme.BASE00,
        fixedrange=False,
    )
    yaxis = dict(
        # Pixel y grows downwards
        range=[viewport.height, 0],
        showgrid=False,
        zeroline=False,
        color=theme.BASE00,
    )
    if projection is not None:
        for axis, scale in ((xaxis, projection.scales[0]), (yaxis, projection.scales[1])):
            tickvals, ticktext = scale.ticks()
            axis.update(
                title=format_feature_name(scale.feature),
                tickvals=tickvals,
                ticktext=ticktext,
            )
    return dict(
        width=viewport.width,
        height=viewport.height,
        uirevision=projection.generation if projection is not None else 0,
        hovermode="closest",
        hoverdistance=10,
        transition=_TRANSITION,
        paper_bgcolor=theme.BASE3,
        plot_bgcolor=theme.BASE3,
        font=dict(family=theme.FONT_STACK, size=11, color=theme.BASE00),
        margin=dict(l=0, r=0, t=0, b=0),
        xaxis=xaxis,
        yaxis=yaxis,
        legend=dict(
            font=dict(size=10),
            bgcolor="rgba(0,0,0,0)",
            borderwidth=0,
            x=1.0,
            xanchor="right",
            y=1.0,
        ),
    )


def _spatial_layout(projection: Optional[Projection], extent, camera_eye) -> dict:
    axes = {}
    for i, name in enumerate(("xaxis", "yaxis", "zaxis")):
        title = format_feature_name(projection.axes[i]) if projection is not None else ""
        axes[name] = dict(
            title=dict(text=title, font=dict(color=theme.SPATIAL_AXIS_COLORS[i])),
            range=list(extent),
            showbackground=False,
            gridcolor=theme.BASE01,
            zerolinecolor=theme.SPATIAL_AXIS_COLORS[i],
            color=theme.BASE1,
        )
    scene = dict(aspectmode="cube", bgcolor=theme.BASE03, **axes)
    if camera_eye is not None:
        scene["camera"] = dict(eye=camera_eye)
    return dict(
        # Keeps user orbit/zoom across data refreshes of the same snapshot
        uirevision=projection.generation if projection is not None else 0,
        paper_bgcolor=theme.BASE03,
        font=dict(family=theme.FONT_STACK, size=11, color=theme.BASE2),
        margin=dict(l=0, r=0, t=0, b=0),
        scene=scene,
        legend=dict(font=dict(size=10), bgcolor="rgba(0,0,0,0)"),
    )
