"""Test the planar and spatial figure builders."""

import pytest

from cluster_explorer.app.figures import build_planar_figure, build_spatial_figure
from cluster_explorer.config import Viewport
from cluster_explorer.projection import camera_eye, project_planar, project_spatial
from cluster_explorer.visualization.colors import ClusterColorMap


@pytest.fixture
def color_map():
    return ClusterColorMap()


def test_planar_figure_traces(snapshot, color_map):
    viewport = Viewport()
    projection = project_planar(snapshot, "danceability", "energy", viewport)

    fig = build_planar_figure(snapshot, projection, color_map, viewport, selected_cluster=1)

    tracks, centers = fig.data[0], fig.data[1]
    assert len(tracks.x) == 12
    assert tracks.customdata[5].tolist() == ["t5", 1]
    assert list(tracks.marker.color[3:5]) == [color_map.color(0), color_map.color(1)]
    assert list(tracks.marker.opacity[4:10]) == [1.0] * 6
    assert tracks.marker.opacity[0] == pytest.approx(0.7)
    assert list(centers.marker.color) == [color_map.color(c) for c in (0, 1, 2)]
    legend = [t.name for t in fig.data[2:]]
    assert legend == ["Cluster 0", "Cluster 1", "Cluster 2"]


def test_planar_layout_matches_viewport(snapshot, color_map):
    viewport = Viewport(width=640)
    projection = project_planar(snapshot, "danceability", "energy", viewport)

    fig = build_planar_figure(snapshot, projection, color_map, viewport)

    assert list(fig.layout.xaxis.range) == [0, 640]
    assert list(fig.layout.yaxis.range) == [500, 0]
    assert fig.layout.xaxis.title.text == "Danceability"
    assert len(fig.layout.xaxis.tickvals) == 5
    assert fig.layout.uirevision == 1


def test_empty_planar_figure(color_map):
    fig = build_planar_figure(None, None, color_map, Viewport())
    assert len(fig.data) == 0


def test_spatial_figure(snapshot, color_map):
    projection = project_spatial(snapshot, "danceability", "energy", "valence")
    eye = camera_eye(0.0)

    fig = build_spatial_figure(snapshot, projection, color_map, camera_eye=eye, selected_cluster=2)

    tracks = fig.data[0]
    assert len(tracks.z) == 12
    assert tracks.marker.size[11] == 7 and tracks.marker.size[0] == 5
    assert list(fig.layout.scene.xaxis.range) == [-5.0, 5.0]
    assert fig.layout.scene.zaxis.title.text == "Valence"
    assert fig.layout.scene.camera.eye.x == pytest.approx(1.9)
