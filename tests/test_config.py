"""Test configuration defaults and environment overrides."""

import pytest

from cluster_explorer.config import DEFAULT_FEATURES, ExplorerConfig, Viewport


def test_defaults():
    config = ExplorerConfig()

    assert config.default_n_clusters == 5
    assert config.recommendation_limit == 10
    assert config.seed_size == 5
    assert config.default_features == DEFAULT_FEATURES
    assert len(DEFAULT_FEATURES) == 7
    assert config.spatial_extent == (-5.0, 5.0)


def test_viewport_ranges():
    viewport = Viewport()

    assert viewport.x_range == (60.0, 760.0)
    # Screen y grows downwards
    assert viewport.y_range == (440.0, 40.0)
    assert viewport.resized(640).x_range == (60.0, 600.0)


def test_viewport_must_exceed_margins():
    with pytest.raises(ValueError):
        Viewport(width=90)
    with pytest.raises(ValueError):
        Viewport(height=100)


def test_from_env_parses_types():
    config = ExplorerConfig.from_env({
        "CLUSTER_EXPLORER_API_BASE_URL": "http://api.test",
        "CLUSTER_EXPLORER_REQUEST_TIMEOUT": "2.5",
        "CLUSTER_EXPLORER_DEFAULT_N_CLUSTERS": "7",
        "CLUSTER_EXPLORER_DEFAULT_FEATURES": "energy, valence",
        "CLUSTER_EXPLORER_SPATIAL_EXTENT": "-1,1",
        "CLUSTER_EXPLORER_VIEWPORT_WIDTH": "640",
    })

    assert config.api_base_url == "http://api.test"
    assert config.request_timeout == 2.5
    assert config.default_n_clusters == 7
    assert config.default_features == ("energy", "valence")
    assert config.spatial_extent == (-1.0, 1.0)
    assert config.viewport == Viewport(width=640)


def test_from_env_overrides_win_unless_none():
    environ = {"CLUSTER_EXPLORER_LOG_LEVEL": "DEBUG", "CLUSTER_EXPLORER_API_BASE_URL": "http://env"}
    config = ExplorerConfig.from_env(environ, api_base_url="http://cli", log_level=None)

    assert config.api_base_url == "http://cli"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("kwargs", [
    {"default_n_clusters": 1},
    {"default_n_clusters": 11},
    {"request_timeout": 0},
    {"spatial_extent": (5.0, -5.0)},
    {"default_features": ()},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        ExplorerConfig(**kwargs)
