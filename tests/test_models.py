"""Test snapshot construction and validation."""

import pytest

from cluster_explorer.errors import InvalidParameterError
from cluster_explorer.models import (
    ClusterParams,
    DatasetSnapshot,
    RecommendationItem,
    RecommendationState,
    RequestStatus,
)

FEATURES = ["danceability", "energy"]


def _items(n=4):
    return [
        {"id": f"t{i}", "name": f"Track {i}", "cluster": i % 2, "danceability": 0.1 * i, "energy": 0.5}
        for i in range(n)
    ]


def _centers(ids=(0, 1)):
    return [{"cluster_id": c, "danceability": 0.2, "energy": 0.5} for c in ids]


def test_snapshot_fixture_shape(snapshot):
    assert len(snapshot) == 12
    assert snapshot.generation == 1
    assert snapshot.cluster_ids == [0, 1, 2]
    assert snapshot.cluster_sizes() == {0: 4, 1: 6, 2: 2}
    assert snapshot.inertia == pytest.approx(4.2)


def test_members_keep_snapshot_order(snapshot):
    assert [t.id for t in snapshot.members(1)] == ["t4", "t5", "t6", "t7", "t8", "t9"]
    assert snapshot.members(99) == ()


def test_track_and_center_lookup(snapshot):
    track = snapshot.track("t3")
    assert track.name == "Track 3"
    assert track.cluster == 0
    assert tuple(track.features) == tuple(snapshot.features_used)
    assert snapshot.track("missing") is None
    assert snapshot.center(2).value("valence") == pytest.approx(0.5)
    assert snapshot.center(7) is None


def test_track_features_are_read_only(snapshot):
    with pytest.raises(TypeError):
        snapshot.items[0].features["energy"] = 1.0


def test_duplicate_ids_rejected():
    items = _items()
    items[1]["id"] = "t0"
    with pytest.raises(ValueError, match="duplicate"):
        DatasetSnapshot.build(items, _centers(), FEATURES, generation=1)


def test_negative_cluster_rejected():
    items = _items()
    items[0]["cluster"] = -1
    with pytest.raises(ValueError):
        DatasetSnapshot.build(items, _centers((-1, 0, 1)), FEATURES, generation=1)


def test_missing_feature_rejected():
    items = _items()
    del items[2]["energy"]
    with pytest.raises(KeyError):
        DatasetSnapshot.build(items, _centers(), FEATURES, generation=1)


def test_non_finite_feature_rejected():
    items = _items()
    items[0]["energy"] = float("nan")
    with pytest.raises(ValueError, match="non-finite"):
        DatasetSnapshot.build(items, _centers(), FEATURES, generation=1)


def test_centers_must_match_item_clusters():
    with pytest.raises(ValueError, match="do not match"):
        DatasetSnapshot.build(_items(), _centers((0,)), FEATURES, generation=1)
    with pytest.raises(ValueError, match="do not match"):
        DatasetSnapshot.build(_items(), _centers((0, 1, 2)), FEATURES, generation=1)


@pytest.mark.parametrize("n_clusters", [1, 11, 0, True])
def test_cluster_params_bounds(n_clusters):
    with pytest.raises(InvalidParameterError):
        ClusterParams(n_clusters, ("energy",))


def test_cluster_params_is_value_error():
    with pytest.raises(ValueError):
        ClusterParams(12, ("energy",))


def test_cluster_params_dedups_features():
    params = ClusterParams(2, ("energy", "valence", "energy"))
    assert params.features == ("energy", "valence")


def test_cluster_params_needs_features():
    with pytest.raises(InvalidParameterError):
        ClusterParams(3, ())


def test_recommendation_item_artist_fallback():
    assert RecommendationItem("r1", "Song", ("A", "B")).artist == "A"
    assert RecommendationItem("r1", "Song").artist == "Unknown artist"


def test_empty_result_is_not_failure():
    empty = RecommendationState(1, 1, RequestStatus.FULFILLED, items=())
    failed = RecommendationState(1, 1, RequestStatus.FAILED, error="boom")

    assert empty.is_empty_result
    assert not failed.is_empty_result
    assert empty.key == (1, 1)
