"""Test the explorer session wiring end to end (without Dash)."""

import pytest

from cluster_explorer.config import ExplorerConfig
from cluster_explorer.errors import FetchError
from cluster_explorer.explorer.session import ExplorerSession
from cluster_explorer.explorer.state import ViewMode
from cluster_explorer.models import RequestStatus

FEATURES = ("danceability", "energy", "valence")


@pytest.fixture
def config():
    return ExplorerConfig(default_features=FEATURES, default_n_clusters=3)


@pytest.fixture
def session(config, fake_client):
    return ExplorerSession(config, client=fake_client, token_provider=lambda: "tok")


@pytest.mark.asyncio
async def test_load_clusters_and_selects_lowest(session, fake_client):
    snapshot = await session.load()
    await session.recommendations.drain()

    view = session.view()
    assert snapshot is view.snapshot
    assert view.generation == 1
    assert view.selection.cluster_id == 0
    assert not view.loading
    assert view.error is None
    assert fake_client.tokens_seen[0] == "tok"
    assert fake_client.cluster_calls[0].n_clusters == 3
    assert view.recommendations.status is RequestStatus.FULFILLED
    assert view.recommendations.key == (0, 1)


@pytest.mark.asyncio
async def test_load_with_given_tracks_skips_fetch(session, fake_client, track_dicts):
    fake_client.user_tracks_error = FetchError("fetch-user-tracks", "should not be called")

    assert await session.load(track_dicts) is not None
    assert session.view().error is None


@pytest.mark.asyncio
async def test_load_failure_is_reported(session, fake_client):
    fake_client.user_tracks_error = FetchError("fetch-user-tracks", "service returned 401", 401)

    assert await session.load() is None
    view = session.view()
    assert view.snapshot is None
    assert not view.loading
    assert "401" in view.error


@pytest.mark.asyncio
async def test_load_with_no_tracks(session, fake_client):
    assert await session.load([]) is None
    assert fake_client.cluster_calls == []
    assert session.view().snapshot is None


@pytest.mark.asyncio
async def test_invalid_parameters_rejected_before_request(session, fake_client):
    await session.load()

    assert await session.recompute(n_clusters=12) is None
    assert len(fake_client.cluster_calls) == 1
    assert "n_clusters" in session.view().error
    assert session.view().generation == 1


@pytest.mark.asyncio
async def test_failed_recompute_keeps_previous_snapshot(session, fake_client):
    first = await session.load()
    fake_client.cluster_responses[1] = FetchError("cluster", "service returned 500", 500)

    assert await session.recompute(n_clusters=4) is None
    view = session.view()
    assert view.snapshot is first
    assert "500" in view.error


@pytest.mark.asyncio
async def test_recompute_uses_staged_parameters(session, fake_client):
    await session.load()
    assert session.set_cluster_count(4)
    assert session.set_feature_set(["energy", "valence"])

    snapshot = await session.recompute()

    assert fake_client.cluster_calls[-1].n_clusters == 4
    assert fake_client.cluster_calls[-1].features == ("energy", "valence")
    assert snapshot.generation == 2
    assert snapshot.cluster_ids == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_explicit_cluster_count_is_recorded(session, fake_client):
    await session.load()
    await session.recompute(n_clusters=4)

    assert fake_client.cluster_calls[-1].n_clusters == 4
    assert session.view().selection.n_clusters == 4


@pytest.mark.asyncio
async def test_feature_set_must_be_known(session):
    assert not session.set_feature_set(["energy", "tempo"])
    assert not session.set_feature_set([])
    assert session.feature_set == FEATURES


@pytest.mark.asyncio
async def test_tooltip_follows_hover(session):
    await session.load()
    assert session.tooltip() is None

    assert session.pointer_enter("t5", 10, 20)
    tooltip = session.tooltip()
    assert tooltip["name"] == "Track 5"
    assert tooltip["artist"] == "Artist 1"
    assert tooltip["cluster"] == 2
    assert (tooltip["x"], tooltip["y"]) == (10.0, 20.0)
    assert tooltip["values"] == [("Danceability", "0.45"), ("Energy", "0.55")]

    session.pointer_leave()
    assert session.tooltip() is None


@pytest.mark.asyncio
async def test_new_snapshot_clears_hover(session):
    await session.load()
    session.pointer_enter("t1", 1, 1)

    await session.recompute(n_clusters=2)
    assert session.view().hover.is_idle
    assert session.tooltip() is None


@pytest.mark.asyncio
async def test_preferred_cluster_from_share_link(session):
    session.preferred_cluster = 2
    await session.load()

    assert session.view().selection.cluster_id == 2


@pytest.mark.asyncio
async def test_share_link_cluster_is_only_the_initial_selection(session):
    session.preferred_cluster = 2
    await session.load()
    assert session.preferred_cluster is None

    await session.recompute(n_clusters=6)
    assert session.select_cluster(5)

    await session.recompute(n_clusters=4)
    assert session.view().selection.cluster_id == 0


@pytest.mark.asyncio
async def test_projection_is_cached_per_mode(session):
    assert session.projection(ViewMode.PLANAR) is None
    await session.load()

    planar = session.projection(ViewMode.PLANAR)
    assert session.projection(ViewMode.PLANAR) is planar
    spatial = session.projection(ViewMode.SPATIAL)
    assert spatial.dimensions == 3
    assert session.projections.computations == 2

    session.set_axis(0, "valence", ViewMode.PLANAR)
    assert session.projection(ViewMode.PLANAR).axes == ("valence", "energy")
    assert session.projections.computations == 3


def test_camera_depends_only_on_elapsed_time(config, fake_client):
    times = iter([100.0, 115.0])
    session = ExplorerSession(config, client=fake_client, clock=lambda: next(times))

    eye = session.camera()
    assert eye["x"] == pytest.approx(0.0, abs=1e-9)
    assert eye["y"] == pytest.approx(1.9)


@pytest.mark.asyncio
async def test_close_stops_recommendation_updates(session, fake_client):
    await session.load()
    await session.recommendations.drain()
    calls = len(fake_client.recommendation_calls)
    session.close()

    assert session.recommendations.closed
    assert session.select_cluster(1)
    assert session.view().recommendations.cluster_id == 0
    assert len(fake_client.recommendation_calls) == calls
