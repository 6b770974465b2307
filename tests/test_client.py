"""Test the service client against an in-process mock transport."""

import json

import httpx
import pytest

from cluster_explorer.client import ClusterServiceClient
from cluster_explorer.errors import FetchError
from cluster_explorer.models import ClusterParams

BASE_URL = "http://service.test/api"


def _client(handler):
    return ClusterServiceClient(BASE_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_user_tracks_passes_token(track_dicts):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["token"] = request.url.params.get("token")
        return httpx.Response(200, json={"tracks": track_dicts})

    client = _client(handler)
    tracks = await client.fetch_user_tracks("secret-token")
    await client.aclose()

    assert seen == {"path": "/api/fetch-user-tracks", "token": "secret-token"}
    assert len(tracks) == 12


@pytest.mark.asyncio
async def test_perform_clustering_request_and_snapshot(track_dicts, cluster_payload):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=cluster_payload())

    client = _client(handler)
    params = ClusterParams(3, ("danceability", "energy", "valence"))
    snapshot = await client.perform_clustering(track_dicts, params, generation=4)
    await client.aclose()

    assert seen["path"] == "/api/cluster"
    assert seen["body"]["n_clusters"] == 3
    assert seen["body"]["features"] == ["danceability", "energy", "valence"]
    assert len(seen["body"]["tracks"]) == 12
    assert snapshot.generation == 4
    assert snapshot.cluster_ids == [0, 1, 2]


@pytest.mark.asyncio
async def test_perform_clustering_empty_tracks_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = _client(handler)
    with pytest.raises(FetchError) as exc_info:
        await client.perform_clustering([], ClusterParams(3, ("energy",)))

    assert exc_info.value.operation == "cluster"
    assert calls == []


@pytest.mark.asyncio
async def test_get_recommendations_body(recommendations_payload):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=recommendations_payload(2))

    client = _client(handler)
    items = await client.get_recommendations(("t0", "t1"), "tok", limit=10)

    assert seen["body"] == {"seed_tracks": ["t0", "t1"], "token": "tok", "limit": 10}
    assert [r.name for r in items] == ["Recommended 0", "Recommended 1"]


@pytest.mark.asyncio
async def test_empty_recommendations_are_not_an_error():
    client = _client(lambda request: httpx.Response(200, json={"recommendations": []}))
    assert await client.get_recommendations(("t0",), "tok") == ()


@pytest.mark.asyncio
async def test_http_error_status_maps_to_fetch_error():
    client = _client(lambda request: httpx.Response(500, json={"error": "kmeans exploded"}))

    with pytest.raises(FetchError) as exc_info:
        await client.fetch_user_tracks("tok")

    err = exc_info.value
    assert err.status_code == 500
    assert err.operation == "fetch-user-tracks"
    assert "kmeans exploded" in str(err)


@pytest.mark.asyncio
async def test_invalid_json_maps_to_fetch_error():
    client = _client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(FetchError, match="not valid JSON"):
        await client.get_recommendations(("t0",), "tok")


@pytest.mark.asyncio
async def test_connection_error_maps_to_fetch_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(FetchError, match="connection error"):
        await client.fetch_user_tracks("tok")


@pytest.mark.asyncio
async def test_timeout_maps_to_fetch_error(track_dicts):
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(handler)
    with pytest.raises(FetchError, match="timed out"):
        await client.perform_clustering(track_dicts, ClusterParams(2, ("energy",)))


@pytest.mark.asyncio
async def test_malformed_cluster_body_maps_to_fetch_error(track_dicts):
    client = _client(lambda request: httpx.Response(200, json={"clustered_tracks": []}))

    with pytest.raises(FetchError):
        await client.perform_clustering(track_dicts, ClusterParams(2, ("energy",)))
