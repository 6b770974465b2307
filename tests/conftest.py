"""
Shared test fixtures for the cluster explorer test suite.

Provides a small synthetic track collection (12 tracks, 3 clusters),
service payload builders and an in-memory stand-in for the service client.
"""

import asyncio

import pytest

from cluster_explorer.errors import FetchError
from cluster_explorer.io import parse_cluster_response

FEATURES = ["danceability", "energy", "valence"]
# Cluster 0: 4 tracks, cluster 1: 6 tracks, cluster 2: 2 tracks
ASSIGNMENT = [0, 0, 0, 0, 1, 1, 1, 1, 1, 1, 2, 2]


def _track_dicts():
    return [
        {
            "id": f"t{i}",
            "name": f"Track {i}",
            "artist": f"Artist {i % 4}",
            "album_cover": f"https://img.example/{i}.jpg",
            "danceability": i / 11,
            "energy": (11 - i) / 11,
            # Constant feature: projects onto the middle of its axis
            "valence": 0.5,
        }
        for i in range(12)
    ]


def _cluster_payload(tracks=None, assignment=None, features=None, inertia=4.2):
    """Body of a ``POST /cluster`` response for *tracks*."""
    tracks = _track_dicts() if tracks is None else tracks
    assignment = ASSIGNMENT if assignment is None else assignment
    features = FEATURES if features is None else features

    clustered, viz = [], []
    for track, cluster in zip(tracks, assignment):
        clustered.append({
            "id": track["id"],
            "name": track["name"],
            "artist": track["artist"],
            "album_cover": track.get("album_cover"),
            "cluster": cluster,
        })
        viz.append({"id": track["id"], **{f: track[f] for f in features}})

    centers = []
    for cid in sorted(set(assignment)):
        members = [t for t, c in zip(tracks, assignment) if c == cid]
        centers.append({
            "cluster_id": cid,
            **{f: sum(m[f] for m in members) / len(members) for f in features},
        })
    return {
        "clustered_tracks": clustered,
        "visualization_data": viz,
        "cluster_centers": centers,
        "features_used": list(features),
        "inertia": inertia,
    }


def _recommendations_payload(n=3):
    return {
        "recommendations": [
            {
                "id": f"r{i}",
                "name": f"Recommended {i}",
                "artists": [{"name": f"Rec Artist {i}"}],
                "album": {"images": [{"url": f"https://img.example/r{i}.jpg"}]},
                "external_urls": {"spotify": f"https://open.spotify.com/track/r{i}"},
            }
            for i in range(n)
        ]
    }


@pytest.fixture
def track_dicts():
    """Raw user tracks as returned by ``GET /fetch-user-tracks``."""
    return _track_dicts()


@pytest.fixture
def cluster_payload():
    """Factory for ``POST /cluster`` response bodies."""
    return _cluster_payload


@pytest.fixture
def recommendations_payload():
    """Factory for ``POST /recommendations`` response bodies."""
    return _recommendations_payload


@pytest.fixture
def snapshot():
    """Parsed 12-track / 3-cluster snapshot at generation 1."""
    return parse_cluster_response(_cluster_payload(), generation=1)


class FakeServiceClient:
    """In-memory service client with per-call gates for ordering tests.

    ``cluster_gates[i]`` (if set) must be released before the i-th clustering
    call returns; ``cluster_responses[i]`` (if set) is returned or raised in
    place of the default snapshot.
    """

    def __init__(self, tracks=None):
        self.user_tracks = _track_dicts() if tracks is None else tracks
        self.user_tracks_error = None
        self.cluster_calls = []
        self.cluster_gates = {}
        self.cluster_responses = {}
        self.recommendation_calls = []
        self.recommendation_gate = None
        self.recommendation_response = None
        self.tokens_seen = []
        self.closed = False

    async def fetch_user_tracks(self, token):
        self.tokens_seen.append(token)
        if self.user_tracks_error is not None:
            raise self.user_tracks_error
        return list(self.user_tracks)

    async def perform_clustering(self, tracks, params, generation=0):
        if not tracks:
            raise FetchError("cluster", "no tracks to cluster")
        index = len(self.cluster_calls)
        self.cluster_calls.append(params)
        gate = self.cluster_gates.get(index)
        if gate is not None:
            await gate.wait()
        response = self.cluster_responses.get(index)
        if isinstance(response, Exception):
            raise response
        if response is not None:
            return response
        assignment = [i % params.n_clusters for i in range(len(tracks))]
        payload = _cluster_payload(list(tracks), assignment, list(params.features))
        return parse_cluster_response(payload, generation)

    async def get_recommendations(self, seed_ids, token, limit=10):
        self.recommendation_calls.append((tuple(seed_ids), token, limit))
        self.tokens_seen.append(token)
        if self.recommendation_gate is not None:
            await self.recommendation_gate.wait()
        response = self.recommendation_response
        if isinstance(response, Exception):
            raise response
        if response is None:
            from cluster_explorer.io import parse_recommendations
            return parse_recommendations(_recommendations_payload())
        return response

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeServiceClient()


async def settle(rounds=5):
    """Let pending tasks on the running loop make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def run_pending():
    """Awaitable helper that yields to the event loop a few times."""
    return settle
