"""Payload parsing and DataFrame conversion.

Turns the JSON bodies of the clustering service into validated model
objects, and flattens snapshots into DataFrames for the figure builders.
"""

from __future__ import annotations

import json
import os
from typing import Any, List

import pandas as pd

from .errors import FetchError
from .models import DatasetSnapshot, RecommendationItem

_TRACK_COLUMNS = ["id", "name", "artist", "cluster", "album_cover", "external_url"]


def load_tracks(path: str) -> List[dict]:
    """Load a user's track list from disk (offline mode).

    Parameters
    ----------
    path : str
        ``.jsonl`` file with one track per line, or ``.json`` file holding
        either a list of tracks or ``{"tracks": [...]}``.

    Returns
    -------
    list[dict]
    """
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    if path.endswith(".jsonl"):
        df = pd.read_json(path, orient="records", lines=True)
        return df.to_dict(orient="records")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("tracks", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of tracks")
    return data


def parse_user_tracks(payload: Any) -> List[dict]:
    """Extract the ``tracks`` list from ``GET /fetch-user-tracks``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("tracks"), list):
        raise FetchError("fetch-user-tracks", "response has no 'tracks' list")
    tracks = payload["tracks"]
    for t in tracks:
        if not isinstance(t, dict) or "id" not in t:
            raise FetchError("fetch-user-tracks", "track entry without an 'id'")
    return tracks


def parse_cluster_response(payload: Any, generation: int) -> DatasetSnapshot:
    """Build a :class:`DatasetSnapshot` from a ``POST /cluster`` body.

    Items come from ``clustered_tracks``; feature values missing on a track
    are filled from the ``visualization_data`` entry with the same id.

    Raises
    ------
    FetchError
        When the body is malformed, empty, or inconsistent.
    """
    if not isinstance(payload, dict):
        raise FetchError("cluster", "response body is not an object")

    features = payload.get("features_used")
    tracks = payload.get("clustered_tracks")
    centers = payload.get("cluster_centers")
    if not isinstance(features, list) or not features:
        raise FetchError("cluster", "response has no 'features_used'")
    if not isinstance(tracks, list) or not isinstance(centers, list):
        raise FetchError("cluster", "response lacks 'clustered_tracks' or 'cluster_centers'")
    if not tracks:
        raise FetchError("cluster", "clustering returned no tracks")

    viz_by_id = {
        str(v["id"]): v
        for v in payload.get("visualization_data") or []
        if isinstance(v, dict) and "id" in v
    }
    merged = []
    for t in tracks:
        if not isinstance(t, dict) or "id" not in t:
            raise FetchError("cluster", "clustered track without an 'id'")
        extra = viz_by_id.get(str(t["id"]))
        merged.append({**extra, **t} if extra else t)

    inertia = payload.get("inertia")
    try:
        return DatasetSnapshot.build(
            merged,
            centers,
            [str(f) for f in features],
            generation=generation,
            inertia=float(inertia) if inertia is not None else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError("cluster", f"malformed clustering result: {e}") from e


def parse_recommendations(payload: Any) -> tuple[RecommendationItem, ...]:
    """Parse a ``POST /recommendations`` body.  An empty list is valid."""
    if not isinstance(payload, dict):
        raise FetchError("recommendations", "response body is not an object")
    raw = payload.get("recommendations")
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise FetchError("recommendations", "'recommendations' is not a list")

    items = []
    for r in raw:
        try:
            images = (r.get("album") or {}).get("images") or []
            items.append(RecommendationItem(
                id=str(r["id"]),
                name=str(r.get("name", "")),
                artists=tuple(str(a.get("name", "")) for a in r.get("artists") or []),
                image_url=images[0].get("url") if images else None,
                external_url=(r.get("external_urls") or {}).get("spotify"),
            ))
        except (AttributeError, KeyError, TypeError) as e:
            raise FetchError("recommendations", f"malformed recommendation: {e}") from e
    return tuple(items)


def snapshot_to_frame(snapshot: DatasetSnapshot) -> pd.DataFrame:
    """One row per track: identity columns followed by ``features_used``."""
    rows = [
        {
            "id": t.id,
            "name": t.name,
            "artist": t.artist,
            "cluster": t.cluster,
            "album_cover": t.album_cover,
            "external_url": t.external_url,
            **t.features,
        }
        for t in snapshot.items
    ]
    return pd.DataFrame(rows, columns=_TRACK_COLUMNS + list(snapshot.features_used))


def cluster_share_query(cluster_id: int) -> str:
    """Query string that reopens the explorer on *cluster_id*."""
    return f"?cluster={int(cluster_id)}"


def parse_cluster_query(search: str | None) -> int | None:
    """Inverse of :func:`cluster_share_query`; ``None`` when absent or invalid."""
    if not search:
        return None
    for part in search.lstrip("?").split("&"):
        key, _, value = part.partition("=")
        if key == "cluster" and value.isdigit():
            return int(value)
    return None

