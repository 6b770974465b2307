"""Async client for the clustering / recommendation service.

Every failure (transport, HTTP status, invalid JSON, malformed body) is
raised as :class:`~cluster_explorer.errors.FetchError`.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

from .errors import FetchError
from .io import parse_cluster_response, parse_recommendations, parse_user_tracks
from .logger import get_logger
from .models import ClusterParams, DatasetSnapshot, RecommendationItem

logger = get_logger(__name__)


class ClusterServiceClient:
    """Thin wrapper around :class:`httpx.AsyncClient`.

    Parameters
    ----------
    base_url : str
        Service root, e.g. ``http://127.0.0.1:5000/api``.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport (tests pass an :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        # Created lazily so it binds to the loop that first uses it
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http().request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise FetchError(operation, "request timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(operation, f"connection error: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            raise FetchError(
                operation,
                f"service returned {response.status_code}" + (f": {detail}" if detail else ""),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(operation, "response is not valid JSON") from e

    # ------------------------------------------------------------------ #
    #  Endpoints
    # ------------------------------------------------------------------ #

    async def fetch_user_tracks(self, token: str) -> list[dict]:
        """``GET /fetch-user-tracks`` -> the user's raw track dicts."""
        payload = await self._request(
            "fetch-user-tracks", "GET", "/fetch-user-tracks", params={"token": token}
        )
        tracks = parse_user_tracks(payload)
        logger.info("Fetched %d user tracks", len(tracks))
        return tracks

    async def perform_clustering(
        self,
        tracks: Sequence[dict],
        params: ClusterParams,
        generation: int = 0,
    ) -> DatasetSnapshot:
        """``POST /cluster`` -> a snapshot stamped with *generation*."""
        if not tracks:
            raise FetchError("cluster", "no tracks to cluster")
        payload = await self._request(
            "cluster",
            "POST",
            "/cluster",
            json={
                "tracks": list(tracks),
                "n_clusters": params.n_clusters,
                "features": list(params.features),
            },
        )
        return parse_cluster_response(payload, generation)

    async def get_recommendations(
        self, seed_ids: Sequence[str], token: str, limit: int = 10
    ) -> tuple[RecommendationItem, ...]:
        """``POST /recommendations`` -> recommended tracks (possibly none)."""
        payload = await self._request(
            "recommendations",
            "POST",
            "/recommendations",
            json={"seed_tracks": list(seed_ids), "token": token, "limit": limit},
        )
        return parse_recommendations(payload)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or "")
    return ""
