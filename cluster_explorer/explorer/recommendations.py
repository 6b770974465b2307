"""Per-cluster recommendation fetching.

Requests are keyed by ``(cluster_id, generation)``.  At most one fetch is in
flight per key, a finished fetch is applied only if its key is still the
active one, and after :meth:`RecommendationOrchestrator.close` nothing is
applied at all.  Stale results are dropped silently.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional, Tuple

from ..errors import FetchError
from ..logger import get_logger
from ..models import DatasetSnapshot, RecommendationState, RequestStatus

logger = get_logger(__name__)

Key = Tuple[int, int]


def derive_seed_ids(snapshot: DatasetSnapshot, cluster_id: int, size: int = 5) -> Tuple[str, ...]:
    """First ``min(size, cluster size)`` member ids of *cluster_id*, in snapshot order."""
    return tuple(t.id for t in snapshot.members(cluster_id)[:size])


class RecommendationOrchestrator:
    """Drives ``POST /recommendations`` for the selected cluster.

    Parameters
    ----------
    client : ClusterServiceClient
    token_provider : callable
        Returns the current session token; passed through untouched.
    seed_size : int
        Maximum number of seed tracks per request.
    limit : int
        Number of recommendations requested.
    """

    def __init__(
        self,
        client,
        token_provider: Callable[[], Optional[str]],
        *,
        seed_size: int = 5,
        limit: int = 10,
    ) -> None:
        self._client = client
        self._token_provider = token_provider
        self.seed_size = seed_size
        self.limit = limit

        self.state = RecommendationState()
        self._snapshot: Optional[DatasetSnapshot] = None
        self._selected: Optional[int] = None
        self._pending: Dict[Key, asyncio.Task] = {}
        self._fulfilled: Dict[Key, RecommendationState] = {}
        self._closed = False
        self.fetch_count = 0

    @property
    def active_key(self) -> Optional[Key]:
        if self._snapshot is None or self._selected is None:
            return None
        return (self._selected, self._snapshot.generation)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_pending(self, cluster_id: int) -> bool:
        if self._snapshot is None:
            return False
        return (cluster_id, self._snapshot.generation) in self._pending

    # ------------------------------------------------------------------ #
    #  Transitions
    # ------------------------------------------------------------------ #

    def set_snapshot(self, snapshot: DatasetSnapshot) -> None:
        """Adopt a new snapshot; results of older generations become stale."""
        self._snapshot = snapshot
        self._fulfilled.clear()
        if self._selected not in snapshot.cluster_ids:
            self._selected = None
        self.state = RecommendationState(generation=snapshot.generation)

    def select(self, cluster_id: int) -> Optional[asyncio.Task]:
        """Make *cluster_id* active and fetch its recommendations if needed.

        Must be called from the event loop.  Returns the new fetch task, or
        ``None`` when a cached result was shown, a fetch for the same key is
        already pending, or the orchestrator is closed.
        """
        if self._closed or self._snapshot is None:
            return None
        if cluster_id not in self._snapshot.cluster_ids:
            return None
        self._selected = cluster_id
        key = (cluster_id, self._snapshot.generation)

        if key in self._fulfilled:
            self.state = self._fulfilled[key]
            return None
        if key in self._pending:
            logger.debug("Recommendations for cluster %d already pending", cluster_id)
            self.state = RecommendationState(
                cluster_id, key[1], RequestStatus.PENDING,
                seed_ids=derive_seed_ids(self._snapshot, cluster_id, self.seed_size),
            )
            return None
        return self._issue(key)

    def retry(self) -> Optional[asyncio.Task]:
        """Re-issue the active request after a failure."""
        key = self.active_key
        if self._closed or key is None or self.state.status is not RequestStatus.FAILED:
            return None
        if key in self._pending:
            return None
        return self._issue(key)

    def close(self) -> None:
        """Tear down: every pending response will be discarded."""
        if not self._closed:
            logger.debug("Recommendation orchestrator closed with %d pending", len(self._pending))
        self._closed = True

    async def drain(self) -> None:
        """Wait until no fetch is pending."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    # ------------------------------------------------------------------ #
    #  Fetching
    # ------------------------------------------------------------------ #

    def _issue(self, key: Key) -> asyncio.Task:
        cluster_id, generation = key
        seeds = derive_seed_ids(self._snapshot, cluster_id, self.seed_size)
        self.state = RecommendationState(cluster_id, generation, RequestStatus.PENDING, seed_ids=seeds)
        self.fetch_count += 1
        logger.info(
            "Fetching recommendations for cluster %d (generation %d) from %d seeds",
            cluster_id, generation, len(seeds),
        )
        task = asyncio.get_running_loop().create_task(self._fetch(key, seeds))
        self._pending[key] = task
        return task

    async def _fetch(self, key: Key, seeds: Tuple[str, ...]) -> None:
        cluster_id, generation = key
        token = self._token_provider() or ""
        try:
            items = await self._client.get_recommendations(seeds, token, self.limit)
            result = RecommendationState(
                cluster_id, generation, RequestStatus.FULFILLED, items=items, seed_ids=seeds
            )
        except FetchError as e:
            result = RecommendationState(
                cluster_id, generation, RequestStatus.FAILED, seed_ids=seeds, error=e.message
            )
        except Exception as e:
            logger.exception("Unexpected error fetching recommendations for cluster %d", cluster_id)
            result = RecommendationState(
                cluster_id, generation, RequestStatus.FAILED, seed_ids=seeds, error=str(e)
            )
        finally:
            self._pending.pop(key, None)

        if self._closed:
            logger.debug("Dropping recommendations for cluster %d: closed", cluster_id)
            return
        if key != self.active_key:
            logger.debug(
                "Dropping stale recommendations for cluster %d (generation %d)",
                cluster_id, generation,
            )
            return

        if result.status is RequestStatus.FULFILLED:
            self._fulfilled[key] = result
            logger.info("Received %d recommendations for cluster %d", len(result.items), cluster_id)
        else:
            logger.warning("Recommendations for cluster %d failed: %s", cluster_id, result.error)
        self.state = result
