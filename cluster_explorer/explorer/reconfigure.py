"""Snapshot publication and the recompute (re-clustering) protocol."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Set

from ..errors import FetchError
from ..logger import get_logger
from ..models import ClusterParams, DatasetSnapshot

logger = get_logger(__name__)


class SnapshotStore:
    """Holds the one published :class:`DatasetSnapshot`.

    Replacement is a single reference swap, so readers always see a whole
    snapshot.  Each published snapshot is stamped with the next generation.
    """

    def __init__(self) -> None:
        self._current: Optional[DatasetSnapshot] = None
        self._generation = 0
        self._listeners: List[Callable[[DatasetSnapshot], None]] = []

    @property
    def current(self) -> Optional[DatasetSnapshot]:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, callback: Callable[[DatasetSnapshot], None]) -> None:
        self._listeners.append(callback)

    def publish(self, snapshot: DatasetSnapshot) -> DatasetSnapshot:
        """Stamp *snapshot* with the next generation and make it current."""
        self._generation += 1
        stamped = replace(snapshot, generation=self._generation)
        self._current = stamped
        logger.info(
            "Snapshot generation %d: %d tracks in %d clusters",
            stamped.generation, len(stamped), len(stamped.cluster_ids),
        )
        for callback in self._listeners:
            callback(stamped)
        return stamped


class ReconfigurationProtocol:
    """Turns confirmed parameter edits into ``POST /cluster`` round trips.

    Requests are numbered in issue order.  Only the response to the most
    recently issued request is applied; earlier responses (successful or
    not) are dropped whenever they arrive.  A failed latest request leaves
    the published snapshot untouched and is kept in :attr:`last_error`.

    Parameters
    ----------
    client : ClusterServiceClient
    store : SnapshotStore
    """

    def __init__(self, client, store: SnapshotStore) -> None:
        self._client = client
        self._store = store
        self._issued = 0
        self._in_flight: Set[int] = set()
        self.last_error: Optional[FetchError] = None

    @property
    def latest_sequence(self) -> int:
        return self._issued

    @property
    def busy(self) -> bool:
        """``True`` while the latest request has not completed."""
        return self._issued in self._in_flight

    async def request_recompute(
        self, tracks: Sequence[dict], params: ClusterParams
    ) -> Optional[DatasetSnapshot]:
        """Recluster *tracks* with *params*.

        Returns
        -------
        DatasetSnapshot or None
            The newly published snapshot, or ``None`` when the response was
            superseded by a later request.

        Raises
        ------
        FetchError
            When the latest request fails (including an empty *tracks* list,
            rejected before any request is sent).
        """
        if not tracks:
            self.last_error = FetchError("cluster", "no tracks to cluster")
            raise self.last_error

        self._issued += 1
        seq = self._issued
        self._in_flight.add(seq)
        logger.info(
            "Recompute #%d issued: n_clusters=%d features=%s",
            seq, params.n_clusters, list(params.features),
        )
        try:
            snapshot = await self._client.perform_clustering(tracks, params, generation=0)
        except FetchError as e:
            if seq != self._issued:
                logger.debug("Recompute #%d failed after being superseded: %s", seq, e)
                return None
            logger.warning("Recompute #%d failed: %s", seq, e)
            self.last_error = e
            raise
        finally:
            self._in_flight.discard(seq)

        if seq != self._issued:
            logger.debug("Recompute #%d superseded by #%d, response dropped", seq, self._issued)
            return None
        self.last_error = None
        return self._store.publish(snapshot)
