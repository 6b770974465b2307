"""Dash app factory and server-side state."""

from __future__ import annotations

import atexit
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ..config import ExplorerConfig
from ..explorer.runtime import EventLoopThread
from ..explorer.session import ExplorerSession
from ..logger import get_logger
from ..visualization.colors import ClusterColorMap

logger = get_logger(__name__)


@dataclass
class ServerState:
    """Server-side state for the single-user Dash app.

    ``session`` is only ever touched on ``runtime``'s event loop.
    """

    session: ExplorerSession
    runtime: EventLoopThread
    color_map: ClusterColorMap = field(default_factory=ClusterColorMap)

    def call(self, fn: Callable, *args):
        """Run ``fn(*args)`` on the explorer loop and return its result."""
        return self.runtime.call(fn, *args)

    def submit(self, coro):
        """Schedule *coro* on the explorer loop without waiting for it."""
        return self.runtime.submit(coro)

    def shutdown(self) -> None:
        if not self.runtime.running:
            return
        self.call(self.session.close)
        self.runtime.run(self.session.client.aclose(), timeout=5.0)
        self.runtime.stop()
        logger.info("Explorer session closed")


# Module-level singleton, set by create_app()
state: ServerState | None = None


def create_app(
    config: ExplorerConfig,
    *,
    token_provider: Callable[[], Optional[str]] = lambda: None,
    tracks: Optional[Sequence[dict]] = None,
    session: Optional[ExplorerSession] = None,
) -> "dash.Dash":
    """Create and configure the Dash application.

    Parameters
    ----------
    config : ExplorerConfig
    token_provider : callable
        Supplies the session token from the auth layer.
    tracks : sequence of dict, optional
        Pre-loaded user tracks (offline mode); fetched from the service
        when omitted.
    session : ExplorerSession, optional
        Pre-built session (tests).

    Returns
    -------
    dash.Dash
    """
    import dash

    from .layout import build_layout
    from . import callbacks

    global state
    runtime = EventLoopThread().start()
    session = session or ExplorerSession(config, token_provider=token_provider)
    state = ServerState(session=session, runtime=runtime)
    atexit.register(state.shutdown)

    # Initial load runs in the background; the layout polls for it
    state.submit(session.load(tracks))

    assets_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "assets")

    app = dash.Dash(
        __name__,
        assets_folder=assets_dir,
        suppress_callback_exceptions=True,
        title="Music Cluster Explorer",
    )
    app.layout = build_layout(state)
    callbacks.register(app)

    return app
