#!/usr/bin/env python
"""Entry point for the Music Cluster Explorer.

Usage
-----
    python run_app.py --token <session-token> [--api-url http://127.0.0.1:5000/api]

Or offline, clustering a local track list through the service:
    python run_app.py --tracks path/to/tracks.jsonl
"""

from __future__ import annotations

import argparse
import os

from cluster_explorer.config import ExplorerConfig
from cluster_explorer.io import load_tracks
from cluster_explorer.logger import get_logger, setup_logging

logger = get_logger("cluster_explorer.run_app")


def main() -> None:
    parser = argparse.ArgumentParser(description="Launch the Music Cluster Explorer web app")
    parser.add_argument(
        "--api-url", default=None,
        help="Base URL of the clustering service (default: $CLUSTER_EXPLORER_API_BASE_URL "
             "or http://127.0.0.1:5000/api)",
    )
    parser.add_argument(
        "--token", default=os.environ.get("CLUSTER_EXPLORER_TOKEN"),
        help="Session token for the service (default: $CLUSTER_EXPLORER_TOKEN)",
    )
    parser.add_argument(
        "--tracks", default=None,
        help="Optional JSON/JSONL file of tracks to cluster instead of fetching them",
    )
    parser.add_argument(
        "--host", default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", type=int, default=8050,
        help="Port to serve on (default: 8050)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Logging level (default: $CLUSTER_EXPLORER_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Run Dash in debug mode",
    )
    args = parser.parse_args()

    config = ExplorerConfig.from_env(api_base_url=args.api_url, log_level=args.log_level)
    setup_logging(config.log_level)

    tracks = None
    if args.tracks:
        tracks = load_tracks(args.tracks)
        logger.info("Loaded %d tracks from %s", len(tracks), args.tracks)
    elif not args.token:
        logger.warning("No session token given; fetching tracks will likely fail")

    logger.info("Starting Dash app on http://%s:%s/", args.host, args.port)

    from cluster_explorer.app import create_app
    token = args.token
    app = create_app(config, token_provider=lambda: token, tracks=tracks)
    # The reloader would start a second explorer loop in a child process
    app.run(host=args.host, port=args.port, debug=args.debug, use_reloader=False)


if __name__ == "__main__":
    main()
