"""Centralised logging for the cluster explorer.

Usage
-----
    from cluster_explorer.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Snapshot %d applied", generation)
"""

from __future__ import annotations

import logging
import sys

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging. Call once at startup; later calls are no-ops."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name* (typically ``__name__``)."""
    return logging.getLogger(name)
