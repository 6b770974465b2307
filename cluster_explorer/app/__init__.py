"""Dash front end for the cluster explorer."""

from .app import ServerState, create_app

__all__ = ["ServerState", "create_app"]
