"""HTTP binding for the boundary operations."""

from .app import create_app

__all__ = ["create_app"]
