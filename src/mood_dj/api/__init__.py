"""
FastAPI server for Mood DJ.

Provides the REST endpoints used by the browser client: Spotify login,
mood sample ingestion, recommendations and playlist creation.
"""

from .server import app, create_app

__all__ = ["app", "create_app"]
