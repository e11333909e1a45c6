"""
Configuration for Mood DJ.

Spotify settings are read from the environment:
    SPOTIFY_CLIENT_ID: Spotify application client ID
    SPOTIFY_CLIENT_SECRET: Spotify application client secret
    SPOTIFY_REDIRECT_URI: OAuth redirect registered in the Spotify dashboard
    SPOTIFY_MARKET: Market used for artist top-track lookups
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_REDIRECT_URI = "http://127.0.0.1:5173/callback"

DEFAULT_SCOPES = [
    "user-read-email",
    "playlist-modify-public",
    "playlist-modify-private",
]


@dataclass
class SpotifyConfig:
    """Configuration for the Spotify token and catalog clients."""

    client_id: Optional[str] = field(
        default_factory=lambda: os.getenv("SPOTIFY_CLIENT_ID")
    )
    client_secret: Optional[str] = field(
        default_factory=lambda: os.getenv("SPOTIFY_CLIENT_SECRET")
    )
    redirect_uri: str = field(
        default_factory=lambda: os.getenv("SPOTIFY_REDIRECT_URI", DEFAULT_REDIRECT_URI)
    )
    market: str = field(
        default_factory=lambda: os.getenv("SPOTIFY_MARKET", "US")
    )
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = 30.0

    def require_credentials(self) -> None:
        """Raise if the client ID or secret is missing."""
        missing = []
        if not self.client_id:
            missing.append("SPOTIFY_CLIENT_ID")
        if not self.client_secret:
            missing.append("SPOTIFY_CLIENT_SECRET")
        if missing:
            raise ValueError(
                "Spotify credentials not configured. "
                f"Set {' and '.join(missing)} environment variables."
            )


def allowed_origins() -> List[str]:
    """Origins allowed by the API server's CORS middleware."""
    raw = os.getenv("MOOD_DJ_ALLOWED_ORIGINS", "http://127.0.0.1:5173")
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class ScoringWeights:
    """
    Weights for the distance score between a track and a target vector.

    The tempo term only penalizes tracks slower than the target floor and is
    divided by tempo_scale before weighting.
    """

    valence: float = 0.40
    energy: float = 0.40
    danceability: float = 0.15
    tempo: float = 0.05
    tempo_scale: float = 200.0


@dataclass
class EngineConfig:
    """Tunables for the recommendation pipeline."""

    default_limit: int = 20
    min_limit: int = 20
    max_limit: int = 50
    top_n: int = 20
    artist_fanout: int = 5
    feature_batch_size: int = 100
    loose_query: str = "top hits"
    scoring: ScoringWeights = field(default_factory=ScoringWeights)

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Clamp a requested pool size into [min_limit, max_limit]."""
        if limit is None:
            limit = self.default_limit
        return max(self.min_limit, min(self.max_limit, int(limit)))
