"""
Mood DJ - turn a detected emotional state into a ranked playlist.

Per-frame emotion samples are smoothed into a stable mood, the mood is
mapped to target audio features, and candidate tracks from Spotify are
ranked by how closely they match.

Usage:
    from mood_dj import CredentialManager, RecommendationEngine, SpotifyCatalogClient, SpotifyTokenClient

    credentials = CredentialManager(SpotifyTokenClient())
    credentials.set_credential(token_response)
    engine = RecommendationEngine(SpotifyCatalogClient(credentials.get_auth_token), credentials)
    tracks = engine.recommend("happy", mode="match")
"""

__version__ = "1.0.0"

from .config import EngineConfig, ScoringWeights, SpotifyConfig
from .core import (
    AudioFeatures,
    AuthRefreshFailed,
    CredentialManager,
    EmotionAggregator,
    EmotionSample,
    FeatureVector,
    Mode,
    Mood,
    MoodCatalog,
    MoodDJError,
    MoodReading,
    RecommendationEngine,
    SpotifyCatalogClient,
    SpotifyTokenClient,
    Track,
    Unauthorized,
    UpstreamUnavailable,
    score_track,
)

__all__ = [
    "__version__",
    # Config
    "EngineConfig",
    "ScoringWeights",
    "SpotifyConfig",
    # Aggregation
    "EmotionAggregator",
    "EmotionSample",
    "Mood",
    "MoodReading",
    # Recommendation
    "FeatureVector",
    "Mode",
    "MoodCatalog",
    "RecommendationEngine",
    "score_track",
    "AudioFeatures",
    "Track",
    # Spotify
    "CredentialManager",
    "SpotifyCatalogClient",
    "SpotifyTokenClient",
    # Errors
    "AuthRefreshFailed",
    "MoodDJError",
    "Unauthorized",
    "UpstreamUnavailable",
]
