"""
Core recommendation modules.

This package contains the mood-to-playlist pipeline:
- emotion: smoothing per-frame emotion samples into short/long-term moods
- catalog: mood label -> target feature vector
- credentials: token storage with lazy, single-flight refresh
- spotify: Spotify accounts and Web API clients
- candidates: cascading candidate track sourcing
- enrichment: batched audio-feature lookup
- recommender: scoring, ranking and the end-to-end engine
"""

from .candidates import CandidatePool, CandidateSource, normalize_tags
from .catalog import MOOD_FEATURES, FeatureVector, Mode, MoodCatalog
from .credentials import Credential, CredentialManager
from .emotion import (
    DEFAULT_MOOD_PRIORITY,
    DETECTING,
    EmotionAggregator,
    EmotionSample,
    Mood,
    MoodReading,
)
from .enrichment import FeatureEnricher
from .errors import (
    AuthRefreshFailed,
    CatalogUnauthorized,
    MoodDJError,
    Unauthorized,
    UpstreamUnavailable,
)
from .models import SAFETY_TRACKS, AudioFeatures, Track
from .recommender import (
    Recommendation,
    RecommendationEngine,
    ScoredTrack,
    adjust_for_mode,
    score_track,
)
from .spotify import SpotifyCatalogClient, SpotifyTokenClient

__all__ = [
    # Emotion aggregation
    "DEFAULT_MOOD_PRIORITY",
    "DETECTING",
    "EmotionAggregator",
    "EmotionSample",
    "Mood",
    "MoodReading",
    # Mood catalog
    "MOOD_FEATURES",
    "FeatureVector",
    "Mode",
    "MoodCatalog",
    # Models
    "SAFETY_TRACKS",
    "AudioFeatures",
    "Track",
    # Credentials
    "Credential",
    "CredentialManager",
    # Spotify
    "SpotifyCatalogClient",
    "SpotifyTokenClient",
    # Pipeline
    "CandidatePool",
    "CandidateSource",
    "normalize_tags",
    "FeatureEnricher",
    "Recommendation",
    "RecommendationEngine",
    "ScoredTrack",
    "adjust_for_mode",
    "score_track",
    # Errors
    "AuthRefreshFailed",
    "CatalogUnauthorized",
    "MoodDJError",
    "Unauthorized",
    "UpstreamUnavailable",
]
