"""
Recommendation Engine

End-to-end "mood -> ranked tracks":

    MoodCatalog -> CandidateSource -> FeatureEnricher -> score -> rank

Scoring is a weighted L1 distance to the target vector plus a penalty for
tracks slower than the tempo floor, negated so that higher is better and
0 is a perfect match:

    score = -(0.40*|dv| + 0.40*|de| + 0.15*|dd| + 0.05*max(0, min_tempo - tempo)/200)

Tracks without audio features are scored as valence/energy/danceability
0.5 and tempo 0.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..config import EngineConfig, ScoringWeights
from .candidates import CandidateSource
from .catalog import FeatureVector, Mode, MoodCatalog
from .credentials import CredentialManager
from .enrichment import FeatureEnricher
from .errors import CatalogUnauthorized
from .models import SAFETY_TRACKS, AudioFeatures, Track

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def adjust_for_mode(target: FeatureVector, mode: Union[Mode, str]) -> FeatureVector:
    """
    Apply the listening mode to a mood's target vector.

    "change" flips valence and pushes energy toward its complement with a
    +0.1 bias; danceability and tempo are kept.
    """
    if Mode(mode) is Mode.MATCH:
        return target
    return dataclasses.replace(
        target,
        target_valence=1.0 - target.target_valence,
        target_energy=_clamp(1.0 - target.target_energy + 0.1),
    )


def score_track(
    features: Optional[AudioFeatures],
    target: FeatureVector,
    weights: Optional[ScoringWeights] = None,
) -> float:
    """Score a track against a target vector (0 is best, always <= 0)."""
    w = weights or ScoringWeights()
    f = features or AudioFeatures(track_id="")
    tempo_gap = max(0.0, target.min_tempo - f.tempo) / w.tempo_scale
    return -(
        w.valence * abs(f.valence - target.target_valence)
        + w.energy * abs(f.energy - target.target_energy)
        + w.danceability * abs(f.danceability - target.target_danceability)
        + w.tempo * tempo_gap
    )


@dataclass
class ScoredTrack:
    track: Track
    score: float
    features: Optional[AudioFeatures] = None


@dataclass
class Recommendation:
    """A ranked result plus how it was produced."""
    mood: str
    mode: Mode
    target: FeatureVector
    scored: List[ScoredTrack] = field(default_factory=list)
    stage: Optional[str] = None  # Candidate stage, or "safety_list"
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def tracks(self) -> List[Track]:
        return [s.track for s in self.scored]

    @property
    def used_safety_list(self) -> bool:
        return self.stage == "safety_list"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "mode": self.mode.value,
            "target": self.target.to_dict(),
            "stage": self.stage,
            "failures": dict(self.failures),
            "tracks": [
                {**s.track.to_dict(), "score": round(s.score, 4), "has_features": s.features is not None}
                for s in self.scored
            ],
        }


class ReauthorizingCatalog:
    """
    Catalog proxy for a single recommend() call.

    When the catalog rejects a token the credential still considered valid,
    the token is force-expired, refreshed and the call retried once. The
    retry budget is shared by every call made through this proxy.
    """

    def __init__(self, catalog: Any, credentials: CredentialManager):
        self._catalog = catalog
        self._credentials = credentials
        self.retried = False

    def _call(self, method: str, *args, **kwargs):
        fn = getattr(self._catalog, method)
        try:
            return fn(*args, **kwargs)
        except CatalogUnauthorized as e:
            if self.retried:
                raise
            self.retried = True
            logger.warning(f"Catalog rejected token on {e.endpoint}; refreshing and retrying once")
            self._credentials.force_expire(e.rejected_token)
            self._credentials.get_auth_token()
            return fn(*args, **kwargs)

    def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        return self._call("search_tracks", query, limit=limit)

    def search_artists(self, query: str, limit: int = 5) -> List[Dict[str, str]]:
        return self._call("search_artists", query, limit=limit)

    def artist_top_tracks(self, artist_id: str) -> List[Track]:
        return self._call("artist_top_tracks", artist_id)

    def audio_features(self, track_ids: List[str]) -> List[AudioFeatures]:
        return self._call("audio_features", track_ids)

    def audio_feature(self, track_id: str) -> Optional[AudioFeatures]:
        return self._call("audio_feature", track_id)


class RecommendationEngine:
    """Turns a mood label into a ranked list of tracks."""

    def __init__(
        self,
        catalog: Any,
        credentials: CredentialManager,
        mood_catalog: Optional[MoodCatalog] = None,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize engine.

        Args:
            catalog: Catalog client (SpotifyCatalogClient or compatible).
            credentials: Source of authorization for the catalog.
            mood_catalog: Mood -> FeatureVector table.
            config: Pipeline tunables and scoring weights.
        """
        self.catalog = catalog
        self.credentials = credentials
        self.mood_catalog = mood_catalog or MoodCatalog()
        self.config = config or EngineConfig()

    def target_for(self, mood_label: str, mode: Union[Mode, str] = Mode.MATCH) -> FeatureVector:
        return adjust_for_mode(self.mood_catalog.get(mood_label), mode)

    def rank(
        self,
        tracks: List[Track],
        features: Dict[str, AudioFeatures],
        target: FeatureVector,
    ) -> List[ScoredTrack]:
        """Score and sort tracks best-first; ties keep pool order."""
        seen = set()
        scored = []
        for track in tracks:
            if track.id in seen:
                continue
            seen.add(track.id)
            af = features.get(track.id)
            scored.append(ScoredTrack(track, score_track(af, target, self.config.scoring), af))
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:self.config.top_n]

    def build_recommendation(
        self,
        mood_label: str,
        mode: Union[Mode, str] = Mode.MATCH,
        limit: Optional[int] = None,
    ) -> Recommendation:
        """
        Run the full pipeline and return ranked tracks with provenance.

        Raises:
            Unauthorized: No usable credential; the user must reconnect.
            AuthRefreshFailed: The token could not be refreshed.
            ValueError: Unknown mode.
        """
        mode = Mode(mode)
        mood = self.mood_catalog.resolve(mood_label)
        target = adjust_for_mode(self.mood_catalog.get(mood), mode)
        limit = self.config.clamp_limit(limit)

        # Fail fast before touching the catalog.
        self.credentials.get_auth_token()

        catalog = ReauthorizingCatalog(self.catalog, self.credentials)
        source = CandidateSource(
            catalog,
            artist_fanout=self.config.artist_fanout,
            loose_query=self.config.loose_query,
        )
        pool = source.gather(target.seed_tags, limit=limit)
        result = Recommendation(mood=mood, mode=mode, target=target, failures=pool.failures)

        if pool.empty:
            logger.warning(f"No candidates for mood '{mood}' ({mode.value}); returning safety list")
            result.scored = [ScoredTrack(t, score_track(None, target, self.config.scoring)) for t in SAFETY_TRACKS]
            result.stage = "safety_list"
            return result

        enricher = FeatureEnricher(catalog, batch_size=self.config.feature_batch_size)
        features = enricher.enrich(pool.tracks)
        result.scored = self.rank(pool.tracks, features, target)
        result.stage = pool.stage

        logger.info(
            f"Recommended {len(result.scored)} tracks for '{mood}' ({mode.value}) "
            f"via {pool.stage}, {len(features)}/{len(pool.tracks)} with features"
        )
        return result

    def recommend(
        self,
        mood_label: str,
        mode: Union[Mode, str] = Mode.MATCH,
        limit: Optional[int] = None,
    ) -> List[Track]:
        """Ranked tracks for a mood; never empty unless authorization fails."""
        return self.build_recommendation(mood_label, mode, limit).tracks
