"""
Mood Catalog

Static table mapping mood labels to target audio-feature vectors and the
seed tags used to source candidate tracks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """Whether to match the listener's mood or steer away from it."""
    MATCH = "match"
    CHANGE = "change"


@dataclass(frozen=True)
class FeatureVector:
    """Target audio characteristics for a mood."""
    target_valence: float
    target_energy: float
    target_danceability: float
    min_tempo: float
    seed_tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "target_valence": self.target_valence,
            "target_energy": self.target_energy,
            "target_danceability": self.target_danceability,
            "min_tempo": self.min_tempo,
            "seed_tags": list(self.seed_tags),
        }


MOOD_FEATURES: Dict[str, FeatureVector] = {
    "happy": FeatureVector(0.9, 0.7, 0.8, 100, ("pop", "dance", "edm")),
    "sad": FeatureVector(0.2, 0.2, 0.3, 60, ("acoustic", "ambient", "singer-songwriter")),
    "angry": FeatureVector(0.3, 0.9, 0.6, 120, ("metal", "rock", "hardstyle")),
    "surprised": FeatureVector(0.7, 0.8, 0.7, 110, ("indie", "electro", "alternative")),
    "fearful": FeatureVector(0.2, 0.3, 0.3, 60, ("ambient", "classical", "soundtrack")),
    "disgusted": FeatureVector(0.2, 0.7, 0.4, 80, ("punk", "alt-rock", "industrial")),
    "neutral": FeatureVector(0.5, 0.5, 0.5, 90, ("chill", "lo-fi", "indie")),
}

# Alternate spellings seen from classifiers and older clients.
MOOD_ALIASES: Dict[str, str] = {
    "disgust": "disgusted",
    "fear": "fearful",
    "surprise": "surprised",
}

DEFAULT_MOOD = "neutral"


class MoodCatalog:
    """Looks up FeatureVectors by mood label, falling back to neutral."""

    def __init__(
        self,
        table: Optional[Mapping[str, FeatureVector]] = None,
        aliases: Optional[Mapping[str, str]] = None,
    ):
        self._table = dict(MOOD_FEATURES if table is None else table)
        self._aliases = dict(MOOD_ALIASES if aliases is None else aliases)
        if DEFAULT_MOOD not in self._table:
            raise ValueError(f"Mood table must define '{DEFAULT_MOOD}'")

    def labels(self) -> List[str]:
        return list(self._table)

    def resolve(self, label: Optional[str]) -> str:
        """Canonical table key for a label; unknown labels resolve to neutral."""
        key = (label or "").strip().lower()
        key = self._aliases.get(key, key)
        if key not in self._table:
            logger.debug(f"Unknown mood '{label}', using '{DEFAULT_MOOD}'")
            return DEFAULT_MOOD
        return key

    def get(self, label: Optional[str]) -> FeatureVector:
        return self._table[self.resolve(label)]
