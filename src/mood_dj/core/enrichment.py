"""
Feature Enrichment

Attaches audio features to candidate tracks. Lookups are batched (100 ids
per call, Spotify's ceiling); if any batch fails, batching is abandoned and
the remaining ids are fetched one at a time, each failure ignored.

Tracks without features are left out of the returned mapping. Defaults are
applied by the scoring stage, not here.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Union

from .errors import AuthRefreshFailed, Unauthorized
from .models import AudioFeatures, Track

logger = logging.getLogger(__name__)


class FeatureCatalog(Protocol):
    def audio_features(self, track_ids: List[str]) -> List[AudioFeatures]:
        ...

    def audio_feature(self, track_id: str) -> Optional[AudioFeatures]:
        ...


class FeatureEnricher:
    """Fetches AudioFeatures for a pool of tracks, tolerating partial failure."""

    def __init__(self, catalog: FeatureCatalog, batch_size: int = 100):
        self.catalog = catalog
        self.batch_size = batch_size

    def enrich(self, tracks: Iterable[Union[Track, str]]) -> Dict[str, AudioFeatures]:
        """
        Look up features for tracks (or bare track ids).

        Only a lost authorization propagates; every catalog failure is
        absorbed and the worst case is an empty mapping.

        Returns:
            track id -> AudioFeatures, for the ids the catalog could resolve.
        """
        ids: List[str] = []
        for item in tracks:
            track_id = item.id if isinstance(item, Track) else item
            if track_id and track_id not in ids:
                ids.append(track_id)
        if not ids:
            return {}

        features: Dict[str, AudioFeatures] = {}
        batched_ok = True

        for i in range(0, len(ids), self.batch_size):
            batch = ids[i:i + self.batch_size]
            try:
                for af in self.catalog.audio_features(batch):
                    features[af.track_id] = af
            except (Unauthorized, AuthRefreshFailed):
                # Lost authorization is the one failure enrichment lets through.
                raise
            except Exception as e:
                logger.warning(
                    f"Batched audio-features lookup failed for {len(batch)} ids ({e}); "
                    "falling back to per-track lookups"
                )
                batched_ok = False
                break

        if not batched_ok:
            self._enrich_individually(ids, features)

        logger.info(f"Audio features resolved for {len(features)}/{len(ids)} tracks")
        return features

    def _enrich_individually(self, ids: List[str], features: Dict[str, AudioFeatures]) -> None:
        for track_id in ids:
            if track_id in features:
                continue
            try:
                af = self.catalog.audio_feature(track_id)
            except (Unauthorized, AuthRefreshFailed):
                raise
            except Exception as e:
                logger.debug(f"Audio features for {track_id} unavailable: {e}")
                continue
            if af:
                features[track_id] = af
