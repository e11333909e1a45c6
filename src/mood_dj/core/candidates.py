"""
Candidate Sourcing

Builds an unranked pool of tracks for a set of mood tags by walking an
ordered list of catalog strategies, stopping at the first that returns
anything:

    1. tag_search: OR-combined genre query over all tags
    2. artist_search: top tracks of the artists matching the primary tag
    3. loose_search: fixed mood-agnostic query

A failing stage is logged and skipped. An empty pool after all stages is a
valid result, not an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .errors import AuthRefreshFailed, Unauthorized, UpstreamUnavailable
from .models import Track

logger = logging.getLogger(__name__)

# (normalized tags, limit) -> tracks; raises UpstreamUnavailable on failure
CandidateStrategy = Callable[[List[str], int], List[Track]]

_DISALLOWED = re.compile(r"[^a-z0-9 \-]")
_WHITESPACE = re.compile(r"\s+")


class TrackCatalog(Protocol):
    def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        ...

    def search_artists(self, query: str, limit: int = 5) -> List[Dict[str, str]]:
        ...

    def artist_top_tracks(self, artist_id: str) -> List[Track]:
        ...


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """
    Lower-case tags, keep only [a-z0-9], space and hyphen, collapse
    whitespace. Empty results are dropped and duplicates removed, keeping
    first occurrence order.
    """
    normalized: List[str] = []
    for tag in tags:
        cleaned = _DISALLOWED.sub("", str(tag).lower())
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


@dataclass
class CandidatePool:
    """Result of one cascade run."""
    tracks: List[Track]
    stage: Optional[str] = None  # Stage that produced the tracks
    tags: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # stage -> error

    @property
    def empty(self) -> bool:
        return not self.tracks


class CandidateSource:
    """Runs the candidate cascade against a track catalog."""

    def __init__(
        self,
        catalog: TrackCatalog,
        artist_fanout: int = 5,
        loose_query: str = "top hits",
        strategies: Optional[Sequence[Tuple[str, CandidateStrategy]]] = None,
    ):
        """
        Initialize candidate source.

        Args:
            catalog: Catalog client used by the built-in strategies.
            artist_fanout: Max number of artists consulted by artist_search.
            loose_query: Query used by the last-resort loose_search.
            strategies: Ordered (name, strategy) pairs replacing the defaults.
        """
        self.catalog = catalog
        self.artist_fanout = artist_fanout
        self.loose_query = loose_query
        self.strategies: List[Tuple[str, CandidateStrategy]] = list(strategies) if strategies else [
            ("tag_search", self.tag_search),
            ("artist_search", self.artist_search),
            ("loose_search", self.loose_search),
        ]

    def tag_search(self, tags: List[str], limit: int) -> List[Track]:
        if not tags:
            return []
        query = " OR ".join(f'genre:"{tag}"' for tag in tags)
        return self.catalog.search_tracks(query, limit=limit)[:limit]

    def artist_search(self, tags: List[str], limit: int) -> List[Track]:
        if not tags:
            return []
        artists = self.catalog.search_artists(tags[0], limit=self.artist_fanout)
        pool: List[Track] = []
        errors: List[UpstreamUnavailable] = []

        for artist in artists[:self.artist_fanout]:
            if len(pool) >= limit:
                break
            try:
                pool.extend(self.catalog.artist_top_tracks(artist["id"]))
            except UpstreamUnavailable as e:
                logger.warning(f"Top tracks for artist {artist.get('name') or artist['id']} failed: {e}")
                errors.append(e)

        if not pool and errors:
            raise errors[-1]
        return pool[:limit]

    def loose_search(self, tags: List[str], limit: int) -> List[Track]:
        return self.catalog.search_tracks(self.loose_query, limit=limit)[:limit]

    def gather(self, tags: Iterable[str], limit: int = 20) -> CandidatePool:
        """
        Run the cascade.

        Args:
            tags: Raw mood tags (normalized here).
            limit: Maximum pool size.

        Returns:
            CandidatePool, possibly empty.
        """
        normalized = normalize_tags(tags)
        failures: Dict[str, str] = {}

        for name, strategy in self.strategies:
            try:
                tracks = strategy(normalized, limit)
            except (Unauthorized, AuthRefreshFailed):
                raise
            except Exception as e:
                status = getattr(e, "status_code", None)
                logger.warning(
                    f"Candidate stage '{name}' failed "
                    f"(tags={normalized}, limit={limit}, status={status}): {e}"
                )
                failures[name] = str(e) or type(e).__name__
                continue

            if tracks:
                logger.info(f"Candidate stage '{name}' produced {len(tracks)} tracks (tags={normalized})")
                return CandidatePool(list(tracks[:limit]), name, normalized, failures)

            logger.info(f"Candidate stage '{name}' returned no tracks (tags={normalized})")

        logger.warning(f"All candidate stages came back empty (tags={normalized})")
        return CandidatePool([], None, normalized, failures)
