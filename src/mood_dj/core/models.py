"""
Track and audio-feature records returned by the catalog.

Tracks are opaque beyond what scoring and playlist creation need.
Identity is the Spotify track id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Track:
    """A catalog track."""
    id: str
    name: str
    artists: List[str] = field(default_factory=list)
    album: str = ""
    external_url: str = ""
    uri: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> Optional["Track"]:
        """Create from a Spotify track object, or None if it has no id."""
        if not data or not data.get("id"):
            return None
        return cls(
            id=data["id"],
            name=data.get("name") or "Unknown",
            artists=[a.get("name", "") for a in data.get("artists") or [] if a],
            album=(data.get("album") or {}).get("name", ""),
            external_url=(data.get("external_urls") or {}).get("spotify", ""),
            uri=data.get("uri") or f"spotify:track:{data['id']}",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "artists": list(self.artists),
            "album": self.album,
            "external_url": self.external_url,
            "uri": self.uri,
        }


@dataclass(frozen=True)
class AudioFeatures:
    """
    Audio features for a track.

    The field defaults double as the neutral vector used when the catalog
    has no features for a track.
    """
    track_id: str
    valence: float = 0.5
    energy: float = 0.5
    danceability: float = 0.5
    tempo: float = 0.0

    @classmethod
    def from_api_response(cls, data: dict) -> Optional["AudioFeatures"]:
        """Create from Spotify API response."""
        if not data or not data.get("id"):
            return None
        return cls(
            track_id=data["id"],
            valence=_as_float(data.get("valence"), 0.5),
            energy=_as_float(data.get("energy"), 0.5),
            danceability=_as_float(data.get("danceability"), 0.5),
            tempo=_as_float(data.get("tempo"), 0.0),
        )


# Returned when every cascade stage comes back empty so the UI never blanks.
SAFETY_TRACKS: List[Track] = [
    Track(
        id="3AJwUDP919kvQ9QcozQPxg",
        name="As It Was",
        artists=["Harry Styles"],
        album="Harry's House",
        external_url="https://open.spotify.com/track/3AJwUDP919kvQ9QcozQPxg",
        uri="spotify:track:3AJwUDP919kvQ9QcozQPxg",
    ),
    Track(
        id="7oK9VyNzrYvRFo7nQEYkWN",
        name="Mr. Brightside",
        artists=["The Killers"],
        album="Hot Fuss",
        external_url="https://open.spotify.com/track/7oK9VyNzrYvRFo7nQEYkWN",
        uri="spotify:track:7oK9VyNzrYvRFo7nQEYkWN",
    ),
]
