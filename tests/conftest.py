"""Shared fixtures: a controllable clock, a fake token endpoint and a fake catalog."""

import threading
from typing import Dict, List, Optional

import pytest

from mood_dj.core import AudioFeatures, CatalogUnauthorized, CredentialManager, Track, UpstreamUnavailable


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTokenExchanger:
    """Counts refresh exchanges; can fail or block until released."""

    def __init__(self, expires_in: int = 3600, refresh_token: Optional[str] = None):
        self.expires_in = expires_in
        self.refresh_token = refresh_token
        self.calls: List[str] = []
        self.error: Optional[Exception] = None
        self.entered = threading.Event()
        self.release: Optional[threading.Event] = None

    def refresh(self, refresh_token: str) -> dict:
        self.calls.append(refresh_token)
        self.entered.set()
        if self.release is not None:
            self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        response = {"access_token": f"access-{len(self.calls)}", "expires_in": self.expires_in}
        if self.refresh_token:
            response["refresh_token"] = self.refresh_token
        return response

    # Used by the API's login/callback endpoints.
    def authorize_url(self, state: Optional[str] = None) -> str:
        return "https://accounts.spotify.com/authorize?client_id=test"

    def exchange_code(self, code: str) -> dict:
        return {"access_token": f"code-{code}", "refresh_token": "refresh-1", "expires_in": 3600}


def make_track(track_id: str, name: Optional[str] = None) -> Track:
    return Track(
        id=track_id,
        name=name or f"Track {track_id}",
        artists=["Artist"],
        album="Album",
        external_url=f"https://open.spotify.com/track/{track_id}",
        uri=f"spotify:track:{track_id}",
    )


class FakeCatalog:
    """
    In-memory stand-in for SpotifyCatalogClient.

    Each source may be a list of tracks or an exception to raise.
    """

    def __init__(self, loose_query: str = "top hits"):
        self.loose_query = loose_query
        self.tag_tracks = []
        self.loose_tracks = []
        self.artists: List[Dict[str, str]] = []
        self.top_tracks: Dict[str, object] = {}
        self.features: Dict[str, AudioFeatures] = {}
        self.batch_error: Optional[Exception] = None
        self.single_errors: set = set()
        self.unauthorized: Dict[str, int] = {}
        self.calls: List[tuple] = []
        self.playlists: List[tuple] = []

    def _maybe_raise(self, method: str, source=None):
        remaining = self.unauthorized.get(method, 0)
        if remaining:
            self.unauthorized[method] = remaining - 1
            raise CatalogUnauthorized(f"{method} unauthorized", endpoint=method)
        if isinstance(source, Exception):
            raise source

    def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        self.calls.append(("search_tracks", query, limit))
        source = self.loose_tracks if query == self.loose_query else self.tag_tracks
        self._maybe_raise("search_tracks", source)
        return list(source)[:limit]

    def search_artists(self, query: str, limit: int = 5) -> List[Dict[str, str]]:
        self.calls.append(("search_artists", query, limit))
        self._maybe_raise("search_artists", self.artists)
        return list(self.artists)[:limit]

    def artist_top_tracks(self, artist_id: str) -> List[Track]:
        self.calls.append(("artist_top_tracks", artist_id))
        source = self.top_tracks.get(artist_id, [])
        self._maybe_raise("artist_top_tracks", source)
        return list(source)

    def audio_features(self, track_ids: List[str]) -> List[AudioFeatures]:
        self.calls.append(("audio_features", list(track_ids)))
        self._maybe_raise("audio_features", self.batch_error)
        return [self.features[i] for i in track_ids if i in self.features]

    def audio_feature(self, track_id: str) -> Optional[AudioFeatures]:
        self.calls.append(("audio_feature", track_id))
        if track_id in self.single_errors:
            raise UpstreamUnavailable(f"no features for {track_id}", status_code=404)
        return self.features.get(track_id)

    def current_user(self) -> dict:
        return {"id": "user-1", "product": "premium", "country": "US"}

    def create_playlist(self, name: str, uris: List[str], public: bool = False) -> str:
        self.playlists.append((name, list(uris), public))
        return "https://open.spotify.com/playlist/pl-1"

    def methods_called(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def exchanger():
    return FakeTokenExchanger()


@pytest.fixture
def credentials(exchanger, clock):
    manager = CredentialManager(exchanger, clock=clock)
    manager.set_credential({"access_token": "access-0", "refresh_token": "refresh-0", "expires_in": 3600})
    return manager


@pytest.fixture
def catalog():
    return FakeCatalog()
