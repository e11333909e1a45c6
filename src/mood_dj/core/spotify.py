"""
Spotify Clients

Thin httpx wrappers around the Spotify accounts and Web API endpoints used
by the recommendation core:

    - SpotifyTokenClient: authorization-code and refresh-token exchanges
    - SpotifyCatalogClient: search, artist top tracks, audio features,
      current user and playlist creation

HTTP failures are translated into the core error types; callers never see
httpx exceptions.

Environment Variables:
    SPOTIFY_CLIENT_ID: Spotify application client ID
    SPOTIFY_CLIENT_SECRET: Spotify application client secret
"""

from __future__ import annotations

import base64
import logging
import secrets
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..config import SpotifyConfig
from .errors import AuthRefreshFailed, CatalogUnauthorized, MoodDJError, UpstreamUnavailable
from .models import AudioFeatures, Track

logger = logging.getLogger(__name__)

# Spotify limits
MAX_SEARCH_LIMIT = 50
MAX_FEATURE_IDS = 100
MAX_PLAYLIST_ADD = 100


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


class SpotifyTokenClient:
    """
    Client for the Spotify accounts service.

    Implements the TokenExchanger protocol used by CredentialManager.
    """

    TOKEN_URL = "https://accounts.spotify.com/api/token"
    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"

    def __init__(
        self,
        config: Optional[SpotifyConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config or SpotifyConfig()
        self._http_client = http_client or httpx.Client(timeout=self.config.timeout)

    def close(self) -> None:
        self._http_client.close()

    def _get_auth_header(self) -> str:
        """Get base64 encoded auth header."""
        self.config.require_credentials()
        auth_str = f"{self.config.client_id}:{self.config.client_secret}"
        return base64.b64encode(auth_str.encode()).decode()

    def authorize_url(self, state: Optional[str] = None) -> str:
        """Build the URL the user is redirected to for consent."""
        params = {
            "response_type": "code",
            "client_id": self.config.client_id or "",
            "scope": " ".join(self.config.scopes),
            "redirect_uri": self.config.redirect_uri,
            "state": state or secrets.token_urlsafe(12),
        }
        return str(httpx.URL(self.AUTHORIZE_URL, params=params))

    def _post_token(self, data: Dict[str, str]) -> dict:
        response = self._http_client.post(
            self.TOKEN_URL,
            headers={
                "Authorization": f"Basic {self._get_auth_header()}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data=data,
        )
        response.raise_for_status()
        return response.json()

    def exchange_code(self, code: str) -> dict:
        """
        Trade an authorization code for a token response.

        Raises:
            MoodDJError: code TOKEN_EXCHANGE_FAILED if Spotify rejects the code.
        """
        try:
            return self._post_token({
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
            })
        except httpx.HTTPStatusError as e:
            logger.error(f"Token exchange failed: {e.response.status_code} {_error_body(e.response)}")
            raise MoodDJError("Token exchange failed", "TOKEN_EXCHANGE_FAILED") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token exchange failed: {e}")
            raise MoodDJError("Token exchange failed", "TOKEN_EXCHANGE_FAILED") from e

    def refresh(self, refresh_token: str) -> dict:
        """
        Trade a refresh token for a new token response.

        Raises:
            AuthRefreshFailed: Network error or the refresh token was rejected.
        """
        try:
            return self._post_token({
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            })
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Token refresh rejected: {status} {_error_body(e.response)}")
            raise AuthRefreshFailed(details={"status_code": status}) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token refresh failed: {e}")
            raise AuthRefreshFailed() from e


class SpotifyCatalogClient:
    """
    Read-mostly client for the Spotify Web API.

    Every request asks token_provider for a bearer token, so an expired
    token is refreshed transparently by the CredentialManager behind it.
    """

    API_BASE = "https://api.spotify.com/v1"

    def __init__(
        self,
        token_provider: Callable[[], str],
        config: Optional[SpotifyConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize catalog client.

        Args:
            token_provider: Returns a valid access token (e.g. CredentialManager.get_auth_token).
            config: Spotify configuration (market, timeout).
            http_client: Preconfigured httpx client, mainly for tests.
        """
        self.config = config or SpotifyConfig()
        self._token_provider = token_provider
        self._http_client = http_client or httpx.Client(timeout=self.config.timeout)

    def close(self) -> None:
        self._http_client.close()

    def _api_request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        method: str = "GET",
        json: Optional[dict] = None,
    ) -> dict:
        """Make authenticated API request."""
        token = self._token_provider()
        url = f"{self.API_BASE}/{endpoint}"

        try:
            response = self._http_client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"Spotify {endpoint} request failed: {e}", endpoint=endpoint
            ) from e

        if response.status_code == 401:
            raise CatalogUnauthorized(
                f"Spotify {endpoint} rejected the access token",
                endpoint=endpoint,
                rejected_token=token,
            )

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            details = {"body": _error_body(response)}
            if "Retry-After" in response.headers:
                details["retry_after"] = response.headers["Retry-After"]
            raise UpstreamUnavailable(
                f"Spotify {endpoint} returned {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
                details=details,
            ) from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Spotify {endpoint} returned invalid JSON",
                status_code=response.status_code,
                endpoint=endpoint,
            ) from e
        if not isinstance(data, dict):
            raise UpstreamUnavailable(
                f"Spotify {endpoint} returned {type(data).__name__}, expected an object",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        return data

    # =========================================================================
    # Catalog
    # =========================================================================

    def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        """Search tracks; results keep Spotify's relevance order."""
        data = self._api_request(
            "search",
            params={"q": query, "type": "track", "limit": min(limit, MAX_SEARCH_LIMIT)},
        )
        items = (data.get("tracks") or {}).get("items") or []
        tracks = [t for t in (Track.from_api_response(item) for item in items if isinstance(item, dict)) if t]
        logger.debug(f"Track search '{query}' returned {len(tracks)} tracks")
        return tracks

    def search_artists(self, query: str, limit: int = 5) -> List[Dict[str, str]]:
        """Search artists, returning [{id, name}] in relevance order."""
        data = self._api_request(
            "search",
            params={"q": query, "type": "artist", "limit": min(limit, MAX_SEARCH_LIMIT)},
        )
        items = (data.get("artists") or {}).get("items") or []
        return [
            {"id": item["id"], "name": item.get("name", "")}
            for item in items
            if isinstance(item, dict) and item.get("id")
        ]

    def artist_top_tracks(self, artist_id: str) -> List[Track]:
        data = self._api_request(
            f"artists/{artist_id}/top-tracks",
            params={"market": self.config.market},
        )
        items = data.get("tracks") or []
        return [t for t in (Track.from_api_response(item) for item in items if isinstance(item, dict)) if t]

    def audio_features(self, track_ids: List[str]) -> List[AudioFeatures]:
        """
        Fetch audio features for up to 100 tracks in one call.

        Ids Spotify has no features for are simply absent from the result.
        """
        if not track_ids:
            return []
        if len(track_ids) > MAX_FEATURE_IDS:
            raise ValueError(f"At most {MAX_FEATURE_IDS} ids per audio-features call")

        data = self._api_request("audio-features", params={"ids": ",".join(track_ids)})
        features = []
        for item in data.get("audio_features") or []:
            af = AudioFeatures.from_api_response(item) if isinstance(item, dict) else None
            if af:
                features.append(af)
        return features

    def audio_feature(self, track_id: str) -> Optional[AudioFeatures]:
        data = self._api_request(f"audio-features/{track_id}")
        return AudioFeatures.from_api_response(data)

    # =========================================================================
    # User & playlists
    # =========================================================================

    def current_user(self) -> Dict[str, Any]:
        data = self._api_request("me")
        return {
            "id": data.get("id"),
            "product": data.get("product"),
            "country": data.get("country"),
        }

    def create_playlist(
        self,
        name: str,
        uris: List[str],
        public: bool = False,
        description: str = "Created by Mood DJ",
    ) -> str:
        """
        Create a playlist for the current user and add tracks in order.

        Returns:
            The playlist's shareable URL.
        """
        user_id = self.current_user()["id"]
        playlist = self._api_request(
            f"users/{user_id}/playlists",
            method="POST",
            json={"name": name, "public": public, "description": description},
        )
        playlist_id = playlist["id"]

        for i in range(0, len(uris), MAX_PLAYLIST_ADD):
            self._api_request(
                f"playlists/{playlist_id}/tracks",
                method="POST",
                json={"uris": uris[i:i + MAX_PLAYLIST_ADD]},
            )

        logger.info(f"Created playlist '{name}' with {len(uris)} tracks")
        return playlist.get("external_urls", {}).get(
            "spotify", f"https://open.spotify.com/playlist/{playlist_id}"
        )
