"""
Mood DJ REST API Server.

FastAPI application exposing the recommendation core to the browser
client: Spotify login, mood sample ingestion from the camera loop, ranked
recommendations and playlist creation.

Service objects (credential manager, catalog, engine, aggregator) live on
app.state and are injected into endpoints with Depends.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import EngineConfig, SpotifyConfig, allowed_origins
from ..core import (
    AuthRefreshFailed,
    CredentialManager,
    EmotionAggregator,
    EmotionSample,
    Mode,
    MoodDJError,
    RecommendationEngine,
    SpotifyCatalogClient,
    SpotifyTokenClient,
    Unauthorized,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

RECONNECT_MESSAGE = "Not authorized. Click Re-connect Spotify."


# =============================================================================
# Pydantic Models for API
# =============================================================================


class CallbackRequest(BaseModel):
    """Authorization code posted back by the browser after Spotify consent."""

    code: str = Field(..., min_length=1, description="Spotify authorization code")


class EmotionSampleRequest(BaseModel):
    """One classified camera frame."""

    label: str = Field(..., description="Emotion label from the classifier")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Classifier confidence")
    timestamp: Optional[float] = Field(None, description="Capture time (epoch seconds)")


class MoodReadingResponse(BaseModel):
    short_term: str
    long_term: str
    timestamp: float


class PlaylistRequest(BaseModel):
    """Request to save ranked tracks as a playlist."""

    uris: List[str] = Field(..., min_length=1, description="Track URIs in playlist order")
    name: str = Field("Mood DJ", description="Playlist name")
    public: bool = Field(False)


class PlaylistResponse(BaseModel):
    url: str
    track_count: int


class HealthResponse(BaseModel):
    status: str
    version: str
    authorized: bool


# =============================================================================
# Dependencies
# =============================================================================


def get_credentials(request: Request) -> CredentialManager:
    return request.app.state.credentials


def get_token_client(request: Request) -> SpotifyTokenClient:
    return request.app.state.token_client


def get_catalog(request: Request) -> SpotifyCatalogClient:
    return request.app.state.catalog


def get_engine(request: Request) -> RecommendationEngine:
    return request.app.state.engine


def get_aggregator(request: Request) -> EmotionAggregator:
    return request.app.state.aggregator


def _upstream_http_error(e: UpstreamUnavailable) -> HTTPException:
    status = e.status_code if e.status_code and 400 <= e.status_code < 600 else 502
    return HTTPException(status_code=status, detail={"error": str(e), **e.details})


# =============================================================================
# Application Factory
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Mood DJ API starting up")

    yield

    logger.info("Mood DJ API shutting down")
    for client in (app.state.catalog, app.state.token_client):
        close = getattr(client, "close", None)
        if close:
            close()


def create_app(
    spotify_config: Optional[SpotifyConfig] = None,
    engine_config: Optional[EngineConfig] = None,
    token_client: Optional[SpotifyTokenClient] = None,
    credentials: Optional[CredentialManager] = None,
    catalog: Optional[Any] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        spotify_config: Spotify settings (defaults from environment).
        engine_config: Recommendation pipeline tunables.
        token_client: Token exchanger override.
        credentials: Credential manager override.
        catalog: Catalog client override, bound to the same credentials.

    Returns:
        Configured FastAPI application.
    """
    spotify_config = spotify_config or SpotifyConfig()

    app = FastAPI(
        title="Mood DJ API",
        description="Emotion-aware playlist recommendations",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    token_client = token_client or SpotifyTokenClient(spotify_config)
    credentials = credentials or CredentialManager(token_client)
    catalog = catalog or SpotifyCatalogClient(credentials.get_auth_token, spotify_config)

    app.state.spotify_config = spotify_config
    app.state.token_client = token_client
    app.state.credentials = credentials
    app.state.catalog = catalog
    app.state.engine = RecommendationEngine(catalog, credentials, config=engine_config)
    app.state.aggregator = EmotionAggregator()

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(recommendations_router)
    app.include_router(mood_router)
    app.include_router(playlist_router)

    return app


# =============================================================================
# Routers
# =============================================================================

health_router = APIRouter(tags=["health"])
auth_router = APIRouter(tags=["auth"])
recommendations_router = APIRouter(prefix="/api", tags=["recommendations"])
mood_router = APIRouter(prefix="/api/mood", tags=["mood"])
playlist_router = APIRouter(prefix="/api", tags=["playlists"])


# =============================================================================
# Health Endpoints
# =============================================================================


@health_router.get("/health", response_model=HealthResponse)
def health_check(credentials: CredentialManager = Depends(get_credentials)):
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=__version__,
        authorized=credentials.is_authorized,
    )


# =============================================================================
# Auth Endpoints
# =============================================================================


@auth_router.get("/login")
def login(token_client: SpotifyTokenClient = Depends(get_token_client)):
    """Redirect to Spotify's consent page."""
    return RedirectResponse(token_client.authorize_url())


@auth_router.post("/callback")
def callback(
    request: CallbackRequest,
    token_client: SpotifyTokenClient = Depends(get_token_client),
    credentials: CredentialManager = Depends(get_credentials),
):
    """Exchange the authorization code and install the credential."""
    try:
        credentials.set_credential(token_client.exchange_code(request.code))
    except MoodDJError as e:
        logger.error(f"Callback failed: {e}")
        raise HTTPException(status_code=400, detail="Token exchange failed")
    return {"ok": True}


@auth_router.get("/api/me")
def me(catalog: SpotifyCatalogClient = Depends(get_catalog)):
    """Basic profile of the connected Spotify user."""
    try:
        return catalog.current_user()
    except (Unauthorized, AuthRefreshFailed):
        raise HTTPException(status_code=401, detail=RECONNECT_MESSAGE)
    except UpstreamUnavailable as e:
        raise _upstream_http_error(e)


# =============================================================================
# Recommendation Endpoints
# =============================================================================


@recommendations_router.get("/moods")
def list_moods(engine: RecommendationEngine = Depends(get_engine)) -> Dict[str, Any]:
    """Known moods and their target feature vectors."""
    catalog = engine.mood_catalog
    return {label: catalog.get(label).to_dict() for label in catalog.labels()}


@recommendations_router.get("/recommendations")
def recommendations(
    mood: str = Query("neutral", description="Mood label"),
    mode: Mode = Query(Mode.MATCH, description="match or change"),
    limit: Optional[int] = Query(None, ge=1, le=50, description="Candidate pool size"),
    engine: RecommendationEngine = Depends(get_engine),
):
    """Ranked tracks for a mood.

    Only authorization problems produce an error; everything else degrades
    to a (possibly generic) non-empty list.
    """
    try:
        return engine.build_recommendation(mood, mode, limit).to_dict()
    except (Unauthorized, AuthRefreshFailed) as e:
        logger.info(f"Recommendation refused: {e.code}")
        raise HTTPException(status_code=401, detail=RECONNECT_MESSAGE)
    except Exception as e:
        logger.error(f"Recommendation error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# =============================================================================
# Mood Endpoints
# =============================================================================


@mood_router.post("/samples")
def ingest_sample(
    request: EmotionSampleRequest,
    aggregator: EmotionAggregator = Depends(get_aggregator),
):
    """Feed one classified frame into the aggregator."""
    kwargs = {"timestamp": request.timestamp} if request.timestamp is not None else {}
    sample = EmotionSample(request.label, request.confidence, **kwargs)
    return {"accepted": aggregator.ingest(sample)}


@mood_router.post("/tick", response_model=MoodReadingResponse)
def tick(
    now: Optional[float] = Query(None, description="Tick time (epoch seconds)"),
    aggregator: EmotionAggregator = Depends(get_aggregator),
):
    """Advance the aggregator and return the fresh reading."""
    return MoodReadingResponse(**aggregator.tick(now).to_dict())


@mood_router.get("/current", response_model=MoodReadingResponse)
def current_mood(aggregator: EmotionAggregator = Depends(get_aggregator)):
    """Reading from the most recent tick."""
    return MoodReadingResponse(**aggregator.current().to_dict())


# =============================================================================
# Playlist Endpoints
# =============================================================================


@playlist_router.post("/create-playlist", response_model=PlaylistResponse)
def create_playlist(
    request: PlaylistRequest,
    catalog: SpotifyCatalogClient = Depends(get_catalog),
):
    """Save an ordered list of track URIs as a playlist."""
    try:
        url = catalog.create_playlist(request.name, request.uris, public=request.public)
    except (Unauthorized, AuthRefreshFailed):
        raise HTTPException(status_code=401, detail=RECONNECT_MESSAGE)
    except UpstreamUnavailable as e:
        logger.error(f"Playlist creation failed: {e}")
        raise _upstream_http_error(e)
    return PlaylistResponse(url=url, track_count=len(request.uris))


# =============================================================================
# Default Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """CLI entry point for mood-dj-server command."""
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Mood DJ API Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5174, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    uvicorn.run(
        "mood_dj.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
