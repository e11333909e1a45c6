#!/usr/bin/env python3
"""
Command-line recommendations.

Bootstraps a credential from a long-lived refresh token and prints the
ranked tracks for a mood:

    SPOTIFY_REFRESH_TOKEN=... python -m mood_dj.scripts.recommend happy --mode change
"""

import argparse
import json
import logging
import os
import sys

from mood_dj.config import EngineConfig, SpotifyConfig
from mood_dj.core import (
    CredentialManager,
    Mode,
    MoodDJError,
    RecommendationEngine,
    SpotifyCatalogClient,
    SpotifyTokenClient,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Recommend tracks for a mood")
    parser.add_argument("mood", help="Mood label (happy, sad, angry, surprised, fearful, disgusted, neutral)")
    parser.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.MATCH.value)
    parser.add_argument("--limit", type=int, default=None, help="Candidate pool size (20-50)")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    refresh_token = os.getenv("SPOTIFY_REFRESH_TOKEN")
    if not refresh_token:
        logger.error("Set SPOTIFY_REFRESH_TOKEN to a refresh token from a previous login")
        return 2

    config = SpotifyConfig()
    token_client = SpotifyTokenClient(config)
    credentials = CredentialManager(token_client)
    catalog = SpotifyCatalogClient(credentials.get_auth_token, config)

    try:
        response = token_client.refresh(refresh_token)
        response.setdefault("refresh_token", refresh_token)
        credentials.set_credential(response)

        engine = RecommendationEngine(catalog, credentials, config=EngineConfig())
        result = engine.build_recommendation(args.mood, args.mode, args.limit)
    except MoodDJError as e:
        logger.error(f"Recommendation failed ({e.code}): {e}")
        return 1
    finally:
        catalog.close()
        token_client.close()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print(f"{result.mood} ({result.mode.value}) via {result.stage}")
    for i, scored in enumerate(result.scored, 1):
        track = scored.track
        print(f"{i:2d}. {track.name} - {', '.join(track.artists)}  [{scored.score:+.3f}]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
