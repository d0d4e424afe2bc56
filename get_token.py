#!/usr/bin/env python3
"""
Log in to Spotify once and save the token to S3 for the scheduled sync.

Starts a local callback server on the host and port of
SPOTIFY_REDIRECT_URI, which must also be registered in the Spotify
developer dashboard.
"""

import argparse
import sys

from dotenv import load_dotenv

from discover_sync.spotify_client import SpotifyClient
from discover_sync.token_acquisition import acquire_token
from discover_sync.token_store import TokenStore
from discover_sync.utils.config import load_config
from discover_sync.utils.logger import setup_logger


def main():
    parser = argparse.ArgumentParser(
        description="Authorize with Spotify and store the token in S3"
    )
    parser.add_argument(
        '--env-file',
        type=str,
        default='.env',
        help='Path to a .env file with settings (default: .env)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Seconds to wait for the login to complete (default: no limit)'
    )

    args = parser.parse_args()
    load_dotenv(args.env_file)
    logger = setup_logger()

    try:
        config = load_config(require_target_playlist=False)
        spotify_client = SpotifyClient(
            client_id=config.spotify_client_id,
            client_secret=config.spotify_client_secret,
            redirect_uri=config.redirect_uri
        )
        token_store = TokenStore(
            bucket=config.bucket,
            key=config.token_file,
            region=config.region
        )
        acquire_token(config, spotify_client, token_store, timeout=args.timeout)

    except KeyboardInterrupt:
        logger.error("Login interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Could not get token: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
