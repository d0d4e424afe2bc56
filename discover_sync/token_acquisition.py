"""Interactive flow that obtains a Spotify token and saves it to S3."""

import secrets
from concurrent.futures import Future
from typing import Dict, Optional

from discover_sync.auth_server import CallbackServer, create_callback_app
from discover_sync.spotify_client import SpotifyClient
from discover_sync.token_store import TokenStore
from discover_sync.utils.config import Config
from discover_sync.utils.logger import get_logger


logger = get_logger()


def acquire_token(
    config: Config,
    spotify_client: SpotifyClient,
    token_store: TokenStore,
    timeout: Optional[float] = None,
    server_factory=CallbackServer
) -> Dict:
    """
    Run the authorization-code flow and persist the resulting token.

    Blocks until Spotify redirects the browser to the callback server.

    Args:
        config: Run configuration (redirect URI gives host and port)
        spotify_client: Client used to build the login URL and exchange the code
        token_store: Destination of the token
        timeout: Seconds to wait for the callback (None waits forever)
        server_factory: Callable building the callback server

    Returns:
        The saved token

    Raises:
        CallbackServerError: If the callback server cannot listen or dies
        StateMismatchError: If the callback carries a different state
        AuthorizationError: If Spotify does not grant a token
        concurrent.futures.TimeoutError: If the callback does not arrive in time
        StorageError: If the token cannot be saved
    """
    state = secrets.token_urlsafe(16)
    result: Future = Future()

    app = create_callback_app(spotify_client, state, result)
    server = server_factory(app, host=config.callback_host, port=config.callback_port, result=result)
    server.start()
    try:
        url = spotify_client.get_authorize_url(state)
        logger.info(f"Please log in to Spotify by visiting the following page in your browser: {url}")
        token = result.result(timeout=timeout)
    finally:
        server.stop()

    token_store.upload(token)

    spotify_client.authenticate_with_token(token)
    user = spotify_client.current_user()
    logger.info(f"You are logged in as: {user['id']}")
    return token
