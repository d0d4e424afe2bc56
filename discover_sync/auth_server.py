"""Local OAuth callback server for the one-time token tool."""

import threading
import time
from concurrent.futures import Future, InvalidStateError

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from discover_sync.spotify_client import SpotifyClient
from discover_sync.utils.config import CALLBACK_PATH
from discover_sync.utils.logger import get_logger


logger = get_logger()


class AuthorizationError(Exception):
    """Exception raised when Spotify does not grant a token."""
    pass


class StateMismatchError(AuthorizationError):
    """Exception raised when the callback state does not match this run."""
    pass


class CallbackServerError(Exception):
    """Exception raised when the callback server cannot listen or stops early."""
    pass


def create_callback_app(spotify_client: SpotifyClient, expected_state: str, result: Future) -> FastAPI:
    """
    Build the callback application.

    The first callback settles ``result``: with the token on success, or
    with an AuthorizationError. Later callbacks get a 404. Callbacks are
    handled one at a time.

    Args:
        spotify_client: Client used for the code exchange
        expected_state: Anti-forgery state generated for this run
        result: One-shot future handed back to the waiting flow
    """
    app = FastAPI(title="Spotify token callback", docs_url=None, redoc_url=None, openapi_url=None)
    lock = threading.Lock()

    def fail(error: Exception, status_code: int, body: str) -> PlainTextResponse:
        logger.error(str(error))
        result.set_exception(error)
        return PlainTextResponse(body, status_code=status_code)

    @app.get(CALLBACK_PATH, response_class=PlainTextResponse)
    def callback(code: str = None, state: str = None, error: str = None):
        """Handle Spotify OAuth callback."""
        # Sync routes run in a threadpool; the check and the settle must not interleave
        with lock:
            if result.done():
                return PlainTextResponse("Not Found", status_code=404)

            if state != expected_state:
                return fail(
                    StateMismatchError(f"State mismatch: {state} != {expected_state}"),
                    404, "Not Found"
                )

            if error or not code:
                return fail(
                    AuthorizationError(f"Spotify authorization failed: {error or 'no code returned'}"),
                    403, "Couldn't get token"
                )

            try:
                token = spotify_client.exchange_code(code)
            except Exception as e:
                return fail(AuthorizationError(f"Token exchange failed: {e}"), 403, "Couldn't get token")

            result.set_result(token)
            return "Login Completed!"

    return app


class CallbackServer:
    """
    Runs the callback application with uvicorn on a background thread.

    If the server dies (for example the port is taken), the error is raised
    from start() and also set on ``result`` so a waiting flow does not hang.
    """

    STARTUP_TIMEOUT = 10

    def __init__(self, app: FastAPI, host: str = "127.0.0.1", port: int = 8080, result: Future = None):
        self.host = host
        self.port = port
        self.result = result
        self.error = None
        self.server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
        self.thread = threading.Thread(target=self._serve, name="oauth-callback", daemon=True)

    def _serve(self):
        try:
            self.server.run()
        except BaseException as e:
            # uvicorn calls sys.exit() when it cannot bind
            self.error = CallbackServerError(
                f"Callback server on {self.host}:{self.port} could not run: {e!r}"
            )
        else:
            if self.server.should_exit:
                return
            self.error = CallbackServerError(
                f"Callback server on {self.host}:{self.port} stopped unexpectedly"
            )

        logger.error(str(self.error))
        if self.result is not None:
            try:
                self.result.set_exception(self.error)
            except InvalidStateError:
                # A callback already settled the flow
                logger.debug("Login already completed before the server stopped")

    def start(self):
        """
        Start the server and wait until it listens.

        Raises:
            CallbackServerError: If the server fails or does not come up in time
        """
        self.thread.start()

        deadline = time.monotonic() + self.STARTUP_TIMEOUT
        while not self.server.started and self.thread.is_alive() and time.monotonic() < deadline:
            time.sleep(0.05)

        if self.error is not None:
            raise self.error
        if not self.server.started:
            self.server.should_exit = True
            raise CallbackServerError(
                f"Callback server on {self.host}:{self.port} did not start within {self.STARTUP_TIMEOUT}s"
            )

        logger.debug(f"Listening for the OAuth callback on {self.host}:{self.port}")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=5)
