"""Spotify API client for the token flows and the Discover Weekly sync."""

from typing import Dict, List, Optional
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth
from discover_sync.utils.logger import get_logger


logger = get_logger()

# Spotify rejects larger batches on these endpoints
CONTAINS_BATCH_SIZE = 50
ADD_BATCH_SIZE = 100


def _chunks(items: List, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SpotifyClient:
    """Client for interacting with Spotify Web API."""

    SCOPE = "user-library-read playlist-read-private playlist-modify-private playlist-modify-public"

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        """
        Initialize Spotify client.

        Args:
            client_id: Spotify application client ID
            client_secret: Spotify application client secret
            redirect_uri: OAuth redirect URI
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.cache_handler: Optional[MemoryCacheHandler] = None
        self.auth_manager: Optional[SpotifyOAuth] = None
        self.sp: Optional[spotipy.Spotify] = None

    def _build_auth_manager(self, cache_handler: MemoryCacheHandler, scope: str = None) -> SpotifyOAuth:
        return SpotifyOAuth(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            scope=scope or self.SCOPE,
            cache_handler=cache_handler,
            open_browser=False
        )

    def _require_auth(self):
        if not self.sp:
            raise Exception("Not authenticated. Call authenticate_with_token() first.")

    def get_authorize_url(self, state: str) -> str:
        """Build the Spotify login URL for an authorization-code flow."""
        return self._build_auth_manager(MemoryCacheHandler()).get_authorize_url(state=state)

    def exchange_code(self, code: str) -> Dict:
        """
        Exchange an authorization code for a token.

        Args:
            code: Code received on the OAuth redirect

        Returns:
            Token dictionary (access_token, refresh_token, token_type,
            expires_in, expires_at, scope)

        Raises:
            spotipy.oauth2.SpotifyOauthError: If the exchange is rejected
        """
        cache_handler = MemoryCacheHandler()
        auth_manager = self._build_auth_manager(cache_handler)
        auth_manager.get_access_token(code=code, as_dict=False, check_cache=False)
        return cache_handler.get_cached_token()

    def authenticate_with_token(self, token: Dict) -> None:
        """
        Build an API client from a stored token.

        The auth manager refreshes the access token with the embedded
        refresh token whenever it is expired. A token without an expiry
        is treated as expired.

        Args:
            token: Token dictionary as produced by exchange_code()
        """
        seeded = dict(token)
        seeded.setdefault('scope', self.SCOPE)
        seeded.setdefault('expires_at', 0)

        self.cache_handler = MemoryCacheHandler(token_info=seeded)
        # Scope must match the token's, otherwise spotipy falls back to an interactive prompt
        self.auth_manager = self._build_auth_manager(self.cache_handler, scope=seeded['scope'])
        self.sp = spotipy.Spotify(auth_manager=self.auth_manager)

    def current_token(self) -> Dict:
        """
        Return the token the client uses now, refreshing it if expired.

        Raises:
            Exception: If not authenticated or no usable token is cached
        """
        self._require_auth()

        token = self.auth_manager.validate_token(self.cache_handler.get_cached_token())
        if token is None:
            raise Exception("No valid Spotify token available")
        return token

    def current_user(self) -> Dict:
        """Return the profile of the authenticated user."""
        self._require_auth()
        return self.sp.current_user()

    def list_playlists(self, user_id: str, limit: int = 50) -> List[Dict]:
        """
        List the first page of a user's playlists.

        Only one page is fetched; a warning is logged when Spotify reports
        more.

        Args:
            user_id: Spotify user ID
            limit: Page size (Spotify maximum is 50)

        Returns:
            List of playlist dictionaries with keys: id, name, tracks_count
        """
        self._require_auth()

        results = self.sp.user_playlists(user_id, limit=limit)

        playlists = []
        for item in results['items']:
            if not item:
                continue
            playlist = {
                'id': item['id'],
                'name': item['name'],
                'tracks_count': (item.get('tracks') or {}).get('total', 0)
            }
            playlists.append(playlist)
            logger.debug(f"Found playlist: {playlist['name']} ({playlist['tracks_count']} tracks)")

        if results.get('next'):
            logger.warning(
                f"User has more than {limit} playlists; only the first {limit} were searched"
            )

        logger.info(f"Retrieved {len(playlists)} playlists from Spotify")
        return playlists

    def list_track_ids(self, playlist_id: str, limit: int = 100) -> List[str]:
        """
        List track IDs from the first page of a playlist, in playlist order.

        Entries without a catalog ID (local files, removed tracks) are skipped.

        Args:
            playlist_id: Spotify playlist ID
            limit: Page size (Spotify maximum is 100)

        Returns:
            List of Spotify track IDs
        """
        self._require_auth()

        results = self.sp.playlist_items(
            playlist_id,
            fields='items(track(id)),next',
            limit=limit,
            additional_types=('track',)
        )

        track_ids = []
        for item in results['items']:
            track_data = item.get('track')
            if not track_data or not track_data.get('id'):
                continue
            track_ids.append(track_data['id'])

        if results.get('next'):
            logger.warning(
                f"Playlist {playlist_id} has more than {limit} tracks; only the first {limit} were read"
            )

        logger.info(f"Retrieved {len(track_ids)} tracks from playlist {playlist_id}")
        return track_ids

    def library_contains(self, track_ids: List[str]) -> List[bool]:
        """
        Check which tracks are saved in the user's library.

        Returns:
            One boolean per input ID, in input order
        """
        self._require_auth()

        saved = []
        for chunk in _chunks(track_ids, CONTAINS_BATCH_SIZE):
            saved.extend(self.sp.current_user_saved_tracks_contains(tracks=chunk))
        return saved

    def add_tracks(self, playlist_id: str, track_ids: List[str]) -> int:
        """
        Append tracks to a playlist.

        No check is made for tracks already present in the playlist.

        Returns:
            Number of tracks submitted
        """
        self._require_auth()

        for chunk in _chunks(track_ids, ADD_BATCH_SIZE):
            self.sp.playlist_add_items(playlist_id, chunk)
        return len(track_ids)
