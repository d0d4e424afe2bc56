"""Synchronization service copying saved Discover Weekly tracks to a target playlist."""

import json
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from discover_sync.spotify_client import SpotifyClient
from discover_sync.token_store import TokenStore
from discover_sync.tokens import token_changed
from discover_sync.utils.config import Config
from discover_sync.utils.logger import get_logger


DISCOVER_WEEKLY = "Discover Weekly"


class PlaylistNotFoundError(Exception):
    """Exception raised when a playlist cannot be found by name."""
    pass


def resolve_playlist_ids(
    playlists: List[Dict],
    target_name: str,
    source_name: str = DISCOVER_WEEKLY
) -> Tuple[str, str]:
    """
    Find the source and target playlist IDs by exact display name.

    The first playlist with a matching name wins.

    Args:
        playlists: Playlist dictionaries in provider order
        target_name: Display name of the destination playlist
        source_name: Display name of the source playlist

    Returns:
        Tuple of (source_id, target_id)

    Raises:
        PlaylistNotFoundError: If either name has no match
    """
    source_id = None
    target_id = None

    for playlist in playlists:
        if source_id is None and playlist['name'] == source_name:
            source_id = playlist['id']
        if target_id is None and playlist['name'] == target_name:
            target_id = playlist['id']

    missing = []
    if source_id is None:
        missing.append(source_name)
    if target_id is None:
        missing.append(target_name)
    if missing:
        raise PlaylistNotFoundError(
            f"Did not find playlists: {', '.join(repr(name) for name in missing)}"
        )

    return source_id, target_id


def select_saved_tracks(track_ids: List[str], saved_flags: List[bool]) -> List[str]:
    """
    Keep the IDs whose library check came back true, in source order.

    Raises:
        ValueError: If the two lists are not the same length
    """
    if len(track_ids) != len(saved_flags):
        raise ValueError(
            f"Got {len(saved_flags)} library results for {len(track_ids)} tracks"
        )
    return [track_id for track_id, saved in zip(track_ids, saved_flags) if saved]


class SyncReport:
    """Report of one synchronization run."""

    def __init__(self):
        """Initialize empty sync report."""
        self.start_time = datetime.now()
        self.end_time = None
        self.dry_run = False
        self.token_refreshed = False
        self.source_tracks = 0
        self.saved_tracks = 0
        self.tracks_added = 0
        self.errors = []

    def add_error(self, error: str):
        """Record an error."""
        self.errors.append(error)

    def finalize(self):
        """Mark sync as complete."""
        self.end_time = datetime.now()

    def to_dict(self) -> Dict:
        """Convert report to dictionary."""
        duration = None
        if self.end_time:
            duration = (self.end_time - self.start_time).total_seconds()

        return {
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': duration,
            'dry_run': self.dry_run,
            'token_refreshed': self.token_refreshed,
            'source_tracks': self.source_tracks,
            'saved_tracks': self.saved_tracks,
            'tracks_added': self.tracks_added,
            'errors': self.errors
        }

    def save_to_file(self, filepath: str):
        """Save report to JSON file."""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)


class SyncService:
    """Service for copying saved Discover Weekly tracks into the target playlist."""

    def __init__(
        self,
        config: Config,
        spotify_client: Optional[SpotifyClient] = None,
        token_store: Optional[TokenStore] = None
    ):
        """
        Initialize sync service.

        Args:
            config: Run configuration
            spotify_client: Optional client (built from config if omitted)
            token_store: Optional token store (built from config if omitted)
        """
        self.config = config
        self.spotify_client = spotify_client or SpotifyClient(
            client_id=config.spotify_client_id,
            client_secret=config.spotify_client_secret,
            redirect_uri=config.redirect_uri
        )
        self.token_store = token_store or TokenStore(
            bucket=config.bucket,
            key=config.token_file,
            region=config.region
        )
        self.logger = get_logger()
        self.report = SyncReport()

    def _step(self, description: str, func, *args, **kwargs):
        """Run one external call, logging and recording the failing step."""
        try:
            return func(*args, **kwargs)
        except Exception as e:
            self.logger.error(f"Could not {description}: {e}")
            self.report.add_error(f"Could not {description}: {e}")
            raise

    def refresh_token(self) -> Dict:
        """
        Load the stored token and re-persist it if the client refreshed it.

        Returns:
            The token the client is using

        Raises:
            StorageError: If the token cannot be downloaded or saved
            TokenDecodeError: If the stored token is invalid
        """
        stored = self._step("download token", self.token_store.download)
        self.spotify_client.authenticate_with_token(stored)
        current = self._step("retrieve token from client", self.spotify_client.current_token)

        if token_changed(stored, current):
            self.logger.info("Got refreshed token, saving it")
            self._step("save refreshed token", self.token_store.upload, current)
            self.report.token_refreshed = True
        else:
            self.logger.debug("Token is still valid, not saving")

        return current

    def sync_discover_weekly(self, dry_run: bool = False) -> SyncReport:
        """
        Copy tracks saved in the library from Discover Weekly to the target playlist.

        Args:
            dry_run: If True, don't add tracks

        Returns:
            The run report
        """
        target_name = self.config.target_playlist
        self.report.dry_run = dry_run

        user = self._step("get user", self.spotify_client.current_user)
        self.logger.info(f"Logged in as: {user['id']}")

        playlists = self._step("get playlists", self.spotify_client.list_playlists, user['id'])
        source_id, target_id = self._step(
            "find playlists", resolve_playlist_ids, playlists, target_name
        )

        track_ids = self._step(
            f"get {DISCOVER_WEEKLY} tracks", self.spotify_client.list_track_ids, source_id
        )
        self.report.source_tracks = len(track_ids)

        if track_ids:
            saved_flags = self._step(
                "check if tracks exist in library", self.spotify_client.library_contains, track_ids
            )
            add_ids = self._step(
                "match library results", select_saved_tracks, track_ids, saved_flags
            )
        else:
            self.logger.warning(f"No tracks found in playlist: {DISCOVER_WEEKLY}")
            add_ids = []
        self.report.saved_tracks = len(add_ids)

        # TODO: skip tracks that are already in the target playlist
        if dry_run:
            self.logger.info(f"DRY RUN MODE - would add {len(add_ids)} tracks to playlist {target_name}")
            return self.report

        if add_ids:
            self._step("add tracks to playlist", self.spotify_client.add_tracks, target_id, add_ids)
            self.report.tracks_added = len(add_ids)

        self.logger.info(f"Successfully added {self.report.tracks_added} tracks to playlist {target_name}")
        return self.report

    def run(self, dry_run: bool = False) -> SyncReport:
        """
        Refresh the token then sync the playlists.

        Returns:
            The finalized run report
        """
        self.logger.info("Starting Discover Weekly sync...")
        self.refresh_token()
        self.sync_discover_weekly(dry_run=dry_run)
        self.report.finalize()
        return self.report
