"""Configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse


DEFAULT_REDIRECT_URI = "http://127.0.0.1:8080/callback"
CALLBACK_PATH = "/callback"


class ConfigError(Exception):
    """Exception raised when configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class Config:
    """Settings for one run, built once at startup."""

    bucket: str
    token_file: str
    region: str
    spotify_client_id: str
    spotify_client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    target_playlist: Optional[str] = None

    @property
    def callback_host(self) -> str:
        return urlparse(self.redirect_uri).hostname

    @property
    def callback_port(self) -> int:
        parsed = urlparse(self.redirect_uri)
        if parsed.port:
            return parsed.port
        return 443 if parsed.scheme == "https" else 80


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    require_target_playlist: bool = True
) -> Config:
    """
    Load configuration from the environment.

    Args:
        environ: Mapping to read from (default: os.environ)
        require_target_playlist: Whether TARGET_PLAYLIST must be set. The
            token tool does not need it.

    Returns:
        Config instance

    Raises:
        ConfigError: If required variables are missing or the redirect URI
            is unusable
    """
    if environ is None:
        environ = os.environ

    required_keys = [
        'BUCKET',
        'TOKEN_FILE',
        'REGION',
        'SPOTIFY_CLIENT_ID',
        'SPOTIFY_CLIENT_SECRET'
    ]
    if require_target_playlist:
        required_keys.append('TARGET_PLAYLIST')

    values = {}
    for key in required_keys + ['SPOTIFY_REDIRECT_URI']:
        value = environ.get(key, '').strip()
        if value:
            values[key] = value

    missing_keys = [key for key in required_keys if key not in values]
    if missing_keys:
        raise ConfigError(
            f"Missing required configuration: {', '.join(missing_keys)}"
        )

    redirect_uri = values.get('SPOTIFY_REDIRECT_URI', DEFAULT_REDIRECT_URI)
    parsed = urlparse(redirect_uri)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise ConfigError(f"Invalid SPOTIFY_REDIRECT_URI: {redirect_uri}")
    if parsed.path != CALLBACK_PATH:
        raise ConfigError(
            f"SPOTIFY_REDIRECT_URI must use the {CALLBACK_PATH} path, got: {redirect_uri}"
        )

    return Config(
        bucket=values['BUCKET'],
        token_file=values['TOKEN_FILE'],
        region=values['REGION'],
        spotify_client_id=values['SPOTIFY_CLIENT_ID'],
        spotify_client_secret=values['SPOTIFY_CLIENT_SECRET'],
        redirect_uri=redirect_uri,
        target_playlist=values.get('TARGET_PLAYLIST')
    )
