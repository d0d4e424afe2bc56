"""Serialization of the OAuth token blob kept in object storage."""

import json
from typing import Dict


REQUIRED_TOKEN_FIELDS = ('access_token', 'refresh_token')


class TokenDecodeError(Exception):
    """Exception raised when a stored token blob cannot be decoded."""
    pass


def serialize_token(token: Dict) -> bytes:
    """Encode a token dictionary as UTF-8 JSON."""
    return json.dumps(token).encode('utf-8')


def deserialize_token(blob: bytes) -> Dict:
    """
    Decode a token blob produced by serialize_token().

    Args:
        blob: Raw bytes (or text) read from storage

    Returns:
        Token dictionary in spotipy's token_info shape

    Raises:
        TokenDecodeError: If the blob is not a JSON object or lacks
            an access or refresh token
    """
    if isinstance(blob, bytes):
        try:
            blob = blob.decode('utf-8')
        except UnicodeDecodeError as e:
            raise TokenDecodeError(f"Token blob is not valid UTF-8: {e}") from e

    try:
        token = json.loads(blob)
    except ValueError as e:
        raise TokenDecodeError(f"Token blob is not valid JSON: {e}") from e

    if not isinstance(token, dict):
        raise TokenDecodeError("Token blob must be a JSON object")

    missing = [field for field in REQUIRED_TOKEN_FIELDS if not token.get(field)]
    if missing:
        raise TokenDecodeError(f"Token blob is missing: {', '.join(missing)}")

    return token


def token_changed(old: Dict, new: Dict) -> bool:
    """Whether the access token differs between two tokens."""
    return old.get('access_token') != new.get('access_token')
