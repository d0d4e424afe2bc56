"""Unit tests for the S3 token store."""

import json
import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import ClientError, EndpointConnectionError
from discover_sync.token_store import StorageError, TokenStore
from discover_sync.tokens import TokenDecodeError, serialize_token


TOKEN = {
    'access_token': 'access-1',
    'token_type': 'Bearer',
    'expires_at': 1767225600,
    'refresh_token': 'refresh-1'
}


@pytest.fixture
def mock_s3():
    """Create a mock S3 client."""
    return Mock()


@pytest.fixture
def token_store(mock_s3):
    """Create a TokenStore backed by the mock client."""
    return TokenStore(bucket='token-bucket', key='spotify/token.json', region='us-east-1', s3_client=mock_s3)


def _body(blob):
    body = Mock()
    body.read.return_value = blob
    return {'Body': body}


class TestTokenStore:
    """Test cases for TokenStore."""

    @patch('discover_sync.token_store.boto3.client')
    def test_init_builds_regional_client(self, mock_client):
        """Test that a client for the configured region is created."""
        store = TokenStore(bucket='b', key='k', region='eu-west-1')

        mock_client.assert_called_once_with('s3', region_name='eu-west-1')
        assert store.s3 == mock_client.return_value

    def test_location(self, token_store):
        """Test the printable object location."""
        assert token_store.location == 's3://token-bucket/spotify/token.json'

    def test_download_success(self, token_store, mock_s3):
        """Test downloading a stored token."""
        mock_s3.get_object.return_value = _body(serialize_token(TOKEN))

        token = token_store.download()

        assert token == TOKEN
        mock_s3.get_object.assert_called_once_with(Bucket='token-bucket', Key='spotify/token.json')

    def test_download_client_error(self, token_store, mock_s3):
        """Test that an S3 error becomes a StorageError."""
        mock_s3.get_object.side_effect = ClientError(
            {'Error': {'Code': 'NoSuchKey', 'Message': 'The specified key does not exist.'}},
            'GetObject'
        )

        with pytest.raises(StorageError, match="Failed to download token"):
            token_store.download()

    def test_download_connection_error(self, token_store, mock_s3):
        """Test that a transport error becomes a StorageError."""
        mock_s3.get_object.side_effect = EndpointConnectionError(endpoint_url='https://s3.amazonaws.com')

        with pytest.raises(StorageError):
            token_store.download()

    def test_download_corrupt_blob(self, token_store, mock_s3):
        """Test that an undecodable blob aborts with TokenDecodeError."""
        mock_s3.get_object.return_value = _body(b'corrupt')

        with pytest.raises(TokenDecodeError):
            token_store.download()

    def test_upload_success(self, token_store, mock_s3):
        """Test writing the token as JSON."""
        token_store.upload(TOKEN)

        mock_s3.put_object.assert_called_once()
        kwargs = mock_s3.put_object.call_args.kwargs
        assert kwargs['Bucket'] == 'token-bucket'
        assert kwargs['Key'] == 'spotify/token.json'
        assert kwargs['ContentType'] == 'application/json'
        assert json.loads(kwargs['Body']) == TOKEN

    def test_upload_failure(self, token_store, mock_s3):
        """Test that a failed write becomes a StorageError."""
        mock_s3.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}},
            'PutObject'
        )

        with pytest.raises(StorageError, match="Failed to write token"):
            token_store.upload(TOKEN)
