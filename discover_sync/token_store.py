"""S3 storage for the persisted Spotify token."""

from typing import Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from discover_sync.tokens import deserialize_token, serialize_token
from discover_sync.utils.logger import get_logger


logger = get_logger()


class StorageError(Exception):
    """Exception raised when the token object cannot be read or written."""
    pass


class TokenStore:
    """A single JSON token object identified by bucket and key."""

    def __init__(self, bucket: str, key: str, region: str, s3_client=None):
        """
        Initialize token store.

        Args:
            bucket: S3 bucket name
            key: Object key of the token file
            region: AWS region of the bucket
            s3_client: Optional preconfigured boto3 S3 client
        """
        self.bucket = bucket
        self.key = key
        self.region = region
        self.s3 = s3_client or boto3.client('s3', region_name=region)

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def download(self) -> Dict:
        """
        Download and decode the stored token.

        Returns:
            Token dictionary

        Raises:
            StorageError: If the object cannot be fetched
            TokenDecodeError: If the object is not a valid token
        """
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=self.key)
            blob = response['Body'].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to download token from {self.location}: {e}") from e

        token = deserialize_token(blob)
        logger.debug(f"Loaded token from {self.location}")
        return token

    def upload(self, token: Dict) -> None:
        """
        Serialize the token and overwrite the stored object.

        Raises:
            StorageError: If the object cannot be written
        """
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=self.key,
                Body=serialize_token(token),
                ContentType='application/json'
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to write token to {self.location}: {e}") from e

        logger.info(f"Token saved to {self.location}")
