"""
Object store access for the bootstrap coordination keys.

Provides the small key/value interface the election, bootstrap and unseal
steps need, and an implementation backed by an S3 bucket through boto3.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ObjectNotFoundError, ObjectStoreError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStore(ABC):
    """Key-based put/get/exists/delete against a shared durable store."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Write ``data`` at ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Read the value stored at ``key``.

        Raises:
            ObjectNotFoundError: If no object exists at ``key``
            ObjectStoreError: On any other store failure
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if an object exists at ``key``."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object at ``key``."""
        pass


class S3ObjectStore(ObjectStore):
    """Object store backed by a single S3 bucket."""

    def __init__(
        self,
        bucket: str,
        region: str,
        endpoint: Optional[str] = None,
        client=None,
    ):
        """
        Initialize the S3 object store.

        Args:
            bucket: Bucket holding the coordination keys
            region: Region the bucket lives in
            endpoint: Optional S3-compatible endpoint URL
            client: Pre-built boto3 S3 client (mainly for tests)
        """
        self.bucket = bucket
        self.region = region
        self.endpoint = endpoint

        if client is None:
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint,
                config=Config(
                    signature_version="s3v4",
                    retries={"max_attempts": 3, "mode": "standard"},
                ),
            )
        self.client = client

    def check_access(self) -> None:
        """
        Verify the bucket exists and is reachable with the current credentials.

        Raises:
            ObjectStoreError: If the bucket cannot be reached
        """
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(
                f"Bucket {self.bucket} ({self.region}) is not accessible: {e}"
            ) from e

    def put(self, key: str, data: bytes) -> None:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to write s3://{self.bucket}/{key}: {e}", key) from e
        logger.debug(f"Wrote s3://{self.bucket}/{key}")

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"s3://{self.bucket}/{key} does not exist", key) from e
            raise ObjectStoreError(f"Failed to read s3://{self.bucket}/{key}: {e}", key) from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Failed to read s3://{self.bucket}/{key}: {e}", key) from e

    def exists(self, key: str) -> bool:
        try:
            response = self.client.list_objects_v2(
                Bucket=self.bucket, Prefix=key, MaxKeys=10
            )
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to list s3://{self.bucket}/{key}: {e}", key) from e
        return any(obj["Key"] == key for obj in response.get("Contents", []))

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to delete s3://{self.bucket}/{key}: {e}", key) from e
        logger.debug(f"Deleted s3://{self.bucket}/{key}")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))
