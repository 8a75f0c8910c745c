"""
Storage abstraction for the photos bucket (S3-compatible) and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from advent_backend.errors import BackendError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def list_objects(self, prefix: str = "", limit: int = 100) -> list[str]:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def list_objects(self, prefix: str = "", limit: int = 100) -> list[str]:
        keys = sorted(k for k in self.stored_objects if k.startswith(prefix))
        return keys[:limit]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for the hosted storage bucket.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        # Path-style addressing is what the hosted S3 gateway expects.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def list_objects(self, prefix: str = "", limit: int = 100) -> list[str]:
        try:
            response = self._client.list_objects_v2(
                Bucket=self.bucket, Prefix=prefix, MaxKeys=limit
            )
        except (BotoCoreError, ClientError) as exc:
            raise BackendError("storage", str(exc)) from exc
        return [item["Key"] for item in response.get("Contents", [])]
