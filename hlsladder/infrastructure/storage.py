"""S3 publishing for packaged HLS artifacts.

Credentials come from the process environment, optionally seeded from a
``.env`` file: ``AWS_ACCESS_KEY_ID_S3``, ``AWS_SECRET_ACCESS_KEY_S3`` and
``REGION``. When the keys are absent boto3's default credential chain is used.
"""

import logging
import mimetypes
import os
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError
from dotenv import load_dotenv

from hlsladder.config.models import StorageConfig
from hlsladder.domain.exceptions import StorageSetupError

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/mp2t",
}


def content_type_for(key: str) -> str:
    _, ext = os.path.splitext(key)
    if ext.lower() in CONTENT_TYPES:
        return CONTENT_TYPES[ext.lower()]
    guessed, _ = mimetypes.guess_type(key)
    return guessed or "application/octet-stream"


class S3Publisher:
    """Publishes artifacts to one bucket; usable as the uploader's publish callable."""

    def __init__(self, config: StorageConfig, client=None):
        if not config.bucket:
            raise ValueError("S3Publisher requires a bucket")
        self.config = config
        self._client = client

    @classmethod
    def from_env(cls, config: StorageConfig) -> "S3Publisher":
        if config.env_file and load_dotenv(config.env_file):
            logger.debug(f"Loaded environment from {config.env_file}")
        publisher = cls(config)
        try:
            publisher._get_client()
        except BotoCoreError as e:
            raise StorageSetupError(config.bucket, str(e)) from e
        logger.info("S3 client initialized successfully")
        return publisher

    def _get_client(self):
        """Get or create S3 client."""
        if self._client is None:
            client_kwargs = {"service_name": "s3"}

            region = self.config.region or os.getenv("REGION")
            if region:
                client_kwargs["region_name"] = region
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url

            access_key = os.getenv("AWS_ACCESS_KEY_ID_S3")
            secret_key = os.getenv("AWS_SECRET_ACCESS_KEY_S3")
            if access_key and secret_key:
                client_kwargs["aws_access_key_id"] = access_key
                client_kwargs["aws_secret_access_key"] = secret_key

            self._client = boto3.client(**client_kwargs)
        return self._client

    def object_key(self, key: str) -> str:
        prefix = self.config.prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    def put(self, key: str, body: BinaryIO) -> Optional[str]:
        """Uploads one object and returns its ETag. botocore errors propagate."""
        response = self._get_client().put_object(
            Bucket=self.config.bucket,
            Key=self.object_key(key),
            Body=body,
            ContentType=content_type_for(key),
        )
        return response.get("ETag", "").strip('"') or None

    __call__ = put
