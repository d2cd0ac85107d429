"""
Object Storage Service - S3-compatible storage for evidence images
"""
from typing import Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from atams.logging import get_logger
from app.core.config import settings

logger = get_logger(__name__)


class ObjectStorageClient:
    def __init__(
        self,
        bucket: str,
        region: str,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None
    ):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self._session = None
        self._s3 = None

    async def _get_s3_client(self):
        """
        Get or create the S3 client

        Must be released with close(); the application lifespan does this
        on shutdown.
        """
        if self._s3 is None:
            self._session = aioboto3.Session()
            client_kwargs = {"region_name": self.region}
            if self.endpoint_url:
                client_kwargs["endpoint_url"] = self.endpoint_url
            self._s3 = await self._session.client("s3", **client_kwargs).__aenter__()
        return self._s3

    def public_url(self, key: str) -> str:
        """Stable URL under which a stored object is referenced by records"""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def upload_file(self, key: str, file_content: bytes, content_type: str) -> Optional[str]:
        """
        Upload file directly to S3

        Returns:
            The object's public URL, or None if the upload failed
        """
        try:
            s3 = await self._get_s3_client()
            await s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file_content,
                ContentType=content_type,
            )
            logger.info(f"Uploaded to S3: {key} ({len(file_content)} bytes)")
            return self.public_url(key)
        except (ClientError, BotoCoreError):
            logger.exception(f"Failed to upload: {key}")
            return None

    async def close(self):
        if self._s3 is not None:
            await self._s3.__aexit__(None, None, None)
            self._s3 = None
            self._session = None


storage_client = ObjectStorageClient(
    bucket=settings.EVIDENCE_BUCKET,
    region=settings.AWS_REGION,
    endpoint_url=settings.AWS_ENDPOINT_URL,
    public_base_url=settings.EVIDENCE_PUBLIC_BASE_URL,
)
