"""
Storage utilities.

Artifact storage over Supabase Storage. Objects are addressed by canonical
bucket-path locators ("gs://bucket/path/to/object"); the bucket part maps to a
Supabase Storage bucket of the same name.
"""

import asyncio
import mimetypes
from typing import Optional, Any, Callable, Tuple
from supabase import create_client
from shared.config import settings
from shared.errors import RetryableError, ConfigError
from shared.retry import retry_with_backoff
from shared.logging import get_logger

logger = get_logger("storage")


def split_locator(locator: str) -> Tuple[str, str]:
    """
    Split a canonical bucket-path locator into (bucket, path).

    Raises:
        ValueError: If the locator does not use the configured scheme
    """
    prefix = f"{settings.storage_scheme}://"
    if not locator.startswith(prefix):
        raise ValueError(f"Not a {prefix} locator: {locator}")
    bucket, _, path = locator[len(prefix):].partition("/")
    if not bucket or not path:
        raise ValueError(f"Locator must name a bucket and an object path: {locator}")
    return bucket, path


def make_locator(bucket: str, path: str) -> str:
    return f"{settings.storage_scheme}://{bucket}/{path.lstrip('/')}"


class StorageClient:
    """Supabase Storage client for artifact upload and signed URLs."""

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def storage(self) -> Any:
        if self._client is None:
            try:
                self._client = create_client(
                    settings.supabase_url,
                    settings.supabase_service_key
                )
            except Exception as e:
                raise ConfigError(f"Failed to initialize storage client: {str(e)}") from e
        return self._client.storage

    async def _execute_sync(self, func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @staticmethod
    def _detect_content_type(path: str, default: Optional[str] = None) -> str:
        content_type, _ = mimetypes.guess_type(path)
        return content_type or default or "application/octet-stream"

    @retry_with_backoff(max_attempts=3, base_delay=2)
    async def upload_file(
        self,
        bucket: str,
        path: str,
        file_data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Upload bytes to Supabase Storage.

        Returns:
            Canonical locator of the stored object

        Raises:
            RetryableError: If upload fails after retries
        """
        content_type = content_type or self._detect_content_type(path)
        try:
            await self._execute_sync(
                lambda: self.storage.from_(bucket).upload(
                    path=path,
                    file=file_data,
                    file_options={"content-type": content_type}
                )
            )
        except ConfigError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to upload file to {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise RetryableError(f"Failed to upload file: {str(e)}") from e

        logger.info(
            f"Uploaded file to {bucket}/{path}",
            extra={"bucket": bucket, "path": path, "size": len(file_data)}
        )
        return make_locator(bucket, path)

    async def get_signed_url(self, bucket: str, path: str, expires_in: Optional[int] = None) -> str:
        """
        Generate a signed URL for a stored object.

        Raises:
            RetryableError: If URL generation fails
        """
        expires_in = expires_in or settings.signed_url_expiry_seconds
        try:
            response = await self._execute_sync(
                lambda: self.storage.from_(bucket).create_signed_url(
                    path=path,
                    expires_in=expires_in
                )
            )
        except ConfigError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to generate signed URL for {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise RetryableError(f"Failed to generate signed URL: {str(e)}") from e

        if isinstance(response, dict):
            return response.get("signedURL") or response.get("signedUrl") or ""
        return str(response) if response else ""

    async def resolve_url(self, uri: str) -> str:
        """
        Turn an artifact URI into a fetchable URL.

        http(s) URIs are returned unchanged; canonical locators are signed.
        """
        if uri.startswith(("http://", "https://")):
            return uri
        bucket, path = split_locator(uri)
        return await self.get_signed_url(bucket, path)


# Singleton instance
storage = StorageClient()
