"""Blob store adapter for product images.

Talks to the Supabase Storage REST API. Objects are stored under random
names in one public bucket; the public URL is the stable handle the
catalog keeps on each product.
"""

import mimetypes
from typing import Protocol
from uuid import uuid4

import httpx
import structlog

from storefront.domain.exceptions import StorageError

logger = structlog.get_logger()


class BlobStore(Protocol):
    """Contract the catalog needs from an object store."""

    async def upload(self, data: bytes, content_type: str, filename: str | None = None) -> str:
        """Store bytes and return their public URL."""
        ...

    async def delete(self, url: str) -> None:
        """Remove the object behind a public URL."""
        ...


class SupabaseBlobStore:
    """Supabase Storage implementation of BlobStore.

    Example usage:
        store = SupabaseBlobStore(
            base_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
        )
        url = await store.upload(image_bytes, "image/png", "mug.png")
        await store.delete(url)
        await store.close()
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str = "products",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_url: Supabase project URL.
            service_key: Key sent as bearer token and apikey header.
            bucket: Public bucket holding product images.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client (tests inject a mock transport).
        """
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def public_url(self, object_name: str) -> str:
        """Build the public URL of an object."""
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{object_name}"

    @staticmethod
    def object_name_from_url(url: str) -> str:
        """Extract the object name from a public URL."""
        return url.rstrip("/").rsplit("/", 1)[-1]

    @staticmethod
    def _new_object_name(content_type: str, filename: str | None) -> str:
        extension = ""
        if filename and "." in filename:
            extension = filename.rsplit(".", 1)[-1].lower()
        else:
            guessed = mimetypes.guess_extension(content_type) or ""
            extension = guessed.lstrip(".")
        return f"{uuid4()}.{extension}" if extension else str(uuid4())

    async def upload(self, data: bytes, content_type: str, filename: str | None = None) -> str:
        """Upload an image.

        Args:
            data: Raw file bytes.
            content_type: MIME type stored with the object.
            filename: Original file name, used for the extension.

        Returns:
            Public URL of the stored object.

        Raises:
            StorageError: If the upload is rejected or the request fails.
        """
        object_name = self._new_object_name(content_type, filename)
        endpoint = f"{self.base_url}/storage/v1/object/{self.bucket}/{object_name}"

        try:
            response = await self._client.post(
                endpoint,
                content=data,
                headers={**self._headers, "Content-Type": content_type},
            )
        except httpx.HTTPError as e:
            logger.error("Image upload request failed", object_name=object_name, error=str(e))
            raise StorageError(
                f"Error uploading image: {e}", operation="upload", target=object_name
            ) from e

        if response.is_error:
            logger.error(
                "Image upload rejected",
                object_name=object_name,
                status_code=response.status_code,
            )
            raise StorageError(
                f"Error uploading image: HTTP {response.status_code}",
                operation="upload",
                target=object_name,
            )

        logger.info("Image uploaded", object_name=object_name, size_bytes=len(data))
        return self.public_url(object_name)

    async def delete(self, url: str) -> None:
        """Delete an image by its public URL.

        Raises:
            StorageError: If the deletion is rejected or the request fails.
        """
        object_name = self.object_name_from_url(url)
        endpoint = f"{self.base_url}/storage/v1/object/{self.bucket}"

        try:
            response = await self._client.request(
                "DELETE",
                endpoint,
                json={"prefixes": [object_name]},
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.error("Image delete request failed", url=url, error=str(e))
            raise StorageError(f"Error deleting image: {e}", operation="delete", target=url) from e

        if response.is_error:
            logger.error("Image delete rejected", url=url, status_code=response.status_code)
            raise StorageError(
                f"Error deleting image: HTTP {response.status_code}",
                operation="delete",
                target=url,
            )

        logger.info("Image deleted", object_name=object_name)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
