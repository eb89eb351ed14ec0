"""Tests for the Supabase blob store adapter."""

import json

import httpx
import pytest

from storefront.domain.exceptions import StorageError
from storefront.infrastructure.blob_store import SupabaseBlobStore

BASE_URL = "https://project.supabase.test"


def make_store(handler) -> SupabaseBlobStore:
    """Store whose HTTP calls go to ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseBlobStore(BASE_URL, "service-key", bucket="products", client=client)


class TestUpload:
    """Tests for upload."""

    async def test_returns_public_url(self) -> None:
        """Upload posts the bytes and returns the public URL."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"Key": "products/x"})

        store = make_store(handler)
        url = await store.upload(b"png-bytes", "image/png", "mug.PNG")

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path.startswith("/storage/v1/object/products/")
        assert request.url.path.endswith(".png")
        assert request.headers["Authorization"] == "Bearer service-key"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Content-Type"] == "image/png"
        assert request.content == b"png-bytes"

        object_name = request.url.path.rsplit("/", 1)[-1]
        assert url == f"{BASE_URL}/storage/v1/object/public/products/{object_name}"

    async def test_extension_from_content_type(self) -> None:
        """Without a filename the extension comes from the MIME type."""
        store = make_store(lambda request: httpx.Response(200))

        url = await store.upload(b"data", "image/png")

        assert url.endswith(".png")

    async def test_unique_names(self) -> None:
        """Each upload gets its own object name."""
        store = make_store(lambda request: httpx.Response(200))

        first = await store.upload(b"a", "image/png", "a.png")
        second = await store.upload(b"b", "image/png", "a.png")

        assert first != second

    async def test_rejected_upload(self) -> None:
        """Error status raises StorageError."""
        store = make_store(lambda request: httpx.Response(413, json={"error": "too large"}))

        with pytest.raises(StorageError) as exc_info:
            await store.upload(b"data", "image/png", "a.png")

        assert exc_info.value.operation == "upload"
        assert "413" in exc_info.value.message

    async def test_transport_failure(self) -> None:
        """Network errors raise StorageError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler)

        with pytest.raises(StorageError):
            await store.upload(b"data", "image/png", "a.png")


class TestDelete:
    """Tests for delete."""

    async def test_deletes_by_prefix(self) -> None:
        """Delete sends the object name from the URL as a prefix."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[])

        store = make_store(handler)
        await store.delete(f"{BASE_URL}/storage/v1/object/public/products/abc.png")

        request = requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/storage/v1/object/products"
        assert json.loads(request.content) == {"prefixes": ["abc.png"]}

    async def test_rejected_delete(self) -> None:
        """Error status raises StorageError naming the URL."""
        store = make_store(lambda request: httpx.Response(500))
        url = f"{BASE_URL}/storage/v1/object/public/products/abc.png"

        with pytest.raises(StorageError) as exc_info:
            await store.delete(url)

        assert exc_info.value.operation == "delete"
        assert exc_info.value.target == url


class TestObjectNames:
    """Tests for URL helpers."""

    def test_round_trip(self) -> None:
        """Object name survives public URL construction."""
        store = SupabaseBlobStore(BASE_URL + "/", "key")
        url = store.public_url("abc.webp")

        assert url == f"{BASE_URL}/storage/v1/object/public/products/abc.webp"
        assert SupabaseBlobStore.object_name_from_url(url) == "abc.webp"
