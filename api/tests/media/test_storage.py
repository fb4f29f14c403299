"""Tests for FirebaseStorageService and the storage config endpoint."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from folio.config.settings import Settings
from folio.storage.dependencies import get_storage_service
from folio.storage.service import (
    FirebaseStorageService,
    StorageNotConfiguredError,
    StorageOperationError,
)


@pytest.fixture
def configured_settings() -> Settings:
    return Settings(
        firebase_enabled=True,
        firebase_credentials_path="firebase.json",
        firebase_storage_bucket="folio-test.appspot.com",
        storage_root="ugc-test",
    )


@pytest.fixture
def blob() -> Mock:
    blob = Mock()
    blob.generate_signed_url = Mock(return_value="https://signed.example/url")
    blob.exists = Mock(return_value=True)
    return blob


@pytest.fixture
def storage(configured_settings, blob) -> FirebaseStorageService:
    service = FirebaseStorageService(configured_settings)
    service._bucket = Mock(blob=Mock(return_value=blob))
    return service


class TestFirebaseStorageService:
    """Tests for signing and deleting objects."""

    def test_object_name(self, storage):
        assert storage.object_name("u/p/f.png") == "ugc-test/u/p/f.png"
        assert storage.object_name("/u/p/f.png") == "ugc-test/u/p/f.png"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        service = FirebaseStorageService(Settings(firebase_enabled=False))

        with pytest.raises(StorageNotConfiguredError):
            await service.create_upload_url("u/p/f.png", "image/png")

    @pytest.mark.asyncio
    async def test_upload_url_signs_put(self, storage, blob):
        url = await storage.create_upload_url("u/p/f.png", "image/png", 30)

        assert url == "https://signed.example/url"
        storage._bucket.blob.assert_called_once_with("ugc-test/u/p/f.png")
        blob.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=timedelta(seconds=30),
            method="PUT",
            content_type="image/png",
        )

    @pytest.mark.asyncio
    async def test_download_url_default_expiry(self, storage, blob):
        await storage.create_download_url("u/p/f.png")

        blob.generate_signed_url.assert_called_once_with(
            version="v4", expiration=timedelta(seconds=3600), method="GET"
        )

    @pytest.mark.asyncio
    async def test_signing_failure(self, storage, blob):
        blob.generate_signed_url.side_effect = ValueError("no private key")

        with pytest.raises(StorageOperationError):
            await storage.create_download_url("u/p/f.png")

    @pytest.mark.asyncio
    async def test_delete_missing_object(self, storage, blob):
        blob.exists.return_value = False

        assert await storage.delete_file("u/p/f.png") is False
        blob.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, storage, blob):
        assert await storage.delete_file("u/p/f.png") is True
        blob.delete.assert_called_once()


class TestStorageConfigEndpoint:
    """Tests for GET /v1/storage/config."""

    def test_config_unconfigured(self, app, client):
        app.dependency_overrides[get_storage_service] = lambda: FirebaseStorageService(
            Settings(firebase_enabled=False)
        )

        response = client.get("/v1/storage/config")

        assert response.status_code == 200
        data = response.json()
        assert data["configured"] is False
        assert data["bucket"] is None
        assert "image/png" in data["allowed_types"]
        assert data["max_file_sizes"]["video"] == 50 * 1024 * 1024
