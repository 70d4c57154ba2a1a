"""Tests for comment attachment uploads (service and endpoint)."""

import pytest

from page_comments.attachments.service import (
    AttachmentService,
    AttachmentTooLargeError,
    AttachmentValidationError,
)
from page_comments.comments.service import BucketNotFoundError
from page_comments.comments.store import PageBucketStore
from page_comments.config.settings import Settings


SITE_URL = "https://contoso.sharepoint.com/sites/intranet"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32


@pytest.fixture
def settings() -> Settings:
    return Settings(upload_max_file_size_mb=1)


@pytest.fixture
def service(sharepoint_client, settings) -> AttachmentService:
    store = PageBucketStore(client=sharepoint_client, site_url=SITE_URL)
    return AttachmentService(store=store, settings=settings)


class TestValidate:
    """Tests for upload validation."""

    def test_accepts_png(self, service) -> None:
        assert service.validate("photo.png", PNG, "image/png") == "image/png"

    def test_label_within_image_class(self, service) -> None:
        """A JPEG declared as PNG passes; the detected type wins."""
        assert service.validate("photo.png", JPEG, "image/png") == "image/jpeg"

    def test_too_large(self, service) -> None:
        content = PNG + b"\x00" * (1024 * 1024)

        with pytest.raises(AttachmentTooLargeError) as exc_info:
            service.validate("big.png", content, "image/png")

        assert exc_info.value.code == "attachment_too_large"

    def test_disallowed_content_type(self, service) -> None:
        with pytest.raises(AttachmentValidationError):
            service.validate("doc.pdf", b"%PDF-1.7", "application/pdf")

    def test_spoofed_content(self, service) -> None:
        """HTML renamed to .png is rejected by its magic bytes."""
        with pytest.raises(AttachmentValidationError) as exc_info:
            service.validate("evil.png", b"<html><script>", "image/png")

        assert exc_info.value.code == "invalid_attachment"

    def test_missing_name(self, service) -> None:
        with pytest.raises(AttachmentValidationError):
            service.validate("  ", PNG, "image/png")

    def test_empty_file(self, service) -> None:
        with pytest.raises(AttachmentValidationError):
            service.validate("photo.png", b"", "image/png")


class TestUpload:
    """Tests for AttachmentService.upload."""

    @pytest.mark.asyncio
    async def test_requires_bucket(self, service, page_url) -> None:
        with pytest.raises(BucketNotFoundError):
            await service.upload(page_url, "c1", "photo.png", PNG, "image/png")

    @pytest.mark.asyncio
    async def test_stores_with_comment_prefix(
        self, service, fake_sharepoint, make_comment, page_url
    ) -> None:
        item_id = fake_sharepoint.add_page(comments=[make_comment("c1")])

        attachment = await service.upload(page_url, "c1", "photo.png", PNG, "image/png")

        assert attachment.name == "photo.png"
        assert fake_sharepoint.attachments[item_id][0]["FileName"] == "c1_photo.png"

    @pytest.mark.asyncio
    async def test_invalid_file_never_reaches_sharepoint(
        self, service, fake_sharepoint, make_comment, page_url
    ) -> None:
        fake_sharepoint.add_page(comments=[make_comment("c1")])

        with pytest.raises(AttachmentValidationError):
            await service.upload(page_url, "c1", "x.png", b"MZ\x90\x00", "image/png")

        assert fake_sharepoint.requests == []


class TestUploadEndpoint:
    """POST /v1/comments/{id}/attachments."""

    def test_upload_then_listed_on_comment(
        self, client, fake_sharepoint, make_comment, page_url
    ) -> None:
        fake_sharepoint.add_page(comments=[make_comment("c1")])

        response = client.post(
            "/v1/comments/c1/attachments",
            params={"page_url": page_url},
            files={"file": ("photo.png", PNG, "image/png")},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["comment_id"] == "c1"
        assert data["name"] == "photo.png"
        assert data["file_size"] == len(PNG)

        listed = client.get("/v1/comments", params={"page_url": page_url}).json()
        assert listed["items"][0]["attachments"] == [
            {"name": "photo.png", "url": data["url"]}
        ]

    def test_upload_without_bucket(self, client, page_url) -> None:
        response = client.post(
            "/v1/comments/c1/attachments",
            params={"page_url": page_url},
            files={"file": ("photo.png", PNG, "image/png")},
        )

        assert response.status_code == 404

    def test_upload_spoofed_file(
        self, client, fake_sharepoint, make_comment, page_url
    ) -> None:
        fake_sharepoint.add_page(comments=[make_comment("c1")])

        response = client.post(
            "/v1/comments/c1/attachments",
            params={"page_url": page_url},
            files={"file": ("photo.png", b"<svg onload=alert(1)>", "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["error"] is True
