"""Unit tests for local upload storage."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.exceptions.base import BadRequestError, PayloadTooLargeError
from app.services.storage_service import StorageService


def make_upload(content: bytes, filename: str = "notes.txt", content_type: str = "text/plain"):
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def storage(tmp_path):
    return StorageService(upload_dir=str(tmp_path / "uploads"), max_file_size=1024)


class TestSaveUpload:
    @pytest.mark.asyncio
    async def test_stores_file_under_random_name(self, storage):
        stored = await storage.save_upload(make_upload(b"hello world", "Report.PDF", "application/pdf"))

        assert stored["original_name"] == "Report.PDF"
        assert stored["mime_type"] == "application/pdf"
        assert stored["size"] == 11
        assert stored["filename"].endswith(".pdf")
        assert stored["filename"] != "Report.PDF"
        assert stored["path"] == f"/uploads/{stored['filename']}"
        assert storage.resolve(stored["path"]).read_bytes() == b"hello world"

    @pytest.mark.asyncio
    async def test_oversized_file_is_rejected_and_removed(self, storage):
        with pytest.raises(PayloadTooLargeError):
            await storage.save_upload(make_upload(b"x" * 2048))

        assert storage.list_files() == []

    @pytest.mark.asyncio
    async def test_missing_file_is_rejected(self, storage):
        with pytest.raises(BadRequestError) as exc_info:
            await storage.save_upload(None)

        assert exc_info.value.message == "Please upload a file"

    @pytest.mark.asyncio
    async def test_image_only_rejects_other_types(self, storage):
        with pytest.raises(BadRequestError) as exc_info:
            await storage.save_upload(make_upload(b"text"), image_only=True)

        assert exc_info.value.message == "Please upload an image file"

    @pytest.mark.asyncio
    async def test_image_only_accepts_images(self, storage):
        stored = await storage.save_upload(
            make_upload(b"\x89PNG", "avatar.png", "image/png"), image_only=True
        )

        assert stored["mime_type"] == "image/png"


class TestDeleteAndList:
    @pytest.mark.asyncio
    async def test_delete_existing_file(self, storage):
        stored = await storage.save_upload(make_upload(b"bye"))

        assert storage.delete_file(stored["path"]) is True
        assert storage.list_files() == []

    def test_delete_missing_file_is_not_an_error(self, storage):
        assert storage.delete_file("/uploads/does-not-exist.txt") is False

    def test_resolve_ignores_directory_parts(self, storage):
        assert storage.resolve("/uploads/../../etc/passwd") == storage.upload_dir / "passwd"

    def test_list_files_without_directory(self, storage):
        assert storage.list_files() == []
