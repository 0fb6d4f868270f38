from __future__ import annotations

from projectproof.types import MediaFile, UploadedFile, human_size, is_accepted_media, media_kind


def test_uploaded_file_describes_itself_for_the_studio_list() -> None:
    media = MediaFile(name="demo.mp4", content_type="video/mp4", data=b"x")
    upload = UploadedFile(file=media, size_bytes=3 * 1024 * 1024)

    described = upload.describe()

    assert described["name"] == "demo.mp4"
    assert described["type"] == "video"
    assert described["size"] == "3.00 MB"
    assert described["status"] == "uploading"
    assert len(described["id"]) == 9


def test_uploaded_file_status_only_moves_forward() -> None:
    upload = UploadedFile(file=MediaFile(name="a.jpg", content_type="image/jpeg"), size_bytes=1)

    upload.advance()
    assert upload.status == "analyzing"
    upload.advance()
    upload.advance()
    assert upload.status == "complete"


def test_media_helpers() -> None:
    assert media_kind("image/png") == "image"
    assert media_kind("video/quicktime") == "video"
    assert is_accepted_media("image/webp")
    assert not is_accepted_media("application/pdf")
    assert human_size(1536 * 1024) == "1.50 MB"
    assert MediaFile(name="noext", content_type="image/png").extension == "bin"
    assert MediaFile(name="Photo.JPG", content_type="image/jpeg").extension == "jpg"
