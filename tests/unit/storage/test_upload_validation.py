"""Tests for upload validation."""

from stratbook.storage.validation import partition_uploads, validate_upload
from tests.factories import make_upload


class TestValidateUpload:

    def test_accepts_image(self):
        assert validate_upload(make_upload("a.png", "image/png")) is None

    def test_rejects_non_image(self):
        reason = validate_upload(make_upload("notes.pdf", "application/pdf"))
        assert reason is not None
        assert "notes.pdf is not an image" in reason

    def test_rejects_oversized(self):
        reason = validate_upload(make_upload("big.png", size=5 * 1024 * 1024 + 1))
        assert reason == "big.png is too large (max 5 MB)"

    def test_exact_limit_is_accepted(self):
        assert validate_upload(make_upload("edge.png", size=5 * 1024 * 1024)) is None

    def test_custom_limits(self):
        upload = make_upload("a.png", size=2048)
        assert validate_upload(upload, max_bytes=1024) is not None
        assert validate_upload(make_upload("a.txt", "text/plain"), mime_prefix="text/") is None


class TestPartitionUploads:

    def test_preserves_order_and_reports_rejections(self):
        uploads = [
            make_upload("one.png"),
            make_upload("two.gif", "application/octet-stream"),
            make_upload("three.jpg", "image/jpeg"),
        ]
        accepted, rejected = partition_uploads(uploads)
        assert [u.filename for u in accepted] == ["one.png", "three.jpg"]
        assert [r.filename for r in rejected] == ["two.gif"]

    def test_empty(self):
        assert partition_uploads([]) == ([], [])
