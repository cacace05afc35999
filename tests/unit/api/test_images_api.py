"""Tests for the image API endpoints.

Endpoints under test:
- POST   /api/strategies/{id}/images
- PATCH  /api/images/{id}
- DELETE /api/images/{id}
"""

import uuid
from unittest.mock import patch

from stratbook.errors import StorageError
from tests.unit.api.conftest import PNG, create_map, create_strategy


def _strategy(client) -> dict:
    return create_strategy(client, create_map(client)["id"])


class TestUploadImages:
    """POST /api/strategies/{id}/images"""

    def test_stores_on_current_version(self, client, storage):
        strategy = _strategy(client)
        response = client.post(
            f"/api/strategies/{strategy['id']}/images",
            files=[("files", PNG), ("files", ("second.jpg", b"jpeg", "image/jpeg"))],
            data={"descriptions": ["Entry", ""]},
        )

        assert response.status_code == 201
        stored = response.json()["stored"]
        assert [i["position_in_content"] for i in stored] == [0, 1]
        assert {i["version_id"] for i in stored} == {strategy["current_version_id"]}
        assert stored[0]["alt_text"] == "Entry"
        assert stored[1]["alt_text"] == f"Strategy diagram 2 for {strategy['id']}"
        assert stored[0]["storage_path"].startswith(f"strategies/{strategy['id']}/")
        assert storage.exists(stored[1]["storage_path"], "strategy-images")

    def test_reports_rejected_files(self, client):
        strategy = _strategy(client)
        big = ("huge.png", b"\x00" * (5 * 1024 * 1024 + 1), "image/png")
        response = client.post(
            f"/api/strategies/{strategy['id']}/images",
            files=[
                ("files", PNG),
                ("files", ("notes.pdf", b"%PDF", "application/pdf")),
                ("files", big),
            ],
        )

        assert response.status_code == 201
        data = response.json()
        assert len(data["stored"]) == 1
        assert [r["filename"] for r in data["rejected"]] == ["notes.pdf", "huge.png"]
        assert data["rejected"][1]["reason"] == "huge.png is too large (max 5 MB)"

    def test_storage_failure_returns_502_and_keeps_earlier_images(self, client, storage):
        strategy = _strategy(client)
        real_upload = storage.upload
        calls = []

        def failing_second(data, path, bucket, content_type=None):
            calls.append(path)
            if len(calls) == 2:
                raise StorageError("bucket unavailable")
            return real_upload(data, path, bucket, content_type=content_type)

        with patch.object(storage, "upload", side_effect=failing_second):
            response = client.post(
                f"/api/strategies/{strategy['id']}/images",
                files=[("files", PNG), ("files", ("second.png", b"png", "image/png"))],
            )

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "IMAGE_UPLOAD_FAILED"
        assert body["detail"] == "Failed to upload image: second.png"
        assert len(body["details"]["stored_image_ids"]) == 1

        images = client.get(f"/api/strategies/{strategy['id']}").json()["images"]
        assert [i["id"] for i in images] == body["details"]["stored_image_ids"]

    def test_unknown_strategy(self, client):
        response = client.post(f"/api/strategies/{uuid.uuid4()}/images", files=[("files", PNG)])
        assert response.status_code == 404


class TestEditImages:
    """PATCH / DELETE /api/images/{id}"""

    def _upload(self, client) -> tuple[dict, dict]:
        strategy = _strategy(client)
        response = client.post(f"/api/strategies/{strategy['id']}/images", files=[("files", PNG)])
        return strategy, response.json()["stored"][0]

    def test_update_alt_text(self, client):
        _, image = self._upload(client)
        response = client.patch(f"/api/images/{image['id']}", json={"alt_text": "Smoke lineup"})
        assert response.status_code == 200
        assert response.json()["alt_text"] == "Smoke lineup"

    def test_blank_alt_text_clears(self, client):
        _, image = self._upload(client)
        response = client.patch(f"/api/images/{image['id']}", json={"alt_text": ""})
        assert response.json()["alt_text"] is None

    def test_long_alt_text_is_cut(self, client):
        _, image = self._upload(client)
        response = client.patch(f"/api/images/{image['id']}", json={"alt_text": "a" * 400})
        assert response.status_code == 200
        assert response.json()["alt_text"] == "a" * 250

    def test_update_missing(self, client):
        response = client.patch(f"/api/images/{uuid.uuid4()}", json={"alt_text": "x"})
        assert response.status_code == 404

    def test_delete_keeps_file(self, client, storage):
        strategy, image = self._upload(client)

        assert client.delete(f"/api/images/{image['id']}").status_code == 204
        assert client.get(f"/api/strategies/{strategy['id']}").json()["images"] == []
        assert storage.exists(image["storage_path"], image["bucket_name"])
        assert client.delete(f"/api/images/{image['id']}").status_code == 404
