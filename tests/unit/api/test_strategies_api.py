"""Tests for the strategy and version API endpoints.

Endpoints under test:
- GET/POST        /api/strategies
- GET/PUT/DELETE  /api/strategies/{id}
- GET             /api/strategies/{id}/versions
- GET             /api/strategies/{id}/versions/{version_id}
"""

import uuid

from tests.unit.api.conftest import PNG, create_map, create_strategy


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateStrategy:
    """POST /api/strategies"""

    def test_creates_first_version(self, client):
        map_data = create_map(client)
        data = create_strategy(client, map_data["id"])

        assert data["title"] == "Rush A"
        assert data["description"] == "Fast push"
        assert data["map"]["name"] == "Desert Storm"
        assert data["current_version"]["version_number"] == 1
        assert data["current_version"]["change_notes"] == "Initial version"
        assert data["current_version_id"] == data["current_version"]["id"]
        assert data["images"] == []

    def test_unknown_map(self, client):
        response = client.post(
            "/api/strategies", json={"map_id": str(uuid.uuid4()), "title": "Rush A"},
        )
        assert response.status_code == 404

    def test_blank_title(self, client):
        map_data = create_map(client)
        response = client.post("/api/strategies", json={"map_id": map_data["id"], "title": " "})
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# List / search / get
# ---------------------------------------------------------------------------


class TestListStrategies:
    """GET /api/strategies"""

    def test_newest_first(self, client):
        map_data = create_map(client)
        create_strategy(client, map_data["id"], "Older")
        create_strategy(client, map_data["id"], "Newer")

        titles = [s["title"] for s in client.get("/api/strategies").json()]
        assert titles == ["Newer", "Older"]

    def test_filter_by_map(self, client):
        desert = create_map(client)
        urban = create_map(client, "Urban Warfare")
        create_strategy(client, desert["id"], "Rush A")
        create_strategy(client, urban["id"], "Rush B")

        response = client.get("/api/strategies", params={"map_id": urban["id"]})
        assert [s["title"] for s in response.json()] == ["Rush B"]

    def test_search(self, client):
        map_data = create_map(client)
        create_strategy(client, map_data["id"], "Smoke wall", description="")
        create_strategy(client, map_data["id"], "Rush B", description="Flash then go")

        response = client.get("/api/strategies", params={"q": "FLASH"})
        assert [s["title"] for s in response.json()] == ["Rush B"]

    def test_get_not_found(self, client):
        response = client.get(f"/api/strategies/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["details"]["resource"] == "Strategy"

    def test_invalid_id(self, client):
        assert client.get("/api/strategies/not-a-uuid").status_code == 422


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdateStrategy:
    """PUT /api/strategies/{id}"""

    def test_each_edit_is_a_version(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])

        for n in range(2, 5):
            response = client.put(
                f"/api/strategies/{created['id']}",
                json={"title": f"Rush A v{n}", "description": "Adjusted"},
            )
            assert response.status_code == 200
            assert response.json()["current_version"]["version_number"] == n

        data = client.get(f"/api/strategies/{created['id']}").json()
        assert data["title"] == "Rush A v4"
        assert data["current_version"]["change_notes"] == "Updated strategy"

    def test_image_description_follows_copy(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])
        upload = client.post(f"/api/strategies/{created['id']}/images", files=[("files", PNG)])
        image_id = upload.json()["stored"][0]["id"]

        response = client.put(
            f"/api/strategies/{created['id']}",
            json={"title": "Rush A", "description": "", "image_descriptions": {image_id: "Smoke CT"}},
        )

        data = response.json()
        current = [i for i in data["images"] if i["version_id"] == data["current_version_id"]]
        assert [i["alt_text"] for i in current] == ["Smoke CT"]
        assert current[0]["id"] != image_id

    def test_long_image_description_is_cut(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])
        upload = client.post(f"/api/strategies/{created['id']}/images", files=[("files", PNG)])
        image_id = upload.json()["stored"][0]["id"]

        response = client.put(
            f"/api/strategies/{created['id']}",
            json={"title": "Rush A", "image_descriptions": {image_id: "s" * 400}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["current_version"]["version_number"] == 2
        current = [i for i in data["images"] if i["version_id"] == data["current_version_id"]]
        assert [i["alt_text"] for i in current] == ["s" * 250]

    def test_not_found(self, client):
        response = client.put(f"/api/strategies/{uuid.uuid4()}", json={"title": "x"})
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDeleteStrategy:
    """DELETE /api/strategies/{id}"""

    def test_deleted(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])

        assert client.delete(f"/api/strategies/{created['id']}").status_code == 204
        assert client.get(f"/api/strategies/{created['id']}").status_code == 404
        assert client.get(f"/api/maps/{map_data['id']}").json()["strategy_count"] == 0

    def test_missing(self, client):
        assert client.delete(f"/api/strategies/{uuid.uuid4()}").status_code == 404


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class TestVersions:
    """GET /api/strategies/{id}/versions[/{version_id}]"""

    def test_history_newest_first(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])
        client.put(f"/api/strategies/{created['id']}", json={"title": "Rush A v2"})

        response = client.get(f"/api/strategies/{created['id']}/versions")

        assert response.status_code == 200
        assert [v["version_number"] for v in response.json()] == [2, 1]

    def test_version_with_its_images(self, client):
        map_data = create_map(client)
        created = create_strategy(client, map_data["id"])
        client.post(f"/api/strategies/{created['id']}/images", files=[("files", PNG)])
        client.put(f"/api/strategies/{created['id']}", json={"title": "Rush A v2"})

        v1 = created["current_version_id"]
        response = client.get(f"/api/strategies/{created['id']}/versions/{v1}")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Rush A"
        assert [i["version_id"] for i in data["images"]] == [v1]

    def test_unknown_strategy(self, client):
        assert client.get(f"/api/strategies/{uuid.uuid4()}/versions").status_code == 404

    def test_version_of_another_strategy(self, client):
        map_data = create_map(client)
        first = create_strategy(client, map_data["id"], "First")
        second = create_strategy(client, map_data["id"], "Second")

        response = client.get(
            f"/api/strategies/{first['id']}/versions/{second['current_version_id']}"
        )
        assert response.status_code == 404
