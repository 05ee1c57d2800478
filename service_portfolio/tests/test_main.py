"""
Unit tests for Portfolio main service.
"""

import json

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_portfolio.app.main import PortfolioService
from shared.config import get_config

SECRET = "test-secret"

CSV_TEXT = (
    "id,title,type,coverImage,sourceUrl,date,location\n"
    "2,Bernal Sunset,Photo,https://img/2.jpg,,06/2024,San Francisco\n"
    "1,Maui Waves,video,https://img/1.jpg,https://v/1.mp4,2023-05,Maui\n"
)


class TestPortfolioService:
    """Test cases for PortfolioService."""

    @pytest.fixture
    def service(self, tmp_path):
        """Create PortfolioService backed by a temporary SQLite file."""
        config = get_config(
            "portfolio",
            4000,
            sqlite_path=str(tmp_path / "portfolio.sqlite3"),
            database_url=None,
            jwt_secret=SECRET,
            git_sha="abc123",
        )
        return PortfolioService(config)

    @pytest.fixture
    def client(self, service):
        """Create test client with the lifespan running."""
        with TestClient(service.app) as client:
            yield client

    @pytest.fixture
    def user_headers(self, service):
        token = service.auth.issue_token(7, "sam", "user")
        return {"Authorization": f"Bearer {token}"}

    @pytest.fixture
    def other_headers(self, service):
        token = service.auth.issue_token(8, "alex", "user")
        return {"Authorization": f"Bearer {token}"}

    @pytest.fixture
    def admin_headers(self, service):
        token = service.auth.issue_token(1, "admin", "admin")
        return {"Authorization": f"Bearer {token}"}

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "portfolio"

    def test_plain_health_endpoints(self, client):
        """Test plain-text health checks and version."""
        assert client.get("/healthz").text == "ok"
        assert client.get("/healthz/db").text == "ok"
        assert client.get("/version").json() == {"sha": "abc123"}

    def test_health_reports_database(self, client):
        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["dependencies"] == {"database": "ok"}
        assert data["commit"] == "abc123"

    def test_portfolio_empty(self, client):
        response = client.get("/api/portfolio")

        assert response.status_code == 200
        assert response.json() == []

    def test_import_requires_admin(self, client, user_headers):
        """Test non-admin callers are forbidden from importing."""
        response = client.post("/api/portfolio/import", content=CSV_TEXT, headers=user_headers)

        assert response.status_code == 403

    def test_import_then_list(self, client, admin_headers):
        """Test imported rows come back ordered by id."""
        response = client.post(
            "/api/portfolio/import",
            content=CSV_TEXT,
            headers={**admin_headers, "Content-Type": "text/csv"},
        )

        assert response.status_code == 200
        assert response.json() == {"imported": 2}

        items = client.get("/api/portfolio").json()
        assert [item["id"] for item in items] == [1, 2]
        assert items[0] == {
            "id": 1,
            "title": "Maui Waves",
            "type": "video",
            "coverImage": "https://img/1.jpg",
            "sourceUrl": "https://v/1.mp4",
            "date": "2023-05",
            "location": "Maui",
            "gpsCoords": None,
            "feat": None,
            "description": None,
            "easterEgg": None,
        }
        assert items[1]["type"] == "photo"

    def test_import_replaces_existing_rows(self, client, admin_headers):
        client.post("/api/portfolio/import", content=CSV_TEXT, headers=admin_headers)
        client.post(
            "/api/portfolio/import",
            content="id,title,type,coverImage\n9,Only,photo,https://img/9.jpg\n",
            headers=admin_headers,
        )

        assert [item["id"] for item in client.get("/api/portfolio").json()] == [9]

    def test_import_malformed_csv(self, client, admin_headers):
        """Test a header missing required columns is rejected."""
        response = client.post(
            "/api/portfolio/import",
            content="name,kind\nfoo,bar\n",
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_links_require_auth(self, client):
        response = client.get("/api/links")

        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized"

    def test_links_reject_bad_token(self, client):
        response = client.get("/api/links", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_link_lifecycle(self, client, user_headers):
        """Test create, list, update and delete of a link."""
        response = client.post(
            "/api/links",
            json={"title": "Docs", "url": "https://docs.example", "tags": ["ref"]},
            headers=user_headers,
        )

        assert response.status_code == 201
        created = response.json()
        assert created["user_id"] == 7
        assert created["tags"] == ["ref"]

        links = client.get("/api/links", headers=user_headers).json()
        assert len(links) == 1
        assert links[0]["tags"] == ["ref"]
        assert links[0]["description"] == ""

        response = client.put(
            f"/api/links/{created['id']}",
            json={"title": "Docs v2", "url": "https://docs.example/v2"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert client.get("/api/links", headers=user_headers).json()[0]["title"] == "Docs v2"

        response = client.delete(f"/api/links/{created['id']}", headers=user_headers)
        assert response.status_code == 200
        assert client.get("/api/links", headers=user_headers).json() == []

    def test_link_requires_title_and_url(self, client, user_headers):
        response = client.post("/api/links", json={"title": "No url"}, headers=user_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Title and URL are required"

    def test_links_newest_first(self, client, user_headers):
        for title in ("first", "second", "third"):
            client.post("/api/links", json={"title": title, "url": "https://x"}, headers=user_headers)

        titles = [link["title"] for link in client.get("/api/links", headers=user_headers).json()]
        assert titles == ["third", "second", "first"]

    def test_other_users_link_is_not_found(self, client, user_headers, other_headers):
        """Test a caller cannot update or delete someone else's link."""
        link = client.post("/api/links", json={"title": "Mine", "url": "https://m"}, headers=user_headers).json()

        response = client.put(
            f"/api/links/{link['id']}",
            json={"title": "Theirs", "url": "https://t"},
            headers=other_headers,
        )
        assert response.status_code == 404
        assert client.delete(f"/api/links/{link['id']}", headers=other_headers).status_code == 404
        assert client.get("/api/links", headers=other_headers).json() == []
        assert len(client.get("/api/links", headers=user_headers).json()) == 1

    def test_color_palette_lifecycle(self, client, user_headers):
        palette = [{"hex": "#ff0000", "rgb": [255, 0, 0]}]
        created = client.post(
            "/api/color-palettes",
            json={"fileName": "red.png", "imageDataUrl": "data:image/png;base64,AA", "palette": palette},
            headers=user_headers,
        ).json()

        assert created["file_name"] == "red.png"
        assert json.loads(created["palette_json"]) == palette
        assert "user_id" not in created

        listed = client.get("/api/color-palettes", headers=user_headers).json()
        assert [p["id"] for p in listed["palettes"]] == [created["id"]]

        response = client.delete(f"/api/color-palettes/{created['id']}", headers=user_headers)
        assert response.json() == {"success": True}

        response = client.delete(f"/api/color-palettes/{created['id']}", headers=user_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Palette not found"

    def test_background_removal_jobs(self, client, user_headers, other_headers):
        created = client.post(
            "/api/background-removal/jobs",
            json={"fileName": "cat.jpg", "sourceImageDataUrl": "data:src", "resultImageDataUrl": "data:out"},
            headers=user_headers,
        ).json()

        assert created["result_image_data_url"] == "data:out"
        assert client.get("/api/background-removal/jobs", headers=other_headers).json() == {"jobs": []}
        assert client.delete(f"/api/background-removal/jobs/{created['id']}", headers=other_headers).status_code == 404
        assert client.delete(f"/api/background-removal/jobs/{created['id']}", headers=user_headers).json() == {"success": True}

    def test_nylon_fabric_designs(self, client, user_headers):
        visuals = [{"stage": "cut", "svg": "<svg/>"}]
        created = client.post(
            "/api/nylon-fabric-designs",
            json={"projectName": "Tote", "description": "A bag", "guideText": "Sew it", "visuals": visuals},
            headers=user_headers,
        ).json()

        assert created["project_name"] == "Tote"
        assert json.loads(created["visuals_json"]) == visuals

        designs = client.get("/api/nylon-fabric-designs", headers=user_headers).json()["designs"]
        assert designs[0]["guide_text"] == "Sew it"

        response = client.delete("/api/nylon-fabric-designs/999", headers=user_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Design not found"

    def test_account_items(self, client, user_headers):
        """Test saved tool items are rendered as cards of each kind."""
        client.post(
            "/api/color-palettes",
            json={
                "fileName": "sky.png",
                "imageDataUrl": "data:sky",
                "palette": [{"hex": "#0000ff", "rgb": [0, 0, 255]}, {"hex": "#ffffff", "rgb": [255, 255, 255]}],
            },
            headers=user_headers,
        )
        client.post(
            "/api/background-removal/jobs",
            json={"fileName": "dog.jpg", "sourceImageDataUrl": "data:a", "resultImageDataUrl": "data:b"},
            headers=user_headers,
        )
        client.post(
            "/api/nylon-fabric-designs",
            json={"projectName": "Pouch", "description": "", "guideText": "", "visuals": []},
            headers=user_headers,
        )

        items = client.get("/api/account/items", headers=user_headers).json()["items"]
        by_kind = {item["kind"]: item for item in items}

        assert set(by_kind) == {"palette", "background_removal", "nylon_fabric_design"}
        assert by_kind["palette"]["swatches"] == ["#0000ff", "#ffffff"]
        assert by_kind["palette"]["image_url"] == "data:sky"
        assert by_kind["background_removal"]["image_url"] == "data:b"
        assert by_kind["nylon_fabric_design"]["title"] == "Pouch"
        assert by_kind["nylon_fabric_design"]["image_url"] is None
        assert all(item["subtitle"] for item in items)

    def test_account_items_require_auth(self, client):
        assert client.get("/api/account/items").status_code == 401
