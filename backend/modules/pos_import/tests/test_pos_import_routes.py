# backend/modules/pos_import/tests/test_pos_import_routes.py

"""
Tests for the POS import HTTP endpoints.
"""

import httpx

from modules.pos_import.models.pos_import_models import RestaurantCategory


class TestSyncEndpoint:
    """Test POST /api/v1/pos-import/sync"""

    def test_sync_categories(self, client, fake_pos_api, db_session):
        fake_pos_api.routes["/categories"] = {
            "categories": [{"id": "5", "name": "Antipasti"}, {"id": "6", "name": "Dolci"}]
        }

        response = client.post(
            "/api/v1/pos-import/sync",
            json={"resource_type": "categories", "restaurant_id": "R1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["error"] is None
        assert db_session.query(RestaurantCategory).count() == 2

    def test_sync_error_is_reported_in_body(self, client, fake_pos_api):
        fake_pos_api.routes["/customers"] = httpx.Response(500, text="boom")

        response = client.post(
            "/api/v1/pos-import/sync",
            json={"resource_type": "customers", "restaurant_id": "R1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 0
        assert "500" in data["error"]

    def test_missing_sales_point_is_a_bad_request(self, client, fake_pos_api):
        response = client.post(
            "/api/v1/pos-import/sync",
            json={"resource_type": "tables", "restaurant_id": "R1"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert fake_pos_api.requests == []

    def test_unknown_resource_type_is_rejected(self, client):
        response = client.post(
            "/api/v1/pos-import/sync",
            json={"resource_type": "menus", "restaurant_id": "R1"},
        )

        assert response.status_code == 422


class TestSettingsEndpoints:
    def test_list_sales_points(self, client, fake_pos_api):
        fake_pos_api.routes["/sales-points"] = {
            "salesPoint": [{"id": "1", "name": "Trattoria"}]
        }

        response = client.get("/api/v1/pos-import/sales-points")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Trattoria"

    def test_sales_points_pos_failure_is_bad_gateway(self, client, fake_pos_api):
        fake_pos_api.routes["/sales-points"] = httpx.Response(503, text="down")

        response = client.get("/api/v1/pos-import/sales-points")

        assert response.status_code == 502
        assert response.json()["error_code"] == "POS_API_ERROR"

    def test_connection(self, client, fake_pos_api):
        fake_pos_api.routes["/sales-points"] = {"salesPoint": []}

        response = client.post("/api/v1/pos-import/test-connection", json={"api_key": "k"})

        assert response.status_code == 200
        assert response.json() == {"connected": True}

    def test_dish_sales_without_receipts(self, client):
        response = client.get("/api/v1/pos-import/dish-sales", params={"restaurant_id": "R1"})

        assert response.status_code == 200
        assert response.json() == []
