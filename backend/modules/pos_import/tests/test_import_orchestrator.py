# backend/modules/pos_import/tests/test_import_orchestrator.py

"""
Tests for single-page POS imports into the store.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest
from sqlalchemy.exc import IntegrityError

from modules.pos_import.exceptions.pos_import_exceptions import PosApiError, StoreError
from modules.pos_import.models.pos_import_models import (
    Dish,
    Receipt,
    ReceiptRow,
    RestaurantCategory,
)
from modules.pos_import.schemas.pos_api_schemas import GetProductsParams, GetSoldByProductParams
from modules.pos_import.services.import_orchestrator import PosImportOrchestrator


class TestPosImportOrchestrator:
    """Test fetch -> map -> upsert for each resource"""

    @pytest.fixture
    def orchestrator(self, db_session, pos_client):
        return PosImportOrchestrator(db_session, pos_client)

    @pytest.fixture
    def categories_imported(self, db_session):
        db_session.add_all([
            RestaurantCategory(restaurant_id="R1", id="5", name="Antipasti"),
            RestaurantCategory(restaurant_id="R1", id="6", name="Dolci"),
            RestaurantCategory(restaurant_id="R2", id="7", name="Pizze"),
        ])
        db_session.commit()

    @pytest.mark.asyncio
    async def test_categories_end_to_end(self, orchestrator, fake_pos_api, db_session):
        fake_pos_api.routes["/categories"] = {
            "categories": [{"id": "5", "name": "Antipasti"}, {"id": "6", "name": "Dolci"}]
        }

        result = await orchestrator.import_categories("R1")

        assert result.count == 2
        assert result.error is None
        rows = db_session.query(RestaurantCategory).order_by(RestaurantCategory.id).all()
        assert [(r.restaurant_id, r.id, r.name) for r in rows] == [
            ("R1", "5", "Antipasti"),
            ("R1", "6", "Dolci"),
        ]
        stored = orchestrator.store.get(RestaurantCategory, "R1", "5")
        assert stored.name == "Antipasti"
        assert stored.created_at is not None
        assert stored.updated_at is not None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, orchestrator, fake_pos_api, db_session):
        fake_pos_api.routes["/categories"] = {"categories": [{"id": "5", "description": "Antipasti"}]}
        await orchestrator.import_categories("R1")
        fake_pos_api.routes["/categories"] = {"categories": [{"id": "5", "description": "Antipasti misti"}]}

        result = await orchestrator.import_categories("R1")

        assert result.count == 1
        rows = db_session.query(RestaurantCategory).all()
        assert len(rows) == 1
        assert rows[0].name == "Antipasti misti"

    @pytest.mark.asyncio
    async def test_missing_collection_gives_zero_count(self, orchestrator, fake_pos_api):
        fake_pos_api.routes["/products"] = {}

        result = await orchestrator.import_products("R1")

        assert result.count == 0
        assert result.error is None
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_fetch_failure_returns_error_result(self, orchestrator, fake_pos_api):
        fake_pos_api.routes["/customers"] = httpx.Response(503, text="maintenance")

        result = await orchestrator.import_customers("R1")

        assert result.count == 0
        assert isinstance(result.error, PosApiError)
        assert result.success is False
        assert "503" in result.to_dict()["error"]

    @pytest.mark.asyncio
    async def test_products_with_unknown_category_are_skipped(
        self, orchestrator, fake_pos_api, db_session, categories_imported
    ):
        fake_pos_api.routes["/products"] = {
            "products": [
                {"id": "100", "description": "Bruschetta", "idCategory": "5",
                 "prices": [{"value": 6}]},
                {"id": "101", "description": "Tiramisu", "idCategory": "6"},
                {"id": "102", "description": "Margherita", "idCategory": "7"},
            ]
        }

        result = await orchestrator.import_products("R1")

        assert result.count == 2
        assert len(result.warnings) == 1
        assert "102" in result.warnings[0]
        dishes = {d.id: d for d in db_session.query(Dish).all()}
        assert set(dishes) == {"100", "101"}
        assert dishes["100"].selling_price == Decimal("6")
        assert dishes["101"].selling_price == Decimal("0")

    @pytest.mark.asyncio
    async def test_products_request_uses_caller_paging(
        self, orchestrator, fake_pos_api, categories_imported
    ):
        fake_pos_api.routes["/products"] = {"products": []}

        await orchestrator.import_products("R1", GetProductsParams(start=200, limit=50))

        params = fake_pos_api.calls("/products")[0].url.params
        assert params["start"] == "200"
        assert params["limit"] == "50"

    @pytest.mark.asyncio
    async def test_failed_upsert_does_not_abort_batch(self, orchestrator, fake_pos_api, db_session):
        fake_pos_api.routes["/rooms"] = {
            "rooms": [{"id": "1", "name": "Sala"}, {"id": "2", "name": "Dehors"}, {"id": "3", "name": "Veranda"}]
        }
        real_upsert = orchestrator.store.upsert

        def flaky_upsert(model, record):
            if record.id == "2":
                raise IntegrityError("INSERT", {}, Exception("constraint failed"))
            return real_upsert(model, record)

        orchestrator.store.upsert = MagicMock(side_effect=flaky_upsert)

        result = await orchestrator.import_rooms("R1")

        assert result.count == 2
        assert result.error is None
        assert len(result.warnings) == 1
        assert orchestrator.store.upsert.call_count == 3

    @pytest.mark.asyncio
    async def test_all_upserts_failing_is_an_error(self, orchestrator, fake_pos_api):
        fake_pos_api.routes["/tables"] = {"tables": [{"id": "t1", "name": "Tavolo 1"}]}
        orchestrator.store.upsert = MagicMock(
            side_effect=IntegrityError("INSERT", {}, Exception("constraint failed"))
        )

        result = await orchestrator.import_tables("R1")

        assert result.count == 0
        assert isinstance(result.error, StoreError)

    @pytest.mark.asyncio
    async def test_receipts_are_stored_with_rows(self, orchestrator, fake_pos_api, db_session):
        fake_pos_api.routes["/receipts"] = {
            "receipts": [
                {
                    "id": "r-1",
                    "date": "2024-01-02",
                    "total": 31,
                    "document": {"rows": [
                        {"idProduct": "100", "quantity": 2, "price": 6, "total": 12},
                        {"idProduct": "101", "quantity": 1, "price": 19, "total": 19},
                    ]},
                },
                {"id": "r-2", "date": "2024-01-02"},
            ]
        }

        result = await orchestrator.import_receipts("R1")

        assert result.count == 1
        assert len(result.warnings) == 1
        assert db_session.query(Receipt).count() == 1
        rows = db_session.query(ReceiptRow).order_by(ReceiptRow.row_number).all()
        assert [r.id for r in rows] == ["r-1-1", "r-1-2"]

    @pytest.mark.asyncio
    async def test_stock_and_sales_imports(self, orchestrator, fake_pos_api):
        fake_pos_api.routes["/stock"] = {
            "stock": [{"idProduct": "100", "idSalesPoint": "1", "quantity": 4}]
        }
        fake_pos_api.routes["/reports/sold-by-product"] = {
            "sold": [{"idProduct": "100", "quantity": 3, "profit": 18}]
        }
        stock = await orchestrator.import_stock("R1")
        sales = await orchestrator.import_sales(
            "R1",
            GetSoldByProductParams(
                datetime_from="2024-01-01T00:00:00", datetime_to="2024-01-31T23:59:59"
            ),
        )

        assert stock.count == 1
        assert sales.count == 1

    @pytest.mark.asyncio
    async def test_malformed_product_does_not_fail_the_page(
        self, orchestrator, fake_pos_api, db_session, categories_imported
    ):
        fake_pos_api.routes["/products"] = {
            "products": [
                {"id": "100", "description": "Bruschetta", "idCategory": "5",
                 "prices": [{"value": 6}]},
                {"id": "101", "description": "Tiramisu", "idCategory": "6",
                 "variants": None, "prices": None, "lastUpdate": "not-a-timestamp"},
                {"id": "102", "description": "Cannolo", "idCategory": "6", "prices": "cheap"},
            ]
        }

        result = await orchestrator.import_products("R1")

        assert result.error is None
        assert result.count == 2
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Record 102 skipped")
        assert result.message == "Imported 2 of 3 products"
        dishes = {d.id: d for d in db_session.query(Dish).all()}
        assert set(dishes) == {"100", "101"}
        assert dishes["101"].has_variants is False
        assert dishes["101"].last_synced_at is None

    @pytest.mark.asyncio
    async def test_receipt_with_null_rows_is_stored(self, orchestrator, fake_pos_api, db_session):
        fake_pos_api.routes["/receipts"] = {
            "receipts": [{"id": "r-1", "date": "2024-01-02", "total": 9, "document": {"rows": None}}]
        }

        result = await orchestrator.import_receipts("R1")

        assert result.count == 1
        assert result.error is None
        assert db_session.query(ReceiptRow).count() == 0

    @pytest.mark.asyncio
    async def test_transport_timeout_returns_error_result(self, orchestrator, fake_pos_api):
        def timeout(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        fake_pos_api.routes["/categories"] = timeout

        result = await orchestrator.import_categories("R1")

        assert result.count == 0
        assert isinstance(result.error, httpx.ReadTimeout)
        assert result.message == "Failed to fetch categories"
        assert result.to_dict()["error"] == "timed out"

    @pytest.mark.asyncio
    async def test_reimported_receipt_drops_rows_no_longer_sent(
        self, orchestrator, fake_pos_api, db_session
    ):
        receipt = {
            "id": "r-1",
            "date": "2024-01-02",
            "total": 31,
            "document": {"rows": [
                {"idProduct": "100", "quantity": 2, "price": 6, "total": 12},
                {"idProduct": "101", "quantity": 1, "price": 19, "total": 19},
            ]},
        }
        fake_pos_api.routes["/receipts"] = {"receipts": [receipt]}
        await orchestrator.import_receipts("R1")

        receipt["total"] = 12
        receipt["document"]["rows"] = receipt["document"]["rows"][:1]
        fake_pos_api.routes["/receipts"] = {"receipts": [receipt]}
        result = await orchestrator.import_receipts("R1")

        assert result.count == 1
        rows = db_session.query(ReceiptRow).all()
        assert [(r.id, r.product_id) for r in rows] == [("r-1-1", "100")]
        assert db_session.query(Receipt).one().total == Decimal("12")
