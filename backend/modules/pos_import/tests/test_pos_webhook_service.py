# backend/modules/pos_import/tests/test_pos_webhook_service.py

"""
Tests for bills delivered by the POS webhook.
"""

import hashlib
import hmac
import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from core.config import settings
from modules.pos_import.exceptions.pos_import_exceptions import (
    UnknownSalesPointError,
    WebhookAuthError,
)
from modules.pos_import.models.pos_import_models import (
    Dish,
    PosBillState,
    PosSalesPointMapping,
    Receipt,
    ReceiptRow,
    RestaurantCategory,
)
from modules.pos_import.schemas.pos_api_schemas import PosBill
from modules.pos_import.services.pos_webhook_service import PosWebhookService

WEBHOOK_SECRET = "test_webhook_secret"
WEBHOOK_URL = "/api/v1/pos-import/webhook"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()


def bill_payload(bill_id="bill-1", sales_point_id="SP1", items=None):
    return {
        "id": bill_id,
        "salesPointId": sales_point_id,
        "closedAt": "2024-03-01T21:40:00",
        "totalAmount": 30,
        "items": items if items is not None else [
            {"id": "it-1", "name": "Carbonara", "quantity": 2, "unitPrice": 12, "productId": "100"},
            {"id": "it-2", "name": "Tiramisu", "quantity": 1, "unitPrice": 6, "productId": "999"},
        ],
    }


@pytest.fixture
def mapped_restaurant(db_session):
    """Sales point SP1 belongs to R1, which has imported dish 100"""
    db_session.add(PosSalesPointMapping(sales_point_id="SP1", restaurant_id="R1"))
    db_session.add(RestaurantCategory(restaurant_id="R1", id="5", name="Primi"))
    db_session.flush()
    db_session.add(Dish(restaurant_id="R1", id="100", category_id="5", name="Carbonara"))
    db_session.commit()


@pytest.fixture
def service(db_session):
    return PosWebhookService(db_session, secret=WEBHOOK_SECRET)


class TestWebhookSignature:
    """Test x-cn-signature verification"""

    def test_valid_signature(self, service):
        body = b'{"bill": {}}'

        service.verify_signature(body, sign(body))

    def test_prefixed_signature(self, service):
        body = b'{"bill": {}}'

        service.verify_signature(body, f"sha1={sign(body)}")

    def test_missing_signature_is_unauthorized(self, service):
        with pytest.raises(WebhookAuthError) as exc_info:
            service.verify_signature(b"{}", None)

        assert exc_info.value.status == 401

    def test_missing_secret_is_unauthorized(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "POS_WEBHOOK_SECRET", None)
        service = PosWebhookService(db_session)

        with pytest.raises(WebhookAuthError) as exc_info:
            service.verify_signature(b"{}", sign(b"{}"))

        assert exc_info.value.status == 401

    def test_wrong_signature_is_forbidden(self, service):
        body = b'{"bill": {}}'

        with pytest.raises(WebhookAuthError) as exc_info:
            service.verify_signature(body, sign(body, "other_secret"))

        assert exc_info.value.status == 403

    def test_tampered_body_is_forbidden(self, service):
        signature = sign(b'{"bill": {"id": "1"}}')

        with pytest.raises(WebhookAuthError):
            service.verify_signature(b'{"bill": {"id": "2"}}', signature)

    @pytest.mark.parametrize(
        "operation,expected",
        [("BILL/CREATE", True), ("BILL_UPDATE", True), ("PRODUCT/UPDATE", False), (None, False)],
    )
    def test_bill_operations(self, operation, expected):
        assert PosWebhookService.is_bill_operation(operation) is expected


class TestBillImport:
    """Test bill import and redelivery"""

    def test_bill_is_stored_as_receipt(self, service, db_session, mapped_restaurant):
        response = service.import_bill(PosBill.model_validate(bill_payload()))

        assert response.success is True
        assert response.duplicate is False
        assert response.bill_id == "bill-1"
        assert response.restaurant_id == "R1"

        receipt = db_session.get(Receipt, {"restaurant_id": "R1", "id": "bill-1"})
        assert receipt.receipt_date == date(2024, 3, 1)
        assert receipt.total == Decimal("30")
        assert db_session.query(ReceiptRow).filter_by(receipt_id="bill-1").count() == 2

    def test_unmapped_items_are_reported(self, service, db_session, mapped_restaurant):
        response = service.import_bill(PosBill.model_validate(bill_payload()))

        assert response.warnings == ["Unmapped product: Tiramisu (ID: 999)"]
        state = db_session.get(PosBillState, {"restaurant_id": "R1", "id": "bill-1"})
        assert state.processed_row_ids == ["it-1"]
        assert state.item_count == 2

    def test_redelivered_bill_is_not_imported_twice(self, service, db_session, mapped_restaurant):
        service.import_bill(PosBill.model_validate(bill_payload()))
        changed = bill_payload(items=[{"id": "it-9", "name": "Acqua", "quantity": 1, "unitPrice": 2}])

        response = service.import_bill(PosBill.model_validate(changed))

        assert response.duplicate is True
        assert response.warnings == []
        rows = db_session.query(ReceiptRow).filter_by(receipt_id="bill-1").all()
        assert {row.id for row in rows} == {"it-1", "it-2"}
        assert db_session.query(PosBillState).count() == 1

    def test_unknown_sales_point_is_rejected(self, service, db_session, mapped_restaurant):
        with pytest.raises(UnknownSalesPointError):
            service.import_bill(PosBill.model_validate(bill_payload(sales_point_id="SP9")))

        assert db_session.query(Receipt).count() == 0

    def test_sales_point_mapping_can_be_moved(self, service, db_session, mapped_restaurant):
        service.configure_sales_point_mapping("R2", "SP1")

        assert service.resolve_restaurant("SP1") == "R2"
        assert db_session.query(PosSalesPointMapping).count() == 1


class TestWebhookReports:
    """Test webhook statistics and unmapped products"""

    def test_stats(self, service, db_session, mapped_restaurant):
        service.import_bill(PosBill.model_validate(bill_payload("bill-1")), now=datetime(2024, 3, 1, 22))
        service.import_bill(
            PosBill.model_validate(bill_payload("bill-2", items=[])), now=datetime(2024, 3, 2, 22)
        )
        service.import_bill(
            PosBill.model_validate(bill_payload("bill-3", items=[
                {"id": "it-5", "name": "Carbonara", "quantity": 1, "unitPrice": 12, "productId": "100"},
            ])),
            now=datetime(2023, 12, 1, 22),
        )

        stats = service.get_webhook_stats("R1", days=30, now=datetime(2024, 3, 3))

        assert stats.total_bills == 2
        assert stats.successful_bills == 1
        assert stats.last_processed_at == datetime(2024, 3, 2, 22)
        assert stats.average_items_per_bill == 0.5

    def test_stats_without_bills(self, service):
        stats = service.get_webhook_stats("R1")

        assert stats.total_bills == 0
        assert stats.last_processed_at is None
        assert stats.average_items_per_bill == 0

    def test_unmapped_products(self, service, mapped_restaurant):
        service.import_bill(PosBill.model_validate(bill_payload("bill-1")))
        service.import_bill(PosBill.model_validate(bill_payload("bill-2", items=[
            {"id": "it-3", "name": "Tiramisu", "quantity": 1, "unitPrice": 6, "productId": "999"},
            {"id": "it-4", "name": "Coperto", "quantity": 2, "unitPrice": 2},
        ])))

        products = service.get_unmapped_products("R1", days=7, today=date(2024, 3, 5))

        assert [(p.product_id, p.product_name, p.occurrences) for p in products] == [
            ("999", "Tiramisu", 2),
            (None, "Coperto", 1),
        ]
        assert products[0].last_seen == date(2024, 3, 1)

    def test_unmapped_products_outside_window(self, service, mapped_restaurant):
        service.import_bill(PosBill.model_validate(bill_payload()))

        assert service.get_unmapped_products("R1", days=7, today=date(2024, 4, 1)) == []


class TestWebhookEndpoints:
    """Test POST /api/v1/pos-import/webhook and its reports"""

    @pytest.fixture(autouse=True)
    def webhook_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "POS_WEBHOOK_SECRET", WEBHOOK_SECRET)

    def post_bill(self, client, payload, operation="BILL/CREATE", signature=None):
        body = json.dumps(payload).encode()
        headers = {"Content-Type": "application/json", "x-cn-operation": operation}
        headers["x-cn-signature"] = signature if signature is not None else sign(body)
        return client.post(WEBHOOK_URL, content=body, headers=headers)

    def test_bill_webhook(self, client, db_session, mapped_restaurant):
        response = self.post_bill(client, {"bill": bill_payload()})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["bill_id"] == "bill-1"
        assert data["warnings"] == ["Unmapped product: Tiramisu (ID: 999)"]
        assert db_session.query(Receipt).count() == 1

    def test_redelivery_is_acknowledged(self, client, mapped_restaurant):
        self.post_bill(client, {"bill": bill_payload()})

        response = self.post_bill(client, {"bill": bill_payload()})

        assert response.status_code == 200
        assert response.json()["duplicate"] is True

    def test_unsigned_delivery_is_unauthorized(self, client):
        body = json.dumps({"bill": bill_payload()}).encode()

        response = client.post(WEBHOOK_URL, content=body, headers={"x-cn-operation": "BILL/CREATE"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "POS_WEBHOOK_AUTH_FAILED"

    def test_bad_signature_is_forbidden(self, client, db_session):
        response = self.post_bill(client, {"bill": bill_payload()}, signature="0" * 40)

        assert response.status_code == 403
        assert db_session.query(Receipt).count() == 0

    def test_other_operations_are_ignored(self, client, db_session, mapped_restaurant):
        response = self.post_bill(client, {"bill": bill_payload()}, operation="PRODUCT/UPDATE")

        assert response.status_code == 200
        assert response.json()["message"] == "Operation not handled"
        assert db_session.query(Receipt).count() == 0

    def test_invalid_payload_is_a_bad_request(self, client):
        body = b"not json"

        response = client.post(
            WEBHOOK_URL,
            content=body,
            headers={"x-cn-operation": "BILL/CREATE", "x-cn-signature": sign(body)},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unknown_sales_point_is_a_bad_request(self, client, mapped_restaurant):
        response = self.post_bill(client, {"bill": bill_payload(sales_point_id="SP9")})

        assert response.status_code == 400
        assert response.json()["error_code"] == "POS_UNKNOWN_SALES_POINT"

    def test_sales_point_mapping_and_stats(self, client, db_session):
        response = client.put(
            "/api/v1/pos-import/webhook/sales-points",
            json={"restaurant_id": "R1", "sales_point_id": "SP1"},
        )
        assert response.status_code == 200

        self.post_bill(client, {"bill": bill_payload(items=[])})
        stats = client.get("/api/v1/pos-import/webhook/stats", params={"restaurant_id": "R1"})

        assert stats.status_code == 200
        assert stats.json()["total_bills"] == 1
        assert stats.json()["successful_bills"] == 0

    def test_unmapped_products_endpoint(self, client):
        response = client.get("/api/v1/pos-import/unmapped-products", params={"restaurant_id": "R1"})

        assert response.status_code == 200
        assert response.json() == []
