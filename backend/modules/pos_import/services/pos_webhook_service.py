# backend/modules/pos_import/services/pos_webhook_service.py

"""
Bills pushed by the POS webhook.

A delivery is authenticated with an HMAC-SHA1 of the raw body, routed to a
restaurant through its sales point and stored as a receipt with its rows.
Each bill is imported once per restaurant: a redelivery finds the bill's
PosBillState and stops there.
"""

import hashlib
import hmac
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from ..exceptions.pos_import_exceptions import UnknownSalesPointError, WebhookAuthError
from ..models.pos_import_models import (
    Dish,
    PosBillState,
    PosSalesPointMapping,
    Receipt,
    ReceiptRow,
)
from ..schemas.pos_api_schemas import PosBill
from ..schemas.pos_import_schemas import UnmappedProduct, WebhookResponse, WebhookStats
from .pos_import_store import PosImportStore
from .schema_mapper import build_bill

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha1="


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


class PosWebhookService:
    """Service for bills delivered by the POS webhook"""

    def __init__(self, db: Session, secret: Optional[str] = None):
        self.db = db
        self.store = PosImportStore(db)
        self.secret = secret if secret is not None else settings.POS_WEBHOOK_SECRET

    def verify_signature(self, body: bytes, signature: Optional[str]) -> None:
        """
        Check the x-cn-signature header against the raw body.

        Raises WebhookAuthError with 401 when the signature or the secret is
        missing, and 403 when the signature does not match.
        """
        if not self.secret or not signature:
            raise WebhookAuthError("Missing webhook signature or secret", 401)

        signature = signature.strip()
        if signature.startswith(SIGNATURE_PREFIX):
            signature = signature[len(SIGNATURE_PREFIX):]

        expected = compute_signature(self.secret, body)
        if not hmac.compare_digest(expected, signature.lower()):
            raise WebhookAuthError("Invalid webhook signature", 403)

    @staticmethod
    def is_bill_operation(operation: Optional[str]) -> bool:
        return bool(operation) and "BILL" in operation

    def resolve_restaurant(self, sales_point_id: Optional[str]) -> str:
        mapping = self.db.get(PosSalesPointMapping, sales_point_id) if sales_point_id else None
        if mapping is None:
            raise UnknownSalesPointError(sales_point_id)
        return mapping.restaurant_id

    def configure_sales_point_mapping(
        self, restaurant_id: str, sales_point_id: str
    ) -> PosSalesPointMapping:
        try:
            mapping = self.db.merge(
                PosSalesPointMapping(sales_point_id=sales_point_id, restaurant_id=restaurant_id)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info(f"Sales point {sales_point_id} mapped to restaurant {restaurant_id}")
        return mapping

    def import_bill(self, bill: PosBill, now: Optional[datetime] = None) -> WebhookResponse:
        """
        Store a bill as a receipt unless it was already imported.

        Items whose product was never imported as a dish are still stored,
        and each one is reported in the response warnings.
        """
        restaurant_id = self.resolve_restaurant(bill.sales_point_id)
        record = build_bill(bill, restaurant_id)

        existing = self.db.get(PosBillState, {"restaurant_id": restaurant_id, "id": record.id})
        if existing is not None:
            logger.info(f"Bill {record.id} already imported for restaurant {restaurant_id}")
            return WebhookResponse(
                bill_id=record.id,
                restaurant_id=restaurant_id,
                duplicate=True,
                message="Bill already imported",
            )

        product_ids = {row.product_id for row in record.rows if row.product_id}
        known_products = set()
        if product_ids:
            known_products = set(
                self.db.scalars(
                    select(Dish.id).where(
                        Dish.restaurant_id == restaurant_id, Dish.id.in_(product_ids)
                    )
                ).all()
            )

        warnings = []
        processed_row_ids = []
        for row in record.rows:
            if row.product_id in known_products:
                processed_row_ids.append(row.id)
            else:
                warnings.append(
                    f"Unmapped product: {row.description} (ID: {row.product_id or row.id})"
                )

        self.store.upsert_receipt(record)
        try:
            self.db.add(
                PosBillState(
                    restaurant_id=restaurant_id,
                    id=record.id,
                    last_updated_at=now or datetime.utcnow(),
                    item_count=len(record.rows),
                    processed_row_ids=processed_row_ids,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            f"Imported bill {record.id} for restaurant {restaurant_id} "
            f"({len(processed_row_ids)} of {len(record.rows)} items mapped)"
        )
        return WebhookResponse(
            bill_id=record.id,
            restaurant_id=restaurant_id,
            message=f"Imported bill {record.id}",
            warnings=warnings,
        )

    def get_webhook_stats(
        self, restaurant_id: str, days: int = 30, now: Optional[datetime] = None
    ) -> WebhookStats:
        since = (now or datetime.utcnow()) - timedelta(days=days)
        states = self.db.scalars(
            select(PosBillState)
            .where(
                PosBillState.restaurant_id == restaurant_id,
                PosBillState.last_updated_at >= since,
            )
            .order_by(PosBillState.last_updated_at.desc())
        ).all()

        if not states:
            return WebhookStats()

        mapped_items = sum(len(state.processed_row_ids or []) for state in states)
        return WebhookStats(
            total_bills=len(states),
            successful_bills=sum(1 for state in states if state.processed_row_ids),
            last_processed_at=states[0].last_updated_at,
            average_items_per_bill=round(mapped_items / len(states), 2),
        )

    def get_unmapped_products(
        self, restaurant_id: str, days: int = 7, today: Optional[date] = None
    ) -> List[UnmappedProduct]:
        """
        Products sold in the last `days` days that have no imported dish.

        Rows are grouped by product id, or by description for rows the POS
        sent without a product. The most frequent come first.
        """
        since = (today or date.today()) - timedelta(days=days)
        product_key = func.coalesce(ReceiptRow.product_id, ReceiptRow.description)
        occurrences = func.count(ReceiptRow.id)

        query = (
            select(
                func.max(ReceiptRow.product_id),
                func.max(ReceiptRow.description),
                occurrences,
                func.max(Receipt.receipt_date),
            )
            .join(
                Receipt,
                and_(
                    Receipt.restaurant_id == ReceiptRow.restaurant_id,
                    Receipt.id == ReceiptRow.receipt_id,
                ),
            )
            .outerjoin(
                Dish,
                and_(
                    Dish.restaurant_id == ReceiptRow.restaurant_id,
                    Dish.id == ReceiptRow.product_id,
                ),
            )
            .where(
                ReceiptRow.restaurant_id == restaurant_id,
                Receipt.receipt_date >= since,
                Dish.id.is_(None),
            )
            .group_by(product_key)
            .order_by(occurrences.desc(), product_key)
        )

        return [
            UnmappedProduct(
                product_id=product_id,
                product_name=product_name,
                occurrences=count,
                last_seen=last_seen,
            )
            for product_id, product_name, count, last_seen in self.db.execute(query).all()
        ]
