# backend/modules/pos_import/services/pos_import_store.py

import logging
from typing import Dict, Optional, Type

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import Base
from ..models.pos_import_models import Receipt, ReceiptRow, RestaurantCategory
from ..schemas.pos_import_schemas import ReceiptRecord

logger = logging.getLogger(__name__)


class PosImportStore:
    """
    Upsert repository for imported POS records.

    Every write is its own transaction: a failing record is rolled back
    without touching the records already committed in the same batch.
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, model: Type[Base], record: BaseModel) -> Base:
        try:
            row = self.db.merge(model(**record.model_dump()))
            self.db.commit()
            return row
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def upsert_receipt(self, record: ReceiptRecord) -> Receipt:
        """
        Write a receipt and its rows in one transaction.

        Rows stored earlier for this receipt that are no longer in the record
        are deleted, so the stored rows always match the latest import.
        """
        try:
            receipt = self.db.merge(Receipt(**record.model_dump(exclude={"rows"})))
            # Rows reference the receipt through a composite FK
            self.db.flush()

            stale_rows = delete(ReceiptRow).where(
                ReceiptRow.restaurant_id == record.restaurant_id,
                ReceiptRow.receipt_id == record.id,
            )
            if record.rows:
                stale_rows = stale_rows.where(
                    ReceiptRow.id.not_in([row.id for row in record.rows])
                )
            self.db.execute(stale_rows)

            for row in record.rows:
                self.db.merge(ReceiptRow(**row.model_dump()))
            self.db.commit()
            return receipt
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def get_category_map(self, restaurant_id: str) -> Dict[str, str]:
        """POS category id -> internal category id (identity) for one restaurant"""
        ids = self.db.scalars(
            select(RestaurantCategory.id).where(
                RestaurantCategory.restaurant_id == restaurant_id
            )
        ).all()
        return {category_id: category_id for category_id in ids}

    def get(self, model: Type[Base], restaurant_id: str, record_id: str) -> Optional[Base]:
        return self.db.get(model, {"restaurant_id": restaurant_id, "id": record_id})
