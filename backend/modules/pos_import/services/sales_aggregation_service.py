# backend/modules/pos_import/services/sales_aggregation_service.py

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from ..models.pos_import_models import Dish, Receipt, ReceiptRow
from ..schemas.pos_import_schemas import DishSaleData

logger = logging.getLogger(__name__)


class SalesAggregationService:
    """Per-dish sales figures computed from imported receipt rows"""

    def __init__(self, db: Session):
        self.db = db

    def get_dish_sales_by_period(
        self,
        restaurant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DishSaleData]:
        """
        Aggregate quantity and revenue per product over an optional date range.

        Revenue is the row total, or price * quantity when the POS sent no
        total. Rows without a product are ignored. Dishes that were never
        imported are labelled "Prodotto <id>".
        """
        query = (
            select(ReceiptRow)
            .join(
                Receipt,
                and_(
                    Receipt.restaurant_id == ReceiptRow.restaurant_id,
                    Receipt.id == ReceiptRow.receipt_id,
                ),
            )
            .where(ReceiptRow.restaurant_id == restaurant_id)
        )
        if start_date:
            query = query.where(Receipt.receipt_date >= start_date)
        if end_date:
            query = query.where(Receipt.receipt_date <= end_date)

        rows = self.db.scalars(query).all()
        if not rows:
            logger.info(f"No receipt rows for restaurant {restaurant_id} in the period")
            return []

        quantities: Dict[str, Decimal] = {}
        revenues: Dict[str, Decimal] = {}
        for row in rows:
            if not row.product_id:
                continue
            quantity = Decimal(row.quantity or 0)
            revenue = Decimal(row.total or 0) or Decimal(row.price or 0) * quantity
            quantities[row.product_id] = quantities.get(row.product_id, Decimal("0")) + quantity
            revenues[row.product_id] = revenues.get(row.product_id, Decimal("0")) + revenue

        names = {}
        if quantities:
            dishes = self.db.execute(
                select(Dish.id, Dish.name).where(
                    Dish.restaurant_id == restaurant_id,
                    Dish.id.in_(list(quantities)),
                )
            ).all()
            names = {dish_id: name for dish_id, name in dishes}

        logger.info(
            f"Aggregated sales of {len(quantities)} products for restaurant {restaurant_id}"
        )
        return [
            DishSaleData(
                dish_id=product_id,
                dish_name=names.get(product_id) or f"Prodotto {product_id}",
                total_quantity_sold=quantity,
                total_revenue=revenues[product_id],
            )
            for product_id, quantity in quantities.items()
        ]
