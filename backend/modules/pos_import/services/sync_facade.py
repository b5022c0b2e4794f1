# backend/modules/pos_import/services/sync_facade.py

"""
Single entry point for POS syncs.

Validates the parameters the selected resource type needs, then dispatches
to the import orchestrator (or the chunked importer for receipts). Invalid
input fails with ValidationError before any request reaches the POS.
"""

import asyncio
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import ValidationError
from ..enums.pos_import_enums import POSResourceType
from ..schemas.pos_api_schemas import (
    GetCategoriesParams,
    GetCustomersParams,
    GetProductsParams,
    GetRoomsParams,
    GetSoldByProductParams,
    GetStockParams,
    GetTablesParams,
)
from ..schemas.pos_import_schemas import ImportResult, SyncParams
from .chunked_importer import ChunkedReceiptImporter
from .import_orchestrator import PolicyOverrides, PosImportOrchestrator
from .pos_api_client import PosApiClient

logger = logging.getLogger(__name__)

DATE_RANGE_RESOURCES = {POSResourceType.SALES, POSResourceType.RECEIPTS}
SALES_POINT_RESOURCES = {
    POSResourceType.ROOMS,
    POSResourceType.TABLES,
    POSResourceType.STOCK,
}


def validate_sync_params(resource_type: POSResourceType, params: SyncParams) -> None:
    if not (params.restaurant_id or "").strip():
        raise ValidationError("restaurant_id is required")

    if resource_type in DATE_RANGE_RESOURCES:
        if params.date_from is None or params.date_to is None:
            raise ValidationError(
                f"date_from and date_to are required to sync {resource_type.value}"
            )
        if params.date_from > params.date_to:
            raise ValidationError("date_from must not be after date_to")

    if resource_type in SALES_POINT_RESOURCES and not params.sales_point_id:
        raise ValidationError(f"sales_point_id is required to sync {resource_type.value}")


class PosSyncFacade:
    def __init__(
        self,
        db: Session,
        api_client: PosApiClient,
        policies: Optional[PolicyOverrides] = None,
        window_days: Optional[int] = None,
    ):
        self.orchestrator = PosImportOrchestrator(db, api_client, policies)
        self.chunked_importer = ChunkedReceiptImporter(self.orchestrator, window_days)

    async def sync(
        self,
        resource_type: Union[POSResourceType, str],
        params: SyncParams,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ImportResult:
        try:
            resource_type = POSResourceType(resource_type)
        except ValueError:
            raise ValidationError(f"Unknown POS resource type: {resource_type}")

        validate_sync_params(resource_type, params)
        restaurant_id = params.restaurant_id.strip()
        api_key = params.api_key
        logger.info(f"Starting POS {resource_type.value} sync for restaurant {restaurant_id}")

        if resource_type == POSResourceType.RECEIPTS:
            return await self.chunked_importer.import_receipts_chunked(
                restaurant_id, params.date_from, params.date_to, api_key, cancel_event
            )

        if resource_type == POSResourceType.ROOMS_TABLES:
            return await self._sync_rooms_and_tables(restaurant_id, params)

        orchestrator = self.orchestrator
        page = self._page(params)
        sales_points = [params.sales_point_id] if params.sales_point_id else None

        if resource_type == POSResourceType.CATEGORIES:
            return await orchestrator.import_categories(
                restaurant_id, GetCategoriesParams(**page, ids_sales_point=sales_points), api_key
            )
        if resource_type == POSResourceType.PRODUCTS:
            return await orchestrator.import_products(
                restaurant_id, GetProductsParams(**page, ids_sales_point=sales_points), api_key
            )
        if resource_type == POSResourceType.CUSTOMERS:
            return await orchestrator.import_customers(
                restaurant_id, GetCustomersParams(**page), api_key
            )
        if resource_type == POSResourceType.SALES:
            return await orchestrator.import_sales(
                restaurant_id,
                GetSoldByProductParams(
                    **page,
                    datetime_from=f"{params.date_from.isoformat()}T00:00:00",
                    datetime_to=f"{params.date_to.isoformat()}T23:59:59",
                    ids_sales_point=sales_points,
                ),
                api_key,
            )
        if resource_type == POSResourceType.ROOMS:
            return await orchestrator.import_rooms(
                restaurant_id, GetRoomsParams(**page, ids_sales_point=sales_points), api_key
            )
        if resource_type == POSResourceType.TABLES:
            return await orchestrator.import_tables(
                restaurant_id, GetTablesParams(**page, ids_sales_point=sales_points), api_key
            )
        return await orchestrator.import_stock(
            restaurant_id, GetStockParams(**page, ids_sales_point=sales_points), api_key
        )

    async def _sync_rooms_and_tables(
        self, restaurant_id: str, params: SyncParams
    ) -> ImportResult:
        """Rooms first, then tables; a failed rooms import skips the tables"""
        sales_point_id = params.sales_point_id or settings.POS_DEFAULT_SALES_POINT_ID
        if not params.sales_point_id:
            logger.info(
                f"No sales point given for rooms-tables sync, using default {sales_point_id}"
            )
        page = self._page(params)

        rooms = await self.orchestrator.import_rooms(
            restaurant_id,
            GetRoomsParams(**page, ids_sales_point=[sales_point_id]),
            params.api_key,
        )
        if rooms.error is not None:
            return rooms

        tables = await self.orchestrator.import_tables(
            restaurant_id,
            GetTablesParams(**page, ids_sales_point=[sales_point_id]),
            params.api_key,
        )
        return ImportResult(
            count=rooms.count + tables.count,
            error=tables.error,
            message=f"{rooms.message}; {tables.message}",
            warnings=rooms.warnings + tables.warnings,
        )

    @staticmethod
    def _page(params: SyncParams) -> dict:
        return {
            "start": params.start or 0,
            "limit": params.limit or settings.POS_DEFAULT_PAGE_LIMIT,
        }
