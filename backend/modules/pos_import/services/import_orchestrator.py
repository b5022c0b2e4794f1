# backend/modules/pos_import/services/import_orchestrator.py

"""
Single-page imports of POS resources into the internal store.

Each import fetches one page, maps every record and upserts the survivors one
at a time. Skipped records and failed writes end up in ImportResult.warnings;
only a failed fetch (or a batch where nothing could be written) is an error.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from ..enums.pos_import_enums import POSResourceType
from ..exceptions.pos_import_exceptions import MappingSkip, POSImportError, StoreError
from ..models.pos_import_models import (
    DiningTable,
    Dish,
    RestaurantCategory,
    RestaurantCustomer,
    Room,
    SoldProduct,
    StockLevel,
)
from ..schemas.pos_api_schemas import (
    GetCategoriesParams,
    GetCustomersParams,
    GetProductsParams,
    GetReceiptsParams,
    GetRoomsParams,
    GetSoldByProductParams,
    GetStockParams,
    GetTablesParams,
    PosPage,
)
from ..schemas.pos_import_schemas import ImportResult
from .pos_api_client import PosApiClient
from .pos_import_store import PosImportStore
from .schema_mapper import (
    FieldPolicy,
    build_category,
    build_customer,
    build_product,
    build_receipt,
    build_room,
    build_sold_by_product,
    build_stock,
    build_table,
)

logger = logging.getLogger(__name__)

PolicyOverrides = Mapping[POSResourceType, Mapping[str, FieldPolicy]]


class PosImportOrchestrator:
    def __init__(
        self,
        db: Session,
        api_client: PosApiClient,
        policies: Optional[PolicyOverrides] = None,
    ):
        self.db = db
        self.api_client = api_client
        self.store = PosImportStore(db)
        self.policies: Dict[POSResourceType, Mapping[str, FieldPolicy]] = dict(policies or {})

    async def import_categories(
        self,
        restaurant_id: str,
        params: Optional[GetCategoriesParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetCategoriesParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.CATEGORIES)

        return await self._run_import(
            "categories",
            lambda: self.api_client.get_categories(params, api_key_override),
            lambda item: build_category(item, restaurant_id, policies),
            lambda record: self.store.upsert(RestaurantCategory, record),
        )

    async def import_products(
        self,
        restaurant_id: str,
        params: Optional[GetProductsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        """Import products; those whose category was never imported are skipped"""
        params = params or GetProductsParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.PRODUCTS)
        category_map = self.store.get_category_map(restaurant_id)
        pricing_sales_point_id = params.ids_sales_point[0] if params.ids_sales_point else None

        return await self._run_import(
            "products",
            lambda: self.api_client.get_products(params, api_key_override),
            lambda item: build_product(
                item, restaurant_id, category_map, policies, pricing_sales_point_id
            ),
            lambda record: self.store.upsert(Dish, record),
        )

    async def import_customers(
        self,
        restaurant_id: str,
        params: Optional[GetCustomersParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetCustomersParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.CUSTOMERS)

        return await self._run_import(
            "customers",
            lambda: self.api_client.get_customers(params, api_key_override),
            lambda item: build_customer(item, restaurant_id, policies),
            lambda record: self.store.upsert(RestaurantCustomer, record),
        )

    async def import_receipts(
        self,
        restaurant_id: str,
        params: Optional[GetReceiptsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetReceiptsParams(start=0, limit=settings.POS_RECEIPT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.RECEIPTS)

        return await self._run_import(
            "receipts",
            lambda: self.api_client.get_receipts(params, api_key_override),
            lambda item: build_receipt(item, restaurant_id, policies),
            self.store.upsert_receipt,
        )

    async def import_rooms(
        self,
        restaurant_id: str,
        params: Optional[GetRoomsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetRoomsParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.ROOMS)

        return await self._run_import(
            "rooms",
            lambda: self.api_client.get_rooms(params, api_key_override),
            lambda item: build_room(item, restaurant_id, policies),
            lambda record: self.store.upsert(Room, record),
        )

    async def import_tables(
        self,
        restaurant_id: str,
        params: Optional[GetTablesParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetTablesParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.TABLES)

        return await self._run_import(
            "tables",
            lambda: self.api_client.get_tables(params, api_key_override),
            lambda item: build_table(item, restaurant_id, policies),
            lambda record: self.store.upsert(DiningTable, record),
        )

    async def import_stock(
        self,
        restaurant_id: str,
        params: Optional[GetStockParams] = None,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        params = params or GetStockParams(start=0, limit=settings.POS_DEFAULT_PAGE_LIMIT)
        policies = self.policies.get(POSResourceType.STOCK)

        return await self._run_import(
            "stock entries",
            lambda: self.api_client.get_stock(params, api_key_override),
            lambda item: build_stock(item, restaurant_id, policies),
            lambda record: self.store.upsert(StockLevel, record),
        )

    async def import_sales(
        self,
        restaurant_id: str,
        params: GetSoldByProductParams,
        api_key_override: Optional[str] = None,
    ) -> ImportResult:
        """Import the sold-by-product report for the period in params"""
        policies = self.policies.get(POSResourceType.SALES)
        period_from = str(params.datetime_from)
        period_to = str(params.datetime_to)

        return await self._run_import(
            "sales lines",
            lambda: self.api_client.get_sold_by_product_report(params, api_key_override),
            lambda item: build_sold_by_product(
                item, restaurant_id, period_from, period_to, policies
            ),
            lambda record: self.store.upsert(SoldProduct, record),
        )

    async def _run_import(
        self,
        label: str,
        fetch: Callable[[], Awaitable[PosPage]],
        build: Callable[[Any], Any],
        upsert: Callable[[Any], Any],
    ) -> ImportResult:
        try:
            page = await fetch()
        except (POSImportError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch {label} from POS: {e}")
            return ImportResult(count=0, error=e, message=f"Failed to fetch {label}")

        result = ImportResult()
        failed = 0

        for reason in page.skipped:
            logger.info(f"Skipping {label} record: {reason}")
            result.warnings.append(reason)

        for item in page.items:
            try:
                record = build(item)
            except MappingSkip as skip:
                logger.info(f"Skipping {label} record: {skip}")
                result.warnings.append(str(skip))
                continue

            try:
                upsert(record)
            except SQLAlchemyError as e:
                logger.error(f"Failed to save {label} record {record.id}: {e}")
                result.warnings.append(f"Record {record.id} not saved: {e}")
                failed += 1
                continue

            result.count += 1

        if failed and result.count == 0:
            result.error = StoreError(label, failed)

        fetched = len(page.items) + len(page.skipped)
        result.message = f"Imported {result.count} of {fetched} {label}"
        logger.info(result.message)
        return result
