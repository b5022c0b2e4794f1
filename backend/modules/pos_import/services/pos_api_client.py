# backend/modules/pos_import/services/pos_api_client.py

"""
Typed client for the POS cloud API.

One coroutine per resource, each issuing exactly one authenticated GET.
Pagination is the caller's job: start/limit go out as given and the page
comes back with the provider's totalCount.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.config import settings
from ..exceptions.pos_import_exceptions import MappingSkip, POSImportError, PosApiError
from ..schemas.pos_api_schemas import (
    GetCategoriesParams,
    GetCustomersParams,
    GetProductsParams,
    GetReceiptsParams,
    GetRoomsParams,
    GetSalesPointsParams,
    GetSoldByProductParams,
    GetStockParams,
    GetTablesParams,
    PosCategory,
    PosCurrency,
    PosCustomer,
    PosPage,
    PosParams,
    PosProduct,
    PosReceipt,
    PosRoom,
    PosSalesPoint,
    PosSoldByProduct,
    PosSoldByProductReport,
    PosStock,
    PosTable,
)
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def build_query_params(params: Optional[PosParams]) -> List[Tuple[str, str]]:
    """
    Serialize a params model into query pairs.

    None values are dropped, list values repeat their key once per item and
    sort specs are JSON-encoded. Dates and epoch millis pass through verbatim.
    """
    if params is None:
        return []

    query: List[Tuple[str, str]] = []
    for key, value in params.model_dump(by_alias=True, exclude_none=True).items():
        if key == "sorts":
            query.append((key, json.dumps(value)))
        elif isinstance(value, (list, tuple)):
            query.extend((key, _stringify(item)) for item in value)
        else:
            query.append((key, _stringify(value)))
    return query


def _describe_errors(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    )


def extract_collection(
    body: Dict[str, Any], key: str, model: Type[M]
) -> Tuple[List[M], List[str]]:
    """
    Read a resource collection, treating a missing key as an empty list.

    Items are validated one by one. An item that is not an object or does not
    fit the model is left out and its skip reason returned alongside the
    parsed items.
    """
    raw = body.get(key)
    if raw is None:
        raw = body.get("data")
    if not isinstance(raw, list):
        return [], []

    items: List[M] = []
    skipped: List[str] = []
    for item in raw:
        if not isinstance(item, dict):
            skipped.append(str(MappingSkip(f"not a {model.__name__} object")))
            continue
        try:
            items.append(model.model_validate(item))
        except PydanticValidationError as e:
            external_id = item.get("id")
            skip = MappingSkip(
                f"invalid {model.__name__}: {_describe_errors(e)}",
                str(external_id) if external_id is not None else None,
            )
            logger.warning(f"Dropping POS record: {skip}")
            skipped.append(str(skip))
    return items, skipped


class PosApiClient:
    def __init__(
        self,
        token_manager: Optional[TokenManager] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.POS_API_BASE_URL).rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.POS_HTTP_TIMEOUT_SECONDS
        )
        self.token_manager = token_manager or TokenManager(
            http_client=self.http_client, base_url=self.base_url
        )

    async def __aenter__(self) -> "PosApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def _get(
        self,
        endpoint: str,
        params: Optional[PosParams],
        api_key_override: Optional[str] = None,
    ) -> Dict[str, Any]:
        token = await self.token_manager.get_valid_access_token(api_key_override)
        query = build_query_params(params)
        logger.debug(f"GET {endpoint} with {len(query)} query parameters")

        response = await self.http_client.get(
            f"{self.base_url}{endpoint}",
            params=query,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )

        if not response.is_success:
            logger.warning(f"POS API {endpoint} returned status {response.status_code}")
            if response.status_code == 401:
                await self.token_manager.invalidate(api_key_override)
            raise PosApiError(response.status_code, response.text, endpoint)

        try:
            body = response.json()
        except ValueError:
            raise PosApiError(response.status_code, response.text, endpoint)

        if isinstance(body, list):
            return {"data": body}
        if not isinstance(body, dict):
            return {}
        return body

    async def _get_page(
        self,
        endpoint: str,
        key: str,
        model: Type[M],
        params: PosParams,
        api_key_override: Optional[str],
    ) -> PosPage[M]:
        body = await self._get(endpoint, params, api_key_override)
        items, skipped = extract_collection(body, key, model)
        return PosPage[model](
            items=items,
            skipped=skipped,
            total_count=body.get("totalCount"),
            start=getattr(params, "start", None),
            limit=getattr(params, "limit", None),
        )

    async def get_categories(
        self,
        params: Optional[GetCategoriesParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosCategory]:
        return await self._get_page(
            "/categories", "categories", PosCategory,
            params or GetCategoriesParams(), api_key_override,
        )

    async def get_products(
        self,
        params: Optional[GetProductsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosProduct]:
        return await self._get_page(
            "/products", "products", PosProduct,
            params or GetProductsParams(), api_key_override,
        )

    async def get_customers(
        self,
        params: Optional[GetCustomersParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosCustomer]:
        return await self._get_page(
            "/customers", "customers", PosCustomer,
            params or GetCustomersParams(), api_key_override,
        )

    async def get_receipts(
        self,
        params: Optional[GetReceiptsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosReceipt]:
        return await self._get_page(
            "/receipts", "receipts", PosReceipt,
            params or GetReceiptsParams(), api_key_override,
        )

    async def get_rooms(
        self,
        params: Optional[GetRoomsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosRoom]:
        return await self._get_page(
            "/rooms", "rooms", PosRoom,
            params or GetRoomsParams(), api_key_override,
        )

    async def get_tables(
        self,
        params: Optional[GetTablesParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosTable]:
        return await self._get_page(
            "/tables", "tables", PosTable,
            params or GetTablesParams(), api_key_override,
        )

    async def get_stock(
        self,
        params: Optional[GetStockParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosStock]:
        return await self._get_page(
            "/stock", "stock", PosStock,
            params or GetStockParams(), api_key_override,
        )

    async def get_sales_points(
        self,
        params: Optional[GetSalesPointsParams] = None,
        api_key_override: Optional[str] = None,
    ) -> PosPage[PosSalesPoint]:
        return await self._get_page(
            "/sales-points", "salesPoint", PosSalesPoint,
            params or GetSalesPointsParams(), api_key_override,
        )

    async def get_sold_by_product_report(
        self,
        params: GetSoldByProductParams,
        api_key_override: Optional[str] = None,
    ) -> PosSoldByProductReport:
        body = await self._get("/reports/sold-by-product", params, api_key_override)
        currency = body.get("currency")
        items, skipped = extract_collection(body, "sold", PosSoldByProduct)
        return PosSoldByProductReport(
            items=items,
            skipped=skipped,
            total_count=body.get("totalCount"),
            start=params.start,
            limit=params.limit,
            currency=PosCurrency.model_validate(currency) if isinstance(currency, dict) else None,
            total_sold=body.get("totalSold"),
            total_refund=body.get("totalRefund"),
            total_quantity=body.get("totalQuantity"),
        )

    async def test_connection(self, api_key_override: Optional[str] = None) -> bool:
        """Check that the key can mint a token and read sales points"""
        try:
            await self.get_sales_points(GetSalesPointsParams(limit=1), api_key_override)
            return True
        except (POSImportError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"POS connection test failed: {e}")
            return False
