from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ValidationError
from ..exceptions.pos_import_exceptions import (
    ConfigurationError,
    MappingSkip,
    POSImportError,
    UnknownSalesPointError,
    WebhookAuthError,
)
from ..schemas.pos_api_schemas import GetSalesPointsParams, PosSalesPoint, PosWebhookPayload
from ..schemas.pos_import_schemas import (
    ConnectionTestRequest,
    ConnectionTestResponse,
    DishSaleData,
    SalesPointMappingRequest,
    SyncRequest,
    SyncResponse,
    UnmappedProduct,
    WebhookResponse,
    WebhookStats,
)
from ..services.pos_api_client import PosApiClient
from ..services.pos_webhook_service import PosWebhookService
from ..services.sales_aggregation_service import SalesAggregationService
from ..services.sync_facade import PosSyncFacade

router = APIRouter(prefix="/pos-import", tags=["POS Import"])

logger = logging.getLogger(__name__)


async def get_pos_api_client():
    async with PosApiClient() as client:
        yield client


async def handle_pos_import_error(request: Request, exc: POSImportError) -> JSONResponse:
    """Surface POS failures with their message; a bad request is the caller's fault"""
    if isinstance(exc, WebhookAuthError):
        status_code = exc.status
    elif isinstance(exc, (ConfigurationError, UnknownSalesPointError, MappingSkip)):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    logger.warning(f"POS import error at {request.url.path}: {exc}")
    content = exc.to_dict()
    content["path"] = str(request.url.path)
    return JSONResponse(status_code=status_code, content=content)


@router.post("/sync", response_model=SyncResponse)
async def sync_pos_resource(
    sync_request: SyncRequest,
    db: Session = Depends(get_db),
    client: PosApiClient = Depends(get_pos_api_client),
):
    """Import one POS resource type for a restaurant"""
    facade = PosSyncFacade(db, client)
    result = await facade.sync(sync_request.resource_type, sync_request)
    return result.to_dict()


@router.get("/sales-points", response_model=List[PosSalesPoint])
async def list_sales_points(
    api_key: Optional[str] = Query(None),
    client: PosApiClient = Depends(get_pos_api_client),
):
    page = await client.get_sales_points(GetSalesPointsParams(), api_key)
    return page.items


@router.post("/test-connection", response_model=ConnectionTestResponse)
async def test_pos_connection(
    request: ConnectionTestRequest,
    client: PosApiClient = Depends(get_pos_api_client),
):
    """Check the API key against the POS"""
    connected = await client.test_connection(request.api_key)
    return {"connected": connected}


@router.get("/dish-sales", response_model=List[DishSaleData])
async def get_dish_sales(
    restaurant_id: str = Query(..., min_length=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    service = SalesAggregationService(db)
    return service.get_dish_sales_by_period(restaurant_id, start_date, end_date)


@router.post("/webhook", response_model=WebhookResponse)
async def receive_pos_webhook(request: Request, db: Session = Depends(get_db)):
    """Import a bill pushed by the POS"""
    body = await request.body()
    service = PosWebhookService(db)
    service.verify_signature(body, request.headers.get("x-cn-signature"))

    operation = request.headers.get("x-cn-operation")
    if not service.is_bill_operation(operation):
        logger.info(f"Ignoring POS webhook operation {operation}")
        return WebhookResponse(message="Operation not handled")

    try:
        payload = PosWebhookPayload.model_validate_json(body)
    except PydanticValidationError:
        raise ValidationError("Invalid webhook payload")

    return service.import_bill(payload.bill)


@router.put("/webhook/sales-points", response_model=SalesPointMappingRequest)
async def map_sales_point(
    mapping: SalesPointMappingRequest,
    db: Session = Depends(get_db),
):
    """Route bills from a sales point to a restaurant"""
    PosWebhookService(db).configure_sales_point_mapping(
        mapping.restaurant_id, mapping.sales_point_id
    )
    return mapping


@router.get("/webhook/stats", response_model=WebhookStats)
async def get_webhook_stats(
    restaurant_id: str = Query(..., min_length=1),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return PosWebhookService(db).get_webhook_stats(restaurant_id, days)


@router.get("/unmapped-products", response_model=List[UnmappedProduct])
async def get_unmapped_products(
    restaurant_id: str = Query(..., min_length=1),
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return PosWebhookService(db).get_unmapped_products(restaurant_id, days)
