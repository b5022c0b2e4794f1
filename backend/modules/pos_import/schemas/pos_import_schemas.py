# backend/modules/pos_import/schemas/pos_import_schemas.py

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums.pos_import_enums import POSResourceType


# Canonical records, as written to the internal store


class CategoryRecord(BaseModel):
    id: str
    restaurant_id: str
    name: str
    description: Optional[str] = None
    external_ref: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class ProductRecord(BaseModel):
    id: str
    restaurant_id: str
    category_id: str
    name: str
    selling_price: Decimal = Decimal("0")
    notes: Optional[str] = None
    department_name: Optional[str] = None
    vat_percentage: Optional[Decimal] = None
    has_variants: bool = False
    variants_count: int = 0
    is_enabled_for_restaurant: Optional[bool] = None
    last_synced_at: Optional[datetime] = None


class CustomerRecord(BaseModel):
    id: str
    restaurant_id: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    vat_number: Optional[str] = None
    fiscal_code: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class ReceiptRowRecord(BaseModel):
    id: str
    restaurant_id: str
    receipt_id: str
    row_number: int
    description: Optional[str] = None
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    vat: Optional[Decimal] = None
    total: Decimal = Decimal("0")
    product_id: Optional[str] = None
    product_variant_id: Optional[str] = None
    category_id: Optional[str] = None
    department_id: Optional[str] = None
    is_refund: bool = False
    note: Optional[str] = None


class ReceiptRecord(BaseModel):
    id: str
    restaurant_id: str
    number: Optional[str] = None
    receipt_date: date
    receipt_datetime: Optional[datetime] = None
    total: Decimal
    z_number: Optional[str] = None
    lottery_code: Optional[str] = None
    user_fo_id: Optional[str] = None
    user_fo_name: Optional[str] = None
    document_id: Optional[str] = None
    rows: List[ReceiptRowRecord] = Field(default_factory=list)


class RoomRecord(BaseModel):
    id: str
    restaurant_id: str
    name: str
    sales_point_id: Optional[str] = None
    external_ref: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class TableRecord(BaseModel):
    id: str
    restaurant_id: str
    name: str
    room_id: Optional[str] = None
    sales_point_id: Optional[str] = None
    seats: int = 0
    external_ref: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class StockRecord(BaseModel):
    id: str
    restaurant_id: str
    product_id: str
    sales_point_id: Optional[str] = None
    variant_id: Optional[str] = None
    quantity: Decimal = Decimal("0")
    unit: Optional[str] = None
    warning_level: Optional[Decimal] = None
    manage_stock: Optional[bool] = None
    last_synced_at: Optional[datetime] = None


class SoldProductRecord(BaseModel):
    id: str
    restaurant_id: str
    product_id: str
    product_name: Optional[str] = None
    period_from: str
    period_to: str
    quantity: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    percent_total: Optional[Decimal] = None
    is_menu_entry: bool = False


# Import results


@dataclass
class ImportResult:
    """Uniform outcome of every import: records written, not records fetched."""

    count: int = 0
    error: Optional[Exception] = None
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "error": str(self.error) if self.error else None,
            "message": self.message,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ChunkWindow:
    date_from: date
    date_to: date


# Sync facade


class SyncParams(BaseModel):
    """Parameters supplied by the caller of the sync facade"""

    model_config = ConfigDict(extra="ignore")

    restaurant_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sales_point_id: Optional[str] = None
    api_key: Optional[str] = None
    start: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=1, le=1000)


class SyncRequest(SyncParams):
    resource_type: POSResourceType


class SyncResponse(BaseModel):
    count: int
    error: Optional[str] = None
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ConnectionTestRequest(BaseModel):
    api_key: Optional[str] = None


class ConnectionTestResponse(BaseModel):
    connected: bool


class DishSaleData(BaseModel):
    dish_id: str
    dish_name: str
    total_quantity_sold: Decimal
    total_revenue: Decimal


# Webhook


class WebhookResponse(BaseModel):
    success: bool = True
    bill_id: Optional[str] = None
    restaurant_id: Optional[str] = None
    duplicate: bool = False
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class SalesPointMappingRequest(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    sales_point_id: str = Field(..., min_length=1)


class WebhookStats(BaseModel):
    total_bills: int = 0
    successful_bills: int = 0
    last_processed_at: Optional[datetime] = None
    average_items_per_bill: float = 0.0


class UnmappedProduct(BaseModel):
    """A product seen on imported receipts that was never imported as a dish"""

    product_id: Optional[str] = None
    product_name: Optional[str] = None
    occurrences: int
    last_seen: Optional[date] = None
