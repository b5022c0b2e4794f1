# backend/modules/pos_import/schemas/pos_api_schemas.py

"""
Shapes of the POS cloud API: resource records as the provider sends them,
and the query parameters each endpoint accepts.

Records are parsed leniently. Every field is optional and unknown fields are
ignored, so a malformed record reaches the schema mapper (and is skipped there
with a reason) instead of failing the whole page. Monetary and quantity fields
are kept raw for the same reason: the mapper decides what is numeric. A record
that still fails validation is dropped from the page and listed in
PosPage.skipped.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

DateParam = Union[str, int]  # ISO date string or epoch milliseconds, sent verbatim


class PosModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


# Records


class PosCurrency(PosModel):
    id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    number_of_decimals: Optional[int] = None
    symbol: Optional[str] = None


class PosTax(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    rate: Any = None


class PosDepartment(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    tax: Optional[PosTax] = None


class PosCategory(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    name: Optional[str] = None
    external_id: Optional[str] = None
    id_sales_point: Optional[str] = None
    enable_for_risto: Optional[bool] = None
    enable_for_sale: Optional[bool] = None
    image_url: Optional[str] = None
    last_update: Any = None


class PosPrice(PosModel):
    id_sales_point: Optional[str] = None
    value: Any = None


class PosProductVariant(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    description_receipt: Optional[str] = None


class PosProduct(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    description_label: Optional[str] = None
    description_receipt: Optional[str] = None
    id_department: Optional[str] = None
    department: Optional[PosDepartment] = None
    id_category: Optional[str] = None
    category: Optional[PosCategory] = None
    sold_by_weight: Optional[bool] = None
    multivariant: Optional[bool] = None
    enable_for_risto: Optional[bool] = None
    enable_for_sale: Optional[bool] = None
    internal_id: Optional[str] = None
    variants: List[PosProductVariant] = Field(default_factory=list)
    prices: List[PosPrice] = Field(default_factory=list)
    id_sales_point: Optional[str] = None
    last_update: Any = None

    @field_validator("variants", "prices", mode="before")
    @classmethod
    def null_list_as_empty(cls, v):
        return [] if v is None else v


class PosCustomer(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
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
    id_organization: Optional[str] = None
    last_update: Any = None


class PosUser(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None


class PosReceiptRow(PosModel):
    id: Optional[str] = None
    description: Optional[str] = None
    quantity: Any = None
    price: Any = None
    vat: Any = None
    total: Any = None
    refund: Optional[bool] = None
    menu: Optional[bool] = None
    cover_charge: Optional[bool] = None
    id_product: Optional[str] = None
    id_product_variant: Optional[str] = None
    id_category: Optional[str] = None
    id_department: Optional[str] = None
    row_number: Optional[int] = None
    note: Optional[str] = None


class PosReceiptDocument(PosModel):
    id: Optional[str] = None
    amount: Any = None
    rows: List[PosReceiptRow] = Field(default_factory=list)
    user: Optional[PosUser] = None

    @field_validator("rows", mode="before")
    @classmethod
    def null_rows_as_empty(cls, v):
        return [] if v is None else v


class PosReceipt(PosModel):
    id: Optional[str] = None
    number: Optional[str] = None
    date: Optional[str] = None
    datetime: Optional[str] = None
    total: Any = None
    z_number: Optional[str] = None
    lottery_code: Optional[str] = None
    user: Optional[PosUser] = None
    id_user_fo: Optional[str] = Field(default=None, alias="idUserFO")
    user_fo_name: Optional[str] = Field(default=None, alias="userFOName")
    document: Optional[PosReceiptDocument] = None


class PosRoom(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
    id_sales_point: Optional[str] = None
    external_id: Optional[str] = None
    last_update: Any = None


class PosTable(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
    id_sales_point: Optional[str] = None
    id_room: Optional[str] = None
    room: Optional[PosRoom] = None
    external_id: Optional[str] = None
    seats: Any = None
    seats_available: Any = None
    last_update: Any = None


class PosStock(PosModel):
    id_product: Optional[str] = None
    id_sales_point: Optional[str] = None
    id_variant: Optional[str] = None
    quantity: Any = None
    unit: Optional[str] = None
    warning_level: Any = None
    manage_stock: Optional[bool] = None
    last_update: Any = None


class PosSoldByProduct(PosModel):
    id_product: Optional[str] = None
    id_menu_product: Optional[str] = None
    is_menu_entry: Optional[bool] = None
    is_composition_entry: Optional[bool] = None
    product: Optional[PosProduct] = None
    quantity: Any = None
    profit: Any = None
    percent_total: Any = None


class PosSalesPoint(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    street: Optional[str] = None
    zipcode: Optional[str] = None
    vat_number: Optional[str] = None
    currency: Optional[PosCurrency] = None


# Webhook payloads


class PosBillItem(PosModel):
    id: Optional[str] = None
    name: Optional[str] = None
    quantity: Any = None
    unit_price: Any = None
    total_price: Any = None
    product_id: Optional[str] = None
    category_id: Optional[str] = None


class PosBill(PosModel):
    """A closed bill as pushed by the POS webhook"""

    id: Optional[str] = None
    sales_point_id: Optional[str] = None
    closed_at: Optional[str] = None
    total_amount: Any = None
    items: List[PosBillItem] = Field(default_factory=list)
    bill_number: Optional[str] = None
    table_number: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, v):
        return [] if v is None else v


class PosWebhookPayload(PosModel):
    bill: PosBill
    operation: Optional[str] = None
    timestamp: Optional[str] = None


# Responses


class PosPage(BaseModel, Generic[T]):
    """One page of a POS collection. The client never auto-paginates."""

    items: List[T] = Field(default_factory=list)
    total_count: Optional[int] = None
    start: Optional[int] = None
    limit: Optional[int] = None
    skipped: List[str] = Field(default_factory=list)  # records that failed validation


class PosSoldByProductReport(PosPage[PosSoldByProduct]):
    currency: Optional[PosCurrency] = None
    total_sold: Any = None
    total_refund: Any = None
    total_quantity: Any = None


class AccessTokenResponse(BaseModel):
    access_token: str
    expires_in: int
    token_type: Optional[str] = None


# Query parameters


class PosParams(PosModel):
    sorts: Optional[List[Dict[str, Any]]] = None


class GetCategoriesParams(PosParams):
    start: Optional[int] = None
    limit: Optional[int] = None
    ids_sales_point: Optional[List[str]] = None
    description: Optional[str] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None
    enabled_for_channels: Optional[List[str]] = None
    item_list_visibility: Optional[bool] = None


class GetProductsParams(PosParams):
    start: Optional[int] = None
    limit: Optional[int] = None
    ids_sales_point: Optional[List[str]] = None
    description: Optional[str] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None
    enabled_for_channels: Optional[List[str]] = None
    item_list_visibility: Optional[bool] = None
    id_categories: Optional[List[str]] = None
    id_departments: Optional[List[str]] = None


class GetCustomersParams(PosParams):
    start: int = 0
    limit: int = 100
    ids: Optional[List[str]] = None
    vat_number: Optional[str] = None
    fiscal_code: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    ids_organization: Optional[List[str]] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None


class GetReceiptsParams(PosParams):
    start: int = 0
    limit: int = 1000
    datetime_from: Optional[DateParam] = None
    datetime_to: Optional[DateParam] = None
    ids_sales_point: Optional[List[str]] = None
    id_customers: Optional[List[str]] = None
    numbers: Optional[List[str]] = None
    z_number: Optional[str] = None
    id_user_fo: Optional[str] = Field(default=None, alias="idUserFO")
    id_device: Optional[str] = None
    lottery_code: Optional[str] = None


class GetRoomsParams(PosParams):
    start: int = 0
    limit: int = 100
    ids_sales_point: List[str] = Field(default_factory=list)
    ids: Optional[List[str]] = None
    name: Optional[str] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None


class GetTablesParams(PosParams):
    start: int = 0
    limit: int = 100
    ids_sales_point: List[str] = Field(default_factory=list)
    ids: Optional[List[str]] = None
    name: Optional[str] = None
    ids_room: Optional[List[str]] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None


class GetStockParams(PosParams):
    start: int = 0
    limit: int = 100
    ids_sales_point: List[str] = Field(default_factory=list)
    id_products: Optional[List[str]] = None
    last_update_from: Optional[DateParam] = None
    last_update_to: Optional[DateParam] = None


class GetSoldByProductParams(PosParams):
    start: int = 0
    limit: int = 100
    datetime_from: DateParam
    datetime_to: DateParam
    ids_sales_point: Optional[List[str]] = None
    id_products: Optional[List[str]] = None
    id_departments: Optional[List[str]] = None
    id_categories: Optional[List[str]] = None


class GetSalesPointsParams(PosParams):
    start: int = 0
    limit: int = 100
    ids: Optional[List[str]] = None
    name: Optional[str] = None
