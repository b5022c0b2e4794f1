# backend/modules/pos_import/services/schema_mapper.py

"""
Pure translation of POS records into canonical records.

Every resource has a build_* function that raises MappingSkip with a reason
when a record cannot be mapped, and a map_* twin that returns None instead.
Neither touches the network, the database or the clock.

What happens when a field is missing or unusable is decided by FIELD_POLICIES,
one table per resource type, which callers can override per field.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from ..enums.pos_import_enums import MissingFieldPolicy, POSResourceType
from ..exceptions.pos_import_exceptions import MappingSkip
from ..schemas.pos_api_schemas import (
    PosBill,
    PosCategory,
    PosCustomer,
    PosPrice,
    PosProduct,
    PosReceipt,
    PosReceiptRow,
    PosRoom,
    PosSoldByProduct,
    PosStock,
    PosTable,
)
from ..schemas.pos_import_schemas import (
    CategoryRecord,
    CustomerRecord,
    ProductRecord,
    ReceiptRecord,
    ReceiptRowRecord,
    RoomRecord,
    SoldProductRecord,
    StockRecord,
    TableRecord,
)

R = TypeVar("R")


@dataclass(frozen=True)
class FieldPolicy:
    field: str
    on_missing: MissingFieldPolicy
    default: Any = None


def _reject(field: str) -> FieldPolicy:
    return FieldPolicy(field, MissingFieldPolicy.REJECT)


def _default(field: str, value: Any) -> FieldPolicy:
    return FieldPolicy(field, MissingFieldPolicy.DEFAULT, value)


FIELD_POLICIES: Dict[POSResourceType, Dict[str, FieldPolicy]] = {
    POSResourceType.CATEGORIES: {"name": _reject("name")},
    POSResourceType.PRODUCTS: {
        "name": _reject("name"),
        "price": _default("price", Decimal("0")),
    },
    POSResourceType.CUSTOMERS: {"name": _reject("name")},
    POSResourceType.RECEIPTS: {
        "total": _reject("total"),
        "date": _reject("date"),
    },
    POSResourceType.ROOMS: {"name": _reject("name")},
    POSResourceType.TABLES: {
        "name": _reject("name"),
        "seats": _default("seats", 0),
    },
    POSResourceType.STOCK: {"quantity": _default("quantity", Decimal("0"))},
    POSResourceType.SALES: {
        "quantity": _default("quantity", Decimal("0")),
        "profit": _default("profit", Decimal("0")),
    },
}


def resolve_policies(
    resource_type: POSResourceType,
    overrides: Optional[Mapping[str, FieldPolicy]] = None,
) -> Dict[str, FieldPolicy]:
    policies = dict(FIELD_POLICIES.get(resource_type, {}))
    if overrides:
        policies.update(overrides)
    return policies


def _apply_policy(
    policies: Mapping[str, FieldPolicy], field: str, value: Any, external_id: Optional[str]
) -> Any:
    if value is not None:
        return value
    policy = policies.get(field)
    if policy is None or policy.on_missing == MissingFieldPolicy.REJECT:
        raise MappingSkip(f"missing or invalid {field}", external_id)
    return policy.default


# Value coercion


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def to_int(value: Any) -> Optional[int]:
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def _text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def epoch_ms_to_datetime(value: Any) -> Optional[datetime]:
    """POS lastUpdate (epoch millis) as naive UTC; None when unusable"""
    millis = to_decimal(value)
    if millis is None or millis <= 0:
        return None
    try:
        return datetime.fromtimestamp(float(millis) / 1000, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def parse_pos_datetime(value: Optional[str]) -> Optional[datetime]:
    value = _text(value)
    if value is None:
        return None
    if value.isdigit():
        return epoch_ms_to_datetime(value)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_pos_date(value: Optional[str]) -> Optional[date]:
    parsed = parse_pos_datetime(value)
    return parsed.date() if parsed else None


def _require_id(value: Optional[str]) -> str:
    external_id = _text(value)
    if external_id is None:
        raise MappingSkip("missing POS id")
    return external_id


def _or_none(builder: Callable[..., R], *args, **kwargs) -> Optional[R]:
    try:
        return builder(*args, **kwargs)
    except MappingSkip:
        return None


# Categories


def build_category(
    record: PosCategory,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> CategoryRecord:
    policies = resolve_policies(POSResourceType.CATEGORIES, policies)
    external_id = _require_id(record.id)
    name = _apply_policy(
        policies, "name", _text(record.description) or _text(record.name), external_id
    )

    return CategoryRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        name=name,
        description=record.description,
        external_ref=record.external_id,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_category(
    record: PosCategory,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[CategoryRecord]:
    return _or_none(build_category, record, restaurant_id, policies)


# Products


def select_price(
    prices: List[PosPrice], pricing_sales_point_id: Optional[str] = None
) -> Any:
    """First price entry wins, unless one matches the pricing sales point"""
    if not prices:
        return None
    if pricing_sales_point_id:
        for price in prices:
            if price.id_sales_point == pricing_sales_point_id:
                return price.value
    return prices[0].value


def build_product(
    record: PosProduct,
    restaurant_id: str,
    category_map: Mapping[str, str],
    policies: Optional[Mapping[str, FieldPolicy]] = None,
    pricing_sales_point_id: Optional[str] = None,
) -> ProductRecord:
    policies = resolve_policies(POSResourceType.PRODUCTS, policies)
    external_id = _require_id(record.id)
    name = _apply_policy(policies, "name", _text(record.description), external_id)

    # Never written with a dangling category reference
    external_category_id = _text(record.id_category)
    if external_category_id is None:
        raise MappingSkip("product has no category", external_id)
    category_id = category_map.get(external_category_id)
    if category_id is None:
        raise MappingSkip(
            f"category {external_category_id} has not been imported", external_id
        )

    price = to_decimal(select_price(record.prices, pricing_sales_point_id))
    price = _apply_policy(policies, "price", price, external_id)

    department = record.department
    vat_percentage = None
    if department is not None and department.tax is not None:
        vat_percentage = to_decimal(department.tax.rate)

    return ProductRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        category_id=category_id,
        name=name,
        selling_price=price,
        notes=record.description_label,
        department_name=department.description if department else None,
        vat_percentage=vat_percentage,
        has_variants=bool(record.multivariant),
        variants_count=len(record.variants),
        is_enabled_for_restaurant=record.enable_for_risto,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_product(
    record: PosProduct,
    restaurant_id: str,
    category_map: Mapping[str, str],
    policies: Optional[Mapping[str, FieldPolicy]] = None,
    pricing_sales_point_id: Optional[str] = None,
) -> Optional[ProductRecord]:
    return _or_none(
        build_product, record, restaurant_id, category_map, policies, pricing_sales_point_id
    )


# Customers


def customer_display_name(record: PosCustomer) -> Optional[str]:
    full_name = " ".join(
        part for part in (_text(record.first_name), _text(record.last_name)) if part
    )
    return _text(record.name) or _text(full_name) or _text(record.email)


def build_customer(
    record: PosCustomer,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> CustomerRecord:
    policies = resolve_policies(POSResourceType.CUSTOMERS, policies)
    external_id = _require_id(record.id)
    name = _apply_policy(policies, "name", customer_display_name(record), external_id)

    return CustomerRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        name=name,
        first_name=record.first_name,
        last_name=record.last_name,
        vat_number=record.vat_number,
        fiscal_code=record.fiscal_code,
        email=record.email,
        phone_number=record.phone_number,
        address=record.address,
        zip_code=record.zip_code,
        city=record.city,
        country=record.country,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_customer(
    record: PosCustomer,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[CustomerRecord]:
    return _or_none(build_customer, record, restaurant_id, policies)


# Receipts


def build_receipt_row(
    row: PosReceiptRow, index: int, receipt_id: str, restaurant_id: str
) -> ReceiptRowRecord:
    row_number = row.row_number if row.row_number is not None else index + 1
    return ReceiptRowRecord(
        id=_text(row.id) or f"{receipt_id}-{row_number}",
        restaurant_id=restaurant_id,
        receipt_id=receipt_id,
        row_number=row_number,
        description=row.description,
        quantity=to_decimal(row.quantity) or Decimal("0"),
        price=to_decimal(row.price) or Decimal("0"),
        vat=to_decimal(row.vat),
        total=to_decimal(row.total) or Decimal("0"),
        product_id=_text(row.id_product),
        product_variant_id=_text(row.id_product_variant),
        category_id=_text(row.id_category),
        department_id=_text(row.id_department),
        is_refund=bool(row.refund),
        note=row.note,
    )


def build_receipt(
    record: PosReceipt,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> ReceiptRecord:
    policies = resolve_policies(POSResourceType.RECEIPTS, policies)
    external_id = _require_id(record.id)
    total = _apply_policy(policies, "total", to_decimal(record.total), external_id)

    receipt_datetime = parse_pos_datetime(record.datetime) or parse_pos_datetime(record.date)
    receipt_date = parse_pos_date(record.date) or (
        receipt_datetime.date() if receipt_datetime else None
    )
    receipt_date = _apply_policy(policies, "date", receipt_date, external_id)

    document = record.document
    user = record.user or (document.user if document else None)
    user_fo_name = record.user_fo_name or (
        (user.full_name or user.name or user.username) if user else None
    )

    rows = [
        build_receipt_row(row, index, external_id, restaurant_id)
        for index, row in enumerate(document.rows if document else [])
    ]

    return ReceiptRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        number=record.number,
        receipt_date=receipt_date,
        receipt_datetime=receipt_datetime,
        total=total,
        z_number=record.z_number,
        lottery_code=record.lottery_code,
        user_fo_id=record.id_user_fo or (user.id if user else None),
        user_fo_name=user_fo_name,
        document_id=document.id if document else None,
        rows=rows,
    )


def map_receipt(
    record: PosReceipt,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[ReceiptRecord]:
    return _or_none(build_receipt, record, restaurant_id, policies)


def build_bill(
    bill: PosBill,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> ReceiptRecord:
    """
    Map a webhook bill onto a receipt. Items become rows; the receipt field
    policies apply to the bill total and closing date.
    """
    policies = resolve_policies(POSResourceType.RECEIPTS, policies)
    external_id = _require_id(bill.id)
    total = _apply_policy(policies, "total", to_decimal(bill.total_amount), external_id)
    closed_at = parse_pos_datetime(bill.closed_at)
    receipt_date = _apply_policy(
        policies, "date", closed_at.date() if closed_at else None, external_id
    )

    rows = []
    for index, item in enumerate(bill.items):
        quantity = to_decimal(item.quantity) or Decimal("0")
        price = to_decimal(item.unit_price) or Decimal("0")
        rows.append(
            ReceiptRowRecord(
                id=_text(item.id) or f"{external_id}-{index + 1}",
                restaurant_id=restaurant_id,
                receipt_id=external_id,
                row_number=index + 1,
                description=_text(item.name),
                quantity=quantity,
                price=price,
                total=to_decimal(item.total_price) or price * quantity,
                product_id=_text(item.product_id),
                category_id=_text(item.category_id),
            )
        )

    return ReceiptRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        number=_text(bill.bill_number),
        receipt_date=receipt_date,
        receipt_datetime=closed_at,
        total=total,
        rows=rows,
    )


def map_bill(
    bill: PosBill,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[ReceiptRecord]:
    return _or_none(build_bill, bill, restaurant_id, policies)


# Rooms and tables


def build_room(
    record: PosRoom,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> RoomRecord:
    policies = resolve_policies(POSResourceType.ROOMS, policies)
    external_id = _require_id(record.id)
    name = _apply_policy(policies, "name", _text(record.name), external_id)

    return RoomRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        name=name,
        sales_point_id=record.id_sales_point,
        external_ref=record.external_id,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_room(
    record: PosRoom,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[RoomRecord]:
    return _or_none(build_room, record, restaurant_id, policies)


def build_table(
    record: PosTable,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> TableRecord:
    policies = resolve_policies(POSResourceType.TABLES, policies)
    external_id = _require_id(record.id)
    name = _apply_policy(policies, "name", _text(record.name), external_id)

    # seatsAvailable is what the API actually fills in
    raw_seats = record.seats_available if record.seats_available is not None else record.seats
    seats = _apply_policy(policies, "seats", to_int(raw_seats), external_id)

    room_id = _text(record.id_room) or (_text(record.room.id) if record.room else None)

    return TableRecord(
        id=external_id,
        restaurant_id=restaurant_id,
        name=name,
        room_id=room_id,
        sales_point_id=record.id_sales_point,
        seats=seats,
        external_ref=record.external_id,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_table(
    record: PosTable,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[TableRecord]:
    return _or_none(build_table, record, restaurant_id, policies)


# Stock and sales


def stock_record_id(
    product_id: str, variant_id: Optional[str], sales_point_id: Optional[str]
) -> str:
    return f"{product_id}:{variant_id or '-'}:{sales_point_id or '-'}"


def build_stock(
    record: PosStock,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> StockRecord:
    policies = resolve_policies(POSResourceType.STOCK, policies)
    product_id = _text(record.id_product)
    if product_id is None:
        raise MappingSkip("stock entry has no product")
    variant_id = _text(record.id_variant)
    sales_point_id = _text(record.id_sales_point)
    quantity = _apply_policy(policies, "quantity", to_decimal(record.quantity), product_id)

    return StockRecord(
        id=stock_record_id(product_id, variant_id, sales_point_id),
        restaurant_id=restaurant_id,
        product_id=product_id,
        sales_point_id=sales_point_id,
        variant_id=variant_id,
        quantity=quantity,
        unit=record.unit,
        warning_level=to_decimal(record.warning_level),
        manage_stock=record.manage_stock,
        last_synced_at=epoch_ms_to_datetime(record.last_update),
    )


def map_stock(
    record: PosStock,
    restaurant_id: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[StockRecord]:
    return _or_none(build_stock, record, restaurant_id, policies)


def build_sold_by_product(
    record: PosSoldByProduct,
    restaurant_id: str,
    period_from: str,
    period_to: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> SoldProductRecord:
    policies = resolve_policies(POSResourceType.SALES, policies)
    product_id = _text(record.id_product)
    if product_id is None:
        raise MappingSkip("sales line has no product")

    return SoldProductRecord(
        id=f"{period_from}:{period_to}:{product_id}",
        restaurant_id=restaurant_id,
        product_id=product_id,
        product_name=record.product.description if record.product else None,
        period_from=period_from,
        period_to=period_to,
        quantity=_apply_policy(policies, "quantity", to_decimal(record.quantity), product_id),
        profit=_apply_policy(policies, "profit", to_decimal(record.profit), product_id),
        percent_total=to_decimal(record.percent_total),
        is_menu_entry=bool(record.is_menu_entry),
    )


def map_sold_by_product(
    record: PosSoldByProduct,
    restaurant_id: str,
    period_from: str,
    period_to: str,
    policies: Optional[Mapping[str, FieldPolicy]] = None,
) -> Optional[SoldProductRecord]:
    return _or_none(
        build_sold_by_product, record, restaurant_id, period_from, period_to, policies
    )
