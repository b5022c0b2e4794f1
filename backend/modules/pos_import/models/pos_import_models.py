# backend/modules/pos_import/models/pos_import_models.py

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)

from core.database import Base
from core.mixins import RestaurantScopedMixin, TimestampMixin


class RestaurantCategory(Base, RestaurantScopedMixin, TimestampMixin):
    """Menu category imported from the POS; the POS id is the primary key"""

    __tablename__ = "pos_categories"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    external_ref = Column(String(128), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class Dish(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_products"
    __table_args__ = (
        ForeignKeyConstraint(
            ["restaurant_id", "category_id"],
            ["pos_categories.restaurant_id", "pos_categories.id"],
        ),
        Index("idx_pos_products_category", "restaurant_id", "category_id"),
    )

    category_id = Column(String(128), nullable=False)
    name = Column(String(255), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    department_name = Column(String(255), nullable=True)
    vat_percentage = Column(Numeric(5, 2), nullable=True)
    has_variants = Column(Boolean, nullable=False, default=False)
    variants_count = Column(Integer, nullable=False, default=0)
    is_enabled_for_restaurant = Column(Boolean, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class RestaurantCustomer(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_customers"

    name = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    vat_number = Column(String(64), nullable=True)
    fiscal_code = Column(String(64), nullable=True)
    email = Column(String(255), nullable=True)
    phone_number = Column(String(64), nullable=True)
    address = Column(String(255), nullable=True)
    zip_code = Column(String(32), nullable=True)
    city = Column(String(128), nullable=True)
    country = Column(String(64), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class Receipt(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_receipts"
    __table_args__ = (
        Index("idx_pos_receipts_date", "restaurant_id", "receipt_date"),
    )

    number = Column(String(64), nullable=True)
    receipt_date = Column(Date, nullable=False)
    receipt_datetime = Column(DateTime, nullable=True)
    total = Column(Numeric(12, 2), nullable=False)
    z_number = Column(String(64), nullable=True)
    lottery_code = Column(String(64), nullable=True)
    user_fo_id = Column(String(128), nullable=True)
    user_fo_name = Column(String(255), nullable=True)
    document_id = Column(String(128), nullable=True)


class ReceiptRow(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_receipt_rows"
    __table_args__ = (
        ForeignKeyConstraint(
            ["restaurant_id", "receipt_id"],
            ["pos_receipts.restaurant_id", "pos_receipts.id"],
        ),
        Index("idx_pos_receipt_rows_receipt", "restaurant_id", "receipt_id"),
        Index("idx_pos_receipt_rows_product", "restaurant_id", "product_id"),
    )

    receipt_id = Column(String(128), nullable=False)
    row_number = Column(Integer, nullable=False)
    description = Column(String(255), nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    vat = Column(Numeric(5, 2), nullable=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    product_id = Column(String(128), nullable=True)
    product_variant_id = Column(String(128), nullable=True)
    category_id = Column(String(128), nullable=True)
    department_id = Column(String(128), nullable=True)
    is_refund = Column(Boolean, nullable=False, default=False)
    note = Column(Text, nullable=True)


class Room(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_rooms"

    name = Column(String(255), nullable=False)
    sales_point_id = Column(String(64), nullable=True)
    external_ref = Column(String(128), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class DiningTable(Base, RestaurantScopedMixin, TimestampMixin):
    __tablename__ = "pos_tables"

    name = Column(String(255), nullable=False)
    room_id = Column(String(128), nullable=True, index=True)
    sales_point_id = Column(String(64), nullable=True)
    seats = Column(Integer, nullable=False, default=0)
    external_ref = Column(String(128), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class StockLevel(Base, RestaurantScopedMixin, TimestampMixin):
    """Stock per (product, variant, sales point); id is derived from that triple"""

    __tablename__ = "pos_stock"

    product_id = Column(String(128), nullable=False, index=True)
    sales_point_id = Column(String(64), nullable=True)
    variant_id = Column(String(128), nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False, default=0)
    unit = Column(String(32), nullable=True)
    warning_level = Column(Numeric(12, 3), nullable=True)
    manage_stock = Column(Boolean, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)


class SoldProduct(Base, RestaurantScopedMixin, TimestampMixin):
    """Sold-by-product report line for one period; id is period + product"""

    __tablename__ = "pos_sold_products"

    product_id = Column(String(128), nullable=False, index=True)
    product_name = Column(String(255), nullable=True)
    period_from = Column(String(32), nullable=False)
    period_to = Column(String(32), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False, default=0)
    profit = Column(Numeric(12, 2), nullable=False, default=0)
    percent_total = Column(Numeric(7, 4), nullable=True)
    is_menu_entry = Column(Boolean, nullable=False, default=False)


class PosAccessToken(Base, TimestampMixin):
    """Persisted POS bearer token, one per API key (stored as a hash)"""

    __tablename__ = "pos_access_tokens"

    key_hash = Column(String(64), primary_key=True)
    token = Column(Text, nullable=False)
    expires_at = Column(Float, nullable=False)


class PosSalesPointMapping(Base, TimestampMixin):
    """Routes webhook deliveries: one POS sales point belongs to one restaurant"""

    __tablename__ = "pos_sales_point_mappings"

    sales_point_id = Column(String(64), primary_key=True)
    restaurant_id = Column(String(64), nullable=False, index=True)


class PosBillState(Base, RestaurantScopedMixin, TimestampMixin):
    """A bill received by webhook; its presence makes redelivery a no-op"""

    __tablename__ = "pos_bill_states"
    __table_args__ = (
        ForeignKeyConstraint(
            ["restaurant_id", "id"],
            ["pos_receipts.restaurant_id", "pos_receipts.id"],
        ),
    )

    last_updated_at = Column(DateTime, nullable=False)
    item_count = Column(Integer, nullable=False, default=0)
    processed_row_ids = Column(JSON, nullable=False, default=list)  # rows whose product is known
