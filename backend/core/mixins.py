from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func


class TimestampMixin:
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(),
                        onupdate=func.now(), nullable=False)


class RestaurantScopedMixin:
    """Natural key of every imported record: (restaurant_id, POS id)"""
    restaurant_id = Column(String(64), primary_key=True)
    id = Column(String(128), primary_key=True)
