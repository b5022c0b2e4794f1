"""
Application startup validation.

Checks the database and the POS configuration before the API starts
serving sync requests.
"""

import logging
import sys
from typing import List, Tuple

import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import engine

logger = logging.getLogger(__name__)

REQUIRED_TABLES = [
    "pos_categories",
    "pos_products",
    "pos_customers",
    "pos_receipts",
    "pos_receipt_rows",
    "pos_rooms",
    "pos_tables",
    "pos_stock",
    "pos_sold_products",
    "pos_access_tokens",
    "pos_sales_point_mappings",
    "pos_bill_states",
]


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except SQLAlchemyError as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_pos_configuration(self) -> bool:
        """A missing POS_API_KEY is fine as long as callers send their own key"""
        if not settings.POS_API_KEY:
            if settings.is_production:
                self.errors.append("POS_API_KEY is required in production but not configured")
                return False
            self.warnings.append("POS_API_KEY not configured - syncs need an api_key per request")
        return True

    def check_required_tables(self) -> bool:
        try:
            existing_tables = sa.inspect(engine).get_table_names()
        except SQLAlchemyError as e:
            self.warnings.append(f"Could not check database tables: {str(e)}")
            return True

        missing_tables = [t for t in REQUIRED_TABLES if t not in existing_tables]
        if missing_tables:
            self.warnings.append(
                f"Missing database tables: {', '.join(missing_tables)}. "
                "Run migrations with: alembic upgrade head"
            )
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        checks = [
            ("POS Configuration", self.check_pos_configuration),
            ("Database Connection", self.check_database_connection),
            ("Database Tables", self.check_required_tables),
        ]

        all_passed = True
        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            if not check_func():
                all_passed = False

        return all_passed, self.errors, self.warnings


def configure_startup_logging():
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run_startup_checks() -> Tuple[bool, List[str]]:
    """Run all startup validation checks"""
    logger.info(f"Starting POS import backend ({settings.environment})")

    validator = StartupValidator()
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings
