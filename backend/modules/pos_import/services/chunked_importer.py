# backend/modules/pos_import/services/chunked_importer.py

"""
Receipt import over a date range, split into fixed-size day windows.

Windows run strictly one after another. The first window that fails stops
the loop; counts from the windows already imported are kept in the result.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import List, Optional

from core.config import settings
from ..schemas.pos_api_schemas import GetReceiptsParams
from ..schemas.pos_import_schemas import ChunkWindow, ImportResult
from .import_orchestrator import PosImportOrchestrator

logger = logging.getLogger(__name__)


def split_date_range(date_from: date, date_to: date, window_days: int) -> List[ChunkWindow]:
    """
    Split an inclusive date range into contiguous windows of window_days days.

    The last window is clipped to date_to, e.g. 2024-01-01..2024-01-07 with
    3-day windows gives [01..03], [04..06], [07..07].
    """
    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    if date_from > date_to:
        raise ValueError(f"date_from {date_from} is after date_to {date_to}")

    windows = []
    current = date_from
    while current <= date_to:
        window_end = min(current + timedelta(days=window_days - 1), date_to)
        windows.append(ChunkWindow(date_from=current, date_to=window_end))
        current = window_end + timedelta(days=1)
    return windows


def window_params(window: ChunkWindow, limit: Optional[int] = None) -> GetReceiptsParams:
    return GetReceiptsParams(
        start=0,
        limit=limit or settings.POS_RECEIPT_PAGE_LIMIT,
        datetime_from=f"{window.date_from.isoformat()}T00:00:00",
        datetime_to=f"{window.date_to.isoformat()}T23:59:59",
    )


class ChunkedReceiptImporter:
    def __init__(
        self,
        orchestrator: PosImportOrchestrator,
        window_days: Optional[int] = None,
        page_limit: Optional[int] = None,
    ):
        self.orchestrator = orchestrator
        self.window_days = window_days or settings.POS_RECEIPT_WINDOW_DAYS
        self.page_limit = page_limit

    async def import_receipts_chunked(
        self,
        restaurant_id: str,
        date_from: date,
        date_to: date,
        api_key_override: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ImportResult:
        windows = split_date_range(date_from, date_to, self.window_days)
        result = ImportResult()
        logger.info(
            f"Importing receipts for restaurant {restaurant_id} from {date_from} "
            f"to {date_to} in {len(windows)} windows of {self.window_days} days"
        )

        for index, window in enumerate(windows):
            if cancel_event is not None and cancel_event.is_set():
                result.message = (
                    f"Cancelled after {index} of {len(windows)} windows, "
                    f"{result.count} receipts imported"
                )
                logger.info(result.message)
                return result

            window_result = await self.orchestrator.import_receipts(
                restaurant_id,
                window_params(window, self.page_limit),
                api_key_override,
            )
            result.count += window_result.count
            result.warnings.extend(window_result.warnings)

            if window_result.error is not None:
                result.error = window_result.error
                result.message = (
                    f"Stopped at window {window.date_from}..{window.date_to}, "
                    f"{result.count} receipts imported before the failure"
                )
                logger.error(f"{result.message}: {window_result.error}")
                return result

        result.message = f"Imported {result.count} receipts in {len(windows)} windows"
        logger.info(result.message)
        return result
