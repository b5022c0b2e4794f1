# backend/modules/pos_import/exceptions/pos_import_exceptions.py

from typing import Any, Dict, Optional


class POSImportError(Exception):
    """Base exception for all POS import errors"""

    def __init__(
        self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigurationError(POSImportError):
    """Raised when no POS API key is available"""

    def __init__(self, message: str = "POS API key is not configured"):
        super().__init__(message, "POS_CONFIGURATION_ERROR")


class AuthError(POSImportError):
    """Raised when the POS auth endpoint rejects the token request"""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(
            f"POS token request failed with status {status}: {body}",
            "POS_AUTH_FAILED",
            {"status": status, "body": body},
        )


class PosApiError(POSImportError):
    """Raised on any non-2xx response from a POS resource endpoint"""

    def __init__(self, status: int, body: str, endpoint: Optional[str] = None):
        self.status = status
        self.body = body
        self.endpoint = endpoint
        location = f" on {endpoint}" if endpoint else ""
        super().__init__(
            f"POS API request failed{location} with status {status}: {body}",
            "POS_API_ERROR",
            {"status": status, "body": body, "endpoint": endpoint},
        )


class MappingSkip(POSImportError):
    """
    A record intentionally excluded from an import.

    Not a hard failure: the orchestrator records the reason as a warning
    and continues with the rest of the batch.
    """

    def __init__(self, reason: str, external_id: Optional[str] = None):
        self.reason = reason
        self.external_id = external_id
        label = f"Record {external_id}" if external_id else "Record"
        super().__init__(
            f"{label} skipped: {reason}",
            "POS_RECORD_SKIPPED",
            {"reason": reason, "external_id": external_id},
        )


class StoreError(POSImportError):
    """Raised when no record of an import batch could be written"""

    def __init__(self, resource: str, failed: int):
        super().__init__(
            f"Failed to save all {failed} {resource} records",
            "POS_STORE_ERROR",
            {"resource": resource, "failed": failed},
        )


class WebhookAuthError(POSImportError):
    """Raised when a webhook delivery is unsigned or its signature does not match"""

    def __init__(self, message: str, status: int):
        self.status = status
        super().__init__(message, "POS_WEBHOOK_AUTH_FAILED", {"status": status})


class UnknownSalesPointError(POSImportError):
    """Raised when a webhook names a sales point no restaurant is mapped to"""

    def __init__(self, sales_point_id: Optional[str]):
        self.sales_point_id = sales_point_id
        super().__init__(
            f"Sales point {sales_point_id} is not mapped to a restaurant",
            "POS_UNKNOWN_SALES_POINT",
            {"sales_point_id": sales_point_id},
        )
