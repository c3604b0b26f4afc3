# acquirer_simulator/errors.py
from typing import Any, Dict, List, Optional


class AcquirerError(Exception):
    """Base class for errors raised by the simulator core."""


class ValidationError(AcquirerError):
    """Bad or missing invoice fields. Nothing is stored when this is raised."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundError(AcquirerError):
    def __init__(self, message: str, error: str = "invoice_not_found"):
        super().__init__(message)
        self.message = message
        self.error = error


class DeliveryError(AcquirerError):
    """Webhook POST failed, timed out or got a non-2xx answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
