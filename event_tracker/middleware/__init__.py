from .correlation import CorrelationIdMiddleware, get_correlation_id
from .error_handler import register_error_handlers
from .metrics import MetricsMiddleware
from .validation import ValidationMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "MetricsMiddleware",
    "ValidationMiddleware",
    "get_correlation_id",
    "register_error_handlers",
]
