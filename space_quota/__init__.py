"""Space quota observer package."""

from .api import QuotaObserverAPI
from .errors import InvalidQuotaConfiguration
from .models import QuotaObserverConfig, ViolationDecision, ViolationPolicy
from .service_http import create_app

__all__ = [
    "InvalidQuotaConfiguration",
    "QuotaObserverAPI",
    "QuotaObserverConfig",
    "ViolationDecision",
    "ViolationPolicy",
    "create_app",
]

__version__ = "0.1.0"
