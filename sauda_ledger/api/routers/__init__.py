"""API router package for endpoint composition."""

from .health import api_create_health_router
from .ledger import api_create_ledger_router
from .pnl import api_create_pnl_router
from .recalculation import api_create_recalculation_router
from .stock import api_create_stock_router

__all__ = [
    "api_create_health_router",
    "api_create_ledger_router",
    "api_create_pnl_router",
    "api_create_recalculation_router",
    "api_create_stock_router",
]
