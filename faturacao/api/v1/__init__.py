# faturacao/api/v1/__init__.py
"""
Versioned API v1: aggregates all sub-routers under ``/api/v1``.

Usage in ``main.py``::

    from faturacao.api.v1 import v1_router
    app.include_router(v1_router)
"""

from fastapi import APIRouter

from faturacao.api.v1.routes.dashboard import router as dashboard_router
from faturacao.api.v1.routes.documents import router as documents_router
from faturacao.api.v1.routes.exchange_rates import router as exchange_rates_router
from faturacao.api.v1.routes.health import router as health_router
from faturacao.api.v1.routes.series import router as series_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(health_router)
v1_router.include_router(documents_router)
v1_router.include_router(series_router)
v1_router.include_router(exchange_rates_router)
v1_router.include_router(dashboard_router)

__all__ = ["v1_router"]
