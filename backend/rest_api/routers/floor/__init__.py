"""
Floor routers - /api/locations/{location_id}/*
Table, session and order operations for servers, managers and the kitchen.
"""

from .orders import router as orders_router
from .sessions import router as sessions_router
from .tables import router as tables_router

__all__ = ["orders_router", "sessions_router", "tables_router"]
