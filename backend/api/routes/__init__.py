"""API Routes - Domain-based routing"""

from .connection import router as connection_router
from .movement import router as movement_router
from .tools import router as tools_router

__all__ = [
    'connection_router',
    'movement_router',
    'tools_router',
]
