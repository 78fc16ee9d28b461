from .borrowers import router as borrowers_router
from .copies import router as copies_router
from .health import router as health_router
from .history import router as history_router

__all__ = ["borrowers_router", "copies_router", "health_router", "history_router"]
