"""FastAPI routers package."""

from .booking import router as booking_router
from .health import router as health_router
from .legacy import router as legacy_router
from .metrics import router as metrics_router
from .train import router as train_router

__all__ = [
    "booking_router",
    "health_router",
    "legacy_router",
    "metrics_router",
    "train_router",
]
