"""Service layer package."""

from .booking_service import BookingService
from .inventory_service import InventoryLedger
from .legacy_service import LegacyReservationService
from .train_service import TrainService

__all__ = [
    "BookingService",
    "InventoryLedger",
    "LegacyReservationService",
    "TrainService",
]
