"""Models module exporting all database models."""

from .booking import Booking, BookingStatus, PassengerGender
from .reservation import Reservation
from .train import Train

__all__ = [
    # Inventory entity
    "Train",

    # Booking entities
    "Booking",
    "BookingStatus",
    "PassengerGender",

    # Legacy development entity
    "Reservation",
]
