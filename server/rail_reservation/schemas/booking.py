"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.booking import BookingStatus, PassengerGender
from .common import Capacity
from .train import Train


def _clean_name(v: str) -> str:
    v = " ".join(v.split())
    if not v:
        raise ValueError("Passenger name is required")
    return v


class CreateBookingRequest(BaseModel):
    """Request schema for booking one seat."""

    train_id: UUID = Field(..., description="Train to book")
    passenger_name: str = Field(..., min_length=1, max_length=255, description="Passenger full name")
    passenger_age: int = Field(..., ge=1, le=120, description="Passenger age in years")
    passenger_gender: PassengerGender = Field(..., description="Passenger gender")
    travel_date: date = Field(..., description="Date of travel")

    @field_validator("passenger_name")
    @classmethod
    def validate_passenger_name(cls, v: str) -> str:
        return _clean_name(v)


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: UUID = Field(..., description="Booking to cancel")


class DeleteBookingRequest(BaseModel):
    """Request schema for deleting a cancelled booking."""

    booking_id: UUID = Field(..., description="Booking to delete")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: UUID = Field(..., description="Booking to retrieve")


class EditBookingRequest(BaseModel):
    """Request schema for editing passenger details or travel date of a confirmed booking."""

    booking_id: UUID = Field(..., description="Booking to edit")
    passenger_name: str | None = Field(None, min_length=1, max_length=255, description="New passenger name")
    passenger_age: int | None = Field(None, ge=1, le=120, description="New passenger age")
    passenger_gender: PassengerGender | None = Field(None, description="New passenger gender")
    travel_date: date | None = Field(None, description="New travel date")

    @field_validator("passenger_name")
    @classmethod
    def validate_passenger_name(cls, v: str | None) -> str | None:
        return None if v is None else _clean_name(v)

    @model_validator(mode="after")
    def require_change(self) -> "EditBookingRequest":
        if not self.changes():
            raise ValueError("At least one field to edit must be provided")
        return self

    def changes(self) -> dict:
        """Fields the caller asked to change."""
        return self.model_dump(exclude={"booking_id"}, exclude_none=True)


class ListBookingsRequest(BaseModel):
    """Request schema for listing the caller's bookings."""

    status: BookingStatus | None = Field(None, description="Only bookings in this status")


class Booking(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Unique booking ID")
    user_id: str = Field(..., description="Owning user")
    train_id: UUID = Field(..., description="Booked train")
    passenger_name: str = Field(..., description="Passenger full name")
    passenger_age: int = Field(..., description="Passenger age")
    passenger_gender: PassengerGender = Field(..., description="Passenger gender")
    seat_number: str = Field(..., description="Assigned seat label")
    booking_date: date = Field(..., description="Date the booking was made")
    travel_date: date = Field(..., description="Date of travel")
    amount: Decimal = Field(..., description="Fare charged")
    status: BookingStatus = Field(..., description="Booking status")
    created_at: datetime = Field(..., description="Booking creation time (ISO 8601)")


class BookingWithTrain(Booking):
    """Booking response including the booked train."""

    train: Train = Field(..., description="Booked train")


class BookingResult(BaseModel):
    """Response of a lifecycle operation, with the train's capacity after it was applied."""

    booking: Booking = Field(..., description="Booking after the operation")
    capacity: Capacity = Field(..., description="Train capacity after the operation")


class DeletedBooking(BaseModel):
    """Response of a delete operation."""

    booking_id: UUID = Field(..., description="Deleted booking ID")
    deleted: bool = Field(True, description="Always true on success")


class BookingList(BaseModel):
    """Response schema for the caller's bookings."""

    items: list[BookingWithTrain] = Field(..., description="Bookings, newest first")
    confirmed_count: int = Field(..., description="Number of confirmed bookings")
    cancelled_count: int = Field(..., description="Number of cancelled bookings")
