"""Booking model definition."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .common import utcnow

if TYPE_CHECKING:
    from .train import Train


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PassengerGender(str, Enum):
    """Passenger gender as collected by the booking form."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Booking(Base):
    """Booking entity: one passenger's seat on one train for one travel date."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owning user, as identified by the identity provider
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    train_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("trains.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Passenger details
    passenger_name: Mapped[str] = mapped_column(String(255), nullable=False)
    passenger_age: Mapped[int] = mapped_column(Integer, nullable=False)
    passenger_gender: Mapped[str] = mapped_column(String(16), nullable=False)

    seat_number: Mapped[str] = mapped_column(String(16), nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False, default=lambda: utcnow().date())
    travel_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.CONFIRMED.value,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("passenger_age BETWEEN 1 AND 120", name="ck_booking_passenger_age_range"),
        CheckConstraint("length(passenger_name) > 0", name="ck_booking_passenger_name_not_empty"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="ck_booking_status_valid"),
        CheckConstraint("amount >= 0", name="ck_booking_amount_non_negative"),
        # A seat can only be held by one confirmed booking per train and travel date
        Index(
            "uq_bookings_confirmed_seat",
            "train_id",
            "travel_date",
            "seat_number",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )

    # Relationships
    train: Mapped["Train"] = relationship("Train", back_populates="bookings")

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, train_id={self.train_id}, seat='{self.seat_number}', "
            f"travel_date={self.travel_date}, status={self.status})>"
        )
