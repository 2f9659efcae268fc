"""Train model definition."""

from datetime import datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, Time, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .common import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .reservation import Reservation


class Train(Base):
    """Train entity: the unit of seat inventory."""

    __tablename__ = "trains"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Train information
    train_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    train_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Route
    source_station: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    destination_station: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Schedule (time of day, the train runs daily)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)

    # Inventory; total_seats is fixed at creation, available_seats is only
    # changed by the inventory ledger
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("total_seats > 0", name="ck_train_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="ck_train_available_seats_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_train_available_seats_lte_total"),
        CheckConstraint("price >= 0", name="ck_train_price_non_negative"),
    )

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="train",
        cascade="all, delete-orphan"
    )
    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation",
        back_populates="train",
        cascade="all, delete-orphan"
    )

    @property
    def occupancy_percent(self) -> int:
        """Share of seats currently taken, rounded to a whole percent."""
        return round((self.total_seats - self.available_seats) * 100 / self.total_seats)

    def __repr__(self) -> str:
        return (
            f"<Train(id={self.id}, number='{self.train_number}', "
            f"seats={self.available_seats}/{self.total_seats})>"
        )
