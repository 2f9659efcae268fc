"""Reservation model used by the legacy development endpoints."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .common import utcnow

if TYPE_CHECKING:
    from .train import Train


class Reservation(Base):
    """Anonymous multi-seat reservation appended by ``POST /api/trains/{id}/reserve``."""

    __tablename__ = "reservations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    train_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("trains.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    passenger_count: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("passenger_count > 0", name="ck_reservation_passenger_count_positive"),
    )

    train: Mapped["Train"] = relationship("Train", back_populates="reservations")

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, train_id={self.train_id}, "
            f"passengers={self.passenger_count})>"
        )
