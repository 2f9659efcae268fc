"""Service behind the legacy development endpoints under /api."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.locks import train_lock
from ..core.observability import metrics_collector
from ..core.retry import run_with_retry
from ..models.reservation import Reservation
from ..models.train import Train
from ..schemas.common import Capacity
from ..schemas.legacy import LegacyReserveRequest, LegacyTrain
from .inventory_service import InventoryLedger

logger = logging.getLogger(__name__)


def _hhmm(value) -> str:
    return value.strftime("%H:%M")


class LegacyReservationService:
    """Multi-seat anonymous reservations, kept for the old mock frontend."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def list_trains(self) -> list[LegacyTrain]:
        """Trains in the mock format ``{id, name, departure, arrival, seats}``."""
        stmt = select(Train).order_by(Train.departure_time, Train.train_number)
        trains = (await self.db.scalars(stmt)).all()
        return [
            LegacyTrain(
                id=str(train.id),
                name=train.train_name,
                departure=_hhmm(train.departure_time),
                arrival=_hhmm(train.arrival_time),
                seats=train.available_seats,
            )
            for train in trains
        ]

    async def _resolve_train_id(self, train_ref: str) -> UUID:
        """Accept either the train UUID or its public train number."""
        try:
            train_id = UUID(train_ref)
        except ValueError:
            train_id = await self.db.scalar(select(Train.id).where(Train.train_number == train_ref))
        else:
            train_id = await self.db.scalar(select(Train.id).where(Train.id == train_id))

        if train_id is None:
            raise NotFoundError(resource_type="train", resource_id=train_ref)
        return train_id

    async def reserve(self, train_ref: str, request: LegacyReserveRequest) -> tuple[Reservation, Capacity]:
        """
        Take ``passengerCount`` seats and append a reservation record.

        Raises:
            NotFoundError: If the train does not exist
            InsufficientCapacityError: If not enough seats are available
        """
        train_id = await self._resolve_train_id(train_ref)

        async def attempt() -> tuple[Reservation, Capacity]:
            async with train_lock(self.db, train_id):
                try:
                    capacity = await self.ledger.try_decrement(train_id, request.passenger_count)
                    reservation = Reservation(
                        train_id=train_id,
                        name=request.name,
                        passenger_count=request.passenger_count,
                    )
                    self.db.add(reservation)
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise
            return reservation, capacity

        reservation, capacity = await run_with_retry(attempt, name="legacy.reserve")
        metrics_collector.set_available_seats(str(train_id), capacity.available)

        logger.info(
            "Legacy reservation created",
            extra={
                "reservation_id": str(reservation.id),
                "train_id": str(train_id),
                "passenger_count": request.passenger_count,
                "remaining_seats": capacity.available,
            }
        )
        return reservation, capacity
