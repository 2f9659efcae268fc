"""Inventory ledger: per-train seat counters and their reconciliation."""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    CapacityOverflowError,
    InsufficientCapacityError,
    NotFoundError,
    ValidationError,
)
from ..core.locks import train_lock
from ..core.observability import get_logger, metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.reservation import Reservation
from ..models.train import Train
from ..schemas.common import Capacity
from ..schemas.train import InventoryDrift, ReconcileInventoryResponse

logger = logging.getLogger(__name__)
integrity_logger = get_logger("rail_reservation.integrity")


class InventoryLedger:
    """
    Authoritative seat counters of all trains.

    ``try_decrement`` and ``increment`` are single conditional UPDATE
    statements, so each is an atomic compare-and-set on the train row. They
    run inside the caller's transaction and never commit: the booking
    lifecycle commits the counter change together with the booking row.

    ``reconcile`` and ``reconcile_all`` are standalone operations that take
    the train lock and commit on their own.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _check_quantity(n: int) -> None:
        if n < 1:
            raise ValidationError(
                detail="Seat quantity must be at least 1",
                errors={"n": n}
            )

    async def get_capacity(self, train_id: UUID) -> Capacity:
        """
        Read the current total and available seats of a train.

        Raises:
            NotFoundError: If the train does not exist
        """
        stmt = select(Train.total_seats, Train.available_seats).where(Train.id == train_id)
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            logger.warning("Train not found", extra={"train_id": str(train_id)})
            raise NotFoundError(resource_type="train", resource_id=str(train_id))
        return Capacity(total=row.total_seats, available=row.available_seats)

    async def try_decrement(self, train_id: UUID, n: int = 1) -> Capacity:
        """
        Take ``n`` seats if at least ``n`` are available.

        Returns:
            Capacity after the decrement

        Raises:
            NotFoundError: If the train does not exist
            InsufficientCapacityError: If fewer than ``n`` seats are available
                (the counter is left untouched)
        """
        self._check_quantity(n)

        stmt = (
            update(Train)
            .where(Train.id == train_id, Train.available_seats >= n)
            .values(available_seats=Train.available_seats - n)
            .returning(Train.total_seats, Train.available_seats)
        )
        row = (await self.db.execute(stmt)).one_or_none()

        if row is None:
            current = await self.get_capacity(train_id)
            logger.warning(
                "Seat decrement refused - insufficient capacity",
                extra={
                    "train_id": str(train_id),
                    "requested_seats": n,
                    "available_seats": current.available,
                }
            )
            raise InsufficientCapacityError(
                train_id=str(train_id),
                requested_seats=n,
                available_seats=current.available
            )

        logger.debug(
            "Seats decremented",
            extra={"train_id": str(train_id), "seats": n, "available_seats": row.available_seats}
        )
        return Capacity(total=row.total_seats, available=row.available_seats)

    async def increment(self, train_id: UUID, n: int = 1) -> Capacity:
        """
        Give ``n`` seats back.

        Returns:
            Capacity after the increment

        Raises:
            NotFoundError: If the train does not exist
            CapacityOverflowError: If available seats would exceed total seats.
                This means a seat was released twice; the counter is left untouched.
        """
        self._check_quantity(n)

        stmt = (
            update(Train)
            .where(Train.id == train_id, Train.available_seats + n <= Train.total_seats)
            .values(available_seats=Train.available_seats + n)
            .returning(Train.total_seats, Train.available_seats)
        )
        row = (await self.db.execute(stmt)).one_or_none()

        if row is None:
            current = await self.get_capacity(train_id)
            logger.critical(
                "Seat release would exceed total capacity - integrity violation",
                extra={
                    "train_id": str(train_id),
                    "released_seats": n,
                    "available_seats": current.available,
                    "total_seats": current.total,
                }
            )
            integrity_logger.error(
                "capacity_overflow",
                train_id=str(train_id),
                released_seats=n,
                available_seats=current.available,
                total_seats=current.total,
            )
            metrics_collector.record_capacity_overflow(str(train_id))
            raise CapacityOverflowError(
                train_id=str(train_id),
                released_seats=n,
                available_seats=current.available,
                total_seats=current.total
            )

        logger.debug(
            "Seats released",
            extra={"train_id": str(train_id), "seats": n, "available_seats": row.available_seats}
        )
        return Capacity(total=row.total_seats, available=row.available_seats)

    async def seats_held(self, train_id: UUID) -> int:
        """Seats held by confirmed bookings and legacy reservations of the train."""
        confirmed = await self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.train_id == train_id,
                Booking.status == BookingStatus.CONFIRMED.value
            )
        )
        reserved = await self.db.scalar(
            select(func.coalesce(func.sum(Reservation.passenger_count), 0)).where(
                Reservation.train_id == train_id
            )
        )
        return int(confirmed or 0) + int(reserved or 0)

    async def check_invariant(self, train_id: UUID) -> InventoryDrift:
        """Compare the stored counter with total seats minus seats held."""
        capacity = await self.get_capacity(train_id)
        expected = capacity.total - await self.seats_held(train_id)
        return InventoryDrift(
            train_id=train_id,
            total_seats=capacity.total,
            stored_available=capacity.available,
            expected_available=expected,
            drift=capacity.available - expected,
        )

    async def reconcile(self, train_id: UUID, repair: bool = False) -> InventoryDrift:
        """
        Check one train under its lock, optionally overwriting a drifted counter.

        A negative expected value means the train is oversold; the counter is
        then set to 0 since the bookings themselves are left for investigation.
        """
        async with train_lock(self.db, train_id):
            try:
                result = await self.check_invariant(train_id)

                if not result.consistent:
                    if repair:
                        repaired_value = max(0, min(result.expected_available, result.total_seats))
                        await self.db.execute(
                            update(Train)
                            .where(Train.id == train_id)
                            .values(available_seats=repaired_value)
                        )
                        result.repaired = True
                        metrics_collector.set_available_seats(str(train_id), repaired_value)

                    integrity_logger.error(
                        "inventory_drift",
                        train_id=str(train_id),
                        stored_available=result.stored_available,
                        expected_available=result.expected_available,
                        drift=result.drift,
                        repaired=result.repaired,
                    )
                    metrics_collector.record_drift(str(train_id), result.repaired)

                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        return result

    async def reconcile_all(self, repair: bool = False) -> ReconcileInventoryResponse:
        """Reconcile every train, one lock and one transaction per train."""
        train_ids = list((await self.db.scalars(select(Train.id).order_by(Train.train_number))).all())
        # Release the read transaction before taking per-train locks
        await self.db.commit()

        drifted = []
        for train_id in train_ids:
            result = await self.reconcile(train_id, repair=repair)
            if not result.consistent:
                drifted.append(result)

        logger.info(
            "Inventory reconciliation completed",
            extra={"checked": len(train_ids), "drifted": len(drifted), "repair": repair}
        )
        return ReconcileInventoryResponse(checked=len(train_ids), drifted=drifted)
