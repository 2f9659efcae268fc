"""Booking lifecycle service: create, cancel, edit and delete seat bookings."""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import (
    AuthorizationError,
    InsufficientCapacityError,
    InvalidTransitionError,
    NotFoundError,
    ProblemDetailsException,
    ValidationError,
)
from ..core.locks import train_lock
from ..core.observability import metrics_collector
from ..core.retry import run_with_retry
from ..models.booking import Booking, BookingStatus
from ..models.common import utcnow
from ..models.train import Train
from ..schemas.booking import CreateBookingRequest, EditBookingRequest
from ..schemas.common import Capacity
from .inventory_service import InventoryLedger

logger = logging.getLogger(__name__)

SEAT_PREFIX = "S"


@contextmanager
def _track_rejections(operation: str) -> Iterator[None]:
    """Count domain errors raised by a lifecycle operation."""
    try:
        yield
    except ProblemDetailsException as e:
        metrics_collector.record_rejection(operation, e.code or str(e.status_code))
        raise


class BookingService:
    """
    Service for the booking lifecycle.

    Every operation that changes a train's seat counter runs under that
    train's lock in a single transaction, so the booking row and the counter
    are committed or rolled back together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    @staticmethod
    def _validate_travel_date(travel_date: date) -> None:
        today = utcnow().date()
        if travel_date < today:
            raise ValidationError(
                detail="Travel date cannot be in the past",
                errors={"travel_date": travel_date.isoformat(), "earliest": today.isoformat()}
            )

    @staticmethod
    def _check_owner(booking: Booking, user_id: str | None) -> None:
        """``user_id`` of None skips the ownership check (internal callers)."""
        if user_id is not None and booking.user_id != user_id:
            logger.warning(
                "Booking access denied",
                extra={"booking_id": str(booking.id), "user_id": user_id}
            )
            raise AuthorizationError(detail="This booking belongs to another user")

    async def _reload_booking(self, booking_id: UUID) -> Booking:
        """Re-read a booking inside the current transaction; it may have been deleted since lookup."""
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()
        if not booking:
            logger.warning("Booking disappeared before it could be changed", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def _allocate_seat(
        self,
        train_id: UUID,
        total_seats: int,
        travel_date: date,
        preferred: str | None = None,
        exclude_booking_id: UUID | None = None,
    ) -> str:
        """
        Pick the seat label for a confirmed booking on ``travel_date``.

        Returns ``preferred`` when it is still free, otherwise the lowest free
        label ``S1..S<total_seats>``. Must be called under the train lock.
        """
        stmt = select(Booking.seat_number).where(
            Booking.train_id == train_id,
            Booking.travel_date == travel_date,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        taken = set((await self.db.scalars(stmt)).all())

        if preferred and preferred not in taken:
            return preferred

        for number in range(1, total_seats + 1):
            label = f"{SEAT_PREFIX}{number}"
            if label not in taken:
                return label

        # Only reachable if the seat counter disagrees with the bookings
        logger.error(
            "No free seat label although capacity was granted",
            extra={"train_id": str(train_id), "travel_date": travel_date.isoformat()}
        )
        raise InsufficientCapacityError(train_id=str(train_id), requested_seats=1, available_seats=0)

    async def create_booking(self, request: CreateBookingRequest, user_id: str) -> tuple[Booking, Capacity]:
        """
        Book one seat for a passenger.

        Args:
            request: Validated passenger and travel details
            user_id: Owning user from the identity provider

        Returns:
            The confirmed booking and the train's capacity after the booking

        Raises:
            ValidationError: If the travel date is in the past (nothing is touched)
            NotFoundError: If the train does not exist
            InsufficientCapacityError: If the train has no seat left
        """
        with _track_rejections("create"):
            self._validate_travel_date(request.travel_date)

            async def attempt() -> tuple[Booking, Capacity]:
                async with train_lock(self.db, request.train_id):
                    try:
                        capacity = await self.ledger.try_decrement(request.train_id, 1)
                        train = await self.db.get(Train, request.train_id)

                        seat_number = await self._allocate_seat(
                            request.train_id, train.total_seats, request.travel_date
                        )
                        booking = Booking(
                            user_id=user_id,
                            train_id=request.train_id,
                            passenger_name=request.passenger_name,
                            passenger_age=request.passenger_age,
                            passenger_gender=request.passenger_gender.value,
                            seat_number=seat_number,
                            booking_date=utcnow().date(),
                            travel_date=request.travel_date,
                            amount=train.price,
                            status=BookingStatus.CONFIRMED.value,
                        )
                        self.db.add(booking)
                        await self.db.commit()
                    except Exception:
                        await self.db.rollback()
                        raise
                return booking, capacity

            booking, capacity = await run_with_retry(attempt, name="booking.create")

        metrics_collector.record_booking_created(str(booking.train_id), capacity.available)
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "train_id": str(booking.train_id),
                "user_id": user_id,
                "seat_number": booking.seat_number,
                "travel_date": booking.travel_date.isoformat(),
                "remaining_seats": capacity.available,
            }
        )
        return booking, capacity

    async def cancel_booking(self, booking_id: UUID, user_id: str | None = None) -> tuple[Booking, Capacity]:
        """
        Cancel a confirmed booking and give its seat back.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            InvalidTransitionError: If the booking is already cancelled
                (the seat counter is not touched)
            CapacityOverflowError: If releasing the seat would exceed the
                train's total seats (transaction rolled back)
        """
        with _track_rejections("cancel"):
            booking = await self.get_booking_by_id_or_raise(booking_id)
            self._check_owner(booking, user_id)
            train_id = booking.train_id

            async def attempt() -> tuple[Booking, Capacity]:
                async with train_lock(self.db, train_id):
                    try:
                        stmt = (
                            update(Booking)
                            .where(
                                Booking.id == booking_id,
                                Booking.status == BookingStatus.CONFIRMED.value
                            )
                            .values(status=BookingStatus.CANCELLED.value, updated_at=utcnow())
                            .returning(Booking.id)
                        )
                        if (await self.db.execute(stmt)).one_or_none() is None:
                            await self._raise_for_status(booking_id, "cancel")

                        capacity = await self.ledger.increment(train_id, 1)
                        cancelled = await self._reload_booking(booking_id)
                        await self.db.commit()
                    except Exception:
                        await self.db.rollback()
                        raise
                return cancelled, capacity

            booking, capacity = await run_with_retry(attempt, name="booking.cancel")

        metrics_collector.record_booking_cancelled(str(train_id), capacity.available)
        logger.info(
            "Booking cancelled successfully",
            extra={
                "booking_id": str(booking_id),
                "train_id": str(train_id),
                "seat_number": booking.seat_number,
                "new_available_seats": capacity.available,
            }
        )
        return booking, capacity

    async def delete_booking(self, booking_id: UUID, user_id: str | None = None) -> None:
        """
        Permanently remove a cancelled booking.

        Confirmed bookings must be cancelled first, so a seat is never lost
        together with the record that holds it.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            InvalidTransitionError: If the booking is still confirmed
        """
        with _track_rejections("delete"):
            booking = await self.get_booking_by_id_or_raise(booking_id)
            self._check_owner(booking, user_id)
            train_id = booking.train_id

            async def attempt() -> None:
                try:
                    stmt = (
                        delete(Booking)
                        .where(
                            Booking.id == booking_id,
                            Booking.status == BookingStatus.CANCELLED.value
                        )
                        .execution_options(synchronize_session=False)
                    )
                    result = await self.db.execute(stmt)
                    if result.rowcount == 0:
                        await self._raise_for_status(
                            booking_id,
                            "delete",
                            detail=f"Booking {booking_id} must be cancelled before it can be deleted"
                        )
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

            await run_with_retry(attempt, name="booking.delete")

        self.db.expunge(booking)
        metrics_collector.record_booking_deleted()
        logger.info(
            "Booking deleted successfully",
            extra={"booking_id": str(booking_id), "train_id": str(train_id)}
        )

    async def edit_booking(self, request: EditBookingRequest, user_id: str | None = None) -> tuple[Booking, Capacity]:
        """
        Change passenger details and/or travel date of a confirmed booking.

        The seat counter is not touched. When the travel date changes the seat
        label is kept if it is free on the new date, otherwise the lowest free
        label on that date is assigned.

        Raises:
            ValidationError: If the new travel date is in the past
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            InvalidTransitionError: If the booking is cancelled
        """
        changes = request.changes()

        with _track_rejections("edit"):
            if "travel_date" in changes:
                self._validate_travel_date(changes["travel_date"])

            booking = await self.get_booking_by_id_or_raise(request.booking_id)
            self._check_owner(booking, user_id)
            train_id = booking.train_id

            async def attempt() -> tuple[Booking, Capacity]:
                async with train_lock(self.db, train_id):
                    try:
                        booking = await self._reload_booking(request.booking_id)
                        if not booking.is_confirmed:
                            raise InvalidTransitionError(
                                booking_id=str(booking.id),
                                current_status=booking.status,
                                operation="edit"
                            )

                        for field in ("passenger_name", "passenger_age"):
                            if field in changes:
                                setattr(booking, field, changes[field])
                        if "passenger_gender" in changes:
                            booking.passenger_gender = changes["passenger_gender"].value

                        new_date = changes.get("travel_date")
                        if new_date is not None and new_date != booking.travel_date:
                            train = await self.db.get(Train, train_id)
                            booking.seat_number = await self._allocate_seat(
                                train_id,
                                train.total_seats,
                                new_date,
                                preferred=booking.seat_number,
                                exclude_booking_id=booking.id,
                            )
                            booking.travel_date = new_date

                        capacity = await self.ledger.get_capacity(train_id)
                        await self.db.commit()
                    except Exception:
                        await self.db.rollback()
                        raise
                return booking, capacity

            booking, capacity = await run_with_retry(attempt, name="booking.edit")

        logger.info(
            "Booking edited successfully",
            extra={
                "booking_id": str(booking.id),
                "fields": sorted(changes),
                "seat_number": booking.seat_number,
                "travel_date": booking.travel_date.isoformat(),
            }
        )
        return booking, capacity

    async def get_booking(self, booking_id: UUID, user_id: str | None = None) -> Booking:
        """
        Get a booking with its train.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the booking belongs to another user
        """
        stmt = (
            select(Booking)
            .options(selectinload(Booking.train))
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        self._check_owner(booking, user_id)
        return booking

    async def list_bookings(self, user_id: str, status: BookingStatus | None = None) -> list[Booking]:
        """The user's bookings with their trains, newest first."""
        stmt = (
            select(Booking)
            .options(selectinload(Booking.train))
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if status is not None:
            stmt = stmt.where(Booking.status == status.value)
        return list((await self.db.scalars(stmt)).all())

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID."""
        stmt = select(Booking).where(Booking.id == booking_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def _raise_for_status(self, booking_id: UUID, operation: str, detail: str | None = None) -> None:
        """Explain why a conditional status change matched no row."""
        current_status = await self.db.scalar(select(Booking.status).where(Booking.id == booking_id))
        if current_status is None:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))

        logger.warning(
            "Booking transition refused",
            extra={"booking_id": str(booking_id), "status": current_status, "operation": operation}
        )
        raise InvalidTransitionError(
            booking_id=str(booking_id),
            current_status=current_status,
            operation=operation,
            detail=detail
        )
