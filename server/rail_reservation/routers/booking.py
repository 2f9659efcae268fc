"""Booking router for booking lifecycle operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import RequiredAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.booking import (
    Booking,
    BookingList,
    BookingResult,
    BookingStatus,
    BookingWithTrain,
    CancelBookingRequest,
    CreateBookingRequest,
    DeleteBookingRequest,
    DeletedBooking,
    EditBookingRequest,
    GetBookingRequest,
    ListBookingsRequest,
)
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def _result_response(booking_model, capacity) -> JSONResponse:
    """Booking plus the capacity read inside the same transaction."""
    response_data = BookingResult(
        booking=Booking.model_validate(booking_model),
        capacity=capacity
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


def _unexpected(operation: str, error: Exception, **context) -> HTTPException:
    logger.error(
        f"Unexpected error in booking {operation}",
        extra={**context, "error": str(error)},
        exc_info=True
    )
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/create", response_model=BookingResult)
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """
    Book one seat on a train for the authenticated user.

    Fails with 409 INSUFFICIENT_CAPACITY when the train is sold out.
    """
    booking_service = BookingService(db)

    try:
        booking, capacity = await booking_service.create_booking(request, user["user_id"])
        return _result_response(booking, capacity)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("creation", e, train_id=str(request.train_id), user_id=user["user_id"]) from e


@router.post("/cancel", response_model=BookingResult)
async def cancel_booking(
    request: CancelBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """
    Cancel a confirmed booking and release its seat.

    Cancelling an already cancelled booking fails with 409 INVALID_TRANSITION.
    """
    booking_service = BookingService(db)

    try:
        booking, capacity = await booking_service.cancel_booking(request.booking_id, user["user_id"])
        return _result_response(booking, capacity)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("cancellation", e, booking_id=str(request.booking_id)) from e


@router.post("/delete", response_model=DeletedBooking)
async def delete_booking(
    request: DeleteBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """
    Delete a cancelled booking.

    Confirmed bookings must be cancelled first (409 INVALID_TRANSITION).
    """
    booking_service = BookingService(db)

    try:
        await booking_service.delete_booking(request.booking_id, user["user_id"])
        response_data = DeletedBooking(booking_id=request.booking_id)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("deletion", e, booking_id=str(request.booking_id)) from e


@router.post("/edit", response_model=BookingResult)
async def edit_booking(
    request: EditBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """Edit passenger details or travel date of a confirmed booking."""
    booking_service = BookingService(db)

    try:
        booking, capacity = await booking_service.edit_booking(request, user["user_id"])
        return _result_response(booking, capacity)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("edit", e, booking_id=str(request.booking_id)) from e


@router.post("/get", response_model=BookingWithTrain)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """Get one of the caller's bookings with its train."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.get_booking(request.booking_id, user["user_id"])
        response_data = BookingWithTrain.model_validate(booking)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("retrieval", e, booking_id=str(request.booking_id)) from e


@router.post("/list", response_model=BookingList)
async def list_bookings(
    request: ListBookingsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    user: dict = RequiredAuth
) -> JSONResponse:
    """List the caller's bookings, newest first, optionally filtered by status."""
    booking_service = BookingService(db)

    try:
        bookings = await booking_service.list_bookings(user["user_id"], request.status)
        items = [BookingWithTrain.model_validate(booking) for booking in bookings]

        response_data = BookingList(
            items=items,
            confirmed_count=sum(1 for item in items if item.status == BookingStatus.CONFIRMED),
            cancelled_count=sum(1 for item in items if item.status == BookingStatus.CANCELLED),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _unexpected("listing", e, user_id=user["user_id"]) from e
