"""Legacy development endpoints used by the original mock frontend."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import InsufficientCapacityError, NotFoundError, ProblemDetailsException
from ..schemas.legacy import LegacyReserveRequest, LegacyReserveResponse, LegacyTrain
from ..services.legacy_service import LegacyReservationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["legacy"])

DB_DEPENDENCY = Depends(get_db)


@router.get("/trains", response_model=list[LegacyTrain])
async def list_trains(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List trains with their remaining seats."""
    service = LegacyReservationService(db)

    try:
        trains = await service.list_trains()
        return JSONResponse(status_code=200, content=[train.model_dump() for train in trains])

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in legacy train listing",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/trains/{train_id}/reserve", response_model=LegacyReserveResponse)
async def reserve_seats(
    train_id: str,
    request: LegacyReserveRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Reserve ``passengerCount`` seats on a train.

    Errors use the mock's ``{"error": ...}`` body instead of Problem Details.
    """
    service = LegacyReservationService(db)

    try:
        await service.reserve(train_id, request)
        return JSONResponse(status_code=200, content=LegacyReserveResponse().model_dump())

    except NotFoundError:
        return JSONResponse(status_code=404, content={"error": "Train not found!"})

    except InsufficientCapacityError:
        return JSONResponse(status_code=400, content={"error": "Not enough seats available!"})

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in legacy reservation",
            extra={"train_ref": train_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
