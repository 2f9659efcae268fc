"""Train router for catalogue queries and administrative train operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import AdminAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.train import (
    CreateTrainRequest,
    GetTrainRequest,
    ReconcileInventoryRequest,
    ReconcileInventoryResponse,
    SearchTrainsRequest,
    Train,
    TrainCapacity,
    TrainDetails,
    TrainList,
)
from ..services.inventory_service import InventoryLedger
from ..services.train_service import TrainService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/train", tags=["train"])

DB_DEPENDENCY = Depends(get_db)


def _train_list_response(trains) -> JSONResponse:
    response_data = TrainList(items=[Train.model_validate(train) for train in trains])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/list", response_model=TrainList)
async def list_trains(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List all trains ordered by departure time."""
    train_service = TrainService(db)

    try:
        trains = await train_service.list_trains()
        return _train_list_response(trains)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in train listing",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/search", response_model=TrainList)
async def search_trains(
    request: SearchTrainsRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Search trains by route.

    Both station filters are case-insensitive substring matches; an empty
    filter matches every station.
    """
    train_service = TrainService(db)

    try:
        trains = await train_service.search_trains(request)
        return _train_list_response(trains)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in train search",
            extra={
                "from_station": request.from_station,
                "to_station": request.to_station,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=TrainDetails)
async def get_train(
    request: GetTrainRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a train with its occupancy."""
    train_service = TrainService(db)

    try:
        train = await train_service.get_train_details(request.train_id)
        response_data = TrainDetails.model_validate(train)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in train retrieval",
            extra={"train_id": str(request.train_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/capacity", response_model=TrainCapacity)
async def get_capacity(
    request: GetTrainRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Current total and available seats of a train."""
    ledger = InventoryLedger(db)

    try:
        capacity = await ledger.get_capacity(request.train_id)
        response_data = TrainCapacity(
            train_id=request.train_id,
            total=capacity.total,
            available=capacity.available
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in capacity retrieval",
            extra={"train_id": str(request.train_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/create", response_model=Train, status_code=201)
async def create_train(
    request: CreateTrainRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: dict = AdminAuth
) -> JSONResponse:
    """Register a new train. Requires the admin role."""
    train_service = TrainService(db)

    try:
        train = await train_service.create_train(request)
        logger.info(
            "Train registered by admin",
            extra={"train_id": str(train.id), "admin_user_id": admin["user_id"]}
        )
        response_data = Train.model_validate(train)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in train creation",
            extra={"train_number": request.train_number, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/reconcile", response_model=ReconcileInventoryResponse)
async def reconcile_inventory(
    request: ReconcileInventoryRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: dict = AdminAuth
) -> JSONResponse:
    """
    Compare seat counters with confirmed bookings and legacy reservations.

    With ``repair`` set, drifted counters are overwritten. Requires the admin role.
    """
    ledger = InventoryLedger(db)

    try:
        if request.train_id is not None:
            result = await ledger.reconcile(request.train_id, repair=request.repair)
            response_data = ReconcileInventoryResponse(
                checked=1,
                drifted=[] if result.consistent else [result]
            )
        else:
            response_data = await ledger.reconcile_all(repair=request.repair)

        logger.info(
            "Inventory reconciliation requested",
            extra={
                "admin_user_id": admin["user_id"],
                "checked": response_data.checked,
                "drifted": len(response_data.drifted),
                "repair": request.repair,
            }
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in inventory reconciliation",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
