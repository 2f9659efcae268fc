"""Train catalogue service: listing, searching and registering trains."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..models.train import Train
from ..schemas.train import CreateTrainRequest, SearchTrainsRequest

logger = logging.getLogger(__name__)


class TrainService:
    """Service for train-related read operations and administrative creation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_train(self, request: CreateTrainRequest) -> Train:
        """
        Register a new train with all seats available.

        Raises:
            ConflictError: If the train number is already registered
        """
        existing = await self.get_train_by_number(request.train_number)
        if existing:
            raise ConflictError(
                detail=f"Train number '{request.train_number}' is already registered",
                conflicting_resource={"train_id": str(existing.id), "train_number": existing.train_number}
            )

        train = Train(
            train_number=request.train_number,
            train_name=request.train_name,
            source_station=request.source_station,
            destination_station=request.destination_station,
            departure_time=request.departure_time,
            arrival_time=request.arrival_time,
            total_seats=request.total_seats,
            available_seats=request.total_seats,
            price=request.price,
        )
        self.db.add(train)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                detail=f"Train number '{request.train_number}' is already registered"
            ) from e

        await self.db.refresh(train)

        logger.info(
            "Train created successfully",
            extra={
                "train_id": str(train.id),
                "train_number": train.train_number,
                "total_seats": train.total_seats,
            }
        )
        return train

    async def list_trains(self) -> list[Train]:
        """All trains ordered by departure time."""
        stmt = select(Train).order_by(Train.departure_time, Train.train_number)
        return list((await self.db.scalars(stmt)).all())

    async def search_trains(self, request: SearchTrainsRequest) -> list[Train]:
        """Trains whose stations contain the given substrings, case-insensitively."""
        stmt = select(Train)
        if request.from_station.strip():
            stmt = stmt.where(Train.source_station.icontains(request.from_station.strip(), autoescape=True))
        if request.to_station.strip():
            stmt = stmt.where(Train.destination_station.icontains(request.to_station.strip(), autoescape=True))
        stmt = stmt.order_by(Train.departure_time, Train.train_number)

        trains = list((await self.db.scalars(stmt)).all())
        logger.info(
            "Train search completed",
            extra={
                "from_station": request.from_station,
                "to_station": request.to_station,
                "total_found": len(trains),
            }
        )
        return trains

    async def get_train_by_id(self, train_id: UUID) -> Train | None:
        """Get train by ID."""
        return await self.db.get(Train, train_id)

    async def get_train_by_id_or_raise(self, train_id: UUID) -> Train:
        """Get train by ID or raise NotFoundError."""
        train = await self.get_train_by_id(train_id)
        if not train:
            logger.warning("Train not found", extra={"train_id": str(train_id)})
            raise NotFoundError(resource_type="train", resource_id=str(train_id))
        return train

    async def get_train_by_number(self, train_number: str) -> Train | None:
        """Get train by its public number."""
        stmt = select(Train).where(Train.train_number == train_number)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_train_details(self, train_id: UUID) -> Train:
        """Train with fresh counters, for the details view."""
        train = await self.get_train_by_id_or_raise(train_id)
        await self.db.refresh(train)
        return train
