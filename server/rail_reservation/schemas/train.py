"""Train-related Pydantic schemas."""

from datetime import datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import Capacity


class CreateTrainRequest(BaseModel):
    """Request schema for registering a train (administrative)."""

    train_number: str = Field(..., min_length=1, max_length=32, description="Public train number")
    train_name: str = Field(..., min_length=1, max_length=255, description="Train name")
    source_station: str = Field(..., min_length=1, max_length=255, description="Departure station")
    destination_station: str = Field(..., min_length=1, max_length=255, description="Arrival station")
    departure_time: time = Field(..., description="Daily departure time")
    arrival_time: time = Field(..., description="Daily arrival time")
    total_seats: int = Field(..., ge=1, le=5000, description="Fixed seat capacity")
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Fare per seat")

    @field_validator("train_number", "train_name", "source_station", "destination_station")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class SearchTrainsRequest(BaseModel):
    """Request schema for searching trains by route."""

    from_station: str = Field("", max_length=255, description="Substring of the source station")
    to_station: str = Field("", max_length=255, description="Substring of the destination station")


class GetTrainRequest(BaseModel):
    """Request schema for a single train."""

    train_id: UUID = Field(..., description="Train to retrieve")


class ReconcileInventoryRequest(BaseModel):
    """Request schema for verifying seat counters against bookings."""

    train_id: UUID | None = Field(None, description="Restrict to one train; all trains when omitted")
    repair: bool = Field(False, description="Overwrite drifted counters with the computed value")


class Train(BaseModel):
    """Train response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Unique train ID")
    train_number: str = Field(..., description="Public train number")
    train_name: str = Field(..., description="Train name")
    source_station: str = Field(..., description="Departure station")
    destination_station: str = Field(..., description="Arrival station")
    departure_time: time = Field(..., description="Daily departure time")
    arrival_time: time = Field(..., description="Daily arrival time")
    total_seats: int = Field(..., ge=1, description="Fixed seat capacity")
    available_seats: int = Field(..., ge=0, description="Seats still available")
    price: Decimal = Field(..., description="Fare per seat")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class TrainDetails(Train):
    """Train response with derived occupancy."""

    occupancy_percent: int = Field(..., ge=0, le=100, description="Share of seats taken")


class TrainList(BaseModel):
    """Response schema for train listings and searches."""

    items: list[Train] = Field(..., description="Matching trains ordered by departure time")


class TrainCapacity(Capacity):
    """Capacity response for one train."""

    train_id: UUID = Field(..., description="Train ID")


class InventoryDrift(BaseModel):
    """Result of comparing a seat counter with the seats actually held."""

    train_id: UUID = Field(..., description="Train ID")
    total_seats: int = Field(..., description="Fixed seat capacity")
    stored_available: int = Field(..., description="Counter value found in the store")
    expected_available: int = Field(..., description="Total seats minus seats held")
    drift: int = Field(..., description="stored_available - expected_available")
    repaired: bool = Field(False, description="Whether the counter was overwritten")

    @property
    def consistent(self) -> bool:
        return self.drift == 0


class ReconcileInventoryResponse(BaseModel):
    """Response schema for inventory reconciliation."""

    checked: int = Field(..., description="Number of trains checked")
    drifted: list[InventoryDrift] = Field(..., description="Trains whose counter disagreed")
