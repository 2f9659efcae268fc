"""Schemas for the legacy mock endpoints (camelCase wire format)."""

from pydantic import BaseModel, ConfigDict, Field


class LegacyTrain(BaseModel):
    """Train as listed by ``GET /api/trains``."""

    id: str
    name: str
    departure: str = Field(..., description="HH:MM")
    arrival: str = Field(..., description="HH:MM")
    seats: int = Field(..., description="Seats still available")


class LegacyReserveRequest(BaseModel):
    """Body of ``POST /api/trains/{id}/reserve``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    passenger_count: int = Field(..., alias="passengerCount", ge=1)


class LegacyReserveResponse(BaseModel):
    success: bool = True
    message: str = "Reservation successful!"
