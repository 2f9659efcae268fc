#!/usr/bin/env python3
"""Setup script for the rail reservation API."""

import asyncio
import logging
import sys
from datetime import time
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from rail_reservation.core.database import async_session_factory, close_db
from rail_reservation.schemas.train import CreateTrainRequest
from rail_reservation.services.train_service import TrainService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_TRAINS = [
    CreateTrainRequest(
        train_number="12951",
        train_name="Rajdhani Express",
        source_station="New Delhi",
        destination_station="Mumbai Central",
        departure_time=time(8, 0),
        arrival_time=time(12, 0),
        total_seats=50,
        price=Decimal("1500.00"),
    ),
    CreateTrainRequest(
        train_number="12002",
        train_name="Shatabdi Express",
        source_station="New Delhi",
        destination_station="Bhopal",
        departure_time=time(10, 0),
        arrival_time=time(15, 0),
        total_seats=40,
        price=Decimal("1200.00"),
    ),
]


async def setup_database():
    """Bring the schema up to the latest migration."""
    logger.info("Setting up database...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    # env.py drives its own event loop, so run it off this one
    await asyncio.to_thread(command.upgrade, alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_default_trains():
    """Create the two trains of the development mock unless they already exist."""
    logger.info("Creating default trains...")

    async with async_session_factory() as db:
        train_service = TrainService(db)
        for request in DEFAULT_TRAINS:
            if await train_service.get_train_by_number(request.train_number):
                logger.info(f"Train {request.train_number} already exists, skipping")
                continue
            train = await train_service.create_train(request)
            logger.info(f"Created {train.train_name} ({train.train_number}) with {train.total_seats} seats")


async def main():
    """Main setup function."""
    logger.info("Starting rail reservation API setup...")

    try:
        await setup_database()
        await create_default_trains()
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn rail_reservation.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
