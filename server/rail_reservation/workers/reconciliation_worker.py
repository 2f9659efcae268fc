"""Background worker that checks seat counters against bookings."""

import logging

from ..core.config import settings
from ..core.database import async_session_factory
from ..services.inventory_service import InventoryLedger
from .base import BaseWorker

logger = logging.getLogger(__name__)


class ReconciliationWorker(BaseWorker):
    """
    Periodically reconciles every train's available-seat counter.

    Drift is always logged and counted; the counter is only overwritten when
    ``repair`` is enabled.
    """

    def __init__(self, interval_seconds: float | None = None, repair: bool | None = None):
        super().__init__(
            name="Reconciliation",
            interval_seconds=(
                interval_seconds if interval_seconds is not None
                else settings.reconciliation_interval_seconds
            ),
        )
        self.repair = settings.reconciliation_repair if repair is None else repair

    async def process(self) -> None:
        async with async_session_factory() as db:
            result = await InventoryLedger(db).reconcile_all(repair=self.repair)

        if result.drifted:
            logger.warning(
                f"Inventory drift found on {len(result.drifted)} trains",
                extra={
                    "worker": self.name,
                    "checked": result.checked,
                    "drifted_train_ids": [str(drift.train_id) for drift in result.drifted],
                    "repair": self.repair,
                }
            )
