"""Background workers for the rail reservation service."""

from .base import BaseWorker
from .manager import WorkerManager, worker_manager
from .reconciliation_worker import ReconciliationWorker

__all__ = ["BaseWorker", "ReconciliationWorker", "WorkerManager", "worker_manager"]
