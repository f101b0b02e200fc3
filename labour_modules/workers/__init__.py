"""Workers: the worker register and the worker-existence collaborator."""

from labour_modules.workers.models import Worker
from labour_modules.workers.service import SqlWorkerDirectory, WorkerDirectory, WorkerRegistry

__all__ = ["SqlWorkerDirectory", "Worker", "WorkerDirectory", "WorkerRegistry"]
