from model_translation.sync.synchronizer import IndexSynchronizer
from model_translation.sync.worker import SyncWorker

__all__ = [
    "IndexSynchronizer",
    "SyncWorker",
]
