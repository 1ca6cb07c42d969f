"""
Shared plumbing for the repositories.
"""

from schemas_store import Store
from store_engine import DocumentStore
from store_errors import OperationResult, PersistenceFailure


class BaseRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def _commit(self, db: Store, data=None, topic: str = "store") -> OperationResult:
        """Save the mutated document; only report success if the write landed."""
        if self.store.save(db, topic=topic):
            return OperationResult.ok(data)
        error = self.store.last_error or PersistenceFailure("Changes could not be saved")
        return OperationResult.fail(error)
