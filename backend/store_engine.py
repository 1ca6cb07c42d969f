"""
Document Store - persistence layer for the AERA engine

The entire application state is one JSON document stored under a fixed
key in the store_documents table. Every caller does a whole-document
read-modify-write:

    db = store.load()
    ...mutate db...
    store.save(db)

Writes are guarded by the revision the document was loaded at. If another
writer (second tab, background sync, another process) saved in between,
the save is rejected instead of silently discarding their change.

Failures never raise: load falls back to the seed dataset, save returns
False and records the reason in `last_error`.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from config import DEFAULT_STORE_KEY
from database import Base, make_engine, make_session_factory
from models import StoreDocument
from schemas_store import Store
from seed_data import build_seed_store
from store_errors import PersistenceFailure, StaleWrite

logger = logging.getLogger(__name__)


@dataclass
class ChangeEvent:
    """Published after every successful write (or detected external write)."""
    topic: str              # store, seed, reset, inventory, ticker, sync, ...
    revision: int
    source: str = "local"   # local | external


ChangeListener = Callable[[ChangeEvent], None]


class DocumentStore:
    def __init__(self, engine: Engine, key: str = DEFAULT_STORE_KEY):
        self.engine = engine
        self.key = key
        self.last_error: Optional[PersistenceFailure] = None
        self._session_factory = make_session_factory(engine)
        self._listeners: List[ChangeListener] = []
        self._announced_revision = 0    # Only save, reset and poll_changes advance it

    @classmethod
    def from_url(cls, database_url: str, key: str = DEFAULT_STORE_KEY) -> "DocumentStore":
        return cls(make_engine(database_url), key=key)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def open(self):
        """Create the backing table if needed."""
        Base.metadata.create_all(self.engine, tables=[StoreDocument.__table__])
        logger.info(f"Document store opened (key={self.key})")

    def close(self):
        """Drop listeners and release pooled connections. Nothing is buffered."""
        self._listeners.clear()
        self.engine.dispose()
        logger.info(f"Document store closed (key={self.key})")

    # =========================================================================
    # LOAD / SAVE / RESET
    # =========================================================================

    def load(self) -> Store:
        """Read the whole document; seed it if missing or malformed."""
        try:
            with self._session_factory() as session:
                row = session.get(StoreDocument, self.key)
                body, revision = (row.body, row.revision) if row else (None, 0)
        except SQLAlchemyError as e:
            logger.error(f"Store load failed for {self.key}: {e}")
            return build_seed_store()

        if body is not None:
            try:
                db = Store.model_validate_json(body)
                db.revision = revision
                return db
            except ValidationError as e:
                logger.warning(f"Stored document {self.key} is malformed ({e.error_count()} errors), re-seeding")

        return self._seed(revision)

    def _seed(self, existing_revision: int) -> Store:
        db = build_seed_store()
        db.revision = existing_revision
        if not self.save(db, topic="seed"):
            logger.warning(f"Seed dataset for {self.key} could not be persisted")
        return db

    def save(self, db: Store, topic: str = "store") -> bool:
        """
        Write the whole document. Returns True only if the write committed.

        Household counts are recomputed here so they can never drift from
        the household lists.
        """
        self.last_error = None
        for user in db.users:
            user.recompute_household_count()

        try:
            body = db.model_dump_json(by_alias=True)
        except ValueError as e:
            return self._fail(PersistenceFailure(f"Could not serialize store: {e}"))

        expected = db.revision
        try:
            with self._session_factory() as session:
                if expected == 0:
                    session.add(StoreDocument(key=self.key, body=body, revision=1))
                else:
                    result = session.execute(
                        update(StoreDocument)
                        .where(StoreDocument.key == self.key, StoreDocument.revision == expected)
                        .values(body=body, revision=expected + 1)
                    )
                    if result.rowcount != 1:
                        session.rollback()
                        return self._fail(StaleWrite(
                            f"Store changed since it was loaded (revision {expected}); reload and retry"
                        ))
                session.commit()
        except IntegrityError:
            return self._fail(StaleWrite("Store was created by another writer; reload and retry"))
        except SQLAlchemyError as e:
            return self._fail(PersistenceFailure(f"Could not write store: {e}"))

        db.revision = expected + 1
        self._announced_revision = db.revision
        logger.debug(f"Saved {self.key} at revision {db.revision} ({topic})")
        self._notify(ChangeEvent(topic=topic, revision=db.revision))
        return True

    def _fail(self, error: PersistenceFailure) -> bool:
        self.last_error = error
        if isinstance(error, StaleWrite):
            logger.warning(f"Rejected write to {self.key}: {error.message}")
        else:
            logger.error(f"Save failed for {self.key}: {error.message}")
        return False

    def reset(self) -> bool:
        """Discard persisted state entirely. The next load re-seeds."""
        try:
            with self._session_factory() as session:
                session.execute(delete(StoreDocument).where(StoreDocument.key == self.key))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Store reset failed for {self.key}: {e}")
            return False

        self._announced_revision = 0
        logger.info(f"Store {self.key} reset")
        self._notify(ChangeEvent(topic="reset", revision=0))
        return True

    # =========================================================================
    # CHANGE NOTIFICATIONS
    # =========================================================================

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Subscribe to change events. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def current_revision(self) -> Optional[int]:
        """Persisted revision (0 if no document), or None if unreadable."""
        try:
            with self._session_factory() as session:
                revision = session.execute(
                    select(StoreDocument.revision).where(StoreDocument.key == self.key)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"Could not read revision for {self.key}: {e}")
            return None
        return revision or 0

    def poll_changes(self) -> bool:
        """
        Detect writes made by other processes sharing the database.

        Notifies listeners with source="external" so they re-read the full
        store. Returns True if a change was seen.
        """
        revision = self.current_revision()
        if revision is None or revision == self._announced_revision:
            return False
        self._announced_revision = revision
        self._notify(ChangeEvent(topic="store", revision=revision, source="external"))
        return True

    def _notify(self, event: ChangeEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Change listener failed for {event.topic}: {e}")
