"""
Help request repository.

Records are snapshots of the intake wizard. After creation only location
and status change; records are never deleted.
"""

import logging
from typing import List, Optional

from schemas_store import HelpRequestData, HelpRequestRecord, HelpRequestStatus, Priority
from store_engine import DocumentStore
from store_errors import InvalidInput, NotFound, OperationResult
from store_helpers import sort_newest_first, unique_time_id, utc_now_iso
from services.base import BaseRepository
from services.connectivity import Connectivity
from services.stock_status import calculate_priority
from services.users import GUEST_ID

logger = logging.getLogger(__name__)


class HelpRequestRepository(BaseRepository):
    def __init__(self, store: DocumentStore, connectivity: Optional[Connectivity] = None):
        super().__init__(store)
        self.connectivity = connectivity or Connectivity()

    def submit(self, data: HelpRequestData) -> OperationResult:
        """File a help request for the current user (or guest)."""
        db = self.store.load()
        user_id = db.current_user or GUEST_ID

        record = HelpRequestRecord(
            **data.model_dump(include=set(HelpRequestData.model_fields)),
            id=unique_time_id('HR-', (r.id for r in db.requests)),
            user_id=user_id,
            timestamp=utc_now_iso(),
            status=HelpRequestStatus.RECEIVED,
            priority=calculate_priority(data),
            synced=self.connectivity.is_online,
        )
        db.requests.insert(0, record)

        # Submitting any report answers an outstanding status ping
        user = db.find_user(user_id)
        if user:
            user.pending_status_request = None

        if record.priority == Priority.CRITICAL:
            logger.info(f"CRITICAL help request {record.id} from {user_id}")
        return self._commit(db, record)

    def respond_to_ping(self, is_safe: bool) -> OperationResult:
        """Answer an institution's status check with a minimal record."""
        db = self.store.load()
        user = db.find_user(db.current_user)
        if not user:
            return OperationResult.fail(NotFound("No active session"))

        record = HelpRequestRecord(
            is_safe=is_safe,
            location='Status Check Response',
            emergency_type='Check-in' if is_safe else 'General Emergency',
            is_injured=False,
            situation_description='Response to Institution Status Check',
            people_count=1,
            has_phone=True,
            consent_to_share=True,
            id=unique_time_id('HR-', (r.id for r in db.requests)),
            user_id=user.id,
            timestamp=utc_now_iso(),
            status=HelpRequestStatus.RECEIVED,
            priority=Priority.LOW if is_safe else Priority.HIGH,
            synced=self.connectivity.is_online,
        )
        db.requests.insert(0, record)
        user.pending_status_request = None
        return self._commit(db, record)

    def update_location(self, request_id: str, location: str) -> OperationResult:
        db = self.store.load()
        record = db.find_help_request(request_id)
        if not record:
            return OperationResult.fail(NotFound(f"Help request {request_id} not found"))
        record.location = location
        return self._commit(db, record)

    def update_status(self, request_id: str, status) -> OperationResult:
        try:
            status = HelpRequestStatus(status)
        except ValueError:
            return OperationResult.fail(InvalidInput(f"Invalid help request status: {status}"))

        db = self.store.load()
        record = db.find_help_request(request_id)
        if not record:
            return OperationResult.fail(NotFound(f"Help request {request_id} not found"))
        record.status = status
        return self._commit(db, record)

    def list_for_user(self, user_id: str) -> List[HelpRequestRecord]:
        db = self.store.load()
        return sort_newest_first([r for r in db.requests if r.user_id == user_id])

    def active_request(self) -> Optional[HelpRequestRecord]:
        """Latest request of the logged-in user."""
        db = self.store.load()
        if not db.current_user:
            return None
        mine = sort_newest_first([r for r in db.requests if r.user_id == db.current_user])
        return mine[0] if mine else None

    def last_known_location(self) -> Optional[dict]:
        """Location of the newest request (the session user's, if logged in)."""
        db = self.store.load()
        records = db.requests
        if db.current_user:
            records = [r for r in records if r.user_id == db.current_user]
        if not records:
            return None

        latest = sort_newest_first(records)[0]
        if not latest.location:
            return None
        return {"location": latest.location, "timestamp": latest.timestamp}
