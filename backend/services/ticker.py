"""
Scoped Messaging Resolver

Which line of text a user's ticker shows, highest precedence first:
    1. System-wide admin message      -> "[SYSTEM ALERT] ..."
    2. The user's organization update -> "[{org name} Update] ..."
    3. DEFAULT_TICKER

Org broadcasts must be approved by the moderation step before they are
stored; the moderation call itself lives outside the engine.
"""

import logging
from typing import Optional

from schemas_store import UserProfile
from store_errors import InvalidInput, NotFound, OperationResult
from store_helpers import utc_now_iso
from services.base import BaseRepository

logger = logging.getLogger(__name__)

DEFAULT_TICKER = (
    "Evacuation Order in Zone 4 • Shelter capacity at 85% • "
    "High water levels reported on Main St. •"
)

# System messages this short are treated as unset
MIN_SYSTEM_MESSAGE_LENGTH = 5


class TickerService(BaseRepository):

    def resolve(self, profile: Optional[UserProfile] = None) -> str:
        db = self.store.load()

        if db.ticker_message and len(db.ticker_message) > MIN_SYSTEM_MESSAGE_LENGTH:
            return f"[SYSTEM ALERT] {db.ticker_message}"

        if profile and profile.community_id:
            org = db.find_org(profile.community_id)
            if org and org.current_broadcast:
                return f"[{org.name} Update] {org.current_broadcast}"

        return DEFAULT_TICKER

    def set_system_ticker(self, message: str) -> OperationResult:
        """Admin-wide message. An empty string clears it."""
        db = self.store.load()
        db.ticker_message = (message or "").strip()
        logger.info(f"System ticker {'set' if db.ticker_message else 'cleared'}")
        return self._commit(db, db.ticker_message, topic="ticker")

    def set_org_broadcast(self, org_id: str, message: str, approved: bool = True) -> OperationResult:
        """Members-only update for one org. `approved` is the moderation verdict."""
        message = (message or "").strip()
        if not message:
            return OperationResult.fail(InvalidInput("Broadcast message is empty"))
        if not approved:
            return OperationResult.fail(InvalidInput("Message flagged as inappropriate by moderation."))

        db = self.store.load()
        org = db.find_org(org_id)
        if not org:
            return OperationResult.fail(NotFound(f"Organization {org_id} not found"))

        org.current_broadcast = message
        org.last_broadcast_time = utc_now_iso()
        return self._commit(db, org, topic="ticker")

    def clear_org_broadcast(self, org_id: str) -> OperationResult:
        db = self.store.load()
        org = db.find_org(org_id)
        if not org:
            return OperationResult.fail(NotFound(f"Organization {org_id} not found"))

        org.current_broadcast = None
        org.last_broadcast_time = utc_now_iso()
        return self._commit(db, org, topic="ticker")
