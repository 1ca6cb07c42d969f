"""
User repository - profiles, session pointer, activation, status pings.
"""

import logging
from typing import List, Optional

from schemas_store import PendingStatusRequest, UserProfile, UserProfileUpdate
from store_errors import (
    AccountDeactivated, InvalidInput, NotFound, OperationResult, SelfDeactivationBlocked,
)
from store_helpers import unique_time_id, utc_now_iso
from services.base import BaseRepository

logger = logging.getLogger(__name__)

GUEST_ID = 'guest'


def guest_profile() -> UserProfile:
    """Profile shown when nobody is logged in (default notification settings)."""
    return UserProfile(id=GUEST_ID)


def apply_update(target, update) -> Optional[InvalidInput]:
    """Copy explicitly-set fields of a typed update struct onto an entity."""
    for field in update.model_fields_set:
        value = getattr(update, field)
        if value is None:
            return InvalidInput(f"{field} cannot be cleared")
        setattr(target, field, value)
    return None


class UserRepository(BaseRepository):

    # =========================================================================
    # SESSION
    # =========================================================================

    def has_session(self) -> bool:
        return bool(self.store.load().current_user)

    def current_profile(self) -> UserProfile:
        db = self.store.load()
        return db.find_user(db.current_user) or guest_profile()

    def login(self, identifier: str) -> OperationResult:
        """Log in by phone number or email."""
        identifier = (identifier or "").strip()
        if not identifier:
            return OperationResult.fail(InvalidInput("Enter a phone number or email."))

        db = self.store.load()
        lowered = identifier.lower()
        user = next(
            (u for u in db.users if u.phone == identifier or (u.email and u.email.lower() == lowered)),
            None,
        )
        if not user:
            return OperationResult.fail(NotFound("User not found. Please check number or register."))
        if not user.active:
            logger.info(f"Login refused for deactivated user {user.id}")
            return OperationResult.fail(AccountDeactivated("Account deactivated. Contact Admin."))

        db.current_user = user.id
        return self._commit(db, user)

    def logout(self) -> OperationResult:
        db = self.store.load()
        db.current_user = None
        return self._commit(db)

    # =========================================================================
    # PROFILES
    # =========================================================================

    def get(self, user_id: str) -> Optional[UserProfile]:
        return self.store.load().find_user(user_id)

    def list_all(self) -> List[UserProfile]:
        return self.store.load().users

    def upsert(self, profile: UserProfile) -> OperationResult:
        """
        Create or replace a profile and make it the current session.

        Guest or empty ids get a generated one; the household count is
        derived from the household list.
        """
        db = self.store.load()
        profile = profile.model_copy(deep=True)

        if not profile.id or profile.id == GUEST_ID:
            profile.id = unique_time_id('u_', (u.id for u in db.users))
        profile.recompute_household_count()

        index = next((i for i, u in enumerate(db.users) if u.id == profile.id), -1)
        if index >= 0:
            db.users[index] = profile
        else:
            db.users.append(profile)

        db.current_user = profile.id
        return self._commit(db, profile)

    def update(self, user_id: str, update: UserProfileUpdate) -> OperationResult:
        db = self.store.load()
        user = db.find_user(user_id)
        if not user:
            return OperationResult.fail(NotFound(f"User {user_id} not found"))

        error = apply_update(user, update)
        if error:
            return OperationResult.fail(error)
        user.recompute_household_count()
        return self._commit(db, user)

    def set_active(self, user_id: str, active: bool) -> OperationResult:
        """Activate/deactivate an account (admin). The logged-in user cannot deactivate themselves."""
        db = self.store.load()
        user = db.find_user(user_id)
        if not user:
            return OperationResult.fail(NotFound(f"User {user_id} not found"))
        if db.current_user == user_id and not active:
            return OperationResult.fail(SelfDeactivationBlocked(
                "Cannot deactivate your own account while logged in."
            ))

        user.active = active
        return self._commit(db, user)

    # =========================================================================
    # STATUS PINGS
    # =========================================================================

    def send_ping(self, target_user_id: str) -> OperationResult:
        """Ask a member to check in. Shows a prompt on their dashboard."""
        db = self.store.load()
        requester = db.find_user(db.current_user)
        if not requester:
            return OperationResult.fail(NotFound("No active session"))
        target = db.find_user(target_user_id)
        if not target:
            return OperationResult.fail(NotFound(f"User {target_user_id} not found"))

        target.pending_status_request = PendingStatusRequest(
            requester_name=requester.full_name,
            timestamp=utc_now_iso(),
        )
        return self._commit(db, target)
