"""
Organization repository and the members-of-org view.

Creating an organization also:
- creates a zero inventory for it (if absent)
- promotes the logged-in user to INSTITUTION_ADMIN of the new org
"""

import logging
import random
from enum import Enum
from typing import List, Optional

from schemas_store import (
    MemberStatus, OrgInventory, OrgMember, OrganizationProfile, OrganizationUpdate,
    Store, UserRole,
)
from store_engine import DocumentStore
from store_errors import InvalidInput, NotFound, OperationResult
from store_helpers import parse_iso, sort_newest_first
from services.base import BaseRepository
from services.stock_status import count_member_statuses
from services.users import apply_update

logger = logging.getLogger(__name__)

ORG_ID_PREFIXES = {
    'CHURCH': 'CH',
    'NGO': 'NGO',
}


def org_id_prefix(org_type) -> str:
    value = org_type.value if isinstance(org_type, Enum) else str(org_type or '')
    return ORG_ID_PREFIXES.get(value, 'ORG')


# =============================================================================
# MEMBERS VIEW
# =============================================================================

def _format_last_update(timestamp: str) -> str:
    dt = parse_iso(timestamp)
    if dt is None:
        return timestamp
    return dt.astimezone().strftime('%H:%M')


def build_org_members(db: Store, org_id: str) -> List[OrgMember]:
    """
    Join users linked to an org with their latest help request.

    SAFE/DANGER comes from the latest request's is_safe; members who never
    reported are UNKNOWN with no needs and last update "Never".
    """
    if not org_id:
        return []

    members = []
    for user in db.users:
        if user.community_id != org_id:
            continue

        history = sort_newest_first([r for r in db.requests if r.user_id == user.id])
        latest = history[0] if history else None

        status = MemberStatus.UNKNOWN
        needs = []
        last_update = 'Never'
        location = 'Unknown'

        if latest:
            status = MemberStatus.SAFE if latest.is_safe else MemberStatus.DANGER
            last_update = _format_last_update(latest.timestamp)
            location = latest.location
            if latest.has_food is False:
                needs.append('Food')
            if latest.has_water is False:
                needs.append('Water')
            if latest.is_injured:
                needs.append('Medical')
            if not latest.is_safe:
                needs.append('Rescue')

        members.append(OrgMember(
            id=user.id,
            name=user.full_name,
            status=status,
            last_update=last_update,
            location=location,
            needs=needs,
            phone=user.phone,
            address=user.address,
            emergency_contact_name=user.emergency_contact_name,
            emergency_contact_phone=user.emergency_contact_phone,
            emergency_contact_relation=user.emergency_contact_relation,
        ))
    return members


class OrganizationRepository(BaseRepository):
    def __init__(self, store: DocumentStore, rng: Optional[random.Random] = None):
        super().__init__(store)
        self._random = rng or random.Random()

    def get(self, org_id: str) -> Optional[OrganizationProfile]:
        return self.store.load().find_org(org_id)

    def list_all(self) -> List[OrganizationProfile]:
        return self.store.load().organizations

    def generate_id(self, org_type) -> Optional[str]:
        """Community code like CH-4821 / NGO-1234 / ORG-5678, unused so far."""
        return self._unique_id(org_type, self.store.load())

    def _unique_id(self, org_type, db: Store) -> Optional[str]:
        taken = {o.id for o in db.organizations}
        prefix = org_id_prefix(org_type)
        for _ in range(50):
            candidate = f"{prefix}-{self._random.randint(1000, 9999)}"
            if candidate not in taken:
                return candidate
        # Crowded prefix - take the first free number
        return next((f"{prefix}-{n}" for n in range(1000, 10000) if f"{prefix}-{n}" not in taken), None)

    def upsert(self, org: OrganizationProfile) -> OperationResult:
        if not org.name.strip():
            return OperationResult.fail(InvalidInput("Organization name is required"))

        db = self.store.load()
        org = org.model_copy(deep=True)
        if not org.id:
            org.id = self._unique_id(org.type, db)
            if not org.id:
                return OperationResult.fail(InvalidInput(f"No free {org_id_prefix(org.type)} codes left"))

        index = next((i for i, o in enumerate(db.organizations) if o.id == org.id), -1)
        created = index < 0
        if created:
            db.organizations.append(org)
        else:
            db.organizations[index] = org

        if org.id not in db.inventories:
            db.inventories[org.id] = OrgInventory()

        if created:
            admin = db.find_user(db.current_user)
            if admin:
                admin.role = UserRole.INSTITUTION_ADMIN
                admin.community_id = org.id
                logger.info(f"User {admin.id} is now admin of {org.id}")

        return self._commit(db, org)

    def update(self, org_id: str, update: OrganizationUpdate) -> OperationResult:
        db = self.store.load()
        org = db.find_org(org_id)
        if not org:
            return OperationResult.fail(NotFound(f"Organization {org_id} not found"))
        error = apply_update(org, update)
        if error:
            return OperationResult.fail(error)
        return self._commit(db, org)

    def set_active(self, org_id: str, active: bool) -> OperationResult:
        db = self.store.load()
        org = db.find_org(org_id)
        if not org:
            return OperationResult.fail(NotFound(f"Organization {org_id} not found"))
        org.active = active
        return self._commit(db, org)

    # =========================================================================
    # MEMBERS
    # =========================================================================

    def members(self, org_id: str) -> List[OrgMember]:
        return build_org_members(self.store.load(), org_id)

    def member_status(self, org_id: str) -> dict:
        members = self.members(org_id)
        return {"counts": count_member_statuses(members), "members": members}

    def coverage_base(self, org_id: str) -> Optional[int]:
        """Population stock coverage is measured against: linked members, else registered population."""
        db = self.store.load()
        org = db.find_org(org_id)
        members = build_org_members(db, org_id)
        if members:
            return len(members)
        return org.registered_population if org else None
