"""
Demo dataset written when the store is empty or unreadable.

Two organizations (a church shelter and a regional NGO), five users across
the roles, their inventories, and two resupply requests. Content is fixed;
only the request timestamps are relative to "now" so the dashboards show
recent activity.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from schemas_store import (
    HouseholdMember, OrgInventory, OrganizationProfile, ReplenishmentRequest,
    ReplenishmentStatus, Store, UserProfile, UserRole, OrgType,
)
from store_helpers import format_utc_iso


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

SEED_ORGS = [
    dict(
        id='CH-9921', name='Grace Community Church', type=OrgType.CHURCH,
        address='4500 Main St', admin_contact='Pastor John', admin_phone='555-0101',
        replenishment_provider='Diocese HQ',
        replenishment_email='supply@diocese.example.org',
        replenishment_phone='555-9000',
        verified=True, active=True,
        current_broadcast='Choir practice cancelled. Shelter open in Gym.',
    ),
    dict(
        id='NGO-5500', name='Regional Aid Network', type=OrgType.NGO,
        address='100 Relief Blvd', admin_contact='Sarah Connor', admin_phone='555-0102',
        replenishment_provider='FEMA Region 4',
        replenishment_email='logistics@fema.example.gov',
        replenishment_phone='555-9001',
        verified=True, active=True,
    ),
]

# ---------------------------------------------------------------------------
# Users (u0 admin, u1-u3 Grace Community members, u4 first responder)
# ---------------------------------------------------------------------------

SEED_USERS = [
    dict(
        id='u0', full_name='System Admin', phone='555-0000', email='admin@aera.example.org',
        address='HQ', emergency_contact_name='Ops Center', emergency_contact_phone='555-9999',
        emergency_contact_relation='Supervisor', role=UserRole.ADMIN,
    ),
    dict(
        id='u1', full_name='Alice Johnson', phone='555-1001', address='101 Pine St',
        household=[
            HouseholdMember(id='h1', name='Bob Johnson', age='35'),
            HouseholdMember(id='h2', name='Timmy Johnson', age='8', needs='Asthma'),
        ],
        pet_details='1 Cat', emergency_contact_name='Bob Johnson',
        emergency_contact_phone='555-2001', emergency_contact_relation='Spouse',
        community_id='CH-9921',
    ),
    dict(
        id='u2', full_name='David Brown', phone='555-1002', address='202 Oak Ave',
        medical_needs='Insulin Dependent', emergency_contact_name='Martha Brown',
        emergency_contact_phone='555-2002', emergency_contact_relation='Mother',
        community_id='CH-9921',
    ),
    dict(
        id='u3', full_name='Pastor John', phone='555-0101', address='4500 Main St',
        household=[
            HouseholdMember(id='h3', name='Mary Smith', age='45'),
            HouseholdMember(id='h4', name='Luke Smith', age='12'),
            HouseholdMember(id='h5', name='Mark Smith', age='10'),
        ],
        emergency_contact_name='Church Office', emergency_contact_phone='555-0100',
        emergency_contact_relation='Work', community_id='CH-9921',
        role=UserRole.INSTITUTION_ADMIN,
    ),
    dict(
        id='u4', full_name='Sarah Connor', phone='555-9111', address='Fire Station 1',
        emergency_contact_name='Dispatcher', emergency_contact_phone='555-9000',
        emergency_contact_relation='Work', role=UserRole.FIRST_RESPONDER,
    ),
]

SEED_INVENTORY = {
    'CH-9921': dict(water=120, food=45, blankets=300, medical_kits=15),
    'NGO-5500': dict(water=5000, food=2000, blankets=1000, medical_kits=500),
}


def build_seed_store(now: Optional[datetime] = None) -> Store:
    """Build a fresh demo Store (not persisted)."""
    now = now or datetime.now(timezone.utc)

    requests = [
        ReplenishmentRequest(
            id='req-1', org_id='CH-9921', org_name='Grace Community Church',
            item='Water Cases', quantity=50, status=ReplenishmentStatus.PENDING,
            timestamp=format_utc_iso(now - timedelta(hours=1)),
            provider='Diocese HQ', synced=True,
        ),
        ReplenishmentRequest(
            id='req-2', org_id='NGO-5500', org_name='Regional Aid Network',
            item='Medical Kits', quantity=200, status=ReplenishmentStatus.FULFILLED,
            timestamp=format_utc_iso(now - timedelta(days=1)),
            provider='FEMA Region 4', synced=True,
        ),
    ]

    return Store(
        users=[UserProfile(**u) for u in SEED_USERS],
        organizations=[OrganizationProfile(**o) for o in SEED_ORGS],
        inventories={org_id: OrgInventory(**inv) for org_id, inv in SEED_INVENTORY.items()},
        requests=[],
        replenishment_requests=requests,
        current_user=None,
        ticker_message="",
    )
