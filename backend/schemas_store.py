"""
Store Pydantic Schemas

Entities of the single persisted document plus the typed update structs
and read-only views built from it.

Python attributes are snake_case; the serialized document keeps camelCase
keys (fullName, medicalKits, replenishmentRequests, ...) so blobs written
by the web client load unchanged.
"""

import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class StoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CONTRACTOR = "CONTRACTOR"
    LOCAL_AUTHORITY = "LOCAL_AUTHORITY"
    FIRST_RESPONDER = "FIRST_RESPONDER"
    GENERAL_USER = "GENERAL_USER"
    INSTITUTION_ADMIN = "INSTITUTION_ADMIN"


class Language(str, Enum):
    EN = "en"
    ES = "es"
    FR = "fr"


class OrgType(str, Enum):
    CHURCH = "CHURCH"
    NGO = "NGO"
    COMMUNITY_CENTER = "COMMUNITY_CENTER"
    LOCAL_GOV = "LOCAL_GOV"


class HelpRequestStatus(str, Enum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"
    DISPATCHED = "DISPATCHED"
    RESOLVED = "RESOLVED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ReplenishmentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    FULFILLED = "FULFILLED"
    STOCKED = "STOCKED"


class SignatureType(str, Enum):
    RELEASE = "RELEASE"     # Released by (provider)
    RECEIVE = "RECEIVE"     # Received by (organization)


class MemberStatus(str, Enum):
    SAFE = "SAFE"
    DANGER = "DANGER"
    UNKNOWN = "UNKNOWN"


# =============================================================================
# INVENTORY
# =============================================================================

INVENTORY_FIELDS = ('water', 'food', 'blankets', 'medical_kits')


def sanitize_count(value) -> int:
    """Coerce anything to a non-negative integer count (NaN/garbage -> 0)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return max(0, int(number))


class OrgInventory(StoreModel):
    """Supply counters for one organization"""
    model_config = ConfigDict(validate_assignment=True)

    water: int = 0          # cases
    food: int = 0           # boxes
    blankets: int = 0
    medical_kits: int = 0

    @field_validator(*INVENTORY_FIELDS, mode='before')
    @classmethod
    def _sanitize(cls, value):
        return sanitize_count(value)

    def plus(self, delivered: "OrgInventory") -> "OrgInventory":
        return OrgInventory(**{f: getattr(self, f) + getattr(delivered, f) for f in INVENTORY_FIELDS})

    def total(self) -> int:
        return sum(getattr(self, f) for f in INVENTORY_FIELDS)


class InventoryUpdate(OrgInventory):
    """Full inventory replacement; unknown keys are rejected"""
    model_config = ConfigDict(extra='forbid')


class DeliveredQuantities(OrgInventory):
    """Quantities delivered against a replenishment request"""
    model_config = ConfigDict(extra='forbid')


# =============================================================================
# USERS
# =============================================================================

class HouseholdMember(StoreModel):
    id: str
    name: str = ""
    age: str = ""
    needs: str = ""         # Special needs or medical notes


class NotificationSettings(StoreModel):
    push: bool = True
    sms: bool = True
    email: bool = True


class PendingStatusRequest(StoreModel):
    """Open "are you safe?" ping from an institution"""
    requester_name: str
    timestamp: str


class UserProfile(StoreModel):
    id: str = ""
    full_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""                       # Home address for dispatch
    household_members: int = 1              # Derived: len(household) + 1
    household: List[HouseholdMember] = Field(default_factory=list)
    pet_details: str = ""
    medical_needs: str = ""                 # Oxygen, dialysis, mobility...
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    emergency_contact_relation: str = ""
    community_id: str = ""                  # Linked organization id, "" if none
    role: UserRole = UserRole.GENERAL_USER
    language: Language = Language.EN
    active: bool = True
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    pending_status_request: Optional[PendingStatusRequest] = None

    @model_validator(mode='after')
    def _derive_household_count(self):
        self.household_members = len(self.household) + 1
        return self

    def recompute_household_count(self):
        self.household_members = len(self.household) + 1


class UserProfileUpdate(StoreModel):
    """Profile fields a user may edit; id, active and session are not here"""
    model_config = ConfigDict(extra='forbid')

    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    household: Optional[List[HouseholdMember]] = None
    pet_details: Optional[str] = None
    medical_needs: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relation: Optional[str] = None
    community_id: Optional[str] = None
    role: Optional[UserRole] = None
    language: Optional[Language] = None
    notifications: Optional[NotificationSettings] = None


# =============================================================================
# ORGANIZATIONS
# =============================================================================

class OrganizationProfile(StoreModel):
    id: str = ""                            # Generated community code, e.g. CH-1234
    name: str = ""
    type: OrgType = OrgType.COMMUNITY_CENTER
    address: str = ""
    admin_contact: str = ""
    admin_phone: str = ""
    replenishment_provider: str = ""        # Who fulfills requests, e.g. "FEMA Region 4"
    replenishment_email: str = ""
    replenishment_phone: str = ""
    verified: bool = False
    active: bool = True
    registered_population: Optional[int] = None
    current_broadcast: Optional[str] = None     # Scoped message for members only
    last_broadcast_time: Optional[str] = None


class OrganizationUpdate(StoreModel):
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = None
    type: Optional[OrgType] = None
    address: Optional[str] = None
    admin_contact: Optional[str] = None
    admin_phone: Optional[str] = None
    replenishment_provider: Optional[str] = None
    replenishment_email: Optional[str] = None
    replenishment_phone: Optional[str] = None
    verified: Optional[bool] = None
    registered_population: Optional[int] = None


# =============================================================================
# HELP REQUESTS
# =============================================================================

class HelpRequestData(StoreModel):
    """Household safety/situation intake (help wizard steps 1-5)"""
    # Step 1: Safety
    is_safe: Optional[bool] = None
    location: str = ""
    emergency_type: str = ""
    is_injured: Optional[bool] = None
    injury_details: str = ""

    # Step 2: Situation
    situation_description: str = ""
    can_evacuate: Optional[bool] = None
    hazards_present: Optional[bool] = None
    hazard_details: str = ""
    people_count: int = 1
    pets_present: Optional[bool] = None

    # Step 3: Resources
    has_water: Optional[bool] = None
    has_food: Optional[bool] = None
    has_meds: Optional[bool] = None
    has_power: Optional[bool] = None
    has_phone: Optional[bool] = None

    # Step 4: Vulnerabilities
    needs_transport: Optional[bool] = None
    vulnerable_groups: List[str] = Field(default_factory=list)
    medical_conditions: str = ""
    damage_type: str = ""

    # Step 5: Submission
    consent_to_share: bool = False


class HelpRequestRecord(HelpRequestData):
    id: str
    user_id: str
    timestamp: str
    status: HelpRequestStatus = HelpRequestStatus.RECEIVED
    priority: Priority = Priority.LOW
    synced: bool = True


# =============================================================================
# REPLENISHMENT REQUESTS
# =============================================================================

class ReplenishmentRequest(StoreModel):
    id: str
    org_id: str
    org_name: str = ""
    item: str
    quantity: int
    status: ReplenishmentStatus = ReplenishmentStatus.PENDING
    timestamp: str
    provider: str = ""
    synced: bool = True

    fulfilled_at: Optional[str] = None
    org_confirmed: Optional[bool] = None
    org_confirmed_at: Optional[str] = None
    stocked: Optional[bool] = None
    stocked_at: Optional[str] = None
    stocked_quantity: Optional[int] = None

    signature: Optional[str] = None             # Base64 data URL (released by)
    signed_at: Optional[str] = None
    received_signature: Optional[str] = None    # Base64 data URL (received by)
    received_at: Optional[str] = None


# =============================================================================
# ROOT AGGREGATE
# =============================================================================

class Store(StoreModel):
    """The whole persisted document. Loaded and saved as one unit."""
    users: List[UserProfile] = Field(default_factory=list)
    organizations: List[OrganizationProfile] = Field(default_factory=list)
    inventories: Dict[str, OrgInventory] = Field(default_factory=dict)
    requests: List[HelpRequestRecord] = Field(default_factory=list)
    replenishment_requests: List[ReplenishmentRequest] = Field(default_factory=list)
    current_user: Optional[str] = None
    ticker_message: str = ""                # System-wide broadcast (admin only)

    # Persisted revision this copy was loaded at; not part of the document
    revision: int = Field(default=0, exclude=True)

    def find_user(self, user_id: Optional[str]) -> Optional[UserProfile]:
        if not user_id:
            return None
        return next((u for u in self.users if u.id == user_id), None)

    def find_org(self, org_id: Optional[str]) -> Optional[OrganizationProfile]:
        if not org_id:
            return None
        return next((o for o in self.organizations if o.id == org_id), None)

    def find_help_request(self, request_id: str) -> Optional[HelpRequestRecord]:
        return next((r for r in self.requests if r.id == request_id), None)

    def find_replenishment(self, request_id: str) -> Optional[ReplenishmentRequest]:
        return next((r for r in self.replenishment_requests if r.id == request_id), None)

    def inventory_for(self, org_id: str) -> OrgInventory:
        existing = self.inventories.get(org_id)
        return existing.model_copy() if existing else OrgInventory()


# =============================================================================
# VIEWS (computed on read, never stored)
# =============================================================================

class OrgMember(StoreModel):
    id: str
    name: str
    status: MemberStatus
    last_update: str
    location: str
    needs: List[str] = Field(default_factory=list)
    phone: str = ""
    address: str = ""
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    emergency_contact_relation: str = ""


class ReplenishmentAggregate(StoreModel):
    item: str
    pending: int = 0
    approved: int = 0
    fulfilled: int = 0
    total_requested: int = 0
    pending_quantity: int = 0


class InventoryProposal(StoreModel):
    """Proposed inventory replacement awaiting confirmation"""
    org_id: str
    before: OrgInventory
    after: OrgInventory
    changes: Dict[str, int] = Field(default_factory=dict)   # field -> delta, non-zero only


class StockProposal(StoreModel):
    """Proposed stocking of a replenishment request awaiting confirmation"""
    request_id: str
    org_id: str
    item: str
    inventory_key: str
    delivered: DeliveredQuantities
    before: OrgInventory
    after: OrgInventory
