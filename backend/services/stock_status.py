"""
Derived-state calculators.

Pure functions over repository data: stock coverage levels, recommended
resupply quantities, help-request triage priority and member status counts.
Nothing here touches the store.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from schemas_store import HelpRequestData, OrgInventory, Priority

HIGH_THRESHOLD = 0.8
MEDIUM_THRESHOLD = 0.3

# Requestable item label -> inventory field. Single source of truth.
REQUEST_ITEM_MAP = {
    'Water Cases': 'water',
    'Food Boxes': 'food',
    'Blankets': 'blankets',
    'Medical Kits': 'medical_kits',
}

ITEM_FOR_FIELD = {field: item for item, field in REQUEST_ITEM_MAP.items()}


def is_valid_request_item(item) -> bool:
    return isinstance(item, str) and item in REQUEST_ITEM_MAP


# =============================================================================
# STOCK LEVELS
# =============================================================================

class StockLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


@dataclass
class StockStatus:
    level: StockLevel
    coverage: Optional[float]       # quantity / population, None if unknown


def get_stock_status(value: float, registered_population: Optional[float] = None) -> StockStatus:
    """
    Classify one inventory counter against the population it serves.

    No population (None or <= 0) -> UNKNOWN. Otherwise coverage = value / population:
    HIGH at >= 0.8, MEDIUM at >= 0.3, else LOW. Boundaries are inclusive.
    """
    if not registered_population or registered_population <= 0:
        return StockStatus(level=StockLevel.UNKNOWN, coverage=None)
    coverage = value / registered_population
    if coverage >= HIGH_THRESHOLD:
        return StockStatus(level=StockLevel.HIGH, coverage=coverage)
    if coverage >= MEDIUM_THRESHOLD:
        return StockStatus(level=StockLevel.MEDIUM, coverage=coverage)
    return StockStatus(level=StockLevel.LOW, coverage=coverage)


def get_inventory_statuses(inventory: OrgInventory, registered_population: Optional[float] = None) -> Dict[str, StockStatus]:
    return {
        'water': get_stock_status(inventory.water, registered_population),
        'food': get_stock_status(inventory.food, registered_population),
        'blankets': get_stock_status(inventory.blankets, registered_population),
        'medical_kits': get_stock_status(inventory.medical_kits, registered_population),
    }


def get_recommended_resupply(value: float, registered_population: Optional[float] = None) -> int:
    """Quantity needed to bring coverage up to the HIGH threshold (never negative)."""
    if not registered_population or registered_population <= 0:
        return 0
    target = math.ceil(round(registered_population * HIGH_THRESHOLD, 6))
    return max(0, target - int(value))


@dataclass
class ResupplyRecommendation:
    item: str               # Requestable label, e.g. "Water Cases"
    inventory_key: str
    current: int
    recommended: int


def get_low_stock_recommendations(inventory: OrgInventory, registered_population: Optional[float] = None) -> List[ResupplyRecommendation]:
    """Prefill data for replenishment requests: one entry per LOW category."""
    statuses = get_inventory_statuses(inventory, registered_population)
    recommendations = []
    for field, status in statuses.items():
        if status.level != StockLevel.LOW:
            continue
        current = getattr(inventory, field)
        recommendations.append(ResupplyRecommendation(
            item=ITEM_FOR_FIELD[field],
            inventory_key=field,
            current=current,
            recommended=get_recommended_resupply(current, registered_population),
        ))
    return recommendations


# =============================================================================
# TRIAGE PRIORITY
# =============================================================================

CRITICAL_EMERGENCY_TYPES = ('Medical', 'Fire')
HIGH_EMERGENCY_TYPES = ('Flood',)


def calculate_priority(data: HelpRequestData) -> Priority:
    """
    Triage a help request. Rules are evaluated in order; first match wins.

    Unanswered yes/no questions (None) count as "no" for can_evacuate,
    has_power and has_water.
    """
    if data.emergency_type in CRITICAL_EMERGENCY_TYPES or data.is_injured:
        return Priority.CRITICAL
    if data.emergency_type in HIGH_EMERGENCY_TYPES or not data.can_evacuate or len(data.vulnerable_groups) > 0:
        return Priority.HIGH
    if data.hazards_present or not data.has_power or not data.has_water:
        return Priority.MEDIUM
    return Priority.LOW


# =============================================================================
# MEMBER STATUS
# =============================================================================

def count_member_statuses(members: Iterable) -> Dict[str, int]:
    """Count SAFE/DANGER/UNKNOWN members (case-insensitive). Accepts models or dicts."""
    counts = {'safe': 0, 'danger': 0, 'unknown': 0}
    for member in members:
        status = member.get('status') if isinstance(member, dict) else getattr(member, 'status', None)
        if status is None:
            continue
        key = (status.value if isinstance(status, Enum) else str(status)).lower()
        counts[key] = counts.get(key, 0) + 1
    return counts
