"""
Engine Services

Repositories, calculators, the replenishment lifecycle, offline sync and
the ticker resolver. Everything here takes a DocumentStore by reference;
nothing reaches for a module-level database.

Usage:
    from services.users import UserRepository
    from services.replenishment import ReplenishmentEngine
    from services.stock_status import get_stock_status, calculate_priority
"""
