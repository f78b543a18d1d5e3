"""Repositories for database access."""

from fleetlog.db.repositories.base import BaseRepository
from fleetlog.db.repositories.fuel_repo import FuelRepository
from fleetlog.db.repositories.kilometer_repo import KilometerLogRepository
from fleetlog.db.repositories.unit_repo import UnitRepository

__all__ = [
    "BaseRepository",
    "FuelRepository",
    "KilometerLogRepository",
    "UnitRepository",
]
