"""Storage adapters for the booking engine ports."""

from salonbook.storage.database import ConnectionPool, SalonDB, generate_id
from salonbook.storage.memory import InMemoryStore
from salonbook.storage.seed import SeedLoadError, SeedSummary, apply_seed, load_seed_file

__all__ = [
    "ConnectionPool",
    "InMemoryStore",
    "SalonDB",
    "SeedLoadError",
    "SeedSummary",
    "apply_seed",
    "generate_id",
    "load_seed_file",
]
