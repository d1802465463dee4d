"""Database models and the in-memory registry."""
from skirmish.models.base import Base, init_db
from skirmish.models.document import RegistryDocument
from skirmish.models.registry import EventConfig, PlayerRecord, Registry

__all__ = [
    "Base",
    "EventConfig",
    "PlayerRecord",
    "Registry",
    "RegistryDocument",
    "init_db",
]
