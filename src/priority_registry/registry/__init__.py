"""Registry tables — archive, inventor index, store and key locks."""

from priority_registry.registry.archive import InventionArchive
from priority_registry.registry.inventor_index import InventorIndex
from priority_registry.registry.locks import KeyedLocks
from priority_registry.registry.store import RegistryStore

__all__ = ["InventionArchive", "InventorIndex", "KeyedLocks", "RegistryStore"]
