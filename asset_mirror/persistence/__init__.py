"""
Persistence Module — Selected-mirror storage and the audit ledger.
"""

from .audit import AuditWriter
from .state_file import DEFAULT_STATE_PATH, JsonFilePersistence, MemoryPersistence

__all__ = [
    "AuditWriter",
    "JsonFilePersistence",
    "MemoryPersistence",
    "DEFAULT_STATE_PATH",
]
