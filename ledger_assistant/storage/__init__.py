"""
Storage Package

Abstract interfaces for the persistence collaborators, plus
in-memory and JSON-file implementations.
"""

from ledger_assistant.storage.interface import (
    AuditStorageInterface,
    ConfigStorageInterface,
    CorruptRecordError,
    StorageError,
)
from ledger_assistant.storage.json_file import JsonFileConfigStorage
from ledger_assistant.storage.memory import (
    InMemoryAuditStorage,
    InMemoryConfigStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ConfigStorageInterface",
    # Exceptions
    "CorruptRecordError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryConfigStorage",
    "JsonFileConfigStorage",
]
