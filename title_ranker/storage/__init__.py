"""
Storage implementations.

Provides implementations of the PartitionStore interface.

Available implementations:
- JSONPartitionStore: One JSON document per partition plus a JSONL history
- InMemoryPartitionStore: Ephemeral store with failure injection
"""

from .json_store import JSONPartitionStore
from .memory_store import InMemoryPartitionStore

__all__ = ["JSONPartitionStore", "InMemoryPartitionStore"]
