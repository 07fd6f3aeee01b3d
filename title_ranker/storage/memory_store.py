"""
In-memory partition store.

Holds serialized documents in a dict, so what comes back from a load is
always a fresh copy and never aliases a live session list. Supports failure
injection for exercising the best-effort persistence path.
"""

import threading
from collections.abc import Sequence

from typing_extensions import override

from ..exceptions import StorageError, ValidationError
from ..interfaces import PartitionDocument, PartitionStore
from ..logging_config import get_logger
from ..models import Item, PartitionData, PartitionKey
from .json_store import build_document, parse_document

logger = get_logger("memory_store")


class InMemoryPartitionStore(PartitionStore):
    """Ephemeral store keyed by PartitionKey."""

    def __init__(self, fail_saves: bool = False, fail_loads: bool = False):
        """
        Initialize in-memory store.

        Args:
            fail_saves: Raise StorageError from every save
            fail_loads: Raise StorageError inside every load (load still fails soft)
        """
        self.fail_saves = fail_saves
        self.fail_loads = fail_loads
        self.documents = dict[PartitionKey, PartitionDocument]()
        self.save_calls = 0
        self.load_calls = 0
        self._lock = threading.Lock()

    @override
    def load_partition(self, key: PartitionKey) -> PartitionData:
        with self._lock:
            self.load_calls += 1
            document = self.documents.get(key)
        try:
            if self.fail_loads:
                raise StorageError(f"Simulated load failure for {key}")
            if document is None:
                return PartitionData()
            return parse_document(document, key)
        except (StorageError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load partition {key}: {e}")
            return PartitionData()

    @override
    def save_partition(
        self, key: PartitionKey, ranked: Sequence[Item], unranked: Sequence[Item]
    ) -> bool:
        with self._lock:
            self.save_calls += 1
            if self.fail_saves:
                raise StorageError(f"Simulated save failure for {key}")
            self.documents[key] = build_document(ranked, unranked)
        return True
