"""
JSON partition store implementation.

Keeps one JSON document per partition (latest snapshot) and an append-only
JSONL history of every snapshot written for that partition.
"""

import json
import tempfile
import threading
import time
import typing
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import PartitionDocument, PartitionStore
from ..logging_config import get_logger
from ..models import Item, PartitionData, PartitionKey

# Module-level logger
logger = get_logger("json_store")

_document_adapter = TypeAdapter(PartitionDocument)


def build_document(ranked: Sequence[Item], unranked: Sequence[Item]) -> PartitionDocument:
    """Serialize both lists into the stored document shape."""
    return {
        "ranked": [item.to_record() for item in ranked],
        "unranked": {item.item_id: item.to_record() for item in unranked},
        "last_updated": time.time(),
    }


def parse_document(data: object, key: PartitionKey) -> PartitionData:
    """
    Validate a stored document and rebuild the partition lists.

    Duplicate ids are dropped with a warning; an id present in both lists is
    kept in the ranked sequence only.

    Raises:
        pydantic.ValidationError: If the document does not match the schema
        ValidationError: If an item record is invalid
    """
    document = _document_adapter.validate_python(data)

    seen = set[str]()
    ranked = list[Item]()
    for record in document["ranked"]:
        item = Item.from_record(record)
        if item.item_id in seen:
            logger.warning(f"Dropping duplicate ranked item {item.item_id} in {key}")
            continue
        seen.add(item.item_id)
        ranked.append(item)

    unranked = list[Item]()
    for item_id, record in document["unranked"].items():
        item = Item.from_record(record)
        if item.item_id != item_id:
            logger.warning(f"Unranked entry {item_id} holds item {item.item_id} in {key}")
        if item.item_id in seen:
            logger.warning(f"Dropping unranked item {item.item_id} already present in {key}")
            continue
        seen.add(item.item_id)
        unranked.append(item)

    return PartitionData(ranked=ranked, unranked=unranked)


class JSONPartitionStore(PartitionStore):
    """
    File-based partition store.

    Layout under root_dir:
        <owner>/<epoch>/<CATEGORY>.json           latest snapshot (overwritten)
        <owner>/<epoch>/<CATEGORY>.history.jsonl  every snapshot (append-only)
    """

    root_dir: Path
    keep_history: bool

    def __init__(self, root_dir: Path, keep_history: bool = True):
        """
        Initialize JSON store.

        Args:
            root_dir: Directory holding all partitions
            keep_history: Also append each snapshot to the partition history file
        """
        self.root_dir = Path(root_dir)
        self.keep_history = keep_history

        self.root_dir.mkdir(parents=True, exist_ok=True)

        self._partition_locks = dict[PartitionKey, threading.Lock]()
        self._locks_guard: threading.Lock = threading.Lock()

        logger.info(f"JSON store initialized: root={self.root_dir}, keep_history={self.keep_history}")

    def document_path(self, key: PartitionKey) -> Path:
        return self.root_dir / key.owner / str(key.epoch) / f"{key.category.value}.json"

    def history_path(self, key: PartitionKey) -> Path:
        return self.root_dir / key.owner / str(key.epoch) / f"{key.category.value}.history.jsonl"

    def _lock_for(self, key: PartitionKey) -> threading.Lock:
        with self._locks_guard:
            return self._partition_locks.setdefault(key, threading.Lock())

    @override
    def load_partition(self, key: PartitionKey) -> PartitionData:
        """Load a partition from its JSON document, empty on any failure."""
        path = self.document_path(key)
        if not path.exists():
            logger.debug(f"No document for {key}")
            return PartitionData()

        logger.info(f"Loading partition {key} from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))  # pyright: ignore[reportExplicitAny]
            partition = parse_document(data, key)
        except (OSError, ValueError, PydanticValidationError, ValidationError) as e:
            logger.error(f"Failed to load partition {key} from {path}: {e}")
            return PartitionData()

        logger.info(
            f"Loaded partition {key}: {len(partition.ranked)} ranked, {len(partition.unranked)} unranked"
        )
        return partition

    @override
    def save_partition(
        self, key: PartitionKey, ranked: Sequence[Item], unranked: Sequence[Item]
    ) -> bool:
        """Write the latest snapshot and append it to the history file."""
        path = self.document_path(key)
        document = build_document(ranked, unranked)
        logger.debug(f"Saving partition {key}: {len(ranked)} ranked, {len(unranked)} unranked")

        tmp_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            # One writer per partition: the document swap and the history
            # append must not interleave with a concurrent save
            with self._lock_for(key):
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=path.parent,
                    prefix=f".{path.stem}.",
                    suffix=".tmp",
                    delete=False,
                ) as f:
                    tmp_path = Path(f.name)
                    json.dump(document, f, indent=2, ensure_ascii=False)
                _ = tmp_path.replace(path)
                tmp_path = None

                if self.keep_history:
                    with open(self.history_path(key), "a", encoding="utf-8") as history:
                        json.dump(document, history, ensure_ascii=False)
                        _ = history.write("\n")
        except OSError as e:
            logger.error(f"Failed to save partition {key} to {path}: {e}")
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            return False

        logger.debug(f"Partition {key} saved to {path}")
        return True

    def get_history_count(self, key: PartitionKey) -> int:
        """Get number of snapshots written for a partition."""
        path = self.history_path(key)
        if not path.exists():
            return 0

        count = 0
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    count += 1
        return count
