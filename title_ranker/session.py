"""
Ranking session: the state machine that drives binary insertion.

One session owns the working lists of every partition it has activated and
the comparison state of the active one. Every mutation is applied locally
first and then handed to the BackgroundWriter as a full snapshot; the
session never waits on, or rolls back for, a write.

States of the active partition:
    IDLE       no comparison; advance() starts the next one, or places the
               queue head directly when the ranked sequence is empty
    COMPARING  comparison populated; decide() narrows or places
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from . import insertion
from .exceptions import NoActivePartitionError
from .interfaces import PartitionStore, SessionView
from .logging_config import get_logger
from .models import Category, ComparisonState, Item, PartitionData, PartitionKey
from .persistence import BackgroundWriter


@dataclass
class SessionConfig:
    """Configuration for a ranking session."""

    persist_workers: int = 1  # background save threads, 0 = save inline

    def __post_init__(self):
        """Validate configuration."""
        if self.persist_workers < 0:
            raise ValueError(f"persist_workers must be non-negative, got {self.persist_workers}")


class RankingSession:
    """Owns partition lists and the in-flight comparison."""

    def __init__(
        self,
        store: PartitionStore,
        config: SessionConfig | None = None,
        writer: BackgroundWriter | None = None,
    ):
        """
        Initialize session.

        Args:
            store: Source of truth for partitions across reloads
            config: Session configuration
            writer: Writer to persist through (built from config if omitted)
        """
        self.store: PartitionStore = store
        self.config: SessionConfig = config or SessionConfig()
        self.writer: BackgroundWriter = writer or BackgroundWriter(
            store, max_workers=self.config.persist_workers
        )

        self.partitions = dict[PartitionKey, PartitionData]()
        self.active_key: PartitionKey | None = None
        self.comparison: ComparisonState = ComparisonState.idle()

        self.logger: Logger = get_logger("session")

    # ── Partition lifecycle ──────────────────────────────────────────────────

    def activate(self, key: PartitionKey, reload: bool = False) -> PartitionData:
        """
        Make a partition the active one.

        Any in-flight comparison is discarded. The partition is loaded from
        the store the first time it is activated (or when reload is set);
        afterwards the in-memory copy, which may be ahead of the store, wins.
        """
        if self.comparison.is_comparing:
            self.logger.info(f"Discarding comparison on {self.active_key} to switch to {key}")
        self._reset_comparison()

        if reload or key not in self.partitions:
            self.partitions[key] = self.store.load_partition(key)
            self.logger.info(
                f"Activated {key}: {len(self.partitions[key].ranked)} ranked, {len(self.partitions[key].unranked)} unranked"
            )
        self.active_key = key
        return self.partitions[key]

    def switch_category(self, category: Category) -> PartitionData:
        """Activate the sibling partition of another category."""
        key = self._require_active_key()
        return self.activate(PartitionKey(owner=key.owner, epoch=key.epoch, category=category))

    def _require_active_key(self) -> PartitionKey:
        if self.active_key is None:
            raise NoActivePartitionError("No partition has been activated")
        return self.active_key

    @property
    def partition(self) -> PartitionData:
        return self.partitions[self._require_active_key()]

    @property
    def ranked(self) -> list[Item]:
        return list(self.partition.ranked)

    @property
    def unranked(self) -> list[Item]:
        return list(self.partition.unranked)

    # ── Comparison state ─────────────────────────────────────────────────────

    def _reset_comparison(self) -> None:
        self.comparison = ComparisonState.idle()

    @property
    def is_comparing(self) -> bool:
        return self.comparison.is_comparing

    @property
    def candidate(self) -> Item | None:
        """Item being inserted."""
        return self.comparison.current_item

    @property
    def incumbent(self) -> Item | None:
        """Ranked item the candidate is currently compared against."""
        if not self.comparison.is_comparing:
            return None
        ranked = self.partition.ranked
        index = self.comparison.compare_index
        return ranked[index] if index < len(ranked) else None

    @property
    def provisional_rank(self) -> int | None:
        """1-based rank of the incumbent."""
        if not self.comparison.is_comparing:
            return None
        return self.comparison.compare_index + 1

    def view(self) -> SessionView:
        """Snapshot of the active partition for presentation."""
        key = self._require_active_key()
        return {
            "partition": str(key),
            "ranked": self.ranked,
            "unranked_count": len(self.partition.unranked),
            "comparison": self.comparison,
            "candidate": self.candidate,
            "incumbent": self.incumbent,
            "provisional_rank": self.provisional_rank,
        }

    def advance(self) -> ComparisonState:
        """
        Leave IDLE if there is work.

        While the ranked sequence is empty the queue head is placed directly
        (no comparison possible); otherwise a comparison is opened for the
        head. Does nothing while already comparing.
        """
        if self.comparison.is_comparing:
            return self.comparison

        partition = self.partition
        while partition.unranked:
            head = partition.unranked[0]
            window = insertion.begin(len(partition.ranked))
            if window is None:
                self._place(head, 0)
                continue

            self.comparison = ComparisonState(is_comparing=True, current_item=head, window=window)
            self.logger.debug(
                f"Comparing '{head.title}' against #{window.compare_index + 1} in window [{window.min_index}, {window.max_index})"
            )
            break

        return self.comparison

    def decide(self, is_better: bool) -> int | None:
        """
        Apply one answer to the in-flight comparison.

        Args:
            is_better: True if the candidate beats the incumbent

        Returns:
            Final insertion index if the candidate was placed, else None
        """
        if not self.comparison.is_comparing or self.comparison.window is None:
            self.logger.warning("Decision received with no comparison in flight, ignoring")
            return None

        window = insertion.decide(self.comparison.window, is_better)
        current = self.comparison.current_item
        assert current is not None

        if window.insert_index is None:
            self.comparison = ComparisonState(is_comparing=True, current_item=current, window=window)
            self.logger.debug(f"Narrowed '{current.title}' to [{window.min_index}, {window.max_index})")
            return None

        self._place(current, window.insert_index)
        self._reset_comparison()
        return window.insert_index

    def _place(self, item: Item, index: int) -> None:
        """Splice the queue head into the ranked sequence and persist."""
        partition = self.partition
        partition.ranked.insert(index, item)
        partition.unranked.pop(0)
        self.logger.info(f"Placed '{item.title}' at #{index + 1} of {len(partition.ranked)} in {self.active_key}")
        self._persist()

    # ── Mutations ────────────────────────────────────────────────────────────

    def _persist(self, key: PartitionKey | None = None) -> None:
        key = key or self._require_active_key()
        partition = self.partitions[key]
        _ = self.writer.submit(key, partition.ranked, partition.unranked)

    def add_item(self, title: str) -> Item | None:
        """
        Append a new title to the unranked queue.

        Returns:
            The created item, or None if the title was blank
        """
        added = self.add_items([title])
        return added[0] if added else None

    def add_items(self, titles: Iterable[str]) -> list[Item]:
        """Append several titles with a single persist. Blank titles are skipped."""
        key = self._require_active_key()
        partition = self.partitions[key]

        added = list[Item]()
        for title in titles:
            cleaned = title.strip()
            if not cleaned:
                self.logger.debug("Ignoring blank title")
                continue
            item = Item.create(cleaned, key.category)
            partition.unranked.append(item)
            added.append(item)

        if added:
            self.logger.info(f"Queued {len(added)} titles in {key}")
            self._persist(key)
        return added

    def add_existing_items(self, items: Iterable[Item]) -> list[Item]:
        """Append pre-built items, skipping ids already present in the partition."""
        key = self._require_active_key()
        partition = self.partitions[key]

        added = list[Item]()
        for item in items:
            if partition.find(item.item_id) is not None:
                self.logger.warning(f"Item {item.item_id} already in {key}, skipping")
                continue
            partition.unranked.append(item)
            added.append(item)

        if added:
            self.logger.info(f"Queued {len(added)} items in {key}")
            self._persist(key)
        return added

    def remove_ranked_item(self, item: Item) -> bool:
        """
        Delete an item from the ranked sequence.

        Indices shift, so any in-flight comparison is discarded; the candidate
        stays at the queue head and is compared afresh on the next advance().
        """
        partition = self.partition
        index = self._index_of(partition.ranked, item.item_id)
        if index is None:
            self.logger.debug(f"Item {item.item_id} not ranked, nothing to remove")
            return False

        del partition.ranked[index]
        self.logger.info(f"Removed ranked '{item.title}' (was #{index + 1})")
        self._persist()
        self._reset_comparison()
        return True

    def remove_in_flight_item(self, item: Item) -> bool:
        """Delete the candidate of the in-flight comparison from the queue."""
        current = self.comparison.current_item
        if current is None or current.item_id != item.item_id:
            self.logger.debug(f"Item {item.item_id} is not in flight, nothing to remove")
            return False

        partition = self.partition
        index = self._index_of(partition.unranked, item.item_id)
        if index is not None:
            del partition.unranked[index]
        self.logger.info(f"Removed in-flight '{item.title}'")
        self._persist()
        self._reset_comparison()
        return True

    def remove_item(self, item: Item) -> bool:
        """Delete an item from whichever list holds it."""
        if self.comparison.current_item is not None and self.comparison.current_item.item_id == item.item_id:
            return self.remove_in_flight_item(item)
        if self._index_of(self.partition.ranked, item.item_id) is not None:
            return self.remove_ranked_item(item)

        # Queued but not in flight: comparison indices are unaffected
        partition = self.partition
        index = self._index_of(partition.unranked, item.item_id)
        if index is None:
            self.logger.debug(f"Item {item.item_id} not found in {self.active_key}")
            return False
        del partition.unranked[index]
        self.logger.info(f"Removed queued '{item.title}'")
        self._persist()
        return True

    def reorder(self, ordered_ids: Sequence[str]) -> bool:
        """
        Replace the ranked sequence with a manual ordering.

        The ids must be a permutation of the current ranked ids. The new order
        overrides whatever the comparisons established. A comparison in flight
        is discarded since the item at its compare_index may have moved.
        """
        partition = self.partition
        by_id = {item.item_id: item for item in partition.ranked}
        if len(ordered_ids) != len(by_id) or set(ordered_ids) != set(by_id):
            self.logger.warning(
                f"Reorder rejected: {len(ordered_ids)} ids are not a permutation of the {len(by_id)} ranked items"
            )
            return False

        partition.ranked[:] = [by_id[item_id] for item_id in ordered_ids]
        self.logger.info(f"Ranked sequence of {self.active_key} reordered manually")
        self._persist()
        self._reset_comparison()
        return True

    def move_ranked_item(self, item: Item, new_index: int) -> bool:
        """Move one ranked item to a new index (drag and drop)."""
        ids = [ranked.item_id for ranked in self.partition.ranked]
        if item.item_id not in ids:
            return False
        ids.remove(item.item_id)
        ids.insert(max(0, min(new_index, len(ids))), item.item_id)
        return self.reorder(ids)

    def reset_partition(self, key: PartitionKey | None = None) -> None:
        """Clear both lists of a partition (the active one by default) and persist."""
        key = key or self._require_active_key()
        self.partitions[key] = PartitionData()
        self.logger.info(f"Partition {key} reset")
        self._persist(key)
        if key == self.active_key:
            self._reset_comparison()

    def update_item_metadata(
        self, item: Item, poster_url: str | None, key: PartitionKey | None = None
    ) -> bool:
        """
        Set an item's poster URL.

        The item is looked up by id, ranked sequence first, since it may have
        moved lists since the caller saw it. key defaults to the active
        partition; lookups that finish after a partition switch pass the key
        they were started for.

        Returns:
            True if the stored value changed (and a persist was issued)
        """
        key = key or self._require_active_key()
        partition = self.partitions.get(key)
        stored = partition.find(item.item_id) if partition is not None else None
        if stored is None:
            self.logger.debug(f"Item {item.item_id} no longer in {key}, dropping metadata")
            return False
        if stored.poster_url == poster_url:
            return False

        stored.poster_url = poster_url
        self.logger.debug(f"Poster for '{stored.title}' set to {poster_url}")
        self._persist(key)
        return True

    @staticmethod
    def _index_of(items: Sequence[Item], item_id: str) -> int | None:
        for index, item in enumerate(items):
            if item.item_id == item_id:
                return index
        return None

    # ── Shutdown ─────────────────────────────────────────────────────────────

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for outstanding writes."""
        return self.writer.flush(timeout)

    def close(self) -> None:
        self.writer.close()
