"""
Abstract base classes defining the collaborators of a ranking session.

All interfaces are synchronous; the session and the artwork cache push them
onto worker threads where a call must not block the caller.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from typing_extensions import NotRequired, TypedDict

from .models import Category, ComparisonState, Item, ItemRecord, PartitionData, PartitionKey


class PartitionDocument(TypedDict):
    """Stored shape of one partition."""

    ranked: list[ItemRecord]
    unranked: dict[str, ItemRecord]  # item id -> record, in queue order
    last_updated: NotRequired[float]


class SessionView(TypedDict):
    """What the presentation layer needs to render the active partition."""

    partition: str
    ranked: list[Item]
    unranked_count: int
    comparison: ComparisonState
    candidate: Item | None
    incumbent: Item | None
    provisional_rank: int | None


class PartitionStore(ABC):
    """Interface for loading and saving whole partitions."""

    @abstractmethod
    def load_partition(self, key: PartitionKey) -> PartitionData:
        """
        Load a partition.

        Fails soft: returns empty lists on missing data or any error.
        """
        pass

    @abstractmethod
    def save_partition(
        self, key: PartitionKey, ranked: Sequence[Item], unranked: Sequence[Item]
    ) -> bool:
        """
        Overwrite a partition with a full snapshot of both lists.

        Returns:
            True on success, False on failure
        """
        pass


class ArtworkLookup(ABC):
    """Interface for resolving poster artwork URLs."""

    @abstractmethod
    def lookup(self, title: str, category: Category) -> str | None:
        """
        Resolve a poster URL for a title.

        May block. Returns None when there is no match.
        """
        pass


class Decider(ABC):
    """Interface for answering pairwise "is A better than B?" questions."""

    decider_id: str = "unknown"

    @abstractmethod
    def is_better(self, candidate: Item, incumbent: Item) -> bool:
        """
        Decide whether the candidate beats the already-ranked incumbent.

        Args:
            candidate: Item being inserted
            incumbent: Ranked item currently at the comparison index

        Returns:
            True if the candidate is better
        """
        pass
