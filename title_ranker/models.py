"""
Core dataclasses for the title ranker.

Defines Item, PartitionKey, SearchWindow and ComparisonState with validation,
plus the TypedDict record shapes used when items are persisted.
"""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum

from typing_extensions import NotRequired, TypedDict

from .exceptions import ValidationError

OWNER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class Category(str, Enum):
    """Kind of title being ranked. Each category is ranked independently."""

    FILM = "FILM"
    SERIES = "SERIES"


class ItemRecord(TypedDict):
    """Persisted snapshot of a single item."""

    id: str
    title: str
    category: str
    poster_url: NotRequired[str | None]
    imdb_id: NotRequired[str | None]


@dataclass
class Item:
    """A rankable title. Identity is item_id; everything else is metadata."""

    item_id: str
    title: str
    category: Category
    poster_url: str | None = None
    imdb_id: str | None = None

    def __post_init__(self) -> None:
        """Validate item data."""
        if not self.item_id:
            raise ValidationError("item_id cannot be empty")
        if not self.title:
            raise ValidationError("title cannot be empty")
        if not isinstance(self.category, Category):
            try:
                self.category = Category(self.category)
            except ValueError as e:
                raise ValidationError(f"Unknown category: {self.category}") from e

    @classmethod
    def create(cls, title: str, category: Category) -> "Item":
        """Build a new item with a freshly generated id."""
        return cls(
            item_id=f"{category.value}-{uuid.uuid4().hex}",
            title=title,
            category=category,
        )

    def to_record(self) -> ItemRecord:
        record: ItemRecord = {
            "id": self.item_id,
            "title": self.title,
            "category": self.category.value,
        }
        if self.poster_url is not None:
            record["poster_url"] = self.poster_url
        if self.imdb_id is not None:
            record["imdb_id"] = self.imdb_id
        return record

    @classmethod
    def from_record(cls, record: ItemRecord) -> "Item":
        return cls(
            item_id=record["id"],
            title=record["title"],
            category=Category(record["category"]),
            poster_url=record.get("poster_url"),
            imdb_id=record.get("imdb_id"),
        )


@dataclass(frozen=True)
class PartitionKey:
    """Scope of one independent ranking: owner, epoch (e.g. a year), category."""

    owner: str
    epoch: int
    category: Category

    def __post_init__(self) -> None:
        """Validate partition key."""
        if not OWNER_PATTERN.match(self.owner):
            raise ValidationError(
                f"owner may only contain letters, numbers and underscores, got {self.owner!r}"
            )
        if not isinstance(self.category, Category):
            try:
                object.__setattr__(self, "category", Category(self.category))
            except ValueError as e:
                raise ValidationError(f"Unknown category: {self.category}") from e

    def __str__(self) -> str:
        return f"{self.owner}/{self.epoch}/{self.category.value}"


@dataclass
class PartitionData:
    """Ranked sequence and unranked queue of one partition."""

    ranked: list[Item] = field(default_factory=list)
    unranked: list[Item] = field(default_factory=list)

    def find(self, item_id: str) -> Item | None:
        """Locate an item by id, checking the ranked sequence first."""
        for item in self.ranked:
            if item.item_id == item_id:
                return item
        for item in self.unranked:
            if item.item_id == item_id:
                return item
        return None

    @property
    def total(self) -> int:
        return len(self.ranked) + len(self.unranked)


@dataclass(frozen=True)
class SearchWindow:
    """
    Binary search bookkeeping for one insertion.

    The window [min_index, max_index) still contains the insertion point.
    Once min_index == max_index the search is settled and min_index is the
    final insertion index.
    """

    min_index: int
    max_index: int
    compare_index: int

    def __post_init__(self) -> None:
        if self.min_index > self.max_index:
            raise ValidationError(
                f"min_index {self.min_index} exceeds max_index {self.max_index}"
            )
        if not self.settled and not (self.min_index <= self.compare_index < self.max_index):
            raise ValidationError(
                f"compare_index {self.compare_index} outside [{self.min_index}, {self.max_index})"
            )

    @property
    def settled(self) -> bool:
        return self.min_index == self.max_index

    @property
    def insert_index(self) -> int | None:
        """Final insertion index, or None while decisions are still needed."""
        return self.min_index if self.settled else None


@dataclass(frozen=True)
class ComparisonState:
    """In-flight comparison for the active partition."""

    is_comparing: bool = False
    current_item: Item | None = None
    window: SearchWindow | None = None

    @classmethod
    def idle(cls) -> "ComparisonState":
        return cls()

    @property
    def min_index(self) -> int:
        return self.window.min_index if self.window else 0

    @property
    def max_index(self) -> int:
        return self.window.max_index if self.window else 0

    @property
    def compare_index(self) -> int:
        return self.window.compare_index if self.window else 0


@dataclass
class CategoryStats:
    """For stats/progress."""

    total: int
    ranked: int

    @property
    def unranked(self) -> int:
        return self.total - self.ranked
