"""
Read-only summaries of ranked sequences: top/bottom lists and progress.
"""

from collections.abc import Sequence

from .models import CategoryStats, Item, PartitionData

DEFAULT_SHOWCASE_SIZE = 5


def top_items(ranked: Sequence[Item], n: int = DEFAULT_SHOWCASE_SIZE) -> list[tuple[int, Item]]:
    """First n items with their 1-based ranks."""
    return [(rank, item) for rank, item in enumerate(ranked[:n], 1)]


def bottom_items(ranked: Sequence[Item], n: int = DEFAULT_SHOWCASE_SIZE) -> list[tuple[int, Item]]:
    """
    Last n items, worst first, with their real ranks.

    With 10 ranked items and n=5 this yields ranks 10, 9, 8, 7, 6.
    """
    if n <= 0 or not ranked:
        return []
    total = len(ranked)
    tail = list(ranked[-n:])
    tail.reverse()
    return [(total - offset, item) for offset, item in enumerate(tail)]


def progress_percent(ranked_count: int, unranked_count: int) -> int:
    """Share of the partition already ranked, 100 when there is nothing at all."""
    total = ranked_count + unranked_count
    if total == 0:
        return 100
    # Half rounds up (12.5 -> 13), unlike round()
    return int(ranked_count * 100 / total + 0.5)


def category_stats(partition: PartitionData) -> CategoryStats:
    return CategoryStats(total=partition.total, ranked=len(partition.ranked))
