"""
Binary insertion over a ranked sequence.

Pure functions with no session state: given the length of a sequence ordered
best-first and a stream of "is the new item better than the item at
compare_index?" answers, find where the new item belongs.

The caller owns the SearchWindow between decisions. Answers are trusted; if
they contradict earlier answers the item is still placed, just not where a
consistent judge would have put it.
"""

from .models import SearchWindow


def _midpoint(min_index: int, max_index: int) -> int:
    return (min_index + max_index) // 2


def begin(ranked_length: int) -> SearchWindow | None:
    """
    Open the search window for a sequence of the given length.

    Returns:
        None when the sequence is empty (insert directly at index 0, no
        comparison possible), otherwise the initial window over [0, N).
    """
    if ranked_length < 0:
        raise ValueError(f"ranked_length must be non-negative, got {ranked_length}")
    if ranked_length == 0:
        return None
    return SearchWindow(
        min_index=0,
        max_index=ranked_length,
        compare_index=_midpoint(0, ranked_length),
    )


def decide(window: SearchWindow, is_better: bool) -> SearchWindow:
    """
    Narrow the window with one answer.

    Args:
        window: Current unsettled window
        is_better: True if the new item beats the item at compare_index

    Returns:
        The narrowed window. If it is settled, insert_index is the final
        position (splice semantics: items at and after it shift down one).
    """
    if window.settled:
        raise ValueError("Search window is already settled")

    min_index, max_index = window.min_index, window.max_index
    if is_better:
        max_index = window.compare_index
    else:
        min_index = window.compare_index + 1

    if min_index == max_index:
        return SearchWindow(min_index=min_index, max_index=max_index, compare_index=min_index)
    return SearchWindow(
        min_index=min_index,
        max_index=max_index,
        compare_index=_midpoint(min_index, max_index),
    )


def max_decisions(ranked_length: int) -> int:
    """Upper bound on decisions needed to insert into a sequence of this length."""
    if ranked_length <= 0:
        return 0
    # ceil(log2(N + 1)) without float rounding
    return ranked_length.bit_length()
