"""
Console decider implementation.

Asks the person at the terminal the same question the ranking screen asks:
"Is <new title> better than <ranked title>?"
"""

from collections.abc import Callable

from typing_extensions import override

from ..exceptions import DeciderError
from ..interfaces import Decider
from ..logging_config import get_logger
from ..models import Item

logger = get_logger("console_decider")

YES_ANSWERS = frozenset({"y", "yes", "j", "ja"})
NO_ANSWERS = frozenset({"n", "no", "nee"})


class ConsoleDecider(Decider):
    """Interactive yes/no prompt. Re-asks until the answer is recognised."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
        max_attempts: int = 5,
    ):
        """
        Initialize console decider.

        Args:
            input_fn: Reads one line of input given a prompt
            output_fn: Writes one line of output
            max_attempts: Unrecognised answers tolerated before giving up
        """
        self.input_fn = input_fn
        self.output_fn = output_fn
        self.max_attempts = max_attempts
        self.decider_id = "console"

    @override
    def is_better(self, candidate: Item, incumbent: Item) -> bool:
        prompt = f'Is "{candidate.title}" better than "{incumbent.title}"? [y/n] '

        for _ in range(self.max_attempts):
            try:
                answer = self.input_fn(prompt).strip().casefold()
            except EOFError as e:
                raise DeciderError("Input closed while waiting for a decision") from e

            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            self.output_fn("Please answer y or n.")

        logger.warning(f"No usable answer after {self.max_attempts} attempts")
        raise DeciderError(f"No usable answer after {self.max_attempts} attempts")
