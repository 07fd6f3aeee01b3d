"""
Orchestrator for ranking runs.

Coordinates session, decider and artwork lookup. Every session mutation
happens on the calling thread; only artwork lookups and partition writes run
on worker threads.
"""

from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .artwork.cache import CachedArtworkLookup
from .exceptions import DeciderError
from .interfaces import Decider
from .logging_config import get_logger
from .models import Item, PartitionKey
from .session import RankingSession
from .stats import progress_percent, top_items


@dataclass
class RunConfig:
    """Configuration for a ranking run."""

    budget: int = 500  # decisions allowed in one run
    progress_every: int = 5  # print progress every N placements
    max_consecutive_failures: int = 3  # decider failures in a row before giving up
    fetch_artwork: bool = False  # look up posters for items without one

    def __post_init__(self):
        """Validate configuration."""
        if self.budget <= 0:
            raise ValueError(f"budget must be positive, got {self.budget}")
        if self.progress_every <= 0:
            raise ValueError(f"progress_every must be positive, got {self.progress_every}")
        if self.max_consecutive_failures <= 0:
            raise ValueError(
                f"max_consecutive_failures must be positive, got {self.max_consecutive_failures}"
            )


@dataclass
class RunSummary:
    """Outcome of one run."""

    decisions: int = 0
    placed: int = 0
    failed_decisions: int = 0
    remaining: int = 0
    posters_updated: int = 0
    stopped_reason: str = "queue empty"


class Orchestrator:
    """Drives a session until its queue is empty or the budget is spent."""

    def __init__(
        self,
        session: RankingSession,
        decider: Decider,
        config: RunConfig,
        artwork: CachedArtworkLookup | None = None,
    ):
        """Initialize orchestrator with all components."""
        self.session: RankingSession = session
        self.decider: Decider = decider
        self.config: RunConfig = config
        self.artwork: CachedArtworkLookup | None = artwork

        self.summary: RunSummary = RunSummary()
        self._consecutive_failures: int = 0

        self.logger: Logger = get_logger("orchestrator")

    def run(self) -> RunSummary:
        """Rank queued items of the active partition."""
        key = self.session.active_key
        self.logger.info(f"Starting ranking run on {key} with config: {self.config}")
        self.summary = RunSummary()

        if self.config.fetch_artwork and self.artwork is not None:
            self.fetch_artwork()

        _ = self.session.advance()
        while self.session.is_comparing:
            if self.summary.decisions >= self.config.budget:
                self.summary.stopped_reason = "budget exhausted"
                self.logger.info(f"Decision budget of {self.config.budget} exhausted")
                break

            candidate = self.session.candidate
            incumbent = self.session.incumbent
            assert candidate is not None and incumbent is not None

            try:
                is_better = self.decider.is_better(candidate, incumbent)
            except DeciderError as e:
                self.summary.failed_decisions += 1
                self._consecutive_failures += 1
                self.logger.error(f"Decider failed on '{candidate.title}' vs '{incumbent.title}': {e}")
                if self._consecutive_failures >= self.config.max_consecutive_failures:
                    self.summary.stopped_reason = "decider failed"
                    self.logger.error(
                        f"{self._consecutive_failures} consecutive decider failures, stopping run"
                    )
                    break
                continue

            self._consecutive_failures = 0
            self.summary.decisions += 1
            placed_at = self.session.decide(is_better)
            if placed_at is not None:
                self.summary.placed += 1
                if self.summary.placed % self.config.progress_every == 0:
                    self._print_progress()
                _ = self.session.advance()

        self.summary.remaining = len(self.session.partition.unranked)
        self.logger.info(
            f"Run complete: {self.summary.decisions} decisions, {self.summary.placed} placed, {self.summary.remaining} remaining"
        )
        return self.summary

    def fetch_artwork(self, timeout: float | None = None) -> int:
        """
        Look up posters for every item in the active partition that has none.

        Results are applied here, on the driving thread, as they complete.

        Returns:
            Number of items whose poster changed
        """
        if self.artwork is None:
            return 0

        key = self.session.active_key
        assert key is not None
        partition = self.session.partition
        missing = [item for item in partition.ranked + partition.unranked if not item.poster_url]
        if not missing:
            return 0

        self.logger.info(f"Looking up artwork for {len(missing)} items in {key}")
        # Items sharing a title and category share one lookup future
        futures = dict[Future[str | None], list[Item]]()
        for item in missing:
            futures.setdefault(self.artwork.request(item.title, item.category), []).append(item)

        updated = 0
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
            if not done:
                self.logger.warning(f"Artwork lookup timed out with {len(pending)} outstanding")
                break
            for future in done:
                for item in futures[future]:
                    updated += self._apply_artwork(key, item, future)

        self.summary.posters_updated += updated
        return updated

    def _apply_artwork(self, key: PartitionKey, item: Item, future: Future[str | None]) -> int:
        try:
            url = future.result()
        except Exception as e:
            self.logger.error(f"Artwork lookup for '{item.title}' raised: {e}")
            return 0
        if url is None:
            return 0
        return 1 if self.session.update_item_metadata(item, url, key=key) else 0

    def _print_progress(self) -> None:
        """Print progress and current top 5."""
        partition = self.session.partition
        percent = progress_percent(len(partition.ranked), len(partition.unranked))
        self.logger.info(
            f"Progress: {len(partition.ranked)} ranked, {len(partition.unranked)} remaining ({percent}%)"
        )
        print(f"\n{'='*60}")
        print(f"Progress: {len(partition.ranked)} ranked / {len(partition.unranked)} remaining ({percent}%)")
        print(f"Decisions this run: {self.summary.decisions}")
        print("\nTop 5:")
        for rank, item in top_items(partition.ranked):
            print(f"  {rank}. {item.title}")
        print(f"{'='*60}\n")
