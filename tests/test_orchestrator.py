"""
Integration tests for ranking runs.

End-to-end tests with real session, store and deciders.
"""

import random
import tempfile
import threading
import time
from pathlib import Path

from typing_extensions import override

from title_ranker.artwork.cache import CachedArtworkLookup
from title_ranker.deciders.sim_decider import SimulatedDecider
from title_ranker.exceptions import DeciderError
from title_ranker.interfaces import ArtworkLookup, Decider
from title_ranker.models import Category, Item, PartitionKey
from title_ranker.orchestrator import Orchestrator, RunConfig
from title_ranker.session import RankingSession, SessionConfig
from title_ranker.storage.json_store import JSONPartitionStore
from title_ranker.storage.memory_store import InMemoryPartitionStore

KEY = PartitionKey(owner="yorrick", epoch=2025, category=Category.FILM)


def seeded_session(store, titles: list[str], persist_workers: int = 0) -> RankingSession:
    session = RankingSession(store, SessionConfig(persist_workers=persist_workers))
    _ = session.activate(KEY)
    _ = session.add_items(titles)
    return session


def truth_for(session: RankingSession, seed: int) -> dict[str, float]:
    """Random latent scores keyed by item id."""
    rng = random.Random(seed)
    return {item.item_id: rng.random() for item in session.ranked + session.unranked}


class FailingDecider(Decider):
    """Decider that never answers."""

    def __init__(self):
        self.calls = 0
        self.decider_id = "failing"

    @override
    def is_better(self, candidate: Item, incumbent: Item) -> bool:
        self.calls += 1
        raise DeciderError("no answer")


class TitleLengthArtwork(ArtworkLookup):
    """Posters for every title except those starting with 'No'."""

    @override
    def lookup(self, title: str, category: Category) -> str | None:
        if title.startswith("No"):
            return None
        return f"https://example.test/{category.value}/{len(title)}.jpg"


class SlowArtwork(TitleLengthArtwork):
    """Slow lookup, so repeated requests for a title join the one in flight."""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    @override
    def lookup(self, title: str, category: Category) -> str | None:
        with self._lock:
            self.calls += 1
        time.sleep(0.2)
        return super().lookup(title, category)


class TestOrchestrator:
    """Full runs with simulated answers."""

    def test_noiseless_run_reproduces_ground_truth(self) -> None:
        """Every item is placed and the final order matches the latent scores."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            session = seeded_session(store, [f"Title {i}" for i in range(40)], persist_workers=1)
            truth = truth_for(session, seed=5)
            orchestrator = Orchestrator(session, SimulatedDecider(truth), RunConfig(budget=10_000, progress_every=100))

            # Act
            summary = orchestrator.run()
            session.close()

            # Assert
            expected = sorted(truth, key=lambda item_id: truth[item_id], reverse=True)
            assert [item.item_id for item in session.ranked] == expected
            assert summary.placed == 40
            assert summary.remaining == 0
            assert summary.stopped_reason == "queue empty"

            reloaded = store.load_partition(KEY)
            assert [item.item_id for item in reloaded.ranked] == expected
            assert reloaded.unranked == []

    def test_decisions_within_insertion_bound(self) -> None:
        session = seeded_session(InMemoryPartitionStore(), [f"Title {i}" for i in range(32)])
        decider = SimulatedDecider(truth_for(session, seed=9))

        summary = Orchestrator(session, decider, RunConfig(budget=10_000, progress_every=100)).run()

        # Sum over k=2..32 of ceil(log2(k))
        assert summary.decisions == decider.decisions
        assert summary.decisions <= sum((k - 1).bit_length() for k in range(2, 33))

    def test_budget_stops_run_and_resume_finishes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            session = seeded_session(store, [f"Title {i}" for i in range(12)])
            truth = truth_for(session, seed=2)

            # Act - first run runs out of budget mid-queue
            first = Orchestrator(session, SimulatedDecider(truth), RunConfig(budget=10, progress_every=100)).run()
            session.close()

            # Assert
            assert first.stopped_reason == "budget exhausted"
            assert first.decisions == 10
            assert first.remaining > 0

            # Act - a new session on the same directory picks up the rest
            resumed = RankingSession(store, SessionConfig(persist_workers=0))
            _ = resumed.activate(KEY)
            assert len(resumed.unranked) == first.remaining
            second = Orchestrator(resumed, SimulatedDecider(truth), RunConfig(budget=10_000, progress_every=100)).run()

            # Assert
            assert second.stopped_reason == "queue empty"
            expected = sorted(truth, key=lambda item_id: truth[item_id], reverse=True)
            assert [item.item_id for item in resumed.ranked] == expected

    def test_repeated_decider_failures_stop_run(self) -> None:
        # Arrange
        session = seeded_session(InMemoryPartitionStore(), ["A", "B", "C"])
        decider = FailingDecider()
        orchestrator = Orchestrator(session, decider, RunConfig(max_consecutive_failures=3))

        # Act
        summary = orchestrator.run()

        # Assert - first item placed without asking, the comparison left open
        assert summary.stopped_reason == "decider failed"
        assert summary.failed_decisions == 3
        assert summary.decisions == 0
        assert decider.calls == 3
        assert [item.title for item in session.ranked] == ["A"]
        assert session.is_comparing

    def test_progress_printed_every_n_placements(self, capsys) -> None:
        session = seeded_session(InMemoryPartitionStore(), [f"Title {i}" for i in range(7)])
        decider = SimulatedDecider(truth_for(session, seed=4))

        _ = Orchestrator(session, decider, RunConfig(progress_every=2)).run()

        out = capsys.readouterr().out
        # Placements 2..7 go through decide(); prints after the 2nd, 4th and 6th
        assert out.count("Top 5:") == 3

    def test_fetch_artwork_fills_missing_posters(self) -> None:
        # Arrange
        store = InMemoryPartitionStore()
        session = seeded_session(store, ["Sinners", "Nope", "Conclave"])
        artwork = CachedArtworkLookup(TitleLengthArtwork())
        decider = SimulatedDecider(truth_for(session, seed=1))
        orchestrator = Orchestrator(session, decider, RunConfig(fetch_artwork=True), artwork=artwork)

        # Act
        summary = orchestrator.run()

        # Assert
        posters = {item.title: item.poster_url for item in session.ranked}
        assert posters == {
            "Sinners": "https://example.test/FILM/7.jpg",
            "Nope": None,
            "Conclave": "https://example.test/FILM/8.jpg",
        }
        assert summary.posters_updated == 2
        assert orchestrator.fetch_artwork() == 0
        artwork.close()

    def test_items_sharing_a_title_all_get_the_poster(self) -> None:
        """Two items with the same title join one lookup and both receive its result."""
        # Arrange
        store = InMemoryPartitionStore()
        session = seeded_session(store, ["Dune", "Dune", "Nope"])
        upstream = SlowArtwork()
        artwork = CachedArtworkLookup(upstream)
        orchestrator = Orchestrator(session, SimulatedDecider({}), RunConfig(), artwork=artwork)

        # Act
        updated = orchestrator.fetch_artwork(timeout=5)
        artwork.close()

        # Assert
        assert [item.poster_url for item in session.unranked] == [
            "https://example.test/FILM/4.jpg",
            "https://example.test/FILM/4.jpg",
            None,
        ]
        assert updated == 2
        assert upstream.calls == 2

    def test_artwork_lands_in_partition_it_was_requested_for(self) -> None:
        """A poster resolved after a switch updates the original partition."""
        # Arrange
        store = InMemoryPartitionStore()
        session = seeded_session(store, ["Sinners"])
        item = session.unranked[0]
        _ = session.switch_category(Category.SERIES)

        # Act
        changed = session.update_item_metadata(item, "https://example.test/sinners.jpg", key=KEY)

        # Assert
        assert changed
        assert session.active_key is not None and session.active_key.category == Category.SERIES
        assert store.documents[KEY]["unranked"][item.item_id].get("poster_url") == "https://example.test/sinners.jpg"
