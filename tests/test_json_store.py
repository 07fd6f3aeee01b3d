"""
Tests for JSONPartitionStore and the document codec.

Focus on round trips, fail-soft loads and data integrity.
"""

import dataclasses
import json
import tempfile
from pathlib import Path

import pytest

from title_ranker.exceptions import ValidationError
from title_ranker.models import Category, Item, PartitionKey
from title_ranker.session import RankingSession, SessionConfig
from title_ranker.storage.json_store import JSONPartitionStore, build_document, parse_document

KEY = PartitionKey(owner="yorrick", epoch=2025, category=Category.FILM)


def film(item_id: str, title: str, poster_url: str | None = None) -> Item:
    return Item(item_id=item_id, title=title, category=Category.FILM, poster_url=poster_url)


class TestJSONPartitionStore:
    """Test JSONPartitionStore behavior through public interface."""

    def test_save_and_load_round_trip(self) -> None:
        """Both lists come back in order with their metadata."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            ranked = [film("f1", "Sinners", "https://image.tmdb.org/t/p/w500/s.jpg"), film("f2", "Conclave")]
            unranked = [film("f3", "Weapons"), film("f4", "Anora")]

            # Act
            saved = store.save_partition(KEY, ranked, unranked)
            loaded = store.load_partition(KEY)

            # Assert
            assert saved
            assert [item.item_id for item in loaded.ranked] == ["f1", "f2"]
            assert [item.item_id for item in loaded.unranked] == ["f3", "f4"]
            assert loaded.ranked[0].poster_url == "https://image.tmdb.org/t/p/w500/s.jpg"
            assert loaded.ranked[1].poster_url is None
            assert all(item.category == Category.FILM for item in loaded.ranked + loaded.unranked)

    def test_document_layout(self) -> None:
        """Document lives under owner/epoch/CATEGORY.json with unranked keyed by id."""
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir))

            _ = store.save_partition(KEY, [film("f1", "Sinners")], [film("f2", "Anora")])

            path = Path(temp_dir) / "yorrick" / "2025" / "FILM.json"
            assert path.exists()
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            assert data["ranked"][0]["id"] == "f1"
            assert list(data["unranked"]) == ["f2"]
            assert "last_updated" in data

    def test_missing_partition_loads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir))

            loaded = store.load_partition(KEY)

            assert loaded.ranked == []
            assert loaded.unranked == []

    def test_corrupt_document_loads_empty(self) -> None:
        """Unparseable JSON fails soft."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            path = store.document_path(KEY)
            path.parent.mkdir(parents=True)
            _ = path.write_text("{not json", encoding="utf-8")

            # Act
            loaded = store.load_partition(KEY)

            # Assert
            assert loaded.total == 0

    def test_schema_mismatch_loads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir))
            path = store.document_path(KEY)
            path.parent.mkdir(parents=True)
            _ = path.write_text(json.dumps({"ranked": "nope", "unranked": {}}), encoding="utf-8")

            loaded = store.load_partition(KEY)

            assert loaded.total == 0

    def test_unknown_category_loads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir))
            path = store.document_path(KEY)
            path.parent.mkdir(parents=True)
            document = {"ranked": [{"id": "x", "title": "X", "category": "PODCAST"}], "unranked": {}}
            _ = path.write_text(json.dumps(document), encoding="utf-8")

            loaded = store.load_partition(KEY)

            assert loaded.total == 0

    def test_every_save_appends_history(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir))

            for i in range(3):
                _ = store.save_partition(KEY, [], [film(f"f{i}", f"Title {i}")])

            assert store.get_history_count(KEY) == 3
            assert [item.item_id for item in store.load_partition(KEY).unranked] == ["f2"]

    def test_history_can_be_disabled(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONPartitionStore(Path(temp_dir), keep_history=False)

            _ = store.save_partition(KEY, [], [film("f1", "Anora")])

            assert store.get_history_count(KEY) == 0
            assert not store.history_path(KEY).exists()

    def test_partitions_are_separate_files(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            series_key = PartitionKey(owner="yorrick", epoch=2025, category=Category.SERIES)
            other_year = PartitionKey(owner="yorrick", epoch=2024, category=Category.FILM)

            # Act
            _ = store.save_partition(KEY, [film("f1", "Sinners")], [])
            _ = store.save_partition(
                series_key, [Item(item_id="s1", title="Andor", category=Category.SERIES)], []
            )

            # Assert
            assert [item.title for item in store.load_partition(KEY).ranked] == ["Sinners"]
            assert [item.title for item in store.load_partition(series_key).ranked] == ["Andor"]
            assert store.load_partition(other_year).total == 0

    def test_parallel_saves_leave_a_loadable_document(self) -> None:
        """Many writer threads on one partition never corrupt the document or the history."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONPartitionStore(Path(temp_dir))
            session = RankingSession(store, SessionConfig(persist_workers=8))
            _ = session.activate(KEY)

            # Act
            for i in range(200):
                _ = session.add_item(f"Title {i}")
            session.close()

            # Assert - every write landed, the latest document parses
            assert session.writer.failed_writes == 0
            assert session.writer.completed_writes == 200
            reloaded = store.load_partition(KEY)
            assert 1 <= len(reloaded.unranked) <= 200
            titles = [item.title for item in reloaded.unranked]
            assert titles == [f"Title {i}" for i in range(len(titles))]

            # Assert - one whole JSON document per history line, no temp files left behind
            assert store.get_history_count(KEY) == 200
            with open(store.history_path(KEY), "r", encoding="utf-8") as f:
                for line in f:
                    assert "unranked" in json.loads(line)
            assert list(store.document_path(KEY).parent.glob("*.tmp")) == []

    def test_save_failure_returns_false(self) -> None:
        """An unwritable location is reported, not raised."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange - a file where the owner directory should be
            store = JSONPartitionStore(Path(temp_dir))
            _ = (Path(temp_dir) / "yorrick").write_text("blocker", encoding="utf-8")

            # Act
            saved = store.save_partition(KEY, [film("f1", "Sinners")], [])

            # Assert
            assert not saved


class TestDocumentCodec:
    """build_document / parse_document."""

    def test_queue_order_preserved(self) -> None:
        unranked = [film(f"f{i}", f"Title {i}") for i in (5, 1, 9, 3)]

        partition = parse_document(build_document([], unranked), KEY)

        assert [item.item_id for item in partition.unranked] == ["f5", "f1", "f9", "f3"]

    def test_parsed_partition_holds_only_both_lists(self) -> None:
        partition = parse_document(build_document([film("f1", "Sinners")], [film("f2", "Anora")]), KEY)

        assert [f.name for f in dataclasses.fields(partition)] == ["ranked", "unranked"]
        assert partition.total == 2

    def test_duplicate_ranked_ids_dropped(self) -> None:
        document = {
            "ranked": [
                {"id": "f1", "title": "Sinners", "category": "FILM"},
                {"id": "f1", "title": "Sinners again", "category": "FILM"},
            ],
            "unranked": {},
        }

        partition = parse_document(document, KEY)

        assert [item.title for item in partition.ranked] == ["Sinners"]

    def test_id_in_both_lists_kept_in_ranked_only(self) -> None:
        document = {
            "ranked": [{"id": "f1", "title": "Sinners", "category": "FILM"}],
            "unranked": {
                "f1": {"id": "f1", "title": "Sinners", "category": "FILM"},
                "f2": {"id": "f2", "title": "Anora", "category": "FILM"},
            },
        }

        partition = parse_document(document, KEY)

        assert [item.item_id for item in partition.ranked] == ["f1"]
        assert [item.item_id for item in partition.unranked] == ["f2"]

    def test_blank_title_record_rejected(self) -> None:
        document = {"ranked": [{"id": "f1", "title": "", "category": "FILM"}], "unranked": {}}

        with pytest.raises(ValidationError):
            _ = parse_document(document, KEY)


class TestPartitionKey:
    """Owner validation guards every storage path."""

    def test_owner_with_path_separator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = PartitionKey(owner="../etc", epoch=2025, category=Category.FILM)

    def test_owner_with_space_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = PartitionKey(owner="two words", epoch=2025, category=Category.FILM)

    def test_category_string_is_coerced(self) -> None:
        key = PartitionKey(owner="yorrick_2", epoch=2025, category="SERIES")  # pyright: ignore[reportArgumentType]

        assert key.category is Category.SERIES
        assert str(key) == "yorrick_2/2025/SERIES"
