"""Test the checkpoint locator."""

from charsheet.engine.checkpoint import (
    HistorySnapshot,
    find_checkpoint,
    latest_summary,
)
from tests.fakes import build_chat


class TestFindCheckpoint:
    """Test cases for find_checkpoint."""

    def test_returns_none_for_short_histories(self) -> None:
        assert find_checkpoint([]) is None
        assert find_checkpoint(build_chat(1, checkpoints={0: "Sheet"})) is None

    def test_ignores_checkpoint_on_newest_message(self) -> None:
        chat = build_chat(4, checkpoints={3: "Newest"})

        assert find_checkpoint(chat) is None

    def test_returns_most_recent_checkpoint(self) -> None:
        chat = build_chat(8, checkpoints={1: "Old", 5: "Recent", 7: "Newest"})

        checkpoint = find_checkpoint(chat)

        assert checkpoint is not None
        assert checkpoint.index == 5
        assert checkpoint.content == chat[5].summary

    def test_empty_annotation_is_not_a_checkpoint(self) -> None:
        chat = build_chat(4, checkpoints={1: "Sheet"})
        chat[2].annotations["summary"] = ""

        assert find_checkpoint(chat).index == 1  # type: ignore[union-attr]

    def test_latest_summary_defaults_to_empty_string(self) -> None:
        assert latest_summary(build_chat(3)) == ""
        assert latest_summary(build_chat(3, checkpoints={0: "Sheet"})) == "Sheet"


class TestHistorySnapshot:
    """Test cases for HistorySnapshot."""

    def test_snapshot_is_unaffected_by_later_appends(self) -> None:
        chat = build_chat(3)
        snapshot = HistorySnapshot.capture(chat)

        chat.append(build_chat(1)[0])

        assert len(snapshot) == 3
        assert snapshot.newest is chat[2]

    def test_excluding_last_and_default_target(self) -> None:
        snapshot = HistorySnapshot.capture(build_chat(5))

        assert len(snapshot.excluding_last()) == 4
        assert snapshot.default_target_index() == 3
        assert HistorySnapshot.capture(build_chat(1)).default_target_index() == 0
        assert HistorySnapshot.capture([]).default_target_index() is None

    def test_index_of_most_recent_checkpoint(self) -> None:
        snapshot = HistorySnapshot.capture(build_chat(6, checkpoints={2: "Sheet"}))

        assert snapshot.index_of_most_recent_checkpoint() == 2
