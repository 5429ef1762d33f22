"""Test the in-flight guard and the fingerprint state."""

import pytest

from charsheet.engine.state import EngineState, fingerprint_of, text_hash
from tests.fakes import build_chat


class TestEngineState:
    """Test cases for EngineState."""

    def setup_method(self) -> None:
        self.state = EngineState()

    def test_try_acquire_is_exclusive(self) -> None:
        assert self.state.try_acquire() is True
        assert self.state.try_acquire() is False

        self.state.release()

        assert self.state.try_acquire() is True

    def test_guarded_releases_on_error(self) -> None:
        self.state.try_acquire()

        with pytest.raises(RuntimeError):
            with self.state.guarded():
                raise RuntimeError("boom")

        assert self.state.in_flight is False

    def test_unchanged_after_record(self) -> None:
        chat = build_chat(3)
        assert self.state.is_unchanged(chat) is False

        self.state.record(chat)

        assert self.state.is_unchanged(chat) is True
        assert self.state.is_unchanged([]) is True

    def test_truncation_and_edit_detection(self) -> None:
        chat = build_chat(4)
        self.state.record(chat)

        chat[-1].text = "regenerated reply"
        assert self.state.was_edited(chat) is True
        assert self.state.was_truncated(chat) is False

        del chat[-2:]
        assert self.state.was_truncated(chat) is True
        assert self.state.was_edited(chat) is False


def test_fingerprint_of_empty_history() -> None:
    fingerprint = fingerprint_of([])

    assert fingerprint.last_seen_length == 0
    assert fingerprint.last_seen_hash == text_hash("")
