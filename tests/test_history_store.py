# tests/test_history_store.py
#
# Unit tests for tinysh/history_store.py

import logging

import pytest

from tinysh.history_store import HistoryStore


@pytest.fixture
def store():
    history = HistoryStore()
    for line in ("ls", "pwd", "echo hi"):
        history.record(line)
    return history


class TestListing:
    def test_list_all_with_indices(self, store):
        assert store.list() == ["    1  ls", "    2  pwd", "    3  echo hi"]

    def test_list_limit_keeps_original_indices(self):
        history = HistoryStore()
        history.record("ls")
        history.record("pwd")
        assert history.list(1) == ["    2  pwd"]

    def test_list_limit_larger_than_history(self, store):
        assert len(store.list(10)) == 3

    def test_list_zero(self, store):
        assert store.list(0) == []


class TestFiles:
    def test_save_then_load_appends(self, store, tmp_path, caplog):
        caplog.set_level(logging.INFO)
        path = tmp_path / "hist"
        assert store.save(str(path)) == 3
        assert path.read_text() == "ls\npwd\necho hi\n"
        assert f"Saved 3 history entries to {path}" in caplog.text

        other = HistoryStore()
        other.record("first")
        assert other.load(str(path)) == 3
        assert other.entries == ["first", "ls", "pwd", "echo hi"]

    def test_load_keeps_every_line_in_order(self, tmp_path):
        path = tmp_path / "hist"
        path.write_text("a\n\n   \nb\n")
        history = HistoryStore()
        assert history.load(str(path)) == 4
        assert history.entries == ["a", "", "   ", "b"]

    def test_save_truncates(self, store, tmp_path):
        path = tmp_path / "hist"
        path.write_text("stale\nstale\nstale\nstale\n")
        store.save(str(path))
        assert path.read_text().splitlines() == ["ls", "pwd", "echo hi"]

    def test_load_missing_file_raises_and_leaves_store_unchanged(self, store, tmp_path):
        with pytest.raises(OSError):
            store.load(str(tmp_path / "missing"))
        assert len(store) == 3

    def test_append_to_only_writes_new_entries(self, store, tmp_path):
        path = tmp_path / "hist"
        assert store.append_to(str(path)) == 3
        store.record("date")
        assert store.append_to(str(path)) == 1
        assert path.read_text() == "ls\npwd\necho hi\ndate\n"

    def test_startup_file_entries_are_not_appended_again(self, tmp_path):
        path = tmp_path / "hist"
        path.write_text("old1\nold2\n")
        history = HistoryStore()
        history.load_startup_file(str(path))
        history.record("new")
        history.append_to(str(path))
        assert path.read_text() == "old1\nold2\nnew\n"


class TestRecall:
    def test_up_walks_back_and_clamps_at_oldest(self, store):
        store.reset_cursor()
        assert store.recall_previous() == "echo hi"
        assert store.recall_previous() == "pwd"
        assert store.recall_previous() == "ls"
        assert store.recall_previous() is None
        assert store.cursor == 0

    def test_down_returns_to_empty_buffer(self, store):
        store.reset_cursor()
        store.recall_previous()
        store.recall_previous()
        assert store.recall_next() == "echo hi"
        assert store.recall_next() == ""
        assert not store.is_recalling
        assert store.recall_next() is None

    def test_cursor_stays_in_bounds(self, store):
        store.reset_cursor()
        for _ in range(10):
            store.recall_next()
            assert 0 <= store.cursor <= len(store)
        for _ in range(10):
            store.recall_previous()
            assert 0 <= store.cursor <= len(store)

    def test_empty_history_recall_is_noop(self):
        history = HistoryStore()
        assert history.recall_previous() is None
        assert history.recall_next() is None

    def test_record_resets_cursor(self, store):
        store.recall_previous()
        store.record("new")
        assert store.cursor == len(store)
