# --- API DOCUMENTATION for tinysh/history_store.py ---
#
# **Purpose:** Keeps the session's command history: an append-only list of
# committed lines, the Up/Down recall cursor, and loading/saving to files.
#
# **Public Classes:**
#
# class HistoryStore:
#     def record(self, line: str)
#         """Appends a committed line. Blank lines never reach this method."""
#
#     def list(self, limit: int | None = None) -> list[str]
#         """Formatted '{index:>5}  {line}' rows, optionally only the last `limit`."""
#
#     def load(self, path: str) -> int
#         """Appends every line of a file, blank lines included. Returns the number added."""
#
#     def save(self, path: str) -> int
#         """Writes every entry, truncating the file. Returns the number written."""
#
#     def append_to(self, path: str) -> int
#         """Appends entries not yet written by save, append_to or the startup load."""
#
#     def recall_previous(self) -> str | None
#     def recall_next(self) -> str | None
#     def reset_cursor(self)
#         """Up/Down navigation; the cursor lives in [0, len], len meaning 'not recalling'."""
#
# --- END API DOCUMENTATION ---

# tinysh/history_store.py

import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


class HistoryStore:
    def __init__(self):
        self.entries: List[str] = []
        self.cursor = 0
        # Entries before this index are already in a history file
        # (startup load, `save` or `append_to`).
        self._append_mark = 0

    def __len__(self):
        return len(self.entries)

    def record(self, line: str):
        self.entries.append(line)
        self.cursor = len(self.entries)

    def list(self, limit: Optional[int] = None) -> List[str]:
        if limit is None:
            start = 0
        else:
            start = max(len(self.entries) - limit, 0)
        return [f"{i: >5}  {line}" for i, line in enumerate(self.entries[start:], start=start + 1)]

    def load(self, path: str) -> int:
        """
        Appends the lines of `path` in file order.

        Raises:
            OSError: If the file cannot be read. The store is left unchanged.
        """
        with open(path, 'r', encoding='utf-8') as f:
            added = [line.rstrip('\n') for line in f]
        self.entries.extend(added)
        self.cursor = len(self.entries)
        logger.info(f"Loaded {len(added)} history entries from {path}")
        return len(added)

    def load_startup_file(self, path: str) -> int:
        """Loads the persistent history file; its entries are never re-appended by `append_to`."""
        count = self.load(path)
        self._append_mark = len(self.entries)
        return count

    def save(self, path: str) -> int:
        with open(path, 'w', encoding='utf-8') as f:
            for line in self.entries:
                f.write(line + '\n')
        self._append_mark = len(self.entries)
        logger.info(f"Saved {len(self.entries)} history entries to {path}")
        return len(self.entries)

    def append_to(self, path: str) -> int:
        pending = self.entries[self._append_mark:]
        with open(path, 'a', encoding='utf-8') as f:
            for line in pending:
                f.write(line + '\n')
        self._append_mark = len(self.entries)
        logger.info(f"Appended {len(pending)} history entries to {path}")
        return len(pending)

    # --- Recall cursor ---

    @property
    def is_recalling(self) -> bool:
        return self.cursor < len(self.entries)

    def reset_cursor(self):
        self.cursor = len(self.entries)

    def recall_previous(self) -> Optional[str]:
        """Moves toward the oldest entry. Returns None when already there."""
        if self.cursor == 0:
            return None
        self.cursor -= 1
        return self.entries[self.cursor]

    def recall_next(self) -> Optional[str]:
        """Moves toward the newest entry; past it the buffer empties. None if not recalling."""
        if self.cursor >= len(self.entries):
            return None
        self.cursor += 1
        if self.cursor == len(self.entries):
            return ""
        return self.entries[self.cursor]
