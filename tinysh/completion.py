# tinysh/completion.py

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from tinysh.path_index import PathIndex

logger = logging.getLogger(__name__)

LISTING_SEPARATOR = "  "


def longest_common_prefix(strings: List[str]) -> str:
    """Character-by-character common prefix of all strings ("" for an empty list)."""
    if not strings:
        return ""
    shortest = min(len(s) for s in strings)
    first = strings[0]
    for i in range(shortest):
        ch = first[i]
        if any(s[i] != ch for s in strings[1:]):
            return first[:i]
    return first[:shortest]


@dataclass
class CompletionResult:
    """What the line editor should do after a Tab press."""
    buffer: str
    ring_bell: bool = False
    listing: Optional[List[str]] = None

    @property
    def listing_text(self) -> str:
        return LISTING_SEPARATOR.join(self.listing or [])


class CompletionEngine:
    """
    Completes the command word from builtin names and PATH executables.

    The engine remembers how many times Tab was pressed in a row for the same
    ambiguous candidate set; the line editor calls `reset()` for any other key.
    """

    def __init__(self, builtin_names: Iterable[str], path_index: PathIndex):
        self.builtin_names = sorted(set(builtin_names))
        self.path_index = path_index
        self.tab_presses = 0
        self._last_candidates: Optional[List[str]] = None

    def reset(self):
        self.tab_presses = 0
        self._last_candidates = None

    def candidates(self, prefix: str) -> List[str]:
        # Only the command word is completed.
        if any(ch.isspace() for ch in prefix):
            return []
        names = {name for name in self.builtin_names if name.startswith(prefix)}
        names.update(self.path_index.prefix_matches(prefix))
        return sorted(names)

    def complete(self, buffer: str) -> CompletionResult:
        matches = self.candidates(buffer)
        logger.debug(f"Completion for '{buffer}': {len(matches)} candidate(s)")

        if len(matches) == 1:
            self.reset()
            return CompletionResult(buffer=matches[0] + " ")

        if not matches:
            self.reset()
            return CompletionResult(buffer=buffer, ring_bell=True)

        if matches == self._last_candidates:
            self.tab_presses += 1
        else:
            self.tab_presses = 1
            self._last_candidates = matches

        if self.tab_presses == 1:
            prefix = longest_common_prefix(matches)
            new_buffer = prefix if len(prefix) > len(buffer) else buffer
            return CompletionResult(buffer=new_buffer, ring_bell=True)

        return CompletionResult(buffer=buffer, listing=matches)
