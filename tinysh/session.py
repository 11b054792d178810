# tinysh/session.py

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, MutableMapping, Optional

from tinysh.history_store import HistoryStore
from tinysh.path_index import PathIndex

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "$ "


def _stdout_buffer() -> BinaryIO:
    return sys.stdout.buffer


def _stderr_buffer() -> BinaryIO:
    return sys.stderr.buffer


@dataclass
class ShellSession:
    """
    Everything one interactive session owns, passed explicitly to each component.

    `stdout` and `stderr` are the binary streams commands inherit when nothing
    redirects them. Tests swap them for `io.BytesIO` objects.
    """
    config: Dict[str, Any] = field(default_factory=dict)
    environ: MutableMapping[str, str] = field(default_factory=lambda: os.environ)
    history: HistoryStore = field(default_factory=HistoryStore)
    stdout: BinaryIO = field(default_factory=_stdout_buffer)
    stderr: BinaryIO = field(default_factory=_stderr_buffer)
    path_index: Optional[PathIndex] = None

    def __post_init__(self):
        if self.path_index is None:
            self.path_index = PathIndex(self.environ)

    @property
    def prompt(self) -> str:
        return self.config.get("ui", {}).get("prompt", DEFAULT_PROMPT)

    def home_directory(self) -> str:
        return self.environ.get("HOME") or os.path.expanduser("~")

    def history_file(self) -> Optional[str]:
        """The persistent history file named by the configured environment variable, if set."""
        var_name = self.config.get("history", {}).get("file_env_var", "HISTFILE")
        return self.environ.get(var_name) or None

    def load_persistent_history(self):
        path = self.history_file()
        if not path or not self.config.get("history", {}).get("load_on_startup", True):
            return
        if not os.path.exists(path):
            logger.info(f"History file {path} does not exist yet; starting with empty history.")
            return
        try:
            self.history.load_startup_file(path)
        except OSError as e:
            logger.error(f"Could not read history file {path}: {e}")
            self.report_error(f"history: {path}: {e.strerror or e}")

    def save_persistent_history(self):
        path = self.history_file()
        if not path or not self.config.get("history", {}).get("save_on_exit", True):
            return
        try:
            self.history.save(path)
        except OSError as e:
            logger.error(f"Could not write history file {path}: {e}")
            self.report_error(f"history: {path}: {e.strerror or e}")

    def report_error(self, message: str, stream: Optional[BinaryIO] = None):
        """Writes one diagnostic line to `stream` (default: the session's stderr)."""
        target = stream if stream is not None else self.stderr
        target.write((message + "\n").encode())
        target.flush()
