# tinysh/path_index.py

import logging
import os
import stat
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def is_executable(path: str) -> bool:
    """True for a regular file carrying at least one execute permission bit."""
    try:
        st = os.stat(path)
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and bool(st.st_mode & EXECUTE_BITS)


class PathIndex:
    """
    Looks up executables on the search path.

    Both command resolution and tab completion go through this class so that
    they agree on which files count as executables. The search path is read
    from the environment mapping on every call, so `PATH` changes are seen
    immediately.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = environ if environ is not None else os.environ

    def directories(self) -> List[str]:
        path_var = self.environ.get("PATH", "")
        return [d for d in path_var.split(os.pathsep) if d]

    def first_match(self, name: str) -> Optional[str]:
        """
        Returns the full path of the first executable called `name`, in PATH
        order, or None. A name containing a slash is checked as a path.
        """
        if not name:
            return None
        if os.sep in name:
            return name if is_executable(name) else None

        for directory in self.directories():
            candidate = os.path.join(directory, name)
            if is_executable(candidate):
                return candidate
        logger.debug(f"No executable named '{name}' on PATH.")
        return None

    def prefix_matches(self, prefix: str) -> List[str]:
        """Returns the sorted, de-duplicated executable names starting with `prefix`."""
        names = set()
        for directory in self.directories():
            try:
                entries = os.listdir(directory)
            except OSError as e:
                logger.debug(f"Skipping unreadable PATH directory '{directory}': {e}")
                continue
            for entry in entries:
                if entry.startswith(prefix) and is_executable(os.path.join(directory, entry)):
                    names.add(entry)
        return sorted(names)
