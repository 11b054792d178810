# tests/conftest.py
#
# Project-wide fixtures. The project root is put on sys.path so that `main`
# and the `tinysh` package import without installing the project.

import io
import os
import stat
import sys

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from tinysh.history_store import HistoryStore
from tinysh.session import ShellSession


def make_executable(directory, name, body="#!/bin/sh\nexit 0\n"):
    """Creates an executable shell script and returns its path."""
    path = os.path.join(str(directory), name)
    with open(path, 'w') as f:
        f.write(body)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_environ(tmp_path):
    """An environment with an isolated HOME and the real PATH."""
    home = tmp_path / "home"
    home.mkdir()
    return {"HOME": str(home), "PATH": os.environ.get("PATH", "/usr/bin:/bin")}


@pytest.fixture
def session(fake_environ):
    """A ShellSession whose in-process output is captured in BytesIO streams."""
    return ShellSession(
        config={"ui": {"prompt": "$ "}, "history": {"file_env_var": "HISTFILE"}},
        environ=fake_environ,
        history=HistoryStore(),
        stdout=io.BytesIO(),
        stderr=io.BytesIO(),
    )
