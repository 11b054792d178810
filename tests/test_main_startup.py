# tests/test_main_startup.py
import logging
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

import main
from tinysh.builtin_commands import ShellExit
from tinysh.config_handler import ConfigurationError


@pytest.fixture
def mock_components(mocker):
    """Replaces the terminal-facing pieces main_async_runner wires together."""
    mocker.patch('main.UIManager')
    mock_editor = MagicMock()
    mock_editor.read_line = AsyncMock()
    mocker.patch('main.LineEditor', return_value=mock_editor)
    mock_engine = MagicMock()
    mock_engine.submit_user_input = AsyncMock()
    mocker.patch('main.ShellEngine', return_value=mock_engine)
    return mock_editor, mock_engine


@pytest.fixture
def history_file(tmp_path, monkeypatch):
    path = tmp_path / "histfile"
    monkeypatch.setenv("HISTFILE", str(path))
    return path


CONFIG = {"history": {"file_env_var": "HISTFILE", "load_on_startup": True, "save_on_exit": True}}


def test_parse_args_defaults():
    args = main.parse_args([])
    assert args.config is None
    assert args.log_level is None


def test_parse_args_options():
    args = main.parse_args(['--config', '/tmp/mine.json', '--log-level', 'DEBUG'])
    assert args.config == '/tmp/mine.json'
    assert args.log_level == 'DEBUG'


def test_parse_args_rejects_unknown_level():
    with pytest.raises(SystemExit):
        main.parse_args(['--log-level', 'CHATTY'])


def test_setup_logging_writes_to_file(tmp_path, monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    config = {"logging": {"level": "WARNING", "log_dir": str(tmp_path / "logs"), "log_file": "t.log"}}
    try:
        log_file = main.setup_logging(config, level_override="DEBUG")
        logging.getLogger("tinysh.test").debug("written to the log file")
        root.handlers[0].flush()
        assert log_file == str(tmp_path / "logs" / "t.log")
        assert root.level == logging.DEBUG
        with open(log_file) as f:
            assert "written to the log file" in f.read()
    finally:
        for handler in root.handlers[:]:
            handler.close()
            root.removeHandler(handler)


def test_run_shell_exits_on_configuration_error(mocker, capsys):
    mocker.patch('main.config_handler.load_configuration', side_effect=ConfigurationError("missing defaults"))
    with pytest.raises(SystemExit) as excinfo:
        main.run_shell([])
    assert excinfo.value.code == 1
    assert "fatal startup error: missing defaults" in capsys.readouterr().err


def test_run_shell_exits_with_runner_status(mocker):
    mocker.patch('main.config_handler.load_configuration', return_value={})
    mocker.patch('main.setup_logging', return_value="/dev/null")
    mocker.patch('main.main_async_runner', new=AsyncMock(return_value=0))
    mocker.patch('main.logging.shutdown')
    with pytest.raises(SystemExit) as excinfo:
        main.run_shell([])
    assert excinfo.value.code == 0


@pytest.mark.asyncio
async def test_runner_returns_zero_on_end_of_input(mock_components, history_file):
    mock_editor, mock_engine = mock_components
    mock_editor.read_line.side_effect = ["echo hi", EOFError()]

    assert await main.main_async_runner(CONFIG) == 0
    mock_engine.submit_user_input.assert_awaited_once_with("echo hi")


@pytest.mark.asyncio
async def test_runner_returns_exit_code_and_saves_history(mock_components, history_file):
    mock_editor, mock_engine = mock_components
    mock_editor.read_line.side_effect = ["exit"]
    mock_engine.submit_user_input.side_effect = ShellExit(0)

    assert await main.main_async_runner(CONFIG) == 0
    assert os.path.exists(history_file)


@pytest.mark.asyncio
async def test_runner_loads_history_file_on_startup(mocker, mock_components, history_file):
    history_file.write_text("old command\n")
    mock_editor, _ = mock_components
    mock_editor.read_line.side_effect = EOFError()
    sessions = []
    real_session = main.ShellSession
    mocker.patch('main.ShellSession',
                 side_effect=lambda **kwargs: sessions.append(real_session(**kwargs)) or sessions[-1])

    await main.main_async_runner(CONFIG)

    session = sessions[0]
    assert session.history.entries == ["old command"]
    assert history_file.read_text() == "old command\n"
