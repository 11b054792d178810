# main.py

import argparse
import asyncio
import datetime
import logging
import os
import sys
from typing import Optional

from tinysh import config_handler
from tinysh.builtin_commands import BUILTIN_NAMES, ShellExit
from tinysh.completion import CompletionEngine
from tinysh.line_editor import LineEditor
from tinysh.session import ShellSession
from tinysh.shell_engine import ShellEngine
from tinysh.ui_manager import UIManager

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tinysh",
        description="An interactive command shell with line editing, pipelines, redirection and history."
    )
    parser.add_argument(
        '--config',
        help=f"User configuration file merged over the defaults (default: {config_handler.USER_CONFIG_PATH})."
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Overrides logging.level from the configuration.'
    )
    return parser.parse_args(argv)


def setup_logging(config: dict, level_override: Optional[str] = None) -> str:
    """
    Sends all logging to a file; the terminal belongs to the shell.

    Returns:
        str: The path of the log file.
    """
    log_config = config.get("logging", {})
    log_dir = os.path.expanduser(log_config.get("log_dir", ".tinysh/logs"))
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(os.path.expanduser("~"), log_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, log_config.get("log_file", "tinysh.log"))

    level_name = level_override or log_config.get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file)],
        force=True,
    )
    return log_file


async def main_async_runner(config: dict) -> int:
    """Main asynchronous loop: read a line, run it, repeat. Returns the exit status."""
    session = ShellSession(config=config)
    session.load_persistent_history()

    ui_manager = UIManager(config)
    completion = CompletionEngine(BUILTIN_NAMES, session.path_index)
    line_editor = LineEditor(session, ui_manager, completion)
    shell_engine = ShellEngine(session)

    exit_code = 0
    try:
        while True:
            line = await line_editor.read_line()
            await shell_engine.submit_user_input(line)
    except ShellExit as e:
        logger.info(f"exit builtin called with code {e.code}.")
        exit_code = e.code
    except EOFError:
        logger.info("End of input reached.")
    finally:
        session.save_persistent_history()
    return exit_code


def run_shell(argv=None):
    """ Main entry point to run the shell. """
    args = parse_args(argv)
    user_config_path = args.config or config_handler.USER_CONFIG_PATH
    try:
        config = config_handler.load_configuration(config_handler.DEFAULT_CONFIG_PATH, user_config_path)
    except config_handler.ConfigurationError as e:
        print(f"tinysh: fatal startup error: {e}", file=sys.stderr)
        sys.exit(1)

    log_file = setup_logging(config, args.log_level)
    logger.info("=" * 80)
    logger.info("  tinysh Session Started")
    logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 80)

    exit_code = 0
    try:
        exit_code = asyncio.run(main_async_runner(config))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt at run_shell level.")
    except Exception as e:
        print(f"tinysh: unexpected critical error: {e} (see {log_file})", file=sys.stderr)
        logger.critical("Critical error in run_shell or main_async_runner", exc_info=True)
        exit_code = 1
    finally:
        logger.info("=" * 80)
        logger.info("  tinysh Session Ended")
        logger.info(f"  Timestamp: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 80)
        logging.shutdown()
    sys.exit(exit_code)


if __name__ == "__main__":
    run_shell()
