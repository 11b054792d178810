# --- API DOCUMENTATION for tinysh/shell_engine.py ---
#
# **Purpose:** Takes a committed input line and runs it: records it in the
# history, routes pipelines to the PipelineExecutor and single commands to the
# builtin dispatcher or an external process.
#
# **Public Classes:**
#
# class ShellEngine:
#     """The main class for command execution."""
#
#     def __init__(self, session, builtins=None, executor=None):
#         """
#         Args:
#             session (ShellSession): The session context (history, PATH index, streams).
#             builtins (BuiltinDispatcher): Optional; created from the session if omitted.
#             executor (PipelineExecutor): Optional; created from the session if omitted.
#         """
#
#     async def submit_user_input(self, user_input: str):
#         """
#         The entry point for every committed line. Blank input is ignored.
#         Raises ShellExit when the `exit` builtin runs; every other failure is
#         reported as one diagnostic line and the session continues.
#         """
#
#     async def execute_command(self, command_line: str):
#         """Runs a line known to contain no pipe separator."""
#
# --- END API DOCUMENTATION ---

# tinysh/shell_engine.py

import asyncio
import contextlib
import logging
import signal
from typing import Optional

from tinysh.builtin_commands import BuiltinDispatcher, ShellExit
from tinysh.lexer import has_pipeline, tokenize
from tinysh.pipeline import PipelineExecutor, spawn_external
from tinysh.redirection import RedirectionError, extract_redirections
from tinysh.session import ShellSession

logger = logging.getLogger(__name__)


class ShellEngine:
    def __init__(self, session: ShellSession,
                 builtins: Optional[BuiltinDispatcher] = None,
                 executor: Optional[PipelineExecutor] = None):
        self.session = session
        self.builtins = builtins or BuiltinDispatcher(session)
        self.executor = executor or PipelineExecutor(session, self.builtins)
        logger.info("ShellEngine initialized.")

    async def submit_user_input(self, user_input: str):
        command_line = user_input.strip()
        if not command_line:
            return

        self.session.history.record(command_line)
        logger.info(f"Submitting: '{command_line}'")

        with self._interrupt_guard():
            try:
                if has_pipeline(command_line):
                    await self.executor.run(command_line)
                else:
                    await self.execute_command(command_line)
            except ShellExit:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error running '{command_line}'")
                self.session.report_error(f"tinysh: {e}")

    async def execute_command(self, command_line: str):
        argv = tokenize(command_line)
        if not argv:
            return
        try:
            redirections = extract_redirections(argv)
        except RedirectionError as e:
            self.session.report_error(f"tinysh: {e.target}: {e.reason}")
            return

        with redirections:
            if not argv:
                # Only redirections: the targets were created, nothing runs.
                return
            if self.builtins.is_builtin(argv[0]):
                self.builtins.run(argv,
                                  redirections.stdout or self.session.stdout,
                                  redirections.stderr or self.session.stderr)
                return

            process = await spawn_external(self.session, argv,
                                           stdout=redirections.stdout,
                                           stderr=redirections.stderr)
            if process is not None:
                returncode = await process.wait()
                logger.info(f"'{argv[0]}' exited with code {returncode}")

    @contextlib.contextmanager
    def _interrupt_guard(self):
        """
        Keeps Ctrl-C from killing the shell while children run.

        A Python-level handler (unlike SIG_IGN) is reset to the default action
        in exec'd children, so they still receive the interrupt.
        """
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._on_interrupt)
        except (RuntimeError, ValueError, NotImplementedError) as e:
            logger.debug(f"SIGINT handler not installed: {e}")
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(signal.SIGINT)

    def _on_interrupt(self):
        logger.info("SIGINT received while commands were running; the shell keeps going.")
