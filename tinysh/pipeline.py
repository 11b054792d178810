# tinysh/pipeline.py

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Set, Union

from tinysh.builtin_commands import BuiltinDispatcher
from tinysh.lexer import split_pipeline, tokenize
from tinysh.redirection import RedirectionError, Redirections, extract_redirections
from tinysh.session import ShellSession

logger = logging.getLogger(__name__)

# What a child's stdio slot can be: None (inherit), a raw fd, or an open file.
StdioTarget = Union[None, int, BinaryIO]


@dataclass
class PipelineStage:
    argv: List[str]
    redirections: Redirections


async def spawn_external(session: ShellSession, argv: List[str],
                         stdin: StdioTarget = None,
                         stdout: StdioTarget = None,
                         stderr: StdioTarget = None) -> Optional[asyncio.subprocess.Process]:
    """
    Resolves argv[0] on the search path and starts it.

    argv[0] is passed to the child exactly as typed. On failure the
    "<name>: command not found" diagnostic goes to the stage's stderr
    (its redirection target if it has one) and None is returned.
    """
    name = argv[0]
    path = session.path_index.first_match(name)
    error_stream = stderr if stderr is not None and not isinstance(stderr, int) else None
    if path is None:
        logger.info(f"Command not found: '{name}'")
        session.report_error(f"{name}: command not found", error_stream)
        return None
    try:
        process = await asyncio.create_subprocess_exec(
            name, *argv[1:],
            executable=path,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
        )
    except OSError as e:
        logger.error(f"Failed to spawn '{path}': {e}")
        session.report_error(f"{name}: command not found", error_stream)
        return None
    logger.info(f"Spawned pid {process.pid}: {argv}")
    return process


class PipelineExecutor:
    """
    Runs a line made of several stages joined by `|`.

    Every external stage is started before anything is waited on, so a full
    pipe can never block the shell. Builtin stages run in-process afterwards,
    writing into their pipe end while their readers are already running.
    """

    def __init__(self, session: ShellSession, builtins: BuiltinDispatcher):
        self.session = session
        self.builtins = builtins

    def parse_stages(self, line: str) -> Optional[List[PipelineStage]]:
        """Tokenizes and redirection-parses each stage. Reports and returns None on errors."""
        argvs = [tokenize(raw) for raw in split_pipeline(line)]
        if any(not argv for argv in argvs):
            self.session.report_error("tinysh: syntax error near unexpected token `|'")
            return None

        stages = []
        try:
            for argv in argvs:
                stages.append(PipelineStage(argv, extract_redirections(argv)))
        except RedirectionError as e:
            for stage in stages:
                stage.redirections.close()
            self.session.report_error(f"tinysh: {e.target}: {e.reason}")
            return None
        return stages

    async def run(self, line: str):
        stages = self.parse_stages(line)
        if stages is None:
            return
        try:
            await self._run_stages(stages)
        finally:
            for stage in stages:
                stage.redirections.close()

    async def _run_stages(self, stages: List[PipelineStage]):
        count = len(stages)
        pipes = [os.pipe() for _ in range(count - 1)]
        open_fds: Set[int] = {fd for pair in pipes for fd in pair}
        logger.info(f"Running pipeline of {count} stages: {[s.argv for s in stages]}")

        def close_fd(fd: int):
            if fd in open_fds:
                open_fds.discard(fd)
                os.close(fd)

        processes = []
        deferred_builtins = []
        try:
            for i, stage in enumerate(stages):
                read_fd = pipes[i - 1][0] if i > 0 else None
                write_fd = pipes[i][1] if i < count - 1 else None

                if not stage.argv or self.builtins.is_builtin(stage.argv[0]):
                    # Builtins never read stdin.
                    if read_fd is not None:
                        close_fd(read_fd)
                    deferred_builtins.append((stage, write_fd))
                    continue

                stdout = stage.redirections.stdout or write_fd
                process = await spawn_external(self.session, stage.argv,
                                               stdin=read_fd,
                                               stdout=stdout,
                                               stderr=stage.redirections.stderr)
                if process is not None:
                    processes.append(process)
                for fd in (read_fd, write_fd):
                    if fd is not None:
                        close_fd(fd)

            for stage, write_fd in deferred_builtins:
                self._run_builtin_stage(stage, write_fd, close_fd)
        finally:
            for fd in list(open_fds):
                close_fd(fd)

        for process in processes:
            returncode = await process.wait()
            logger.debug(f"pid {process.pid} exited with {returncode}")

    def _run_builtin_stage(self, stage: PipelineStage, write_fd: Optional[int], close_fd):
        if not stage.argv:
            if write_fd is not None:
                close_fd(write_fd)
            return

        stderr = stage.redirections.stderr or self.session.stderr
        if stage.redirections.stdout is not None or write_fd is None:
            if write_fd is not None:
                close_fd(write_fd)
            stdout = stage.redirections.stdout or self.session.stdout
            self.builtins.run(stage.argv, stdout, stderr, in_pipeline=True)
            return

        # The writer borrows the descriptor; close_fd releases it.
        pipe_writer = open(write_fd, 'wb', closefd=False)
        try:
            self.builtins.run(stage.argv, pipe_writer, stderr, in_pipeline=True)
        except BrokenPipeError:
            logger.info(f"Reader of builtin stage {stage.argv[0]} went away early.")
        finally:
            try:
                pipe_writer.close()
            except BrokenPipeError:
                logger.debug("Pipe already broken while closing builtin writer.")
            close_fd(write_fd)
