# tinysh/builtin_commands.py

import logging
import os
from typing import BinaryIO, List

from tinysh.session import ShellSession

logger = logging.getLogger(__name__)

BUILTIN_NAMES = ("cd", "echo", "exit", "history", "pwd", "type")


class ShellExit(Exception):
    """Raised by the `exit` builtin; carries the status the shell exits with."""

    def __init__(self, code: int = 0):
        super().__init__(f"exit {code}")
        self.code = code


class BuiltinDispatcher:
    """
    Runs the commands implemented inside the shell process.

    Every handler gets the stage's argv and the binary streams it should write
    to, which are already the redirection targets or pipe ends when the stage
    has them. `in_pipeline` marks a stage running as part of a pipeline, where
    `exit` and `cd` behave as in a subshell and leave the session untouched.
    """

    def __init__(self, session: ShellSession):
        self.session = session
        self.handlers = {
            "cd": self._cd,
            "echo": self._echo,
            "exit": self._exit,
            "history": self._history,
            "pwd": self._pwd,
            "type": self._type,
        }

    def is_builtin(self, name: str) -> bool:
        return name in self.handlers

    def run(self, argv: List[str], stdout: BinaryIO, stderr: BinaryIO, in_pipeline: bool = False):
        handler = self.handlers[argv[0]]
        logger.info(f"Running builtin: {argv}")
        try:
            handler(argv[1:], stdout, stderr, in_pipeline)
        finally:
            stdout.flush()
            stderr.flush()

    @staticmethod
    def _write(stream: BinaryIO, text: str):
        stream.write((text + "\n").encode())

    def _exit(self, args, stdout, stderr, in_pipeline):
        if in_pipeline:
            logger.debug("exit inside a pipeline ignored.")
            return
        raise ShellExit(0)

    def _echo(self, args, stdout, stderr, in_pipeline):
        self._write(stdout, " ".join(args))

    def _pwd(self, args, stdout, stderr, in_pipeline):
        self._write(stdout, os.getcwd())

    def _type(self, args, stdout, stderr, in_pipeline):
        for name in args:
            if self.is_builtin(name):
                self._write(stdout, f"{name} is a shell builtin")
                continue
            resolved = self.session.path_index.first_match(name)
            if resolved:
                self._write(stdout, f"{name} is {resolved}")
            else:
                self._write(stdout, f"{name}: not found")

    def _cd(self, args, stdout, stderr, in_pipeline):
        target = args[0] if args else "~"
        home = self.session.home_directory()
        if target == "~":
            new_dir = home
        elif target.startswith("~/"):
            new_dir = os.path.join(home, target[2:])
        else:
            new_dir = target

        if in_pipeline:
            logger.debug(f"cd {target} inside a pipeline ignored.")
            return
        try:
            os.chdir(new_dir)
        except OSError as e:
            logger.warning(f"Failed cd to '{new_dir}': {e}")
            self._write(stderr, f"cd: {target}: No such file or directory")
            return
        logger.info(f"Directory changed to: {os.getcwd()}")

    def _history(self, args, stdout, stderr, in_pipeline):
        history = self.session.history
        if not args:
            for row in history.list():
                self._write(stdout, row)
            return

        option = args[0]
        if option in ("-r", "-w", "-a"):
            if len(args) < 2:
                self._write(stderr, f"history: {option}: option requires an argument")
                return
            path = args[1]
            try:
                if option == "-r":
                    history.load(path)
                elif option == "-w":
                    history.save(path)
                else:
                    history.append_to(path)
            except OSError as e:
                logger.error(f"history {option} {path} failed: {e}")
                self._write(stderr, f"history: {path}: {e.strerror or e}")
            return

        try:
            limit = int(option)
        except ValueError:
            self._write(stderr, f"history: {option}: numeric argument required")
            return
        if limit < 0:
            self._write(stderr, f"history: {option}: invalid option")
            return
        for row in history.list(limit):
            self._write(stdout, row)
