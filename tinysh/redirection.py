# tinysh/redirection.py

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import BinaryIO, List, Optional

logger = logging.getLogger(__name__)


class Stream(Enum):
    STDOUT = auto()
    STDERR = auto()


class Mode(Enum):
    TRUNCATE = auto()
    APPEND = auto()


# Operator token -> (stream, mode)
REDIRECTION_OPERATORS = {
    '>': (Stream.STDOUT, Mode.TRUNCATE),
    '1>': (Stream.STDOUT, Mode.TRUNCATE),
    '>>': (Stream.STDOUT, Mode.APPEND),
    '1>>': (Stream.STDOUT, Mode.APPEND),
    '2>': (Stream.STDERR, Mode.TRUNCATE),
    '2>>': (Stream.STDERR, Mode.APPEND),
}


class RedirectionError(Exception):
    """Raised when a redirection target cannot be opened."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"{target}: {reason}")
        self.target = target
        self.reason = reason


@dataclass
class RedirectionSpec:
    stream: Stream
    mode: Mode
    target: str

    def open(self) -> BinaryIO:
        file_mode = 'ab' if self.mode is Mode.APPEND else 'wb'
        return open(self.target, file_mode)


@dataclass
class Redirections:
    """
    The destinations consumed from one stage's tokens.

    `stdout` and `stderr` are open binary file objects, or None when the stage
    keeps the stream it would otherwise inherit. The object owns the handles:
    close it once the stage's process has exited or failed to spawn.
    """
    stdout: Optional[BinaryIO] = None
    stderr: Optional[BinaryIO] = None
    specs: List[RedirectionSpec] = field(default_factory=list)

    def close(self):
        for handle in (self.stdout, self.stderr):
            if handle is not None and not handle.closed:
                handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def extract_redirections(tokens: List[str]) -> Redirections:
    """
    Consumes redirection operators and their targets from `tokens` in place.

    The scan runs left to right. When an operator token is followed by another
    token, the target is opened (truncate or append), recorded as that stream's
    destination, both tokens are deleted and scanning resumes at the same index.
    A later redirection of the same stream replaces (and closes) the earlier one.
    An operator in the last position has no target and is left untouched.

    Args:
        tokens (List[str]): The stage's tokens; mutated into the residual argv.

    Returns:
        Redirections: The opened destinations.

    Raises:
        RedirectionError: If a target cannot be opened. Handles opened earlier
                          for the same stage are closed before raising.
    """
    result = Redirections()
    i = 0
    while i < len(tokens):
        operator = tokens[i]
        if operator not in REDIRECTION_OPERATORS or i + 1 >= len(tokens):
            i += 1
            continue

        stream, mode = REDIRECTION_OPERATORS[operator]
        spec = RedirectionSpec(stream=stream, mode=mode, target=tokens[i + 1])
        try:
            handle = spec.open()
        except OSError as e:
            result.close()
            logger.warning(f"Could not open redirection target '{spec.target}': {e}")
            raise RedirectionError(spec.target, e.strerror or str(e)) from e

        if stream is Stream.STDOUT:
            previous, result.stdout = result.stdout, handle
        else:
            previous, result.stderr = result.stderr, handle
        if previous is not None:
            previous.close()

        result.specs.append(spec)
        logger.debug(f"Redirection {operator} -> {spec.target} ({stream.name}, {mode.name})")
        del tokens[i:i + 2]

    return result
