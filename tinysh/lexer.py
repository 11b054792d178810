# tinysh/lexer.py

import logging
from typing import List

logger = logging.getLogger(__name__)

# Characters a backslash may escape inside double quotes.
DOUBLE_QUOTE_ESCAPABLE = ('$', '`', '"', '\\', '\n')
PIPE_SEPARATOR = '|'


def tokenize(line: str) -> List[str]:
    """
    Splits a command line into argument tokens, resolving quotes and escapes.

    Single quotes keep everything literal. Inside double quotes a backslash only
    escapes `$`, backtick, `"`, `\\` and newline; before any other character
    both the backslash and the character are kept. Outside quotes a backslash
    makes the next character literal. Unterminated quotes and a trailing
    backslash are tolerated: whatever was read so far becomes the last token.

    Args:
        line (str): The raw (usually trimmed) command line.

    Returns:
        List[str]: The ordered tokens, never containing empty strings produced
                   by runs of whitespace.
    """
    tokens = []
    current = []
    in_single = False
    in_double = False
    escaping = False

    for ch in line:
        if in_single:
            if ch == "'":
                in_single = False
            else:
                current.append(ch)
        elif escaping:
            if in_double and ch not in DOUBLE_QUOTE_ESCAPABLE:
                current.append('\\')
            current.append(ch)
            escaping = False
        elif ch == '\\':
            escaping = True
        elif ch == "'" and not in_double:
            in_single = True
        elif ch == '"':
            in_double = not in_double
        elif ch.isspace() and not in_double:
            if current:
                tokens.append(''.join(current))
            current = []
        else:
            current.append(ch)

    # A trailing backslash has nothing left to escape and is dropped.
    if current:
        tokens.append(''.join(current))

    logger.debug(f"Tokenized {line!r} -> {tokens}")
    return tokens


def split_pipeline(line: str) -> List[str]:
    """
    Splits a raw line into raw stage strings at unquoted, unescaped `|`.

    The stage strings are returned untrimmed and still quoted; each one is meant
    to be passed to `tokenize` on its own.
    """
    stages = []
    current = []
    in_single = False
    in_double = False
    escaping = False

    for ch in line:
        if in_single:
            if ch == "'":
                in_single = False
        elif escaping:
            escaping = False
        elif ch == '\\':
            escaping = True
        elif ch == "'" and not in_double:
            in_single = True
        elif ch == '"':
            in_double = not in_double
        elif ch == PIPE_SEPARATOR and not in_double:
            stages.append(''.join(current))
            current = []
            continue
        current.append(ch)

    stages.append(''.join(current))
    return stages


def has_pipeline(line: str) -> bool:
    """True if the line contains at least one unquoted, unescaped pipe."""
    return len(split_pipeline(line)) > 1
