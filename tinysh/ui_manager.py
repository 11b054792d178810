# tinysh/ui_manager.py
import asyncio
import contextlib
import logging
from typing import Optional

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.output import Output, create_output

logger = logging.getLogger(__name__)

# Line ending while the terminal is in raw mode (no output post-processing).
RAW_NEWLINE = "\r\n"


class UIManager:
    """Owns the terminal for the line editor.

    Keystrokes come from a prompt_toolkit `Input` switched into raw mode only
    while a line is being composed; repaints go to a prompt_toolkit `Output`.
    Commands run with the terminal back in its normal mode.
    """
    def __init__(self, config: dict, input: Input = None, output: Output = None):
        """
        Args:
            config: The application configuration.
            input: Key source; defaults to the process's terminal.
            output: Output sink; defaults to the process's terminal.
        """
        self.config = config
        self.input = input or create_input()
        self.output = output or create_output()
        self.enable_bracketed_paste = config.get('ui', {}).get('bracketed_paste', True)
        # Created on first use and kept for the whole session: keys read after
        # an Enter belong to the next line.
        self._key_queue: Optional[asyncio.Queue] = None
        self._eof_queued = False
        logger.debug("UIManager initialized.")

    def _on_input_ready(self):
        for key_press in self.input.read_keys():
            self._key_queue.put_nowait(key_press)
        if self.input.closed and not self._eof_queued:
            self._eof_queued = True
            self._key_queue.put_nowait(None)

    @contextlib.contextmanager
    def raw_key_queue(self):
        """Puts the terminal in raw mode and yields the session's asyncio.Queue of KeyPress objects.

        The input is only attached while the caller is inside the block, but the
        queue outlives it, so key presses left over from one prompt are
        delivered to the next. `None` is queued once the input reaches end-of-file.
        """
        if self._key_queue is None:
            self._key_queue = asyncio.Queue()
        queue = self._key_queue

        with self.input.raw_mode(), self.input.attach(self._on_input_ready):
            if self.enable_bracketed_paste:
                self.output.enable_bracketed_paste()
                self.output.flush()
            try:
                yield queue
            finally:
                if self.enable_bracketed_paste:
                    self.output.disable_bracketed_paste()
                    self.output.flush()

    def redraw(self, prompt: str, buffer: str, cursor: int):
        """Repaints the whole input line: column 0, clear, prompt + buffer, cursor."""
        self.output.write_raw("\r")
        self.output.erase_end_of_line()
        self.output.write(prompt + buffer)
        offset = len(buffer) - cursor
        if offset > 0:
            self.output.cursor_backward(offset)
        self.output.flush()

    def bell(self):
        self.output.bell()
        self.output.flush()

    def newline(self):
        self.output.write_raw(RAW_NEWLINE)
        self.output.flush()

    def show_listing(self, text: str):
        """Prints a line below the current input line; the caller redraws afterwards."""
        self.output.write_raw(RAW_NEWLINE)
        self.output.write(text)
        self.output.write_raw(RAW_NEWLINE)
        self.output.flush()
