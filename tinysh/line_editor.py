# tinysh/line_editor.py

import logging
from dataclasses import dataclass
from enum import Enum, auto

from prompt_toolkit.key_binding import KeyBindings, KeyPress
from prompt_toolkit.keys import Keys

from tinysh.completion import CompletionEngine
from tinysh.session import ShellSession
from tinysh.ui_manager import UIManager

logger = logging.getLogger(__name__)


class EditorState(Enum):
    """Where the line editor is in the life of one prompt."""
    COMPOSING = auto()      # Typing a fresh line
    RECALLING = auto()      # Buffer holds a history entry picked with Up/Down
    COMMITTED = auto()      # Enter pressed; the line is ready to run
    INTERRUPTED = auto()    # Ctrl-C; the line is dropped and the prompt restarts


ACTIVE_STATES = (EditorState.COMPOSING, EditorState.RECALLING)


@dataclass
class InputBuffer:
    text: str = ""
    cursor: int = 0

    def insert(self, chars: str):
        self.text = self.text[:self.cursor] + chars + self.text[self.cursor:]
        self.cursor += len(chars)

    def delete_before_cursor(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[:self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1
        return True

    def replace(self, text: str):
        self.text = text
        self.cursor = len(text)

    def move_cursor(self, delta: int) -> bool:
        new_cursor = min(max(self.cursor + delta, 0), len(self.text))
        moved = new_cursor != self.cursor
        self.cursor = new_cursor
        return moved

    def clear(self):
        self.replace("")


class LineEditor:
    """
    Turns key presses into a committed command line.

    The key handling is a single prompt_toolkit `KeyBindings` table; `handle_key`
    looks up the most specific binding for a key press and runs it, so every
    transition can be driven in tests without a terminal.
    """

    def __init__(self, session: ShellSession, ui_manager: UIManager, completion: CompletionEngine):
        self.session = session
        self.ui_manager = ui_manager
        self.completion = completion
        self.buffer = InputBuffer()
        self._state = EditorState.COMPOSING
        self.kb = KeyBindings()
        self._register_keybindings()

    @property
    def state(self) -> EditorState:
        return self._state

    def _set_state(self, new_state: EditorState):
        if self._state != new_state:
            logger.debug(f"Editor state: {self._state.name} -> {new_state.name}")
            self._state = new_state

    def _redraw(self):
        self.ui_manager.redraw(self.session.prompt, self.buffer.text, self.buffer.cursor)

    def _register_keybindings(self):
        @self.kb.add(Keys.Any)
        def _handle_character(event):
            if len(event.data) != 1 or not event.data.isprintable():
                logger.debug(f"Ignoring key {event.key!r}")
                return
            self.buffer.insert(event.data)
            self._redraw()

        @self.kb.add(Keys.BracketedPaste)
        def _handle_paste(event):
            text = ''.join(ch for ch in event.data if ch.isprintable())
            if text:
                self.buffer.insert(text)
                self._redraw()

        @self.kb.add('backspace')
        def _handle_backspace(event):
            if self.buffer.delete_before_cursor():
                self._redraw()

        @self.kb.add('left')
        def _handle_left(event):
            if self.buffer.move_cursor(-1):
                self._redraw()

        @self.kb.add('right')
        def _handle_right(event):
            if self.buffer.move_cursor(1):
                self._redraw()

        @self.kb.add('tab')
        def _handle_tab(event):
            result = self.completion.complete(self.buffer.text)
            if result.listing:
                self.ui_manager.show_listing(result.listing_text)
                self._redraw()
                return
            if result.buffer != self.buffer.text:
                self.buffer.replace(result.buffer)
                self._redraw()
            if result.ring_bell:
                self.ui_manager.bell()

        @self.kb.add('up')
        def _handle_up_arrow(event):
            entry = self.session.history.recall_previous()
            if entry is not None:
                self.buffer.replace(entry)
                self._set_state(EditorState.RECALLING)
                self._redraw()

        @self.kb.add('down')
        def _handle_down_arrow(event):
            entry = self.session.history.recall_next()
            if entry is not None:
                self.buffer.replace(entry)
                if not self.session.history.is_recalling:
                    self._set_state(EditorState.COMPOSING)
                self._redraw()

        @self.kb.add('enter')
        @self.kb.add('c-j')
        def _handle_enter(event):
            self.ui_manager.newline()
            self._set_state(EditorState.COMMITTED)

        @self.kb.add('c-c')
        def _handle_interrupt(event):
            logger.info("Ctrl-C: discarding the current line.")
            self.ui_manager.newline()
            self.buffer.clear()
            self._set_state(EditorState.INTERRUPTED)

        @self.kb.add('c-d')
        def _handle_end_of_input(event):
            logger.info("Ctrl-D: end of input.")
            self.ui_manager.newline()
            raise EOFError

        logger.debug("LineEditor: Keybindings registered.")

    def begin(self):
        """Starts a fresh prompt: empty buffer, history cursor at the end."""
        self.buffer.clear()
        self.session.history.reset_cursor()
        self.completion.reset()
        self._set_state(EditorState.COMPOSING)
        self._redraw()

    def handle_key(self, key_press: KeyPress) -> EditorState:
        bindings = [b for b in self.kb.get_bindings_for_keys((key_press.key,)) if b.filter()]
        if not bindings:
            return self._state
        if key_press.key != Keys.Tab:
            self.completion.reset()
        # The last binding is the most specific one (fewest Keys.Any).
        bindings[-1].handler(key_press)
        return self._state

    async def read_line(self) -> str:
        """
        Reads one committed line, restarting the prompt after every Ctrl-C.

        Returns:
            str: The trimmed line (possibly empty).

        Raises:
            EOFError: On Ctrl-D or when the input stream ends.
        """
        while True:
            self.begin()
            with self.ui_manager.raw_key_queue() as keys:
                while self._state in ACTIVE_STATES:
                    key_press = await keys.get()
                    if key_press is None:
                        self.ui_manager.newline()
                        raise EOFError
                    self.handle_key(key_press)
            if self._state is EditorState.COMMITTED:
                return self.buffer.text.strip()
