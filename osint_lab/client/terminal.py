"""Typewriter terminal rendered on a console stream.

``Screen`` keeps the scrolling buffer as a list of lines and mirrors every
change to an output stream. The cursor is a flag on the screen, drawn as a
trailing ``_`` and erased before anything else is written.

``TerminalUI`` turns key presses into a pending prompt, submits it on Enter
and animates the answer. Input stays disabled while a query is outstanding,
so at most one query is in flight per terminal.
"""
import asyncio
import contextlib
import logging
import sys

import httpx

from osint_lab.config import TYPE_DELAY

logger = logging.getLogger(__name__)

PROMPT = "> "
CURSOR = "_"
ENTER_KEYS = ("\r", "\n")
BACKSPACE_KEYS = ("\x7f", "\x08")

BANNER = (
    "OSINT LAB TERMINAL\n"
    "Ask about OSINT tools, techniques and methodologies. Ctrl-C to quit."
)


class Screen:
    def __init__(self, out=None, raw=None):
        self.out = out or sys.stdout
        # a raw-mode tty does not return the carriage on a bare newline
        self.raw = self.out.isatty() if raw is None else raw
        self.lines = [""]
        self.cursor = False

    @property
    def text(self):
        return "\n".join(self.lines)

    def render(self):
        return self.text + (CURSOR if self.cursor else "")

    def _emit(self, s):
        if self.raw:
            s = s.replace("\n", "\r\n")
        self.out.write(s)
        self.out.flush()

    def show_cursor(self):
        if not self.cursor:
            self.cursor = True
            self._emit(CURSOR)

    def hide_cursor(self):
        if self.cursor:
            self.cursor = False
            self._emit("\b \b")

    def write(self, text):
        cursor = self.cursor
        self.hide_cursor()
        head, *rest = text.split("\n")
        self.lines[-1] += head
        self.lines.extend(rest)
        self._emit(text)
        if cursor:
            self.show_cursor()

    def set_prompt(self, pending):
        """Redraw the trailing prompt line with ``pending`` as its input.

        Only the cursor's physical row is cleared, so input wider than the
        terminal leaves its earlier wrapped rows on screen.
        """
        self.lines[-1] = PROMPT + pending
        self._emit("\r\x1b[K" + self.lines[-1] + (CURSOR if self.cursor else ""))

    async def typewrite(self, text, delay=TYPE_DELAY, sleep=asyncio.sleep):
        self.show_cursor()
        for ch in text:
            self.write(ch)
            await sleep(delay)
        self.hide_cursor()


class TerminalUI:
    def __init__(self, screen, ask, delay=TYPE_DELAY, sleep=asyncio.sleep):
        self.screen = screen
        self.ask = ask
        self.delay = delay
        self.sleep = sleep
        self.pending = ""
        self.input_enabled = True
        self.task = None

    def start(self, banner=BANNER):
        self.screen.write(banner + "\n")
        self.new_prompt()

    def new_prompt(self):
        self.pending = ""
        self.screen.write("\n" + PROMPT)
        self.screen.show_cursor()

    def handle_key(self, key):
        """Apply one key press. Returns False when the key was rejected."""
        if not self.input_enabled:
            return False
        if key in ENTER_KEYS:
            return self.submit() is not None
        if key in BACKSPACE_KEYS:
            self.pending = self.pending[:-1]
            self.screen.set_prompt(self.pending)
            return True
        if len(key) == 1 and key.isprintable():
            self.pending += key
            self.screen.set_prompt(self.pending)
            return True
        return False

    def submit(self):
        if not self.input_enabled or not self.pending.strip():
            return None
        self.input_enabled = False
        self.screen.hide_cursor()
        self.task = asyncio.get_running_loop().create_task(self._exchange(self.pending))
        return self.task

    async def _exchange(self, prompt):
        try:
            try:
                answer = await self.ask(prompt)
            except (httpx.HTTPError, ValueError, KeyError) as e:
                # ValueError covers a non-JSON body, KeyError a reply without an answer
                logger.error(f"Query failed: {e!r}")
                answer = f"ERROR: {e}"
            self.screen.write("\n")
            await self.screen.typewrite(answer, self.delay, self.sleep)
        finally:
            self.new_prompt()
            self.input_enabled = True

    async def close(self):
        """Cancel an outstanding query and wait for it to unwind."""
        if self.task is None or self.task.done():
            return
        self.task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self.task
