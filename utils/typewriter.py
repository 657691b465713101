"""Typewriter-style reveal of a chat message that never shows half a code block."""

from __future__ import annotations

import random
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, List, Optional, Protocol

from utils.message_parser import Segment, find_fence, parse_message

DEFAULT_STEP_CHARS = 3
DEFAULT_MIN_DELAY = 0.010
DEFAULT_MAX_DELAY = 0.025


class ScheduledHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything that can run ``fn`` once after ``delay`` seconds."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledHandle:
        ...


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(0.0, float(delay)), fn)
        timer.daemon = True
        timer.start()
        return timer


class _ManualHandle:
    def __init__(self, delay: float, fn: Callable[[], None]) -> None:
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: callbacks run only when the caller says so."""

    def __init__(self) -> None:
        self._queue: Deque[_ManualHandle] = deque()
        self.delays: List[float] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(delay, fn)
        self._queue.append(handle)
        self.delays.append(delay)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def run_next(self) -> bool:
        """Run the oldest live callback. Returns False when nothing is queued."""
        while self._queue:
            handle = self._queue.popleft()
            if handle.cancelled:
                continue
            handle.fn()
            return True
        return False

    def run_all(self, limit: int = 100000) -> int:
        count = 0
        while count < limit and self.run_next():
            count += 1
        return count


@dataclass
class RevealState:
    """How much of one message has been shown so far."""

    full_text: str
    cursor: int = 0

    @property
    def visible_prefix(self) -> str:
        return self.full_text[:self.cursor]

    @property
    def remaining(self) -> int:
        return len(self.full_text) - self.cursor

    @property
    def done(self) -> bool:
        return self.cursor >= len(self.full_text)


def next_cursor(full_text: str, cursor: int, step_chars: int = DEFAULT_STEP_CHARS) -> int:
    """Compute where the cursor lands after one reveal step.

    A complete fenced block starting at the cursor is revealed in one jump.
    Otherwise the cursor moves by ``step_chars`` at most, stopping short of
    the next complete block so that block can be jumped on the next step.
    Only fences the parser itself accepts count; stray backticks in prose are
    revealed like any other text.
    """
    remaining = len(full_text) - cursor
    if remaining <= 0:
        return len(full_text)

    block = find_fence(full_text, cursor)
    if block is not None and block.start == cursor:
        return block.end

    advance = min(max(1, step_chars), remaining)
    if block is not None and block.start < cursor + advance:
        advance = block.start - cursor
    return cursor + advance


class TypewriterRevealer:
    """
    Progressively reveals a message, re-parsing the visible prefix each step.

    One pending step at most; force_complete() jumps to the end and is
    idempotent. Callbacks run on whichever thread fires the step.
    """

    def __init__(
            self,
            scheduler: Optional[Scheduler] = None,
            *,
            step_chars: int = DEFAULT_STEP_CHARS,
            min_delay: float = DEFAULT_MIN_DELAY,
            max_delay: float = DEFAULT_MAX_DELAY,
            rng: Optional[random.Random] = None,
            logger: Optional[Any] = None,
    ) -> None:
        self.scheduler = scheduler or ThreadingScheduler()
        self.step_chars = max(1, int(step_chars))
        self.min_delay = max(0.0, float(min_delay))
        self.max_delay = max(self.min_delay, float(max_delay))
        self._rng = rng or random.Random()
        self._logger = logger

        self._lock = threading.RLock()
        self._state: Optional[RevealState] = None
        self._pending: Optional[ScheduledHandle] = None
        self._forced = False
        self._done_fired = False
        self._segments: List[Segment] = []
        self._segment_callbacks: List[Callable[[List[Segment]], Any]] = []
        self._done_callbacks: List[Callable[[], Any]] = []
        self._finished = threading.Event()

    # --- Subscriptions -------------------------------------------------
    def on_segments_changed(self, callback: Callable[[List[Segment]], Any]) -> None:
        with self._lock:
            self._segment_callbacks.append(callback)

    def on_done(self, callback: Callable[[], Any]) -> None:
        with self._lock:
            self._done_callbacks.append(callback)

    # --- Read-only views -----------------------------------------------
    @property
    def state(self) -> Optional[RevealState]:
        return self._state

    @property
    def visible_prefix(self) -> str:
        return self._state.visible_prefix if self._state else ''

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    @property
    def done(self) -> bool:
        return bool(self._state and self._state.done and self._done_fired)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the reveal finishes (threaded schedulers only)."""
        return self._finished.wait(timeout)

    # --- Lifecycle -----------------------------------------------------
    def start(self, full_text: str) -> RevealState:
        """Begin revealing ``full_text`` from the first character."""
        with self._lock:
            self._cancel_pending()
            self._state = RevealState(full_text=full_text or '')
            self._forced = False
            self._done_fired = False
            self._segments = []
            self._finished.clear()
            self._log('reveal_start', {'length': len(self._state.full_text)})
            if self._state.done:
                self._finish()
            else:
                self._schedule_next()
            return self._state

    def force_complete(self) -> None:
        """Show the whole message now and stop the animation."""
        with self._lock:
            state = self._state
            if state is None or self._done_fired:
                return
            self._forced = True
            self._cancel_pending()
            if state.cursor < len(state.full_text):
                state.cursor = len(state.full_text)
                self._publish()
            self._log('reveal_forced', {'length': len(state.full_text)})
            self._finish()

    def step(self) -> bool:
        """Advance by one step. Returns True while more text remains."""
        with self._lock:
            self._pending = None
            state = self._state
            if state is None or self._done_fired:
                return False
            new_cursor = next_cursor(state.full_text, state.cursor, self.step_chars)
            if new_cursor > state.cursor:
                state.cursor = new_cursor
                self._publish()
            if state.done:
                self._finish()
                return False
            self._schedule_next()
            return True

    # --- Internals -----------------------------------------------------
    def _next_delay(self) -> float:
        if self._forced:
            return 0.0
        return self._rng.uniform(self.min_delay, self.max_delay)

    def _schedule_next(self) -> None:
        self._cancel_pending()
        self._pending = self.scheduler.call_later(self._next_delay(), self.step)

    def _cancel_pending(self) -> None:
        handle, self._pending = self._pending, None
        if handle is not None:
            handle.cancel()

    def _publish(self) -> None:
        self._segments = parse_message(self._state.visible_prefix)
        for callback in list(self._segment_callbacks):
            callback(list(self._segments))

    def _finish(self) -> None:
        if self._done_fired:
            return
        self._done_fired = True
        self._pending = None
        self._log('reveal_done', {'length': len(self._state.full_text), 'forced': self._forced})
        for callback in list(self._done_callbacks):
            callback()
        self._finished.set()

    def _log(self, kind: str, details: dict) -> None:
        if self._logger is None:
            return
        try:
            self._logger.render_event(kind, details, component='utils.typewriter')
        except Exception:
            pass


def reveal_prefixes(full_text: str, step_chars: int = DEFAULT_STEP_CHARS) -> List[str]:
    """Every visible prefix a reveal of ``full_text`` passes through, in order."""
    prefixes: List[str] = []
    cursor = 0
    while cursor < len(full_text):
        cursor = next_cursor(full_text, cursor, step_chars)
        prefixes.append(full_text[:cursor])
    return prefixes
