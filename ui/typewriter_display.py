"""Typewriter-style display of assistant replies on a rich console."""

from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from ui.renderer import SegmentRenderer
from utils.typewriter import (
    DEFAULT_MAX_DELAY,
    DEFAULT_MIN_DELAY,
    DEFAULT_STEP_CHARS,
    Scheduler,
    ThreadingScheduler,
    TypewriterRevealer,
)


class TypewriterDisplay:
    """
    Reveals a reply inside a rich Live region.

    Ctrl-C while the reply is being typed shows the whole message at once
    instead of interrupting the program.
    """

    POLL_INTERVAL = 0.05

    def __init__(self, console: Console, renderer: Optional[SegmentRenderer] = None, *,
                 config: Optional[Any] = None, scheduler: Optional[Scheduler] = None,
                 logger: Optional[Any] = None) -> None:
        self.console = console
        self.config = config
        self.renderer = renderer or SegmentRenderer(
            theme=str(self._option('code_theme', 'monokai')),
            line_numbers=bool(self._option('line_numbers', True)),
        )
        self.scheduler = scheduler or ThreadingScheduler()
        self.logger = logger

    def _option(self, key: str, fallback: Any) -> Any:
        if self.config is None:
            return fallback
        value = self.config.get_option('DISPLAY', key, fallback=fallback)
        return fallback if value is None or value == '' else value

    @property
    def enabled(self) -> bool:
        return bool(self._option('typewriter', True))

    def create_revealer(self) -> TypewriterRevealer:
        return TypewriterRevealer(
            self.scheduler,
            step_chars=int(self._option('step_chars', DEFAULT_STEP_CHARS)),
            min_delay=float(self._option('min_delay_ms', DEFAULT_MIN_DELAY * 1000)) / 1000.0,
            max_delay=float(self._option('max_delay_ms', DEFAULT_MAX_DELAY * 1000)) / 1000.0,
            logger=self.logger,
        )

    def show(self, full_text: str, *, animate: Optional[bool] = None) -> Optional[TypewriterRevealer]:
        """Display ``full_text``; returns the revealer when animated."""
        if animate is None:
            animate = self.enabled
        if not animate or not full_text:
            self.console.print(self.renderer.render_message(full_text or ''))
            return None

        revealer = self.create_revealer()
        with Live(Text(''), console=self.console, refresh_per_second=30, transient=False) as live:
            revealer.on_segments_changed(lambda segments: live.update(self.renderer.render(segments)))
            revealer.start(full_text)
            try:
                while not revealer.wait(self.POLL_INTERVAL):
                    pass
            except KeyboardInterrupt:
                revealer.force_complete()
        return revealer
