"""Turn parsed message segments into rich renderables."""

from __future__ import annotations

from typing import Iterable, List

from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound
from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from utils.message_parser import DEFAULT_LANGUAGE, Segment, parse_message

PLAIN_LEXER = 'text'


def lexer_name_for(language: str | None) -> str:
    """Pygments lexer alias for ``language``; ``text`` when pygments has none."""
    name = (language or '').strip().lower()
    if not name or name == DEFAULT_LANGUAGE:
        return PLAIN_LEXER
    try:
        get_lexer_by_name(name)
    except ClassNotFound:
        return PLAIN_LEXER
    return name


class SegmentRenderer:
    """Renders Text segments verbatim and Code segments as highlighted panels."""

    def __init__(self, theme: str = 'monokai', line_numbers: bool = True) -> None:
        self.theme = theme
        self.line_numbers = line_numbers

    def render(self, segments: Iterable[Segment]) -> Group:
        parts: List[RenderableType] = []
        for segment in segments:
            if segment.is_code:
                parts.append(self.render_code(segment.content, segment.language))
            else:
                parts.append(Text(segment.content))
        return Group(*parts)

    def render_message(self, text: str) -> Group:
        return self.render(parse_message(text))

    def render_code(self, code: str, language: str | None) -> Panel:
        syntax = Syntax(
            code,
            lexer_name_for(language),
            theme=self.theme,
            line_numbers=self.line_numbers,
            word_wrap=True,
        )
        return Panel(
            syntax,
            title=Text(language or DEFAULT_LANGUAGE, style='bold magenta'),
            title_align='left',
            border_style='dim',
            box=box.ROUNDED,
            padding=(0, 1),
        )
