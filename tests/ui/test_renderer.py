from __future__ import annotations

import io
import os
import sys

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ui.renderer import SegmentRenderer, lexer_name_for
from utils.message_parser import Segment


def _plain(renderable) -> str:
    console = Console(file=io.StringIO(), force_terminal=False, color_system=None, width=80)
    console.print(renderable)
    return console.file.getvalue()


def test_lexer_fallbacks():
    assert lexer_name_for('python') == 'python'
    assert lexer_name_for('PY') == 'py'
    assert lexer_name_for('plaintext') == 'text'
    assert lexer_name_for(None) == 'text'
    assert lexer_name_for('definitely_not_a_language') == 'text'


def test_segments_map_to_text_and_panels():
    group = SegmentRenderer().render([
        Segment.text('Hi\n'),
        Segment.code('print(1)', 'python'),
    ])
    parts = list(group.renderables)
    assert isinstance(parts[0], Text)
    assert parts[0].plain == 'Hi\n'
    assert isinstance(parts[1], Panel)
    assert isinstance(parts[1].renderable, Syntax)


def test_code_panel_shows_language_and_code():
    out = _plain(SegmentRenderer(line_numbers=False).render_message('```python\nprint(1)\n```'))
    assert 'python' in out
    assert 'print(1)' in out


def test_text_is_not_interpreted_as_markup():
    out = _plain(SegmentRenderer().render_message('use [bold]x[/bold] literally'))
    assert '[bold]x[/bold]' in out


def test_unknown_language_still_renders():
    out = _plain(SegmentRenderer().render_message('```brainfart\n+++\n```'))
    assert '+++' in out
    assert 'brainfart' in out
