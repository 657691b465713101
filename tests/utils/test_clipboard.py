from __future__ import annotations

import base64
import io
import os
import subprocess
import sys

import pytest
from rich.console import Console

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from utils import clipboard as clipboard_mod
from utils.clipboard import CodeClipboard, pick_block
from utils.message_parser import Segment

REPLY = 'First:\n```python\nprint(1)\n```\nThen:\n```sh\necho hi\n```\n'


class RecordingRun:
    def __init__(self, fail=()):
        self.calls = []
        self.fail = set(fail)

    def __call__(self, command, check, input):
        self.calls.append((command, input))
        if command[0] in self.fail:
            raise subprocess.CalledProcessError(1, command)
        return subprocess.CompletedProcess(command, 0)


def _plain_console():
    return Console(file=io.StringIO(), force_terminal=False)


def test_pick_block_defaults_to_last():
    assert pick_block(REPLY) == Segment.code('echo hi', 'sh')
    assert pick_block(REPLY, '1') == Segment.code('print(1)', 'python')


@pytest.mark.parametrize('choice', ['0', '3', 'two'])
def test_pick_block_rejects_bad_choice(choice):
    with pytest.raises(ValueError, match='between 1 and 2'):
        pick_block(REPLY, choice)


def test_pick_block_without_code():
    with pytest.raises(ValueError, match='no code blocks'):
        pick_block('just prose, and ``` stray backticks')


def test_terminal_gets_osc52_escape():
    buf = io.StringIO()
    run = RecordingRun()
    clip = CodeClipboard(Console(file=buf, force_terminal=True), run=run)

    outcome = clip.copy_block(Segment.code('print(1)', 'python'))
    payload = base64.b64encode(b'print(1)').decode('ascii')
    assert buf.getvalue() == f"\x1b]52;c;{payload}\a"
    assert (outcome.success, outcome.method, outcome.language) == (True, 'osc52', 'python')
    assert run.calls == []


def test_non_terminal_uses_first_working_tool(monkeypatch):
    monkeypatch.setattr(clipboard_mod.shutil, 'which', lambda name: f'/usr/bin/{name}')
    run = RecordingRun(fail={'wl-copy'})
    clip = CodeClipboard(_plain_console(), system='Linux', run=run)

    outcome = clip.copy_block(Segment.code('echo hi', 'sh'))
    assert outcome.success is True
    assert outcome.method == 'xclip'
    assert [command for command, _ in run.calls] == [('wl-copy',), ('xclip', '-selection', 'clipboard')]
    assert run.calls[-1][1] == b'echo hi'


def test_only_installed_tools_are_tried(monkeypatch):
    monkeypatch.setattr(clipboard_mod.shutil, 'which', lambda name: '/usr/bin/pbcopy' if name == 'pbcopy' else None)
    assert CodeClipboard(_plain_console(), system='Darwin').commands() == [('pbcopy',)]
    assert CodeClipboard(_plain_console(), system='Linux').commands() == []


def test_failure_reports_last_error(monkeypatch):
    monkeypatch.setattr(clipboard_mod.shutil, 'which', lambda name: f'/usr/bin/{name}')
    clip = CodeClipboard(_plain_console(), system='Linux', run=RecordingRun(fail={'wl-copy', 'xclip'}))

    outcome = clip.copy_block(Segment.code('x', 'plaintext'))
    assert outcome.success is False
    assert outcome.method == 'none'
    assert outcome.error.startswith('xclip:')


def test_no_tool_available(monkeypatch):
    monkeypatch.setattr(clipboard_mod.shutil, 'which', lambda name: None)
    outcome = CodeClipboard(_plain_console(), system='Linux', run=RecordingRun()).copy_block(Segment.code('x'))
    assert outcome.success is False
    assert outcome.error == 'no clipboard tool found'
