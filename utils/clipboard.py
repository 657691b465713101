"""Put code blocks from a reply on the system clipboard."""

from __future__ import annotations

import base64
import platform
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from rich.console import Console

from utils.message_parser import Segment, code_blocks

# Tried in order when the console is not a terminal; unknown systems use the linux list
PLATFORM_COMMANDS: Dict[str, List[Tuple[str, ...]]] = {
    'darwin': [('pbcopy',)],
    'windows': [('powershell', '-Command', 'Set-Clipboard')],
    'linux': [('wl-copy',), ('xclip', '-selection', 'clipboard')],
}


@dataclass
class ClipboardOutcome:
    success: bool
    method: str
    language: Optional[str] = None
    error: Optional[str] = None


def pick_block(message: str, choice: str = '') -> Segment:
    """
    Code block ``choice`` (1-based) of ``message``, or the last one when blank.
    Raises ValueError when there is nothing to pick or the number is out of range.
    """
    blocks = code_blocks(message)
    if not blocks:
        raise ValueError('The last reply has no code blocks')
    if not choice:
        return blocks[-1]
    if not choice.isdigit() or not 1 <= int(choice) <= len(blocks):
        raise ValueError(f"Pick a block between 1 and {len(blocks)}")
    return blocks[int(choice) - 1]


class CodeClipboard:
    """
    Copies a code block through the terminal (OSC-52 escape) when the console
    is a terminal, otherwise through the platform's clipboard tool.
    """

    def __init__(self, console: Console, *, system: Optional[str] = None,
                 run: Callable[..., object] = subprocess.run) -> None:
        self.console = console
        self.system = (system or platform.system()).lower()
        self._run = run

    def copy_block(self, block: Segment) -> ClipboardOutcome:
        text = block.content
        if self.console.is_terminal:
            payload = base64.b64encode(text.encode('utf-8')).decode('ascii')
            self.console.file.write(f"\x1b]52;c;{payload}\a")
            self.console.file.flush()
            return ClipboardOutcome(True, 'osc52', block.language)

        error = 'no clipboard tool found'
        for command in self.commands():
            try:
                self._run(command, check=True, input=text.encode('utf-8'))
            except (OSError, subprocess.CalledProcessError) as e:
                error = f"{command[0]}: {e}"
                continue
            return ClipboardOutcome(True, command[0], block.language)
        return ClipboardOutcome(False, 'none', block.language, error)

    def commands(self) -> List[Tuple[str, ...]]:
        """Installed clipboard tools for this system, in the order they are tried."""
        candidates = PLATFORM_COMMANDS.get(self.system, PLATFORM_COMMANDS['linux'])
        return [command for command in candidates if shutil.which(command[0])]
