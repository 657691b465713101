from __future__ import annotations

from typing import Callable, Dict, List, Optional

from rich.table import Table

from base_classes import InteractionMode
from core.turns import TurnRunner
from ui.renderer import SegmentRenderer
from ui.typewriter_display import TypewriterDisplay
from utils.clipboard import CodeClipboard, pick_block
from utils.storage_utils import StorageError


HELP_TEXT = """Commands:
  /new              start a new conversation
  /list             list conversations
  /open <n>         switch to conversation n from /list
  /rename <title>   rename the current conversation
  /delete [n]       delete conversation n (default: current)
  /image <path>     attach OCR text from an image to your next message
  /model [name]     show models or switch model
  /copy [n]         copy code block n of the last reply (default: last block)
  /history          show the current conversation again
  /help             show this help
  /quit             leave"""


class ChatMode(InteractionMode):
    def __init__(self, session, display: Optional[TypewriterDisplay] = None,
                 input_fn: Optional[Callable[[str], str]] = None,
                 clipboard: Optional[CodeClipboard] = None):
        self.session = session
        self.console = session.console
        self.renderer = SegmentRenderer(
            theme=str(session.get_option('DISPLAY', 'code_theme', fallback='monokai')),
            line_numbers=bool(session.get_option('DISPLAY', 'line_numbers', fallback=True)),
        )
        self.display = display or TypewriterDisplay(
            self.console, self.renderer, config=session.config, logger=session.logger
        )
        self.input_fn = input_fn or self.console.input
        self.clipboard = clipboard or CodeClipboard(self.console)
        self.turn_runner = TurnRunner(session)
        self.running = False
        self._listing: List[str] = []

        self.commands: Dict[str, Callable[[str], None]] = {
            'new': self.cmd_new,
            'list': self.cmd_list,
            'open': self.cmd_open,
            'rename': self.cmd_rename,
            'delete': self.cmd_delete,
            'image': self.cmd_image,
            'model': self.cmd_model,
            'copy': self.cmd_copy,
            'history': self.cmd_history,
            'help': self.cmd_help,
            'quit': self.cmd_quit,
            'exit': self.cmd_quit,
        }

    @property
    def params(self):
        """Get fresh params each time instead of caching"""
        return self.session.get_params()

    def _label(self, key: str, color_key: str) -> str:
        params = self.params
        return f"[{params.get(color_key, 'bold')}]{params.get(key, '')}[/]"

    # --- Main loop ------------------------------------------------------
    def start(self):
        """Start the chat interaction loop"""
        conv = self.session.ensure_conversation()
        self.console.print(f"[dim]Conversation:[/] {conv.title}  [dim]({self.params.get('model')}, /help for commands)[/]")
        self.running = True
        while self.running:
            try:
                user_input = self.input_fn(self._label('user_label', 'user_label_color') + ' ')
            except (KeyboardInterrupt, EOFError):
                self.console.print()
                break
            self.handle_input(user_input)

    def handle_input(self, user_input: str) -> None:
        text = (user_input or '').strip()
        if text.startswith('/'):
            self.run_command(text)
            return
        if not text and not self.session.pending_images:
            return
        try:
            with self.console.status('Thinking...', spinner='dots'):
                result = self.turn_runner.run_user_turn(user_input)
        except (StorageError, ValueError, RuntimeError) as e:
            self.console.print(f"[bold red]Error:[/] {e}")
            return
        self.console.print(self._label('response_label', 'response_label_color'))
        self.display.show(result.text)
        self.console.print()

    def run_command(self, text: str) -> bool:
        name, _, arg = text[1:].partition(' ')
        handler = self.commands.get(name.lower())
        if handler is None:
            self.console.print(f"[yellow]Unknown command:[/] /{name} (try /help)")
            return False
        try:
            handler(arg.strip())
        except (StorageError, ValueError, RuntimeError) as e:
            self.console.print(f"[bold red]Error:[/] {e}")
            return False
        return True

    # --- Commands -------------------------------------------------------
    def cmd_help(self, _arg: str) -> None:
        self.console.print(HELP_TEXT, markup=False, highlight=False)

    def cmd_quit(self, _arg: str) -> None:
        self.running = False

    def cmd_new(self, _arg: str) -> None:
        conv = self.session.new_conversation()
        self.console.print(f"[green]Started[/] {conv.title}")

    def cmd_list(self, _arg: str) -> None:
        conversations = self.session.store.list_conversations()
        self._listing = [c.id for c in conversations]
        if not conversations:
            self.console.print('[dim]No conversations yet.[/]')
            return
        table = Table(show_header=True, header_style='bold')
        table.add_column('#', justify='right')
        table.add_column('Title')
        table.add_column('Updated')
        for idx, conv in enumerate(conversations, start=1):
            marker = ' *' if conv.id == self.session.conversation_id else ''
            table.add_row(str(idx), conv.title + marker, conv.updated_at[:19].replace('T', ' '))
        self.console.print(table)

    def _resolve_index(self, arg: str) -> str:
        if not self._listing:
            self._listing = [c.id for c in self.session.store.list_conversations()]
        if not arg.isdigit() or not 1 <= int(arg) <= len(self._listing):
            raise ValueError(f"Pick a number between 1 and {len(self._listing)} from /list")
        return self._listing[int(arg) - 1]

    def cmd_open(self, arg: str) -> None:
        conv = self.session.open_conversation(self._resolve_index(arg))
        if conv is None:
            raise ValueError('That conversation no longer exists')
        self.console.print(f"[green]Opened[/] {conv.title}")
        self.cmd_history('')

    def cmd_rename(self, arg: str) -> None:
        conv = self.session.ensure_conversation()
        self.session.store.rename_conversation(conv.id, arg)
        self.console.print(f"[green]Renamed to[/] {arg.strip()}")

    def cmd_delete(self, arg: str) -> None:
        target = self._resolve_index(arg) if arg else self.session.conversation_id
        if not target or not self.session.store.delete_conversation(target):
            raise ValueError('Nothing to delete')
        self._listing = []
        if target == self.session.conversation_id:
            self.session.conversation_id = None
            conv = self.session.ensure_conversation()
            self.console.print(f"[green]Deleted.[/] Now in {conv.title}")
        else:
            self.console.print('[green]Deleted.[/]')

    def cmd_image(self, arg: str) -> None:
        if not arg:
            raise ValueError('Usage: /image <path>')
        results = self.session.add_image(arg)
        if results:
            chars = sum(len(r.content) for r in results)
            self.console.print(f"[green]Attached[/] {chars} characters of image text to your next message")
        else:
            self.console.print('[yellow]No text found in that image.[/]')

    def cmd_model(self, arg: str) -> None:
        if arg:
            model = self.session.set_model(arg)
            self.console.print(f"[green]Model set to[/] {model}")
            return
        current = self.params.get('model')
        for name in self.session.config.model_sections():
            label = self.session.config.get_model_options(name).get('label', name)
            marker = '*' if name == current else ' '
            self.console.print(f" {marker} {name} [dim]({label})[/]")

    def _last_reply(self) -> Optional[str]:
        if not self.session.conversation_id:
            return None
        for msg in reversed(self.session.store.get_messages(self.session.conversation_id)):
            if msg.role == 'assistant':
                return msg.content
        return None

    def cmd_copy(self, arg: str) -> None:
        block = pick_block(self._last_reply() or '', arg)
        outcome = self.clipboard.copy_block(block)
        if outcome.success:
            self.console.print(f"[green]Copied[/] {outcome.language} block ({outcome.method})")
        else:
            self.console.print(f"[red]Copy failed:[/] {outcome.error}")

    def cmd_history(self, _arg: str) -> None:
        conv = self.session.ensure_conversation()
        for msg in self.session.store.get_messages(conv.id):
            if msg.role == 'user':
                self.console.print(self._label('user_label', 'user_label_color'))
            else:
                self.console.print(self._label('response_label', 'response_label_color'))
            self.console.print(self.renderer.render_message(msg.content))
            self.console.print()
