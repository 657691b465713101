from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from utils.storage_utils import SQLiteProvider, StorageError, TableSchema

DEFAULT_TITLE = 'New Conversation'
TITLE_LIMIT = 50
ROLES = ('user', 'assistant')


_last_stamp: Optional[datetime] = None


def _now_iso() -> str:
    # Strictly increasing within the process so ordering by timestamp is stable
    global _last_stamp
    now = datetime.now(timezone.utc)
    if _last_stamp is not None and now <= _last_stamp:
        now = _last_stamp + timedelta(microseconds=1)
    _last_stamp = now
    return now.isoformat()


@dataclass
class Conversation:
    id: str
    title: str
    created_at: str
    updated_at: str


@dataclass
class Message:
    id: str
    conversation_id: str
    role: str
    content: str
    created_at: str


CONVERSATIONS = TableSchema(
    name='conversations',
    columns=[
        {'name': 'id', 'type': 'TEXT PRIMARY KEY'},
        {'name': 'title', 'type': f"TEXT NOT NULL DEFAULT '{DEFAULT_TITLE}'"},
        {'name': 'created_at', 'type': 'TEXT NOT NULL'},
        {'name': 'updated_at', 'type': 'TEXT NOT NULL'},
    ],
    indexes=['updated_at'],
)

MESSAGES = TableSchema(
    name='messages',
    columns=[
        {'name': 'id', 'type': 'TEXT PRIMARY KEY'},
        {'name': 'conversation_id', 'type': 'TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE'},
        {'name': 'role', 'type': "TEXT NOT NULL CHECK (role IN ('user', 'assistant'))"},
        {'name': 'content', 'type': 'TEXT NOT NULL'},
        {'name': 'created_at', 'type': 'TEXT NOT NULL'},
    ],
    indexes=['conversation_id', 'created_at'],
)


class ConversationStore:
    """
    Conversations and their messages in a local SQLite file.

    Conversations list most recently updated first; messages list oldest first.
    Every operation raises StorageError when the database fails.
    """

    def __init__(self, db_path: str, logger: Optional[Any] = None) -> None:
        self.logger = logger
        self.provider = SQLiteProvider(db_path, logger=logger)
        self.provider.init_tables([CONVERSATIONS, MESSAGES])

    @staticmethod
    def title_from_message(text: str) -> str:
        """First 50 characters of the opening message, with an ellipsis when cut."""
        text = text or ''
        return text[:TITLE_LIMIT] + ('...' if len(text) > TITLE_LIMIT else '')

    # --- Conversations --------------------------------------------------
    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        now = _now_iso()
        conv = Conversation(id=uuid.uuid4().hex, title=(title or DEFAULT_TITLE), created_at=now, updated_at=now)
        self.provider.execute_write(
            'INSERT INTO conversations (id, title, created_at, updated_at) VALUES (?, ?, ?, ?)',
            (conv.id, conv.title, conv.created_at, conv.updated_at),
        )
        self._log('conversation_created', {'id': conv.id})
        return conv

    def list_conversations(self) -> List[Conversation]:
        rows = self.provider.execute(
            'SELECT id, title, created_at, updated_at FROM conversations ORDER BY updated_at DESC, rowid DESC'
        )
        return [Conversation(*row) for row in rows]

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        rows = self.provider.execute(
            'SELECT id, title, created_at, updated_at FROM conversations WHERE id = ?',
            (conversation_id,),
        )
        return Conversation(*rows[0]) if rows else None

    def rename_conversation(self, conversation_id: str, title: str) -> bool:
        title = (title or '').strip()
        if not title:
            raise ValueError('Conversation title cannot be empty')
        changed = self.provider.execute_write(
            'UPDATE conversations SET title = ? WHERE id = ?',
            (title, conversation_id),
        )
        self._log('conversation_renamed', {'id': conversation_id, 'found': bool(changed)})
        return changed > 0

    def delete_conversation(self, conversation_id: str) -> bool:
        self.provider.execute_write('DELETE FROM messages WHERE conversation_id = ?', (conversation_id,))
        changed = self.provider.execute_write('DELETE FROM conversations WHERE id = ?', (conversation_id,))
        self._log('conversation_deleted', {'id': conversation_id, 'found': bool(changed)})
        return changed > 0

    # --- Messages -------------------------------------------------------
    def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        if role not in ROLES:
            raise ValueError(f"Unsupported message role: {role!r}")
        if self.get_conversation(conversation_id) is None:
            raise StorageError(f"Unknown conversation: {conversation_id}")
        msg = Message(
            id=uuid.uuid4().hex,
            conversation_id=conversation_id,
            role=role,
            content=content or '',
            created_at=_now_iso(),
        )
        self.provider.execute_write(
            'INSERT INTO messages (id, conversation_id, role, content, created_at) VALUES (?, ?, ?, ?, ?)',
            (msg.id, msg.conversation_id, msg.role, msg.content, msg.created_at),
        )
        self.provider.execute_write(
            'UPDATE conversations SET updated_at = ? WHERE id = ?',
            (msg.created_at, conversation_id),
        )
        self._log('message_added', {'conversation_id': conversation_id, 'role': role, 'chars': len(msg.content)})
        return msg

    def get_messages(self, conversation_id: str) -> List[Message]:
        rows = self.provider.execute(
            'SELECT id, conversation_id, role, content, created_at FROM messages '
            'WHERE conversation_id = ? ORDER BY created_at ASC, rowid ASC',
            (conversation_id,),
        )
        return [Message(*row) for row in rows]

    def _log(self, kind: str, details: dict) -> None:
        if self.logger is not None:
            self.logger.storage_event(kind, details)
