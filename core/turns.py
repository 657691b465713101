from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional

from contexts.image_context import ImageAnalysisResult, compose_user_message
from core.conversation_store import DEFAULT_TITLE, ConversationStore, Message


@dataclass
class TurnResult:
    """Outcome of one user/assistant exchange."""

    user_message: Message
    assistant_message: Message
    text: str
    title_changed: bool = False


class TurnRunner:
    """Runs a user turn: compose, persist, ask the provider, persist the reply."""

    def __init__(self, session) -> None:
        self.session = session

    def run_user_turn(self, input_text: str, *, images: Optional[List[ImageAnalysisResult]] = None) -> TurnResult:
        pending = self.session.pending_images if images is None else images
        if not (input_text or '').strip() and not pending:
            raise ValueError('Nothing to send: type a message or attach an image')

        # Resolve before anything is stored; pending images stay queued on failure
        provider = self.session.get_provider()
        if images is None:
            images = self.session.take_images()

        store: ConversationStore = self.session.store
        conv = self.session.ensure_conversation()
        is_first = not store.get_messages(conv.id)

        content = compose_user_message(input_text, images)
        user_message = store.add_message(conv.id, 'user', content)

        # The first message names an untitled conversation
        title_changed = False
        if is_first and conv.title == DEFAULT_TITLE:
            title_changed = store.rename_conversation(conv.id, store.title_from_message(content))

        logger = self.session.logger
        meta = {'provider': provider.name, 'model': provider.model_name, 'chars': len(content)}
        if logger is not None:
            logger.provider_start(meta)
            logger.messages_detail('user_message', {'content': content})

        started = time.monotonic()
        reply = provider.generate(content)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if logger is not None:
            logger.provider_done({**meta, 'reply_chars': len(reply), 'duration_ms': elapsed_ms,
                                  'usage': getattr(provider, 'turn_usage', None)})

        assistant_message = store.add_message(conv.id, 'assistant', reply)
        return TurnResult(
            user_message=user_message,
            assistant_message=assistant_message,
            text=reply,
            title_changed=title_changed,
        )
