from __future__ import annotations

from typing import Any, List, Optional

from rich.console import Console

from config_manager import SessionConfig
from contexts.image_context import ImageAnalysisResult, ImageContext
from core.conversation_store import Conversation, ConversationStore
from core.provider_factory import ProviderFactory


class Session:
    """
    Central session object that holds state and provides access to all services.
    This is what gets passed to modes and the turn runner.
    """

    def __init__(self, config: SessionConfig, *, console: Optional[Console] = None,
                 logger: Optional[Any] = None, store: Optional[ConversationStore] = None):
        self.config = config
        self.console = console or Console()
        self.logger = logger
        self.store = store
        self.provider = None
        self.conversation_id: Optional[str] = None
        self.pending_images: List[ImageAnalysisResult] = []

    def get_params(self) -> dict:
        return self.config.get_params()

    def get_option(self, section: str, option: str, fallback: Any = None) -> Any:
        return self.config.get_option(section, option, fallback)

    # Provider -----------------------------------------------------------
    def get_provider(self):
        if self.provider is None:
            self.provider = ProviderFactory.create(self.config, logger=self.logger)
        return self.provider

    def set_model(self, model: str) -> str:
        normalized = self.config.normalize_model_name(model)
        if not normalized:
            raise ValueError(f"Unknown model '{model}'")
        self.config.set_option('model', normalized)
        self.provider = None
        if self.logger is not None:
            self.logger.settings({'model': normalized, 'provider': self.get_params().get('provider')})
        return normalized

    # Images -------------------------------------------------------------
    def add_image(self, path: str) -> List[ImageAnalysisResult]:
        ctx = ImageContext(path, logger=self.logger)
        results = ctx.get()
        self.pending_images.extend(results)
        return results

    def take_images(self) -> List[ImageAnalysisResult]:
        results, self.pending_images = self.pending_images, []
        return results

    # Conversations ------------------------------------------------------
    def new_conversation(self) -> Conversation:
        conv = self.store.create_conversation()
        self.conversation_id = conv.id
        return conv

    def open_conversation(self, conversation_id: str) -> Optional[Conversation]:
        conv = self.store.get_conversation(conversation_id)
        if conv is not None:
            self.conversation_id = conv.id
        return conv

    def ensure_conversation(self) -> Conversation:
        """Current conversation, else the most recently updated, else a new one."""
        if self.conversation_id:
            conv = self.store.get_conversation(self.conversation_id)
            if conv is not None:
                return conv
        existing = self.store.list_conversations()
        if existing:
            self.conversation_id = existing[0].id
            return existing[0]
        return self.new_conversation()
