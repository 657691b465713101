from __future__ import annotations

from typing import Any, Optional

from rich.console import Console

from config_manager import ConfigManager
from core.conversation_store import ConversationStore
from utils.logging_utils import LoggingHandler


class SessionBuilder:
    """
    Builds fully configured sessions.
    """

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager

    def build(self, *, console: Optional[Console] = None, db_path: Optional[str] = None, **options: Any):
        # Late import to avoid circular dependency at module load time
        from session import Session

        eff_options = {k: v for k, v in (options or {}).items() if v not in (None, '')}
        session_config = self.config_manager.create_session_config(eff_options)
        console = console or Console()
        logger = LoggingHandler(session_config, output_handler=console)

        path = db_path or session_config.get_option('DEFAULT', 'user_db', fallback='neural-core.db')
        store = ConversationStore(str(path), logger=logger)

        session = Session(session_config, console=console, logger=logger, store=store)

        params = session_config.get_params()
        logger.settings({
            'model': params.get('model'),
            'provider': params.get('provider'),
            'typewriter': session_config.get_option('DISPLAY', 'typewriter', fallback=True),
            'db': str(path),
        })
        return session
