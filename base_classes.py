"""
Abstract base classes for neural-core components.

These classes define the interfaces that providers, modes and contexts
must implement to plug into a session.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional

FALLBACK_MESSAGE = 'I apologize, but I encountered an error processing your request. Please try again.'


class APIProvider(ABC):
    """
    Abstract class for language-model backends.

    generate() never raises for vendor or network problems: it logs them and
    returns the fallback apology so callers can treat every reply alike.
    """

    name: str = 'provider'

    def __init__(self, params: dict, logger: Optional[Any] = None) -> None:
        self.params = params
        self.logger = logger
        self.fallback_message = params.get('fallback_message') or FALLBACK_MESSAGE

    @property
    def model_name(self) -> str:
        return str(self.params.get('model_name') or self.params.get('model') or '')

    def generate(self, message: str) -> str:
        try:
            return self.complete(message)
        except Exception as e:
            if self.logger is not None:
                self.logger.error(f'providers.{self.name}', e)
            return self.fallback_message

    @abstractmethod
    def complete(self, message: str) -> str:
        """Send one user message and return the reply text. May raise."""
        pass


class InteractionMode(ABC):
    """
    Abstract class for interaction handlers
    """

    @abstractmethod
    def start(self):
        pass


class InteractionContext(ABC):
    """
    Abstract class for interaction contexts
    """

    @abstractmethod
    def get(self):
        pass
