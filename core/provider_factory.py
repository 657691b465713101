from __future__ import annotations

import importlib
from typing import Any, Dict, Optional

from base_classes import APIProvider


class ProviderFactory:
    """
    Centralized provider construction.

    The provider is chosen by the `provider` key the active model resolves to
    in models.ini; params are the merged DEFAULT + [Provider] + model + overrides.
    """

    REGISTRY: Dict[str, str] = {
        'openrouter': 'providers.openrouter_provider:OpenRouterProvider',
        'google': 'providers.google_provider:GoogleProvider',
        'mock': 'providers.mock_provider:MockProvider',
    }

    @classmethod
    def load_provider_class(cls, provider_name: str):
        target = cls.REGISTRY.get((provider_name or '').strip().lower())
        if not target:
            return None
        module_name, _, class_name = target.partition(':')
        module = importlib.import_module(module_name)
        return getattr(module, class_name, None)

    @classmethod
    def create(cls, session_config, logger: Optional[Any] = None) -> APIProvider:
        params = dict(session_config.get_params())
        provider_name = params.get('provider')
        if not provider_name:
            raise RuntimeError(f"Model '{params.get('model')}' has no provider configured")
        provider_cls = cls.load_provider_class(provider_name)
        if provider_cls is None:
            raise RuntimeError(f"Provider '{provider_name}' not found")
        return provider_cls(params, logger=logger)
