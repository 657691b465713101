import os
from openai import OpenAI
from base_classes import APIProvider


class OpenRouterProvider(APIProvider):
    """
    OpenRouter chat completions through the OpenAI client
    """

    name = 'openrouter'
    DEFAULT_BASE_URL = 'https://openrouter.ai/api/v1'

    def __init__(self, params: dict, logger=None):
        super().__init__(params, logger)
        self.client = None
        self.turn_usage = None

    def _initialize_client(self) -> OpenAI:
        """Initialize the client with current connection parameters"""
        params = self.params

        api_key = params.get('api_key') or os.environ.get('OPENROUTER_API_KEY')
        if not api_key:
            raise RuntimeError("OpenRouter API key is required (set [OpenRouter] api_key or OPENROUTER_API_KEY)")

        options = {
            'api_key': api_key,
            'base_url': params.get('base_url') or self.DEFAULT_BASE_URL,
            'default_headers': {
                'HTTP-Referer': str(params.get('referer') or 'http://localhost'),
                'X-Title': str(params.get('app_title') or 'Neural Core AI'),
            },
        }
        if params.get('timeout') is not None:
            options['timeout'] = float(params['timeout'])

        return OpenAI(**options)

    def complete(self, message: str) -> str:
        if self.client is None:
            self.client = self._initialize_client()

        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=[{'role': 'user', 'content': message}],
        )

        usage = getattr(response, 'usage', None)
        if usage is not None:
            self.turn_usage = {
                'prompt_tokens': getattr(usage, 'prompt_tokens', 0) or 0,
                'completion_tokens': getattr(usage, 'completion_tokens', 0) or 0,
            }

        return response.choices[0].message.content or ''
