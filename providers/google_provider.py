import os
from google import genai
from base_classes import APIProvider


class GoogleProvider(APIProvider):
    """
    Google Gemini through the google-genai client
    """

    name = 'google'

    def __init__(self, params: dict, logger=None):
        super().__init__(params, logger)
        self.client = None
        self.turn_usage = None

    def _ensure_client(self) -> None:
        """Lazily initialize the google-genai client when first needed."""
        if self.client is not None:
            return
        api_key = self.params.get('api_key') or os.environ.get('GOOGLE_API_KEY')
        if api_key:
            self.client = genai.Client(api_key=api_key)
        else:
            # Let the client resolve credentials from environment/defaults
            self.client = genai.Client()

    def complete(self, message: str) -> str:
        self._ensure_client()
        response = self.client.models.generate_content(
            model=self.model_name,
            contents=message,
        )

        usage = getattr(response, 'usage_metadata', None)
        if usage is not None:
            self.turn_usage = {
                'prompt_tokens': getattr(usage, 'prompt_token_count', 0) or 0,
                'completion_tokens': getattr(usage, 'candidates_token_count', 0) or 0,
            }

        text = getattr(response, 'text', None)
        if text is None:
            raise RuntimeError('Gemini returned no text')
        return text
