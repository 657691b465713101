"""
Mock provider for trying neural-core without API keys.
Replies are canned but exercise both plain text and fenced code rendering.
"""

from base_classes import APIProvider


class MockProvider(APIProvider):
    """
    A mock provider that gives simple responses for testing.
    """

    name = 'mock'

    def __init__(self, params: dict, logger=None):
        super().__init__(params, logger)
        self.response_count = 0

    def complete(self, message: str) -> str:
        self.response_count += 1
        text = (message or '').strip()
        lowered = text.lower()

        if 'fail' in lowered:
            raise RuntimeError('mock failure requested')
        if 'hello' in lowered:
            return f"Hello! I'm a mock assistant. This is response #{self.response_count}."
        if 'code' in lowered:
            return (
                "Here is a small example:\n"
                "```python\n"
                "def greet(name):\n"
                "    return f\"Hello, {name}!\"\n"
                "```\n"
                f"That was mock response #{self.response_count}."
            )
        preview = text[:50] + ('...' if len(text) > 50 else '')
        return f"I received your message: '{preview}' This is mock response #{self.response_count}."
