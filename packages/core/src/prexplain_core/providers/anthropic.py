from __future__ import annotations

from prexplain_core.providers.base import BaseExplainer


class AnthropicExplainer(BaseExplainer):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, **kwargs):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'prexplain[anthropic]'"
            )
        super().__init__(**kwargs)
        self.client = Anthropic(api_key=api_key, timeout=self.timeout)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # anthropic is optional; __init__ has already checked it is installed.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
