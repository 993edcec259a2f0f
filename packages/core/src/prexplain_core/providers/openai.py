from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from prexplain_core.providers.base import BaseExplainer


class OpenAIExplainer(BaseExplainer):
    MODEL = "gpt-3.5-turbo"
    TEMPERATURE = 0.4

    def __init__(self, api_key: str, **kwargs):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'prexplain[openai]'"
            )
        super().__init__(**kwargs)
        self.client = _OpenAI(api_key=api_key, timeout=self.timeout)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content
