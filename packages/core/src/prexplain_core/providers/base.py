"""Base explainer implementing the Template Method pattern.

All providers share the same algorithm:
    explain() → _build_system_prompt() + _build_user_prompt()
              → _call_with_retry() → _call_api()   ← only this differs per provider
              → _finish()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Sequence

from prexplain_core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 1024
_MAX_EXPLANATION_CHARS = 4000


class BaseExplainer(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.4
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(
        self,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_chars: int | None = None,
        timeout: float | None = None,
    ):
        self.model = model or self.MODEL
        self.temperature = self.TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or self.MAX_TOKENS
        self.max_chars = max_chars or _MAX_EXPLANATION_CHARS
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def explain(self, file_name: str, file_content: str, added_lines: Sequence[str] | None = None) -> str:
        """Return a short explanation of a file, or of its added lines.

        With ``added_lines`` the model is asked what the change does; without
        them it is asked for an overview of the whole file. Raises
        ExternalServiceError once every retry has failed.
        """
        system = self._build_system_prompt()
        user = self._build_user_prompt(file_name, file_content, added_lines)
        return self._finish(self._call_with_retry(system, user))

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        It should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise ExternalServiceError(f"{self.__class__.__name__} generation failed: {e}") from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise ExternalServiceError(f"{self.__class__.__name__} generation was not attempted")

    def _build_system_prompt(self) -> str:
        return (
            "You are an expert software engineer explaining code changes to reviewers. "
            "Give the explanation in 4 or fewer short sentences."
        )

    def _build_user_prompt(
        self,
        file_name: str,
        file_content: str,
        added_lines: Sequence[str] | None = None,
    ) -> str:
        if not added_lines:
            return f"""Here's the file `{file_name}`:

{file_content}

Please provide an overview of this file."""

        changed = "\n".join(added_lines)
        return f"""Here's the file `{file_name}`:

{file_content}

These lines were added or changed:

{changed}

Please explain what these changes do in the context of the file."""

    def _finish(self, raw: str | None) -> str:
        text = (raw or "").strip()
        if not text:
            raise ExternalServiceError(f"{self.__class__.__name__} returned an empty explanation")
        if len(text) > self.max_chars:
            text = text[: self.max_chars].rstrip() + "…"
        return text
