"""Reasoning-service clients."""

from abc import ABC, abstractmethod

from openai import OpenAI, OpenAIError

from .exceptions import ReasoningServiceError


class ReasoningClient(ABC):
    """Sends one system/user prompt pair and returns the raw text reply."""

    @abstractmethod
    def complete(
        self,
        system_role: str,
        user_prompt: str,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Run one completion.

        Raises:
            ReasoningServiceError: On transport failure, timeout or empty reply
        """


class OpenAIReasoningClient(ReasoningClient):
    """Chat-completions client backed by the ``openai`` SDK."""

    def __init__(self, api_key: str, timeout: float = 30.0, max_retries: int = 1, base_url: str = None):
        if not api_key:
            raise ValueError("An API key is required for the reasoning service")
        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=max_retries
        )

    def complete(self, system_role, user_prompt, *, model, max_tokens, temperature) -> str:
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_role},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            raise ReasoningServiceError(f"{type(e).__name__}: {e}") from e

        if not response.choices:
            raise ReasoningServiceError("Reasoning service returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ReasoningServiceError("Reasoning service returned an empty reply")
        return content
