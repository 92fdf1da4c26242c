"""Groq provider implementation."""

from groq import APIConnectionError, APIStatusError, APITimeoutError, Groq

from careerforge.exceptions import TransientProviderError
from careerforge.providers.base import BaseProvider, DEFAULT_MAX_RETRIES, classify_status

# Constants
GROQ_TIMEOUT_SECONDS = 30  # Shorter timeout for Groq - fast inference
GROQ_DEFAULT_MODEL = "llama-3.1-8b-instant"


class GroqProvider(BaseProvider):
    """Primary chat-completion provider backed by Groq."""

    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str = GROQ_DEFAULT_MODEL,
        timeout_seconds: int = GROQ_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        super().__init__(api_key, model, timeout_seconds, max_retries)
        # SDK retries are disabled; BaseProvider.complete owns retry policy
        self.client = Groq(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def _send(self, system_prompt: str, user_content: str, *, temperature: float, model: str) -> str | None:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
            )
        except APITimeoutError as e:
            self.logger.error("timeout", error=str(e))
            raise TransientProviderError(f"Groq request timeout: {e}", provider=self.name) from e
        except APIConnectionError as e:
            self.logger.error("connection_error", error=str(e))
            raise TransientProviderError(f"Groq connection error: {e}", provider=self.name) from e
        except APIStatusError as e:
            self.logger.error("api_error", status_code=e.status_code, error_type=type(e).__name__)
            raise classify_status(self.name, e.status_code, str(e.message)) from e

        if not response.choices:
            return None
        return response.choices[0].message.content
