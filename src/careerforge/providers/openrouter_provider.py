"""OpenRouter provider implementation (OpenAI-compatible API)."""

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from careerforge.exceptions import TransientProviderError
from careerforge.providers.base import BaseProvider, DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_SECONDS, classify_status

# Constants
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = "stepfun/step-3.5-flash:free"


class OpenRouterProvider(BaseProvider):
    """Secondary, reasoning-capable provider routed through OpenRouter."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str = OPENROUTER_DEFAULT_MODEL,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        base_url: str = OPENROUTER_BASE_URL,
        enable_reasoning: bool = False,
        site_url: str | None = None,
        app_title: str | None = None,
    ):
        """
        Initialize OpenRouter provider.

        Args:
            api_key: OpenRouter API key
            model: Model identifier (e.g., "stepfun/step-3.5-flash:free")
            timeout_seconds: Request timeout
            max_retries: Maximum retries
            base_url: OpenAI-compatible endpoint
            enable_reasoning: Ask the routed model to reason before answering
            site_url: Optional HTTP-Referer attribution header
            app_title: Optional X-Title attribution header
        """
        super().__init__(api_key, model, timeout_seconds, max_retries)
        self.enable_reasoning = enable_reasoning
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
            default_headers=self._attribution_headers(site_url, app_title),
        )

    @staticmethod
    def _attribution_headers(site_url: str | None, app_title: str | None) -> dict[str, str]:
        headers = {}
        if site_url and site_url.strip():
            headers["HTTP-Referer"] = site_url.strip()
        if app_title and app_title.strip():
            headers["X-Title"] = app_title.strip()
        return headers

    def _send(self, system_prompt: str, user_content: str, *, temperature: float, model: str) -> str | None:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]
        kwargs = {}
        if self.enable_reasoning:
            kwargs["extra_body"] = {"reasoning": {"enabled": True}}

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                **kwargs,
            )
        except APITimeoutError as e:
            self.logger.error("timeout", error=str(e))
            raise TransientProviderError(f"OpenRouter request timeout: {e}", provider=self.name) from e
        except APIConnectionError as e:
            self.logger.error("connection_error", error=str(e))
            raise TransientProviderError(f"OpenRouter connection error: {e}", provider=self.name) from e
        except APIStatusError as e:
            self.logger.error("api_error", status_code=e.status_code, error_type=type(e).__name__)
            raise classify_status(self.name, e.status_code, str(e.message)) from e

        if not response.choices:
            return None
        return response.choices[0].message.content
