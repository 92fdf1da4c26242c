"""Google Gemini provider implementation."""

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from careerforge.exceptions import FormatError, TransientProviderError
from careerforge.providers.base import BaseProvider, DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_SECONDS, classify_status

# Constants
GEMINI_DEFAULT_MODEL = "models/gemini-1.5-flash"
GEMINI_API_VERSIONS = ("v1", "v1beta")
MAX_LISTED_MODELS = 25


def normalize_model(model: str) -> str:
    """Return the model id in ``models/<id>`` form."""
    trimmed = model.strip().strip('"')
    if not trimmed:
        return GEMINI_DEFAULT_MODEL
    return trimmed if trimmed.startswith("models/") else f"models/{trimmed}"


def fold_system_prompt(system_prompt: str, user_content: str) -> str:
    """Inline the system prompt; some API versions reject systemInstruction."""
    if not system_prompt:
        return user_content
    return f"SYSTEM:\n{system_prompt}\n\nUSER:\n{user_content}"


class GeminiProvider(BaseProvider):
    """
    Text-generation provider with several API-version surfaces.

    One logical call walks the configured API versions in order, moving on
    only when a version reports the model/route as unknown or rejects a
    field. Any other failure ends the call. Later calls for the same model,
    retries included, start at the version that last answered.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = GEMINI_DEFAULT_MODEL,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        api_versions: list[str] | tuple[str, ...] = GEMINI_API_VERSIONS,
    ):
        super().__init__(api_key, normalize_model(model), timeout_seconds, max_retries)
        self.api_versions = tuple(api_versions)
        self._clients: dict[str, genai.Client] = {}
        self._answering_version: dict[str, str] = {}

    def _client_for(self, api_version: str) -> genai.Client:
        if api_version not in self._clients:
            self._clients[api_version] = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(
                    api_version=api_version,
                    timeout=self.timeout_seconds * 1000,
                ),
            )
        return self._clients[api_version]

    def _versions_for(self, model: str) -> tuple[str, ...]:
        """API versions to try, skipping those that already rejected model."""
        start = self._answering_version.get(model)
        if start is None:
            return self.api_versions
        return self.api_versions[self.api_versions.index(start):]

    def _send(self, system_prompt: str, user_content: str, *, temperature: float, model: str) -> str | None:
        model = normalize_model(model)
        contents = fold_system_prompt(system_prompt, user_content)
        last_error: FormatError | None = None

        for api_version in self._versions_for(model):
            try:
                response = self._client_for(api_version).models.generate_content(
                    model=model,
                    contents=contents,
                    config=types.GenerateContentConfig(temperature=temperature),
                )
            except genai_errors.APIError as e:
                error = classify_status(self.name, e.code, e.message or str(e))
                if isinstance(error, FormatError):
                    self.logger.warning(
                        "api_version_rejected",
                        api_version=api_version,
                        status_code=e.code,
                    )
                    last_error = error
                    continue
                self._answering_version[model] = api_version
                self.logger.error("api_error", api_version=api_version, status_code=e.code)
                raise error from e
            except httpx.TimeoutException as e:
                self._answering_version[model] = api_version
                self.logger.error("timeout", api_version=api_version, error=str(e))
                raise TransientProviderError(f"Gemini request timeout: {e}", provider=self.name) from e
            except httpx.TransportError as e:
                self._answering_version[model] = api_version
                self.logger.error("connection_error", api_version=api_version, error=str(e))
                raise TransientProviderError(f"Gemini connection error: {e}", provider=self.name) from e

            self._answering_version[model] = api_version
            self.logger.debug("api_version_succeeded", api_version=api_version)
            return response.text

        self._answering_version.pop(model, None)
        raise self._exhausted_error(last_error)

    def _exhausted_error(self, last_error: FormatError | None) -> FormatError:
        """Final error once every API version rejected the call."""
        if last_error is None:
            return FormatError("Gemini has no API versions configured", provider=self.name)
        if last_error.status_code != 404:
            return last_error

        available = self.list_models()
        if available:
            shown = ", ".join(available[:MAX_LISTED_MODELS])
            more = ", ..." if len(available) > MAX_LISTED_MODELS else ""
            hint = f" Available models include: {shown}{more}. Set GEMINI_MODEL to one of these."
        else:
            hint = " List the models your key supports and set GEMINI_MODEL accordingly."
        return FormatError(f"{last_error}{hint}", provider=self.name, status_code=404)

    def list_models(self) -> list[str]:
        """
        Model ids visible to this key across all API versions.

        Only used to enrich error messages, so failures yield an empty list
        rather than an exception.
        """
        names: list[str] = []
        for api_version in self.api_versions:
            try:
                for entry in self._client_for(api_version).models.list():
                    name = getattr(entry, "name", None)
                    if isinstance(name, str) and name.startswith("models/") and name not in names:
                        names.append(name)
            except Exception as e:
                self.logger.warning("list_models_failed", api_version=api_version, error=str(e))
        return names
