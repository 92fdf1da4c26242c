"""Unit tests for provider implementations."""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import groq
import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from careerforge.config import ProviderCandidate
from careerforge.exceptions import (
    ConfigError,
    FormatError,
    PermanentProviderError,
    TransientProviderError,
)
from careerforge.providers import (
    BaseProvider,
    GeminiProvider,
    GroqProvider,
    OpenRouterProvider,
    classify_status,
    create_provider,
    resolve_candidates,
)
from careerforge.providers.gemini_provider import fold_system_prompt, normalize_model
from tests.fixtures import make_config

REQUEST = httpx.Request("POST", "https://example.test/v1/chat/completions")


def chat_response(content):
    """Minimal chat-completions response object."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class ScriptedProvider(BaseProvider):
    """Provider whose _send replays a script of results/exceptions."""

    name = "scripted"

    def __init__(self, script, **kwargs):
        super().__init__(api_key="test-key", model="m", **kwargs)
        self.script = list(script)
        self.calls = 0

    def _send(self, system_prompt, user_content, *, temperature, model):
        self.calls += 1
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class TestClassifyStatus:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures_are_config_errors(self, status):
        assert isinstance(classify_status("groq", status, "bad key"), ConfigError)

    def test_not_found_is_format_error(self):
        error = classify_status("gemini", 404, "model not found")
        assert isinstance(error, FormatError)
        assert error.status_code == 404

    def test_rejected_field_is_format_error(self):
        error = classify_status("gemini", 400, 'Invalid JSON payload. Unknown name "systemInstruction"')
        assert isinstance(error, FormatError)

    def test_other_bad_request_is_permanent(self):
        assert isinstance(classify_status("groq", 400, "context too long"), PermanentProviderError)

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503])
    def test_transient_statuses(self, status):
        assert isinstance(classify_status("groq", status, "try later"), TransientProviderError)


class TestBaseProvider:
    """Tests for BaseProvider.complete."""

    def test_base_provider_is_abstract(self):
        with pytest.raises(TypeError):
            BaseProvider(api_key="test", model="test")

    def test_missing_api_key(self):
        with pytest.raises(ConfigError):
            GroqProvider(api_key="")

    def test_returns_stripped_text(self):
        provider = ScriptedProvider(["  hello \n"])
        assert provider.complete("sys", "user") == "hello"

    @pytest.mark.parametrize("empty", [None, "", "   "])
    def test_empty_text_is_permanent_error(self, empty):
        provider = ScriptedProvider([empty])
        with pytest.raises(PermanentProviderError):
            provider.complete("sys", "user")

    @patch("time.sleep")
    def test_transient_error_is_retried(self, mock_sleep):
        provider = ScriptedProvider([TransientProviderError("503"), "ok"], max_retries=1)
        assert provider.complete("sys", "user") == "ok"
        assert provider.calls == 2

    @patch("time.sleep")
    def test_transient_error_after_retries_propagates(self, mock_sleep):
        provider = ScriptedProvider(
            [TransientProviderError("503"), TransientProviderError("503")],
            max_retries=1,
        )
        with pytest.raises(TransientProviderError):
            provider.complete("sys", "user")
        assert provider.calls == 2

    def test_permanent_error_is_not_retried(self):
        provider = ScriptedProvider([PermanentProviderError("400"), "unused"], max_retries=3)
        with pytest.raises(PermanentProviderError):
            provider.complete("sys", "user")
        assert provider.calls == 1


class TestGroqProvider:
    """Tests for GroqProvider."""

    @patch("careerforge.providers.groq_provider.Groq")
    def test_sends_system_and_user_messages(self, mock_groq):
        client = mock_groq.return_value
        client.chat.completions.create.return_value = chat_response("Answer")

        provider = GroqProvider(api_key="test-key", max_retries=0)
        assert provider.complete("Be brief", "Question", temperature=0.3) == "Answer"

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama-3.1-8b-instant"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Question"},
        ]
        mock_groq.assert_called_once_with(api_key="test-key", timeout=30, max_retries=0)

    @patch("careerforge.providers.groq_provider.Groq")
    def test_model_override_per_call(self, mock_groq):
        client = mock_groq.return_value
        client.chat.completions.create.return_value = chat_response("Answer")

        provider = GroqProvider(api_key="test-key", max_retries=0)
        provider.complete("s", "u", model="llama-3.3-70b-versatile")
        assert client.chat.completions.create.call_args.kwargs["model"] == "llama-3.3-70b-versatile"

    @patch("careerforge.providers.groq_provider.Groq")
    def test_rate_limit_is_transient(self, mock_groq):
        client = mock_groq.return_value
        client.chat.completions.create.side_effect = groq.APIStatusError(
            "Rate limited", response=httpx.Response(429, request=REQUEST), body=None
        )

        provider = GroqProvider(api_key="test-key", max_retries=0)
        with pytest.raises(TransientProviderError) as exc_info:
            provider.complete("s", "u")
        assert exc_info.value.status_code == 429

    @patch("careerforge.providers.groq_provider.Groq")
    def test_unauthorized_is_config_error(self, mock_groq):
        client = mock_groq.return_value
        client.chat.completions.create.side_effect = groq.APIStatusError(
            "Invalid API Key", response=httpx.Response(401, request=REQUEST), body=None
        )

        provider = GroqProvider(api_key="test-key", max_retries=3)
        with pytest.raises(ConfigError):
            provider.complete("s", "u")
        assert client.chat.completions.create.call_count == 1

    @patch("careerforge.providers.groq_provider.Groq")
    def test_timeout_is_transient(self, mock_groq):
        client = mock_groq.return_value
        client.chat.completions.create.side_effect = groq.APITimeoutError(request=REQUEST)

        provider = GroqProvider(api_key="test-key", max_retries=0)
        with pytest.raises(TransientProviderError):
            provider.complete("s", "u")

    @patch("careerforge.providers.groq_provider.Groq")
    def test_no_choices_is_empty_error(self, mock_groq):
        mock_groq.return_value.chat.completions.create.return_value = SimpleNamespace(choices=[])

        provider = GroqProvider(api_key="test-key", max_retries=0)
        with pytest.raises(PermanentProviderError):
            provider.complete("s", "u")


class TestOpenRouterProvider:
    """Tests for OpenRouterProvider."""

    @patch("careerforge.providers.openrouter_provider.OpenAI")
    def test_attribution_headers_and_reasoning(self, mock_openai):
        client = mock_openai.return_value
        client.chat.completions.create.return_value = chat_response("Routed answer")

        provider = OpenRouterProvider(
            api_key="test-key",
            max_retries=0,
            enable_reasoning=True,
            site_url="https://careerforge.example",
            app_title="CareerForge",
        )
        assert provider.complete("s", "u") == "Routed answer"

        init_kwargs = mock_openai.call_args.kwargs
        assert init_kwargs["base_url"] == "https://openrouter.ai/api/v1"
        assert init_kwargs["default_headers"] == {
            "HTTP-Referer": "https://careerforge.example",
            "X-Title": "CareerForge",
        }
        create_kwargs = client.chat.completions.create.call_args.kwargs
        assert create_kwargs["extra_body"] == {"reasoning": {"enabled": True}}
        assert create_kwargs["model"] == "stepfun/step-3.5-flash:free"

    @patch("careerforge.providers.openrouter_provider.OpenAI")
    def test_no_reasoning_body_by_default(self, mock_openai):
        client = mock_openai.return_value
        client.chat.completions.create.return_value = chat_response("x")

        OpenRouterProvider(api_key="test-key", max_retries=0).complete("s", "u")
        assert "extra_body" not in client.chat.completions.create.call_args.kwargs
        assert mock_openai.call_args.kwargs["default_headers"] == {}

    @patch("careerforge.providers.openrouter_provider.OpenAI")
    def test_server_error_is_transient(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIStatusError(
            "Upstream error", response=httpx.Response(502, request=REQUEST), body=None
        )

        provider = OpenRouterProvider(api_key="test-key", max_retries=0)
        with pytest.raises(TransientProviderError):
            provider.complete("s", "u")

    @patch("careerforge.providers.openrouter_provider.OpenAI")
    def test_connection_error_is_transient(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIConnectionError(
            request=REQUEST
        )

        provider = OpenRouterProvider(api_key="test-key", max_retries=0)
        with pytest.raises(TransientProviderError):
            provider.complete("s", "u")


def gemini_error(cls, code, message):
    status = "NOT_FOUND" if code == 404 else "INTERNAL"
    return cls(code, {"error": {"code": code, "message": message, "status": status}})


class TestGeminiHelpers:
    """Tests for Gemini helper functions."""

    def test_normalize_model(self):
        assert normalize_model("gemini-1.5-flash") == "models/gemini-1.5-flash"
        assert normalize_model("models/gemini-1.5-pro") == "models/gemini-1.5-pro"
        assert normalize_model('  "gemini-2.0-flash" ') == "models/gemini-2.0-flash"
        assert normalize_model("") == "models/gemini-1.5-flash"

    def test_fold_system_prompt(self):
        assert fold_system_prompt("Be kind", "Hi") == "SYSTEM:\nBe kind\n\nUSER:\nHi"
        assert fold_system_prompt("", "Hi") == "Hi"


class TestGeminiProvider:
    """Tests for GeminiProvider API-version walking."""

    def _provider_with_clients(self, mock_client_cls, clients):
        mock_client_cls.side_effect = lambda api_key, http_options: clients[http_options.api_version]
        return GeminiProvider(api_key="test-key", model="gemini-1.5-flash", max_retries=0)

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_first_version_success(self, mock_client_cls):
        v1 = MagicMock()
        v1.models.generate_content.return_value = SimpleNamespace(text="v1 answer")
        provider = self._provider_with_clients(mock_client_cls, {"v1": v1, "v1beta": MagicMock()})

        assert provider.complete("sys", "user") == "v1 answer"
        kwargs = v1.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "models/gemini-1.5-flash"
        assert kwargs["contents"] == "SYSTEM:\nsys\n\nUSER:\nuser"

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_not_found_moves_to_next_version(self, mock_client_cls):
        v1 = MagicMock()
        v1.models.generate_content.side_effect = gemini_error(genai_errors.ClientError, 404, "not found")
        v1beta = MagicMock()
        v1beta.models.generate_content.return_value = SimpleNamespace(text="beta answer")
        provider = self._provider_with_clients(mock_client_cls, {"v1": v1, "v1beta": v1beta})

        assert provider.complete("sys", "user") == "beta answer"

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_server_error_does_not_try_next_version(self, mock_client_cls):
        v1 = MagicMock()
        v1.models.generate_content.side_effect = gemini_error(genai_errors.ServerError, 500, "boom")
        v1beta = MagicMock()
        provider = self._provider_with_clients(mock_client_cls, {"v1": v1, "v1beta": v1beta})

        with pytest.raises(TransientProviderError):
            provider.complete("sys", "user")
        v1beta.models.generate_content.assert_not_called()

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_all_versions_not_found_lists_models(self, mock_client_cls):
        v1 = MagicMock()
        v1.models.generate_content.side_effect = gemini_error(genai_errors.ClientError, 404, "not found")
        v1.models.list.return_value = [SimpleNamespace(name="models/gemini-2.0-flash")]
        v1beta = MagicMock()
        v1beta.models.generate_content.side_effect = gemini_error(genai_errors.ClientError, 404, "not found")
        v1beta.models.list.return_value = [
            SimpleNamespace(name="models/gemini-2.0-flash"),
            SimpleNamespace(name="models/gemini-2.5-pro"),
        ]
        provider = self._provider_with_clients(mock_client_cls, {"v1": v1, "v1beta": v1beta})

        with pytest.raises(FormatError) as exc_info:
            provider.complete("sys", "user")
        message = str(exc_info.value)
        assert "models/gemini-2.0-flash, models/gemini-2.5-pro" in message
        assert "GEMINI_MODEL" in message

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_listing_failure_keeps_original_error(self, mock_client_cls):
        clients = {}
        for version in ("v1", "v1beta"):
            client = MagicMock()
            client.models.generate_content.side_effect = gemini_error(
                genai_errors.ClientError, 404, "models/gemini-1.5-flash is not found"
            )
            client.models.list.side_effect = RuntimeError("listing down")
            clients[version] = client
        provider = self._provider_with_clients(mock_client_cls, clients)

        with pytest.raises(FormatError) as exc_info:
            provider.complete("sys", "user")
        assert "is not found" in str(exc_info.value)
        assert exc_info.value.status_code == 404

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_timeout_is_transient(self, mock_client_cls):
        v1 = MagicMock()
        v1.models.generate_content.side_effect = httpx.ReadTimeout("slow", request=REQUEST)
        provider = self._provider_with_clients(mock_client_cls, {"v1": v1, "v1beta": MagicMock()})

        with pytest.raises(TransientProviderError):
            provider.complete("sys", "user")

    @patch("time.sleep")
    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_retry_starts_at_answering_version(self, mock_client_cls, mock_sleep):
        v1 = MagicMock()
        v1.models.generate_content.side_effect = gemini_error(genai_errors.ClientError, 404, "not found")
        v1beta = MagicMock()
        v1beta.models.generate_content.side_effect = [
            gemini_error(genai_errors.ServerError, 503, "overloaded"),
            SimpleNamespace(text="beta answer"),
        ]
        clients = {"v1": v1, "v1beta": v1beta}
        mock_client_cls.side_effect = lambda api_key, http_options: clients[http_options.api_version]
        provider = GeminiProvider(api_key="test-key", model="gemini-1.5-flash", max_retries=1)

        assert provider.complete("sys", "user") == "beta answer"
        assert v1.models.generate_content.call_count == 1
        assert v1beta.models.generate_content.call_count == 2

    @patch("careerforge.providers.gemini_provider.genai.Client")
    def test_exhausted_call_walks_all_versions_again(self, mock_client_cls):
        clients = {}
        for version in ("v1", "v1beta"):
            client = MagicMock()
            client.models.generate_content.side_effect = gemini_error(genai_errors.ClientError, 404, "not found")
            client.models.list.return_value = []
            clients[version] = client
        provider = self._provider_with_clients(mock_client_cls, clients)

        for _ in range(2):
            with pytest.raises(FormatError):
                provider.complete("sys", "user")
        assert clients["v1"].models.generate_content.call_count == 2


class TestProviderFactory:
    """Tests for provider factory functions."""

    @patch.dict(os.environ, {"GROQ_API_KEY": "test-key"})
    def test_create_provider(self):
        candidate = ProviderCandidate(provider="groq", model="llama-3.1-8b-instant")
        provider = create_provider(candidate, make_config())
        assert isinstance(provider, GroqProvider)
        assert provider.model == "llama-3.1-8b-instant"
        assert provider.max_retries == 0

    @patch.dict(os.environ, {"STEP_API_KEY": "test-key"})
    def test_create_provider_passes_extras(self):
        config = make_config(providers={
            "openrouter": {"api_key_env": "STEP_API_KEY", "enable_reasoning": True, "app_title": "CareerForge"},
        })
        candidate = ProviderCandidate(provider="openrouter", model="stepfun/step-3.5-flash:free")
        provider = create_provider(candidate, config)
        assert isinstance(provider, OpenRouterProvider)
        assert provider.enable_reasoning is True

    @patch.dict(os.environ, {}, clear=True)
    def test_create_provider_missing_api_key(self):
        candidate = ProviderCandidate(provider="gemini", model="gemini-1.5-flash")
        with pytest.raises(ConfigError) as exc_info:
            create_provider(candidate, make_config())
        assert "GEMINI_API_KEY" in str(exc_info.value)

    def test_create_provider_unknown_provider(self):
        candidate = ProviderCandidate(provider="unknown_provider", model="m")
        with pytest.raises(ConfigError) as exc_info:
            create_provider(candidate, make_config())
        assert "unknown provider" in str(exc_info.value).lower()

    @patch.dict(os.environ, {"GROQ_MODEL": "llama-3.3-70b-versatile"})
    def test_model_env_override(self):
        candidates = resolve_candidates("chat_query", make_config())
        assert candidates[0].model == "llama-3.3-70b-versatile"
        assert candidates[1].model == "stepfun/step-3.5-flash:free"

    def test_missing_chain_is_config_error(self):
        with pytest.raises(ConfigError):
            resolve_candidates("chat_query", make_config(fallback_chain={}))
