"""Text generation backends.

Two implementations of the same interface:
- LangChainTextGenerator: any LangChain chat model (Anthropic by default)
- OpenAICompatibleTextGenerator: raw HTTP against an OpenAI-compatible
  ``/chat/completions`` endpoint (e.g. Moonshot), including SSE streaming

Failures are raised as UpstreamError and never retried here.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass

import requests
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, ValidationError

from config.settings import Settings
from indexqa.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    user_message: str
    max_tokens: int = 2048
    temperature: float = 0.7


class TextGenerator(ABC):
    """Interface for an external text-generation model."""

    @abstractmethod
    def complete(self, request: GenerationRequest) -> str:
        """Return the full generated text."""
        ...

    @abstractmethod
    def stream(self, request: GenerationRequest) -> Iterator[str]:
        """Yield text fragments in arrival order.

        Closing the iterator early stops consuming the upstream stream.
        """
        ...


def _message_text(content) -> str:
    """Plain text from a LangChain message content (str or content blocks)."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class LangChainTextGenerator(TextGenerator):
    """Generation through a LangChain BaseChatModel."""

    def __init__(self, llm: BaseChatModel):
        self._llm = llm

    @staticmethod
    def _messages(request: GenerationRequest) -> list:
        return [
            SystemMessage(content=request.system_prompt),
            HumanMessage(content=request.user_message),
        ]

    def complete(self, request: GenerationRequest) -> str:
        try:
            response = self._llm.invoke(
                self._messages(request),
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except Exception as e:
            raise UpstreamError("Text generation failed", str(e)) from e
        return _message_text(response.content)

    def stream(self, request: GenerationRequest) -> Iterator[str]:
        try:
            for chunk in self._llm.stream(
                self._messages(request),
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            ):
                text = _message_text(chunk.content)
                if text:
                    yield text
        except GeneratorExit:
            raise
        except Exception as e:
            raise UpstreamError("Text generation stream failed", str(e)) from e


class _ChatMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None


class _Choice(BaseModel):
    message: _ChatMessage


class _ChatCompletion(BaseModel):
    choices: list[_Choice]


class _Delta(BaseModel):
    content: str | None = None


class _StreamChoice(BaseModel):
    delta: _Delta = _Delta()


class _ChatCompletionChunk(BaseModel):
    choices: list[_StreamChoice] = []


class OpenAICompatibleTextGenerator(TextGenerator):
    """Client for OpenAI-compatible chat completion APIs."""

    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 60.0):
        if not api_key:
            raise ConfigurationError("API key for the text generation endpoint is not configured")
        self._api_key = api_key
        self._model = model
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._timeout = timeout

    def _post(self, request: GenerationRequest, stream: bool) -> requests.Response:
        body = {
            "model": self._model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_message},
            ],
        }
        if stream:
            body["stream"] = True

        try:
            resp = requests.post(
                self._url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=body,
                timeout=self._timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            raise UpstreamError("Text generation request failed", str(e)) from e

        if not resp.ok:
            detail = resp.text
            resp.close()
            raise UpstreamError(f"Text generation API error (HTTP {resp.status_code})", detail)
        return resp

    def complete(self, request: GenerationRequest) -> str:
        resp = self._post(request, stream=False)
        try:
            payload = _ChatCompletion.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamError("Malformed text generation response", str(e)) from e

        if not payload.choices:
            return ""
        return payload.choices[0].message.content or ""

    def stream(self, request: GenerationRequest) -> Iterator[str]:
        resp = self._post(request, stream=True)
        try:
            for line in resp.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data: "):
                    continue
                data = line[len("data: "):].strip()
                if data == "[DONE]":
                    break
                try:
                    chunk = _ChatCompletionChunk.model_validate(json.loads(data))
                except (ValueError, ValidationError):
                    logger.debug("Skipping malformed stream event: %.80s", data)
                    continue
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except requests.RequestException as e:
            raise UpstreamError("Text generation stream interrupted", str(e)) from e
        finally:
            resp.close()


def get_chat_model(settings: Settings) -> BaseChatModel:
    """Create the configured LangChain chat model.

    Default: Anthropic Claude via langchain-anthropic.
    """
    provider = settings.indexqa_llm_provider.lower()

    if provider == "anthropic":
        if not settings.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured")
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=settings.indexqa_llm_model,
            api_key=settings.anthropic_api_key,
            max_tokens=settings.indexqa_llm_max_tokens,
            timeout=settings.indexqa_request_timeout,
        )
    elif provider == "google":
        if not settings.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY not configured")
        from langchain_google_genai import ChatGoogleGenerativeAI

        return ChatGoogleGenerativeAI(
            model=settings.indexqa_llm_model,
            google_api_key=settings.google_api_key,
            timeout=settings.indexqa_request_timeout,
        )
    else:
        raise ConfigurationError(
            f"Unsupported chat model provider: {provider}. "
            "Supported: 'anthropic', 'google'"
        )


def get_text_generator(settings: Settings) -> TextGenerator:
    """Create the configured text generator. Missing credentials are fatal."""
    if settings.indexqa_llm_provider.lower() == "openai_compatible":
        return OpenAICompatibleTextGenerator(
            api_key=settings.moonshot_api_key,
            model=settings.indexqa_llm_model,
            base_url=settings.indexqa_llm_base_url,
            timeout=settings.indexqa_request_timeout,
        )
    return LangChainTextGenerator(get_chat_model(settings))
