"""OpenAI-compatible text generation client (OpenRouter by default)."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from newsdeck.config import settings
from newsdeck.services import logger as log_service

LOCAL_HOSTS = ("localhost", "127.0.0.1", "0.0.0.0", "host.docker.internal")


class GenerationError(RuntimeError):
    """The language model call failed or produced nothing usable."""


@dataclass(frozen=True)
class ModelConfig:
    model: str
    max_tokens: int = 1024
    temperature: float = 0.7


def get_model() -> str:
    """Get the active model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


def default_model_config() -> ModelConfig:
    return ModelConfig(
        model=get_model(),
        max_tokens=int(settings.llm_max_tokens),
        temperature=float(settings.llm_temperature),
    )


def _is_local_endpoint(base_url: str) -> bool:
    return (urlparse(base_url).hostname or "") in LOCAL_HOSTS


def credentials_configured() -> bool:
    """Remote gateways need a key; a local Ollama-style endpoint does not."""
    if settings.openrouter_api_key.strip():
        return True
    return _is_local_endpoint(settings.openrouter_base_url)


def _temperature_for_model(model: str, requested: float) -> float:
    # Some OpenAI GPT-5-compatible gateways only accept the default temperature.
    if "gpt-5" in (model or "").lower():
        return 1
    return requested


def get_client() -> Any:
    """Get an AsyncOpenAI client pointed at the configured gateway."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        # The SDK refuses an empty key; local endpoints ignore it.
        api_key=settings.openrouter_api_key or "local",
        base_url=base_url,
    )


_client: Any | None = None


def client() -> Any:
    """Get or create the shared client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


class TextGenerator:
    """Single request/response text generation. No streaming."""

    def __init__(self, openai_client: Any | None = None, *, config: ModelConfig | None = None):
        self._client = openai_client
        self.config = config

    def is_configured(self) -> bool:
        return self._client is not None or credentials_configured()

    async def generate(
        self,
        prompt_or_messages: str | list[dict[str, str]],
        config: ModelConfig | None = None,
        *,
        caller: str = "generate",
    ) -> str:
        model_config = config or self.config or default_model_config()
        if isinstance(prompt_or_messages, str):
            messages = [{"role": "user", "content": prompt_or_messages}]
        else:
            messages = list(prompt_or_messages)

        openai_client = self._client or client()
        started = time.monotonic()
        try:
            response = await openai_client.chat.completions.create(
                model=model_config.model,
                messages=messages,
                max_tokens=model_config.max_tokens,
                temperature=_temperature_for_model(model_config.model, model_config.temperature),
            )
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log_service.log_llm_call(
                model=model_config.model,
                caller=caller,
                duration_ms=int((time.monotonic() - started) * 1000),
                status="error",
                error=message,
            )
            raise GenerationError(message) from exc

        choices = getattr(response, "choices", None) or []
        text = ""
        if choices:
            text = (getattr(choices[0].message, "content", None) or "").strip()

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=model_config.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - started) * 1000),
            status="success" if text else "empty",
        )
        if not text:
            raise GenerationError("The language model returned an empty response")
        return text
