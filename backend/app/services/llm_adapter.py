"""
Vendor-agnostic LLM Adapter.

Every provider is reached through the same ``complete(messages, max_tokens,
temperature)`` call and returns an LLMResponse with token usage, so callers
can meter usage and fall back without knowing which vendor answered.
Prompts are scrubbed by the caller before they reach an adapter.
"""
import hashlib
from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime, timezone

import httpx
from google import genai
from google.genai import types as genai_types
from pydantic import BaseModel, Field

from backend.app.core.config import get_settings
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-haiku-20240307",
    "gemini": "gemini-2.0-flash",
    "on-prem": "llama3",
    "mock": "mock-1",
}


class ChatMessage(BaseModel):
    role: str  # system | user | assistant
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMResponse(BaseModel):
    """Standardised response from any LLM adapter."""
    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model_version: str
    prompt_hash: str
    timestamp: datetime
    provider: str


class LLMAdapterConfig(BaseModel):
    """Configuration for an LLM adapter instance."""
    provider: str
    model_name: str
    api_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    timeout_seconds: float = 60.0


class LLMProviderError(Exception):
    """Provider is misconfigured or returned an unusable response."""


class LLMAdapter(ABC):
    """Abstract base class for LLM adapters."""

    def __init__(self, config: LLMAdapterConfig):
        self.config = config

    @abstractmethod
    async def complete(
        self, messages: List[ChatMessage], max_tokens: int = 1000, temperature: float = 0.7
    ) -> LLMResponse:
        """Send a chat transcript to the model and return its reply."""
        ...

    def compute_prompt_hash(self, messages: List[ChatMessage]) -> str:
        """SHA-256 of the transcript, truncated, for audit logging."""
        joined = "\n".join(f"{m.role}:{m.content}" for m in messages)
        return hashlib.sha256(joined.encode()).hexdigest()[:16]

    @property
    def model_version(self) -> str:
        return f"{self.config.provider}/{self.config.model_name}"

    def _response(self, messages: List[ChatMessage], content: str, prompt_tokens: int, completion_tokens: int) -> LLMResponse:
        return LLMResponse(
            content=content or "",
            usage=TokenUsage(prompt_tokens=prompt_tokens or 0, completion_tokens=completion_tokens or 0),
            model_version=self.model_version,
            prompt_hash=self.compute_prompt_hash(messages),
            timestamp=datetime.now(timezone.utc),
            provider=self.config.provider,
        )

    def _require_key(self) -> str:
        if not self.config.api_key:
            raise LLMProviderError(f"No API key configured for provider '{self.config.provider}'")
        return self.config.api_key


class OpenAIAdapter(LLMAdapter):
    """OpenAI chat completions over HTTPS."""

    async def complete(self, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        api_key = self._require_key()
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            resp = await client.post(
                self.config.endpoint_url or "https://api.openai.com/v1/chat/completions",
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "model": self.config.model_name,
                    "messages": [m.model_dump() for m in messages],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        choices = data.get("choices") or [{}]
        usage = data.get("usage") or {}
        return self._response(
            messages,
            choices[0].get("message", {}).get("content", ""),
            usage.get("prompt_tokens", 0),
            usage.get("completion_tokens", 0),
        )


class AnthropicAdapter(LLMAdapter):
    """Anthropic Messages API over HTTPS; system turns go in the top-level system field."""

    async def complete(self, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        api_key = self._require_key()
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        turns = [m.model_dump() for m in messages if m.role != "system"]
        payload = {
            "model": self.config.model_name,
            "messages": turns,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            payload["system"] = system

        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            resp = await client.post(
                self.config.endpoint_url or "https://api.anthropic.com/v1/messages",
                headers={"x-api-key": api_key, "anthropic-version": "2023-06-01"},
                json=payload,
            )
            resp.raise_for_status()
            data = resp.json()
        text = "".join(block.get("text", "") for block in data.get("content", []) if block.get("type") == "text")
        usage = data.get("usage") or {}
        return self._response(messages, text, usage.get("input_tokens", 0), usage.get("output_tokens", 0))


class GeminiAdapter(LLMAdapter):
    """Google Gemini implementation."""

    async def complete(self, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        client = genai.Client(api_key=self._require_key())
        system = "\n\n".join(m.content for m in messages if m.role == "system") or None
        contents = "\n\n".join(m.content for m in messages if m.role != "system")
        response = await client.aio.models.generate_content(
            model=self.config.model_name,
            contents=contents,
            config=genai_types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        usage = response.usage_metadata
        return self._response(
            messages,
            response.text or "",
            getattr(usage, "prompt_token_count", 0) if usage else 0,
            getattr(usage, "candidates_token_count", 0) if usage else 0,
        )


class OnPremAdapter(LLMAdapter):
    """Adapter for on-premises LLMs exposing an OpenAI-compatible endpoint (vLLM, Ollama, TGI)."""

    async def complete(self, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        if not self.config.endpoint_url:
            raise LLMProviderError("ONPREM_LLM_URL is not configured")
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            resp = await client.post(
                f"{self.config.endpoint_url.rstrip('/')}/v1/chat/completions",
                json={
                    "model": self.config.model_name,
                    "messages": [m.model_dump() for m in messages],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        choices = data.get("choices") or [{}]
        usage = data.get("usage") or {}
        return self._response(
            messages,
            choices[0].get("message", {}).get("content", ""),
            usage.get("prompt_tokens", 0),
            usage.get("completion_tokens", 0),
        )


class MockAdapter(LLMAdapter):
    """Offline stand-in for development. Replies in prose, never in task JSON."""

    async def complete(self, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        return self._response(
            messages,
            "I reviewed the sales data but have no structured recommendations in mock mode.",
            50,
            20,
        )


_ADAPTERS = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
    "gemini": GeminiAdapter,
    "on-prem": OnPremAdapter,
    "mock": MockAdapter,
}


def provider_configured(provider: Optional[str] = None) -> bool:
    settings = get_settings()
    name = (provider or settings.ai_provider or "none").lower()
    return name in _ADAPTERS


def get_adapter(provider: Optional[str] = None) -> LLMAdapter:
    """
    Factory function. Returns the adapter for ``provider`` or, when omitted,
    for the AI_PROVIDER setting.
    """
    settings = get_settings()
    name = (provider or settings.ai_provider or "none").lower()
    adapter_cls = _ADAPTERS.get(name)
    if adapter_cls is None:
        raise ValueError(f"Unknown LLM provider: {name}")

    api_keys = {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
        "gemini": settings.gemini_api_key,
    }
    return adapter_cls(LLMAdapterConfig(
        provider=name,
        model_name=settings.ai_model or DEFAULT_MODELS[name],
        api_key=api_keys.get(name),
        endpoint_url=settings.onprem_llm_url if name == "on-prem" else None,
        timeout_seconds=settings.ai_request_timeout_seconds,
    ))
