from __future__ import annotations

"""Chat/LLM answer synthesizers and their fallback chain."""

from dataclasses import dataclass, field
import asyncio
import logging
from typing import Any, Protocol

import httpx


class LLMError(RuntimeError):
    """Raised when an LLM request fails or its response is unusable."""
    pass


logger = logging.getLogger(__name__)


class AnswerSynthesizer(Protocol):
    """Protocol for chat backends that turn prompts into answer text."""
    name: str

    async def synthesize(self, system_prompt: str, user_prompt: str) -> str:
        """Return generated text; an empty string means no answer."""
        raise NotImplementedError


@dataclass(frozen=True)
class OpenAISynthesizer:
    """Synthesizer backed by OpenAI chat completions."""
    api_key: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    name: str = field(default="openai", init=False)

    async def synthesize(self, system_prompt: str, user_prompt: str) -> str:
        """Generate an answer using OpenAI chat completions."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMError(f"OpenAI chat failed: {type(exc).__name__}") from exc

        choices = data.get("choices") or []
        if not choices:
            raise LLMError("Invalid OpenAI response")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if not isinstance(content, str):
            raise LLMError("Invalid OpenAI response content")
        return content.strip()


@dataclass(frozen=True)
class OllamaSynthesizer:
    """Synthesizer backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    name: str = field(default="ollama", init=False)

    async def synthesize(self, system_prompt: str, user_prompt: str) -> str:
        """Generate an answer using Ollama."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMError(f"Ollama chat failed: {type(exc).__name__}") from exc
        message = data.get("message") or {}
        content = message.get("content")
        if not isinstance(content, str):
            raise LLMError("Invalid LLM response")
        return content.strip()


def _gemini_text(response: Any) -> str:
    """Join candidate text parts without tripping ``response.text`` on empty output."""
    candidates = getattr(response, "candidates", None) or []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        text = "".join(getattr(part, "text", "") or "" for part in parts).strip()
        if text:
            return text
    return ""


@dataclass(frozen=True)
class GeminiSynthesizer:
    """Synthesizer backed by Gemini generative models."""
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    client: Any = field(default=None, repr=False, compare=False)
    name: str = field(default="gemini", init=False)

    def __post_init__(self) -> None:
        if self.client is None:
            try:
                import google.generativeai as genai
            except ImportError as exc:
                raise LLMError("google-generativeai is required for GeminiSynthesizer") from exc
            object.__setattr__(self, "client", genai)
        self.client.configure(api_key=self.api_key)

    async def synthesize(self, system_prompt: str, user_prompt: str) -> str:
        """Generate an answer using Gemini.

        The timeout is best-effort: the SDK call is blocking, so a worker thread
        that overruns keeps running after ``wait_for`` gives up on it.
        """
        genai = self.client

        def _run() -> str:
            model = genai.GenerativeModel(self.model, system_instruction=system_prompt)
            response = model.generate_content(
                user_prompt,
                generation_config={
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_tokens,
                },
            )
            return _gemini_text(response)

        try:
            return await asyncio.wait_for(asyncio.to_thread(_run), timeout=self.timeout)
        except Exception as exc:
            raise LLMError(f"Gemini chat failed: {type(exc).__name__}") from exc


@dataclass
class SynthesizerChain:
    """Ordered synthesizers; the first non-empty answer wins.

    ``synthesize`` returns None when no backend is configured or every backend
    failed or answered with nothing.
    """
    synthesizers: list[AnswerSynthesizer] = field(default_factory=list)

    @property
    def provider_names(self) -> list[str]:
        return [synthesizer.name for synthesizer in self.synthesizers]

    async def synthesize(self, system_prompt: str, user_prompt: str) -> str | None:
        if not self.synthesizers:
            logger.warning("synthesis_unavailable")
            return None
        for synthesizer in self.synthesizers:
            try:
                text = await synthesizer.synthesize(system_prompt, user_prompt)
            except Exception as exc:
                logger.warning(
                    "synthesis_provider_failed",
                    extra={"provider": synthesizer.name, "error": type(exc).__name__},
                )
                continue
            if text and text.strip():
                return text.strip()
            logger.warning("synthesis_provider_empty", extra={"provider": synthesizer.name})
        return None


def build_synthesizer_chain(
    order: list[str],
    *,
    openai_api_key: str | None,
    openai_base_url: str,
    openai_model: str | None,
    gemini_api_key: str | None,
    gemini_model: str | None,
    ollama_base_url: str | None,
    ollama_model: str | None,
    temperature: float,
    max_tokens: int,
    timeout: float,
) -> SynthesizerChain:
    """Factory for the synthesizer chain in configured priority order."""
    synthesizers: list[AnswerSynthesizer] = []
    for name in order:
        if name == "openai":
            if not (openai_api_key and openai_model):
                continue
            synthesizers.append(
                OpenAISynthesizer(
                    api_key=openai_api_key,
                    base_url=openai_base_url.rstrip("/"),
                    model=openai_model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout,
                )
            )
        elif name in {"gemini", "google"}:
            if not (gemini_api_key and gemini_model):
                continue
            synthesizers.append(
                GeminiSynthesizer(
                    api_key=gemini_api_key,
                    model=gemini_model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout,
                )
            )
        elif name == "ollama":
            if not (ollama_base_url and ollama_model):
                continue
            synthesizers.append(
                OllamaSynthesizer(
                    base_url=ollama_base_url.rstrip("/"),
                    model=ollama_model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout,
                )
            )
        else:
            logger.warning("synthesis_provider_unknown", extra={"provider": name})
    return SynthesizerChain(synthesizers=synthesizers)
