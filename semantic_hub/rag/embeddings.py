from __future__ import annotations

"""Embedding providers, vector normalization and the provider fallback chain."""

import hashlib
import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import openai

logger = logging.getLogger(__name__)

_MOCK_MAGNITUDE = 1e-3


class EmbeddingError(RuntimeError):
    """Raised when a single embedding backend fails or answers with garbage."""
    pass


class EmbeddingConfigError(RuntimeError):
    """Raised when embedding configuration is invalid."""
    pass


class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""
    name: str

    def embed(self, text: str) -> list[float]:
        """Return the provider's raw vector for the text."""
        raise NotImplementedError


def mock_embedding(dimension: int, seed: int | None = None) -> list[float]:
    """Return a low-magnitude pseudo-random vector of the given length."""
    rng = random.Random(seed)
    return [rng.random() * _MOCK_MAGNITUDE for _ in range(dimension)]


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_numeric_vector(vector: object) -> bool:
    """Return True for a non-empty sequence of finite numbers."""
    if isinstance(vector, (str, bytes)) or not isinstance(vector, Sequence):
        return False
    if not vector:
        return False
    return all(_is_number(value) for value in vector)


def normalize_vector(vector: object, dimension: int) -> list[float]:
    """Coerce a provider vector to exactly ``dimension`` floats.

    Longer vectors are truncated, shorter ones are right-padded with zeros and
    anything that is not a numeric sequence becomes a mock vector.
    """
    if dimension <= 0:
        raise EmbeddingConfigError("Embedding dimension must be greater than zero")
    if not is_numeric_vector(vector):
        return mock_embedding(dimension)
    values = [float(value) for value in vector[:dimension]]
    if len(values) < dimension:
        values.extend([0.0] * (dimension - len(values)))
    return values


def _dig(payload: Any, *path: str | int) -> Any:
    """Walk dict keys, list indexes or attributes; return None on any miss."""
    current = payload
    for step in path:
        if current is None:
            return None
        if isinstance(step, int):
            if isinstance(current, (list, tuple)) and len(current) > step:
                current = current[step]
            else:
                return None
        elif isinstance(current, dict):
            current = current.get(step)
        else:
            current = getattr(current, step, None)
    return current


_VECTOR_PATHS: tuple[tuple[str | int, ...], ...] = (
    ("embedding", "values"),
    ("embedding",),
    ("embeddings", 0, "values"),
    ("embeddings", 0),
    ("results", 0, "embedding", "values"),
    ("data", 0, "embedding"),
)


def extract_vector(payload: Any) -> list[float]:
    """Find the embedding vector in any of the known response shapes."""
    for path in _VECTOR_PATHS:
        candidate = _dig(payload, *path)
        if isinstance(candidate, (list, tuple)) and candidate:
            return list(candidate)
    raise EmbeddingError("Embedding response has no recognizable vector")


@dataclass
class MockEmbedder:
    """Offline embedder; identical text always yields the identical vector."""
    dimension: int = 1536
    name: str = field(default="mock", init=False)

    def embed(self, text: str) -> list[float]:
        digest = hashlib.sha256(str(text).encode("utf-8")).digest()
        return mock_embedding(self.dimension, seed=int.from_bytes(digest[:8], "big"))


def resolve_openai_dimension(model: str) -> int | None:
    """Return the native dimension of a known OpenAI embedding model."""
    mapping = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    return mapping.get(model)


@dataclass
class OpenAIEmbedder:
    """Embedding provider using the OpenAI embeddings API.

    The first request asks for ``dimension`` components; models that reject the
    hint are retried once without it.
    """
    api_key: str
    model: str
    dimension: int
    base_url: str = "https://api.openai.com/v1"
    timeout: float = 30.0
    client: Any = field(default=None, repr=False)
    name: str = field(default="openai", init=False)

    def __post_init__(self) -> None:
        if not self.api_key:
            raise EmbeddingConfigError("OPENAI_API_KEY is required for OpenAIEmbedder")
        if not self.model:
            raise EmbeddingConfigError("OPENAI_EMBEDDING_MODEL is required for OpenAIEmbedder")
        if self.client is None:
            self.client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )

    def embed(self, text: str) -> list[float]:
        """Embed text using the OpenAI embeddings API."""
        try:
            try:
                response = self._create(text, dimensions=self.dimension)
            except openai.BadRequestError:
                logger.warning(
                    "embedding_retry_without_dimensions",
                    extra={"provider": self.name, "model": self.model},
                )
                response = self._create(text)
        except openai.OpenAIError as exc:
            raise EmbeddingError(f"OpenAI embedding failed: {type(exc).__name__}") from exc
        return extract_vector(response)

    def _create(self, text: str, **kwargs: Any) -> Any:
        return self.client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
            **kwargs,
        )


def _is_request_shape_error(exc: Exception) -> bool:
    """True when the backend rejected the request itself rather than failing."""
    if isinstance(exc, TypeError):
        return True
    return getattr(exc, "code", None) == 400


@dataclass
class GeminiEmbedder:
    """Embedding provider using the Gemini embeddings API."""
    api_key: str
    model: str
    dimension: int
    timeout: float = 30.0
    client: Any = field(default=None, repr=False)
    name: str = field(default="gemini", init=False)

    def __post_init__(self) -> None:
        if not self.api_key:
            raise EmbeddingConfigError("GEMINI_API_KEY is required for GeminiEmbedder")
        if not self.model:
            raise EmbeddingConfigError("GEMINI_EMBEDDING_MODEL is required for GeminiEmbedder")
        if self.client is None:
            try:
                import google.generativeai as genai
            except ImportError as exc:
                raise EmbeddingConfigError(
                    "google-generativeai package is required for GeminiEmbedder"
                ) from exc
            genai.configure(api_key=self.api_key)
            self.client = genai

    def embed(self, text: str) -> list[float]:
        """Embed text, dropping the dimensionality hint if the model rejects it."""
        try:
            result = self._embed_content(text, output_dimensionality=self.dimension)
        except Exception as exc:
            if not _is_request_shape_error(exc):
                raise EmbeddingError(f"Gemini embedding failed: {type(exc).__name__}") from exc
            logger.warning(
                "embedding_retry_without_dimensions",
                extra={"provider": self.name, "model": self.model},
            )
            try:
                result = self._embed_content(text)
            except Exception as retry_exc:
                raise EmbeddingError(
                    f"Gemini embedding failed: {type(retry_exc).__name__}"
                ) from retry_exc
        return extract_vector(result)

    def _embed_content(self, text: str, **kwargs: Any) -> Any:
        model = self.model if self.model.startswith("models/") else f"models/{self.model}"
        return self.client.embed_content(
            model=model,
            content=text,
            request_options={"timeout": self.timeout},
            **kwargs,
        )


@dataclass
class OllamaEmbedder:
    """Embedding provider backed by a local Ollama server."""
    base_url: str
    model: str
    timeout: float = 30.0
    transport: httpx.BaseTransport | None = field(default=None, repr=False)
    name: str = field(default="ollama", init=False)

    def embed(self, text: str) -> list[float]:
        """Embed via ``/api/embed``, falling back to the legacy ``/api/embeddings``."""
        base_url = self.base_url.rstrip("/")
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    f"{base_url}/api/embed",
                    json={"model": self.model, "input": text},
                )
                if response.status_code == 404:
                    logger.warning(
                        "embedding_retry_legacy_endpoint",
                        extra={"provider": self.name, "model": self.model},
                    )
                    response = client.post(
                        f"{base_url}/api/embeddings",
                        json={"model": self.model, "prompt": text},
                    )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EmbeddingError(f"Ollama embedding failed: {type(exc).__name__}") from exc
        return extract_vector(data)


@dataclass
class EmbeddingChain:
    """Ordered embedding providers tried until one returns a usable vector.

    ``embed`` never raises: when every provider fails, or none is configured,
    the mock embedder answers. Every result is normalized to ``dimension``.
    """
    dimension: int
    providers: list[EmbeddingProvider] = field(default_factory=list)
    fallback: MockEmbedder = field(init=False)

    def __post_init__(self) -> None:
        if self.dimension <= 0:
            raise EmbeddingConfigError("EMBEDDING_DIMENSION must be greater than zero")
        self.fallback = MockEmbedder(dimension=self.dimension)

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    def embed(self, text: str) -> list[float]:
        if not isinstance(text, str) or not text:
            return normalize_vector(self.fallback.embed(text), self.dimension)
        for provider in self.providers:
            try:
                vector = provider.embed(text)
            except Exception as exc:
                logger.warning(
                    "embedding_provider_failed",
                    extra={"provider": provider.name, "error": type(exc).__name__},
                )
                continue
            if not is_numeric_vector(vector):
                logger.warning(
                    "embedding_provider_invalid_vector",
                    extra={"provider": provider.name},
                )
                continue
            return normalize_vector(vector, self.dimension)
        if self.providers:
            logger.warning(
                "embedding_fallback_mock",
                extra={"providers": self.provider_names},
            )
        return normalize_vector(self.fallback.embed(text), self.dimension)


@dataclass(frozen=True)
class EmbeddingConfigReport:
    """Summary of the active embedding chain for health endpoints."""
    providers: list[str]
    dimension: int
    status: str
    detail: str | None = None


def describe_embedding_chain(chain: EmbeddingChain) -> EmbeddingConfigReport:
    """Report which providers the chain will try."""
    if not chain.providers:
        return EmbeddingConfigReport(
            providers=[],
            dimension=chain.dimension,
            status="degraded",
            detail="No embedding backend configured; mock embeddings are used.",
        )
    return EmbeddingConfigReport(
        providers=chain.provider_names,
        dimension=chain.dimension,
        status="ok",
    )


def parse_provider_order(raw: str) -> list[str]:
    """Split a comma separated provider list into normalized names."""
    return [value.strip().lower() for value in raw.split(",") if value.strip()]


def build_embedding_chain(
    order: list[str],
    *,
    dimension: int,
    timeout: float,
    openai_api_key: str | None,
    openai_base_url: str,
    openai_model: str | None,
    gemini_api_key: str | None,
    gemini_model: str | None,
    ollama_base_url: str | None,
    ollama_model: str | None,
) -> EmbeddingChain:
    """Build a chain from the configured priority order.

    A backend is included only when its credentials (or, for Ollama, its base
    URL) are present.
    """
    providers: list[EmbeddingProvider] = []
    for name in order:
        try:
            if name == "openai":
                if not openai_api_key:
                    continue
                native = resolve_openai_dimension(openai_model or "")
                if native is not None and native != dimension:
                    logger.info(
                        "embedding_dimension_adjusted",
                        extra={"model": openai_model, "native": native, "dimension": dimension},
                    )
                providers.append(
                    OpenAIEmbedder(
                        api_key=openai_api_key,
                        model=openai_model or "",
                        dimension=dimension,
                        base_url=openai_base_url,
                        timeout=timeout,
                    )
                )
            elif name in {"gemini", "google"}:
                if not gemini_api_key:
                    continue
                providers.append(
                    GeminiEmbedder(
                        api_key=gemini_api_key,
                        model=gemini_model or "",
                        dimension=dimension,
                        timeout=timeout,
                    )
                )
            elif name == "ollama":
                if not ollama_base_url:
                    continue
                providers.append(
                    OllamaEmbedder(
                        base_url=ollama_base_url,
                        model=ollama_model or "",
                        timeout=timeout,
                    )
                )
            else:
                logger.warning("embedding_provider_unknown", extra={"provider": name})
        except EmbeddingConfigError as exc:
            logger.error(
                "embedding_provider_misconfigured",
                extra={"provider": name, "detail": str(exc)},
            )
    return EmbeddingChain(dimension=dimension, providers=providers)
