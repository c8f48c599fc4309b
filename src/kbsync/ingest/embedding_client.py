"""Batched embedding calls through LiteLLM.

One provider call per batch; vectors come back in input order, exactly one
per input string. Transport, auth and response-shape problems all surface as
EmbeddingProviderError so callers can isolate a failing batch.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from typing import TypeVar

import litellm

from kbsync.config import EmbeddingCfg
from kbsync.exceptions import ConfigurationError, EmbeddingProviderError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
}


def provider_of(model: str) -> str:
    return model.split("/")[0].lower() if "/" in model else "openai"


def batches(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive groups of at most *size* items."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


class EmbeddingClient:
    """Turn text segments into fixed-dimension vectors via ``litellm.embedding()``.

    Args:
        config: Embedding configuration (model, dimensions, batch size, retries).
    """

    def __init__(self, config: EmbeddingCfg | None = None) -> None:
        self.config = config or EmbeddingCfg()

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def batch_size(self) -> int:
        return self.config.batch_size

    def check_credentials(self) -> None:
        """Raise ConfigurationError if no API key is available for the model's provider."""
        provider = provider_of(self.config.model)
        env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")
        if env_var is None:
            return
        if not os.environ.get(env_var):
            raise ConfigurationError(
                f"No API key found for provider '{provider}'. "
                f"Set the {env_var} environment variable."
            )

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in a single provider call."""
        if not texts:
            return []
        try:
            response = litellm.embedding(
                model=self.config.model,
                input=texts,
                timeout=self.config.timeout_s,
                num_retries=self.config.num_retries,
            )
        except Exception as exc:
            raise EmbeddingProviderError(f"{type(exc).__name__}: {exc}") from exc
        return self._parse(response, len(texts))

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in groups of ``batch_size``; raises on the first failing group."""
        vectors: list[list[float]] = []
        for group in batches(texts, self.config.batch_size):
            vectors.extend(self.embed(group))
        return vectors

    # ------------------------------------------------------------------
    # Response validation
    # ------------------------------------------------------------------

    def _parse(self, response: object, expected: int) -> list[list[float]]:
        data = getattr(response, "data", None)
        if not isinstance(data, list) or len(data) != expected:
            got = len(data) if isinstance(data, list) else "no"
            raise EmbeddingProviderError(
                f"Malformed embedding response: expected {expected} vectors, got {got}"
            )

        items = [_as_dict(item) for item in data]
        if all(isinstance(item.get("index"), int) for item in items):
            items.sort(key=lambda item: item["index"])

        vectors: list[list[float]] = []
        for item in items:
            vector = item.get("embedding")
            if not isinstance(vector, list) or not vector:
                raise EmbeddingProviderError("Malformed embedding response: missing vector")
            if len(vector) != self.config.dimensions:
                raise EmbeddingProviderError(
                    f"Embedding dimension mismatch: model returned {len(vector)}, "
                    f"expected {self.config.dimensions}"
                )
            try:
                vectors.append([float(x) for x in vector])
            except (TypeError, ValueError) as exc:
                raise EmbeddingProviderError(f"Malformed embedding response: {exc}") from exc
        return vectors


def _as_dict(item: object) -> dict:
    if isinstance(item, dict):
        return item
    return {"index": getattr(item, "index", None), "embedding": getattr(item, "embedding", None)}
