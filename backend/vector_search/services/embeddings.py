"""
Embedding provider clients.

Supports an external embedding service (``/embed``, ``/embed/batch``) and
the OpenAI embeddings API. Both expose the same ``embed``/``embed_batch``
contract; ``create_provider`` picks one from configuration.
"""

import logging
import re
import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from vector_search.config import Settings
from vector_search.exceptions import (
    ProviderMisconfigured,
    ProviderUnavailable,
    VectorSearchDisabled,
)

logger = logging.getLogger(__name__)

MODE_EMBEDDING_SERVICE = "embedding_service"
MODE_DIRECT_OPENAI = "direct_openai"

HEALTH_TIMEOUT = 5.0

WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class ProviderHealth:
    """Provider status reported to diagnostics."""
    healthy: bool
    mode: str
    model: str | None = None
    dimensions: int | None = None
    ready: bool | None = None
    url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "healthy" if self.healthy else "error",
            "mode": self.mode,
            "model": self.model,
            "dimensions": self.dimensions,
            "ready": self.ready,
            "url": self.url,
            "error": self.error,
        }


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    """Split a sequence into consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def to_vector(value: Any) -> list[float]:
    """Validate a JSON array of numbers and convert it to floats."""
    if not isinstance(value, list) or not value:
        raise ProviderUnavailable("Embedding response contains no vector")
    try:
        return [float(x) for x in value]
    except (TypeError, ValueError):
        raise ProviderUnavailable("Embedding response contains non-numeric values")


class EmbeddingProvider(ABC):
    """Common batching and switch-off handling for embedding providers."""

    mode: str

    def __init__(self, settings: Settings, client: httpx.Client):
        self.settings = settings
        self.client = client
        self.max_batch_size = settings.provider_max_batch_size

    @property
    def model(self) -> str:
        return self.settings.embedding_model

    def embed(self, text: str) -> list[float]:
        """Get the embedding for a single text."""
        self._ensure_enabled()
        logger.debug(f"Requesting embedding ({self.mode}, {len(text)} chars)")
        return self._embed_one(text)

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Get embeddings for many texts, one vector per input in input order.

        Inputs above the per-request cap are sent as sequential sub-batches.
        A failing sub-batch fails the whole call.
        """
        self._ensure_enabled()
        if not texts:
            return []

        logger.debug(f"Requesting batch embeddings ({self.mode}, {len(texts)} texts)")
        vectors: list[list[float]] = []
        for chunk in chunked(list(texts), self.max_batch_size):
            vectors.extend(self._embed_chunk(chunk))
        return vectors

    def close(self) -> None:
        self.client.close()

    def _ensure_enabled(self) -> None:
        if not self.settings.vector_search_enabled:
            raise VectorSearchDisabled("Vector search is disabled in configuration")

    def _post(self, path: str, payload: dict[str, Any], timeout: float) -> Any:
        """POST JSON and return the decoded body, mapping every failure to ProviderUnavailable."""
        try:
            response = self.client.post(path, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            raise ProviderUnavailable(f"Embedding request timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Embedding provider unreachable: {e}") from e

        if response.status_code != 200:
            raise ProviderUnavailable(f"Embedding provider error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailable("Embedding provider returned invalid JSON") from e

    @abstractmethod
    def _embed_one(self, text: str) -> list[float]: ...

    @abstractmethod
    def _embed_chunk(self, texts: Sequence[str]) -> list[list[float]]: ...

    @abstractmethod
    def health(self) -> ProviderHealth: ...


class EmbeddingServiceProvider(EmbeddingProvider):
    """Client for a self-hosted embedding service."""

    mode = MODE_EMBEDDING_SERVICE

    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        if not settings.embedding_service_url:
            raise ProviderMisconfigured("Embedding service URL is not configured")
        self.base_url = settings.embedding_service_url
        super().__init__(
            settings,
            client or httpx.Client(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
            ),
        )

    def _embed_one(self, text: str) -> list[float]:
        data = self._post("/embed", {"text": text}, self.settings.embedding_timeout)
        if not isinstance(data, dict) or "embedding" not in data:
            raise ProviderUnavailable("Embedding service response is missing 'embedding'")
        return to_vector(data["embedding"])

    def _embed_chunk(self, texts: Sequence[str]) -> list[list[float]]:
        data = self._post("/embed/batch", {"texts": list(texts)}, self.settings.batch_timeout)
        if not isinstance(data, dict) or not isinstance(data.get("embeddings"), list):
            raise ProviderUnavailable("Embedding service response is missing 'embeddings'")

        embeddings = data["embeddings"]
        if len(embeddings) != len(texts):
            raise ProviderUnavailable(
                f"Embedding service returned {len(embeddings)} vectors for {len(texts)} texts"
            )
        return [to_vector(e) for e in embeddings]

    def health(self) -> ProviderHealth:
        """Query ``GET /health``; never raises."""
        try:
            response = self.client.get("/health", timeout=HEALTH_TIMEOUT)
        except httpx.HTTPError as e:
            return ProviderHealth(
                healthy=False, mode=self.mode, url=self.base_url,
                error=f"Cannot connect to embedding service: {e}",
            )

        if response.status_code != 200:
            return ProviderHealth(
                healthy=False, mode=self.mode, url=self.base_url,
                error=f"Service returned status: {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        return ProviderHealth(
            healthy=True,
            mode=self.mode,
            url=self.base_url,
            model=data.get("model"),
            dimensions=data.get("dimensions"),
            ready=data.get("ready"),
        )


def sanitize_input(text: str, max_chars: int) -> str:
    """Drop control characters, collapse whitespace and cap the length."""
    cleaned = "".join(
        " " if unicodedata.category(ch) == "Cc" else ch
        for ch in text
    )
    cleaned = WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:max_chars].rstrip()


class OpenAIProvider(EmbeddingProvider):
    """Client for the OpenAI embeddings API."""

    mode = MODE_DIRECT_OPENAI

    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        if not settings.openai_api_key:
            raise ProviderMisconfigured("OpenAI API key is not configured")
        super().__init__(
            settings,
            client or httpx.Client(
                base_url=settings.openai_api_url,
                headers={
                    "Authorization": f"Bearer {settings.openai_api_key}",
                    "Content-Type": "application/json",
                },
            ),
        )
        logger.info(
            f"OpenAI embedding client initialized (model={self.model}, "
            f"dimensions={settings.embedding_dimensions})"
        )

    def zero_vector(self) -> list[float]:
        return [0.0] * self.settings.embedding_dimensions

    def _embed_one(self, text: str) -> list[float]:
        return self._request(
            [text], self.settings.embedding_timeout
        )[0]

    def _embed_chunk(self, texts: Sequence[str]) -> list[list[float]]:
        return self._request(texts, self.settings.batch_timeout)

    def _request(self, texts: Sequence[str], timeout: float) -> list[list[float]]:
        """
        Embed texts, substituting a zero vector for inputs that sanitize to empty.

        Empty inputs are left out of the request so one bad product cannot fail
        the whole batch.
        """
        cleaned = [sanitize_input(t, self.settings.max_input_chars) for t in texts]
        positions = [i for i, t in enumerate(cleaned) if t]

        results: list[list[float]] = [self.zero_vector() for _ in texts]
        if len(positions) < len(texts):
            logger.warning(
                f"{len(texts) - len(positions)} input(s) empty after sanitizing; using zero vectors"
            )
        if not positions:
            return results

        data = self._post(
            "/embeddings",
            {"model": self.model, "input": [cleaned[i] for i in positions]},
            timeout,
        )
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise ProviderUnavailable("OpenAI response is missing 'data'")

        items = data["data"]
        if len(items) != len(positions):
            raise ProviderUnavailable(
                f"OpenAI returned {len(items)} embeddings for {len(positions)} inputs"
            )

        seen: set[int] = set()
        for fallback_index, item in enumerate(items):
            if not isinstance(item, dict):
                raise ProviderUnavailable("OpenAI response item is not an object")
            index = item.get("index", fallback_index)
            if not isinstance(index, int) or not 0 <= index < len(positions):
                raise ProviderUnavailable(f"OpenAI response has invalid index: {index!r}")
            if index in seen:
                raise ProviderUnavailable(f"OpenAI response repeats index {index}")
            seen.add(index)
            results[positions[index]] = to_vector(item.get("embedding"))

        return results

    def health(self) -> ProviderHealth:
        """The API is considered healthy when a key is configured; no network call."""
        return ProviderHealth(
            healthy=bool(self.settings.openai_api_key),
            mode=self.mode,
            model=self.model,
            dimensions=self.settings.embedding_dimensions,
            ready=True,
        )


def create_provider(settings: Settings, client: httpx.Client | None = None) -> EmbeddingProvider:
    """Build the provider selected by ``settings.embedding_mode``."""
    if settings.embedding_mode == MODE_DIRECT_OPENAI:
        return OpenAIProvider(settings, client)
    if settings.embedding_mode == MODE_EMBEDDING_SERVICE:
        return EmbeddingServiceProvider(settings, client)
    raise ProviderMisconfigured(f"Unknown embedding mode: {settings.embedding_mode}")
