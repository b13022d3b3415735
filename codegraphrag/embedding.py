"""Embedding provider selection, model dimensions, token-aware batching and content hashing."""

from __future__ import annotations

import hashlib
import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum


class EmbeddingProviderType(str, Enum):
    """Supported embedding providers."""

    FASTEMBED = "fastembed"
    JINA = "jina"
    VOYAGE = "voyage"
    GOOGLE = "google"
    SENTENCE_TRANSFORMER = "sentencetransformer"


_PROVIDER_ALIASES: dict[str, EmbeddingProviderType] = {
    "fastembed": EmbeddingProviderType.FASTEMBED,
    "jinaai": EmbeddingProviderType.JINA,
    "jina": EmbeddingProviderType.JINA,
    "voyageai": EmbeddingProviderType.VOYAGE,
    "voyage": EmbeddingProviderType.VOYAGE,
    "google": EmbeddingProviderType.GOOGLE,
    "sentencetransformer": EmbeddingProviderType.SENTENCE_TRANSFORMER,
    "st": EmbeddingProviderType.SENTENCE_TRANSFORMER,
    "huggingface": EmbeddingProviderType.SENTENCE_TRANSFORMER,
    "hf": EmbeddingProviderType.SENTENCE_TRANSFORMER,
}

_PROVIDER_ENV_VARS: dict[EmbeddingProviderType, str] = {
    EmbeddingProviderType.JINA: "JINA_" + "API_KEY",
    EmbeddingProviderType.VOYAGE: "VOYAGE_" + "API_KEY",
    EmbeddingProviderType.GOOGLE: "GOOGLE_" + "API_KEY",
}

_DIMENSIONS: dict[EmbeddingProviderType, dict[str, int]] = {
    EmbeddingProviderType.FASTEMBED: {
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "sentence-transformers/all-MiniLM-L6-v2-quantized": 384,
        "sentence-transformers/all-MiniLM-L12-v2": 768,
        "sentence-transformers/all-MiniLM-L12-v2-quantized": 768,
        "BAAI/bge-base-en-v1.5": 768,
        "BAAI/bge-base-en-v1.5-quantized": 768,
        "BAAI/bge-large-en-v1.5": 1024,
        "BAAI/bge-large-en-v1.5-quantized": 1024,
        "BAAI/bge-small-en-v1.5": 384,
        "BAAI/bge-small-en-v1.5-quantized": 384,
        "nomic-ai/nomic-embed-text-v1": 768,
        "nomic-ai/nomic-embed-text-v1.5": 768,
        "nomic-ai/nomic-embed-text-v1.5-quantized": 768,
        "sentence-transformers/paraphrase-MiniLM-L6-v2": 384,
        "sentence-transformers/paraphrase-MiniLM-L6-v2-quantized": 384,
        "sentence-transformers/paraphrase-mpnet-base-v2": 768,
        "BAAI/bge-small-zh-v1.5": 512,
        "BAAI/bge-large-zh-v1.5": 1024,
        "lightonai/modernbert-embed-large": 1024,
        "intfloat/multilingual-e5-small": 384,
        "multilingual-e5-small": 384,
        "intfloat/multilingual-e5-base": 768,
        "multilingual-e5-base": 768,
        "intfloat/multilingual-e5-large": 1024,
        "multilingual-e5-large": 1024,
        "mixedbread-ai/mxbai-embed-large-v1": 1024,
        "mixedbread-ai/mxbai-embed-large-v1-quantized": 1024,
        "Alibaba-NLP/gte-base-en-v1.5": 768,
        "Alibaba-NLP/gte-base-en-v1.5-quantized": 768,
        "Alibaba-NLP/gte-large-en-v1.5": 1024,
        "Alibaba-NLP/gte-large-en-v1.5-quantized": 1024,
        "Qdrant/clip-ViT-B-32-text": 512,
        "jinaai/jina-embeddings-v2-base-code": 768,
    },
    EmbeddingProviderType.JINA: {
        "jina-embeddings-v3": 1024,
        "jina-embeddings-v2-base-en": 768,
        "jina-embeddings-v2-base-code": 768,
        "jina-embeddings-v2-small-en": 512,
        "jina-clip-v1": 768,
    },
    EmbeddingProviderType.VOYAGE: {
        "voyage-3.5": 1024,
        "voyage-3.5-lite": 1024,
        "voyage-3-large": 1024,
        "voyage-code-2": 1536,
        "voyage-code-3": 1024,
        "voyage-finance-2": 1024,
        "voyage-law-2": 1024,
        "voyage-2": 1024,
    },
    EmbeddingProviderType.GOOGLE: {
        "text-embedding-004": 768,
        "text-embedding-preview-0409": 768,
        "text-multilingual-embedding-002": 768,
    },
    EmbeddingProviderType.SENTENCE_TRANSFORMER: {
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "sentence-transformers/all-MiniLM-L12-v2": 384,
        "sentence-transformers/all-mpnet-base-v2": 768,
        "sentence-transformers/all-roberta-large-v1": 1024,
        "sentence-transformers/paraphrase-MiniLM-L6-v2": 384,
        "sentence-transformers/paraphrase-mpnet-base-v2": 768,
        "microsoft/codebert-base": 768,
        "microsoft/unixcoder-base": 768,
        "sentence-transformers/multi-qa-mpnet-base-dot-v1": 768,
        "BAAI/bge-small-en-v1.5": 384,
        "BAAI/bge-base-en-v1.5": 768,
        "BAAI/bge-large-en-v1.5": 1024,
    },
}


def parse_provider_model(value: str) -> tuple[EmbeddingProviderType, str]:
    """Split a "provider:model" string; unknown or missing providers mean FastEmbed."""
    provider_name, sep, model = value.partition(":")
    if not sep:
        return EmbeddingProviderType.FASTEMBED, value
    provider = _PROVIDER_ALIASES.get(provider_name.lower(), EmbeddingProviderType.FASTEMBED)
    return provider, model


@dataclass
class EmbeddingConfig:
    """Code and text embedding models, each in "provider:model" form."""

    code_model: str = "fastembed:jinaai/jina-embeddings-v2-base-code"
    text_model: str = "fastembed:sentence-transformers/all-MiniLM-L6-v2-quantized"

    def active_provider(self) -> EmbeddingProviderType:
        """The provider named by the code model."""
        provider, _ = parse_provider_model(self.code_model)
        return provider

    def api_key(self, provider: EmbeddingProviderType) -> str | None:
        """The API key for a provider, read from the environment."""
        variable = _PROVIDER_ENV_VARS.get(provider)
        return os.environ.get(variable) if variable else None

    def vector_dimension(self, provider: EmbeddingProviderType, model: str) -> int:
        """The embedding size of a model; raises ValueError for unknown models."""
        try:
            return _DIMENSIONS[provider][model]
        except KeyError:
            raise ValueError(f"Unsupported embedding model: {model}") from None


_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")


def _approximate_token_count(text: str) -> int:
    return sum(1 for _ in _TOKEN_PATTERN.finditer(text))


def split_texts_into_token_limited_batches(
    texts: Iterable[str],
    max_batch_size: int,
    max_tokens_per_batch: int,
    count_tokens: Callable[[str], int] = _approximate_token_count,
) -> list[list[str]]:
    """Group texts into batches bounded by both item count and token total.

    A single text larger than the token limit still forms a batch of its own.
    """
    batches: list[list[str]] = []
    current: list[str] = []
    current_tokens = 0
    for text in texts:
        tokens = count_tokens(text)
        if current and (
            len(current) >= max_batch_size or current_tokens + tokens > max_tokens_per_batch
        ):
            batches.append(current)
            current = []
            current_tokens = 0
        current.append(text)
        current_tokens += tokens
    if current:
        batches.append(current)
    return batches


def calculate_unique_content_hash(contents: str, file_path: str) -> str:
    """SHA-256 hex digest of the contents followed by the file path."""
    digest = hashlib.sha256()
    digest.update(contents.encode("utf-8"))
    digest.update(file_path.encode("utf-8"))
    return digest.hexdigest()


def calculate_content_hash(contents: str) -> str:
    """SHA-256 hex digest of the contents."""
    return hashlib.sha256(contents.encode("utf-8")).hexdigest()