"""
Configuration utilities.
"""

import json
from pathlib import Path
from typing import Literal

import yaml

from pydantic import BaseModel, Field

from readly.rag.document import ChunkingOptions


class Config(BaseModel):
    """Base configuration class."""

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")


class EmbeddingSettings(BaseModel):
    """Settings for the embedding provider and batch scheduling."""
    provider: Literal["openai", "local", "fake"] = "openai"
    model: str = "text-embedding-3-small"
    api_key: str | None = None
    base_url: str | None = None
    dimension: int = Field(default=1536, gt=0)

    # Batching
    batch_size: int = Field(default=100, gt=0)
    max_concurrent: int = Field(default=3, gt=0)
    group_delay: float = Field(default=0.1, ge=0)

    # Query embedding cache, seconds (0 disables)
    query_cache_ttl: float = Field(default=300.0, ge=0)


class RetrievalSettings(BaseModel):
    """Settings for relevance selection."""
    default_k: int | None = Field(default=None, gt=0)
    similarity_threshold: float = 0.0
    deduplicate: bool = False
    duplicate_threshold: float = Field(default=0.8, gt=0, le=1)


class StoreSettings(BaseModel):
    """Settings for the document store backend."""
    backend: Literal["memory", "chroma"] = "memory"
    collection: str = "pdf_chunks"
    persist_directory: str | None = None


class ReadlyConfig(Config):
    """Top-level Readly configuration."""
    chunking: ChunkingOptions = Field(default_factory=ChunkingOptions)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


def load_config(path: str | Path = "readly.yaml") -> ReadlyConfig:
    """
    Load Readly configuration from file.

    Args:
        path: Path to config file

    Returns:
        ReadlyConfig instance (defaults when the file does not exist)
    """
    path = Path(path)

    if not path.exists():
        return ReadlyConfig()

    return ReadlyConfig.from_file(path)
