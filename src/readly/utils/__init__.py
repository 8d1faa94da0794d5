"""
Utility helpers for Readly.
"""

from readly.utils.config import (
    EmbeddingSettings,
    ReadlyConfig,
    RetrievalSettings,
    StoreSettings,
    load_config,
)
from readly.utils.logging import get_logger, set_log_level

__all__ = [
    "EmbeddingSettings",
    "ReadlyConfig",
    "RetrievalSettings",
    "StoreSettings",
    "load_config",
    "get_logger",
    "set_log_level",
]
