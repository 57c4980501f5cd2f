"""Configuration management."""

from release_retrieval.config.properties import (
    MandatoryProperties,
    PropertyHasNoValueError,
    PropertyNotPresentError,
)
from release_retrieval.config.settings import (
    RetrievalSettings,
    SourceConfig,
    get_settings,
    load_sources,
)

__all__ = [
    "MandatoryProperties",
    "PropertyHasNoValueError",
    "PropertyNotPresentError",
    "RetrievalSettings",
    "SourceConfig",
    "get_settings",
    "load_sources",
]
