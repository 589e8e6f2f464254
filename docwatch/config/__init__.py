"""Configuration loading and validation module."""

from docwatch.config.loader import ConfigLoader
from docwatch.config.schemas import (
    DocumentOverride,
    GrammarDefinition,
    GrammarRule,
    ProjectConfig,
    PublishRetryPolicy,
)
from docwatch.config.settings import WatchSettings


__all__ = [
    "ConfigLoader",
    "DocumentOverride",
    "GrammarDefinition",
    "GrammarRule",
    "ProjectConfig",
    "PublishRetryPolicy",
    "WatchSettings",
]
