"""Runtime settings powered by Pydantic BaseSettings."""

from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from docwatch.config.constants import (
    DEFAULT_HOST,
    DEFAULT_ICON_HREF,
    DEFAULT_PERMALINK_SYMBOL,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_PORT,
    DEFAULT_STYLESHEET_HREF,
    DEFAULT_TOC_MARKER,
)


class WatchSettings(BaseSettings):
    """Process-level settings, read from ``DOCWATCH_*`` environment variables.

    CLI options are passed as keyword arguments and take precedence over
    the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCWATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    root: Path = Path()
    host: str = DEFAULT_HOST
    port: Annotated[int, Field(ge=1, le=65535)] = DEFAULT_PORT
    poll_interval_ms: Annotated[int, Field(ge=1, le=60000)] = DEFAULT_POLL_INTERVAL_MS
    permalink_symbol: Annotated[str, Field(min_length=1)] = DEFAULT_PERMALINK_SYMBOL
    toc_marker: Annotated[str, Field(min_length=1)] = DEFAULT_TOC_MARKER
    stylesheet_href: str = DEFAULT_STYLESHEET_HREF
    icon_href: str = DEFAULT_ICON_HREF
    theme: str | None = None
    json_logs: bool = False
    verbose: bool = False

    @property
    def root_path(self) -> Path:
        """Absolute path of the watched directory."""
        return self.root.resolve()
