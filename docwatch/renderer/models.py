"""Data models for the render pipeline."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from docwatch.config.constants import DEFAULT_AUTHOR, DEFAULT_DESCRIPTION, DEFAULT_TITLE


class RenderMetadata(BaseModel):
    """Page metadata injected into the document head.

    Bound once per source document when the watch session starts.

    Attributes:
        title: Content of the ``<title>`` element.
        description: Content of the description meta tag.
        author: Content of the author meta tag.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION
    author: str = DEFAULT_AUTHOR


class RenderedDocument(BaseModel):
    """A complete HTML page produced by the render pipeline.

    Attributes:
        html: The full page markup.
        rendered_at: Timestamp embedded in the page footer.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    html: str
    rendered_at: datetime


@dataclass(frozen=True)
class GeneratedFile:
    """Information about a published file.

    Attributes:
        path: Path relative to the base directory.
        absolute_path: Absolute path to file.
        bytes_written: Number of bytes written.
        sha256: SHA-256 checksum of content.
        rename_attempts: Rename attempts needed to publish.
    """

    path: str
    absolute_path: str
    bytes_written: int
    sha256: str
    rename_attempts: int = 1
