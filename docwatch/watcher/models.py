"""Data models for watch sessions."""

from dataclasses import dataclass, field
from pathlib import Path

from docwatch.renderer.models import GeneratedFile, RenderMetadata


@dataclass(frozen=True)
class WatchTask:
    """One source document bound to its output path and page metadata.

    Attributes:
        source: Markdown source file.
        output: HTML file the source renders to.
        metadata: Page metadata, fixed for the whole session.
    """

    source: Path
    output: Path
    metadata: RenderMetadata


@dataclass
class BuildReport:
    """Outcome of rendering every discovered document once.

    Attributes:
        generated: Files published successfully.
        failed: Source file names whose build raised.
    """

    generated: list[GeneratedFile] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every document was published."""
        return not self.failed
