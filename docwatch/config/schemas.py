"""Pydantic schemas for docwatch project configuration."""

import re
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from docwatch.config.constants import (
    BUILTIN_DOCUMENT_OVERRIDES,
    DEFAULT_AUTHOR,
    DEFAULT_DESCRIPTION,
    DEFAULT_IGNORE_DIRS,
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TITLE,
    OUTPUT_SUFFIX,
    SOURCE_SUFFIX,
)


class DocumentOverride(BaseModel):
    """Explicit output name and metadata for one source document.

    Documents without an override are rendered to ``<stem>.html`` with
    default metadata.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: Annotated[str, Field(min_length=1)]
    output: Annotated[str, Field(min_length=1)]
    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION
    author: str = DEFAULT_AUTHOR

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Ensure the source is a bare markdown file name."""
        if "/" in v or "\\" in v:
            msg = "source must be a file name in the watched directory"
            raise ValueError(msg)
        if not v.endswith(SOURCE_SUFFIX):
            msg = f"source must end with {SOURCE_SUFFIX}"
            raise ValueError(msg)
        return v

    @field_validator("output")
    @classmethod
    def validate_output(cls, v: str) -> str:
        """Ensure the output is a bare HTML file name."""
        if "/" in v or "\\" in v:
            msg = "output must be a file name in the watched directory"
            raise ValueError(msg)
        if not v.endswith(OUTPUT_SUFFIX):
            msg = f"output must end with {OUTPUT_SUFFIX}"
            raise ValueError(msg)
        return v


class GrammarRule(BaseModel):
    """One lexing rule: a regex and the Pygments token type it produces."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pattern: Annotated[str, Field(min_length=1)]
    token: Annotated[str, Field(min_length=1)]

    @field_validator("pattern")
    @classmethod
    def validate_regex(cls, v: str) -> str:
        """Validate that pattern is a valid regex."""
        try:
            compiled = re.compile(v)
        except re.error as e:
            msg = f"Invalid regex pattern: {e}"
            raise ValueError(msg) from e
        if compiled.match(""):
            msg = "Pattern must not match the empty string"
            raise ValueError(msg)
        return v


class GrammarDefinition(BaseModel):
    """A custom language grammar registered with the highlighter.

    Rules are either listed inline or loaded from a YAML file at ``path``
    (relative paths resolve against the watched directory).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, pattern=r"^[a-z0-9_-]+$")]
    scope_name: Annotated[str, Field(min_length=1)]
    aliases: list[str] = Field(default_factory=list)
    rules: list[GrammarRule] = Field(default_factory=list)
    path: Path | None = None

    @model_validator(mode="after")
    def validate_rules_source(self) -> "GrammarDefinition":
        """Require exactly one of inline rules or a rules file."""
        if self.rules and self.path is not None:
            msg = "grammar takes either inline rules or a path, not both"
            raise ValueError(msg)
        if not self.rules and self.path is None:
            msg = "grammar needs inline rules or a path to a rules file"
            raise ValueError(msg)
        return self

    @property
    def names(self) -> tuple[str, ...]:
        """All fence tags resolving to this grammar."""
        return (self.id, *self.aliases)


class PublishRetryPolicy(BaseModel):
    """Retry behavior for promoting a temp file onto its destination.

    The default retries forever with a constant delay. Setting
    ``backoff`` above 1 grows the delay geometrically up to
    ``max_delay_ms``; setting ``max_attempts`` bounds the retries.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    delay_ms: Annotated[int, Field(ge=0, le=60000)] = DEFAULT_RETRY_DELAY_MS
    backoff: Annotated[float, Field(ge=1.0, le=5.0)] = 1.0
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 2000
    max_attempts: Annotated[int, Field(ge=1)] | None = None

    def should_retry(self, attempts: int) -> bool:
        """Determine whether another rename attempt is allowed.

        Args:
            attempts: Number of rename attempts made so far.

        Returns:
            True if the rename should be attempted again.
        """
        return self.max_attempts is None or attempts < self.max_attempts

    def get_delay_ms(self, attempts: int) -> int:
        """Calculate the wait before the next rename attempt.

        Args:
            attempts: Number of failed rename attempts so far (1-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.delay_ms * (self.backoff ** max(attempts - 1, 0))
        cap = max(self.max_delay_ms, self.delay_ms)
        return int(min(delay, cap))


class ProjectConfig(BaseModel):
    """Contents of ``docwatch.yaml``.

    Every section is optional; an absent file yields the defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    documents: list[DocumentOverride] = Field(default_factory=list)
    grammars: list[GrammarDefinition] = Field(default_factory=list)
    theme: str | None = None
    ignore_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    ignore_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS)
    )
    retry: PublishRetryPolicy = Field(default_factory=PublishRetryPolicy)
    builtin_documents: bool = True
    builtin_grammars: bool = True

    @field_validator("documents")
    @classmethod
    def validate_unique_sources(
        cls, v: list[DocumentOverride]
    ) -> list[DocumentOverride]:
        """Ensure each source is overridden at most once."""
        sources = [doc.source for doc in v]
        duplicates = {s for s in sources if sources.count(s) > 1}
        if duplicates:
            msg = f"Duplicate document sources: {sorted(duplicates)}"
            raise ValueError(msg)
        return v

    def document_overrides(self) -> dict[str, DocumentOverride]:
        """Get overrides keyed by source file name.

        Configured entries replace built-in entries for the same source.

        Returns:
            Mapping of source file name to override.
        """
        overrides: dict[str, DocumentOverride] = {}
        if self.builtin_documents:
            for entry in BUILTIN_DOCUMENT_OVERRIDES:
                override = DocumentOverride.model_validate(entry)
                overrides[override.source] = override
        for override in self.documents:
            overrides[override.source] = override
        return overrides
