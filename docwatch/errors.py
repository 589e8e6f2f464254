"""Error types for the watch-render-write pipeline."""

from pathlib import Path


class DocwatchError(Exception):
    """Base exception for all docwatch errors."""


class RenderError(DocwatchError):
    """Raised when a document cannot be rendered to HTML.

    Rendering never produces partial output; any collaborator failure
    (markdown engine, highlighter, theme) surfaces as this error.
    """


class UnknownLanguageError(RenderError):
    """Raised when a fenced code block names a language with no lexer."""

    def __init__(self, language: str) -> None:
        """Initialize the error.

        Args:
            language: The fence language tag that could not be resolved.
        """
        self.language = language
        super().__init__(f"No grammar registered for code fence language '{language}'")


class GrammarError(RenderError):
    """Raised when a custom grammar definition cannot be loaded or compiled."""


class ThemeError(RenderError):
    """Raised when a color theme cannot be loaded."""


class WriteError(DocwatchError):
    """Raised when the temporary file of a pending write cannot be written."""

    def __init__(self, temp_path: Path, reason: str) -> None:
        """Initialize the error.

        Args:
            temp_path: The temporary file that failed.
            reason: Underlying OS error message.
        """
        self.temp_path = temp_path
        self.reason = reason
        super().__init__(f"Failed writing temporary file {temp_path}: {reason}")


class PublishError(DocwatchError):
    """Raised when a bounded rename retry policy is exhausted."""

    def __init__(self, temp_path: Path, destination: Path, attempts: int) -> None:
        """Initialize the error.

        Args:
            temp_path: The temporary file that could not be promoted.
            destination: The destination path.
            attempts: Number of rename attempts made.
        """
        self.temp_path = temp_path
        self.destination = destination
        self.attempts = attempts
        super().__init__(
            f"Failed renaming {temp_path} to {destination} after {attempts} attempts"
        )


class StartupError(DocwatchError):
    """Raised when discovery or the live-reload server cannot start."""


class ConfigValidationError(DocwatchError):
    """Raised when the project configuration file fails validation."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")
