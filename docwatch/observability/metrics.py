"""Watch pipeline metrics collection."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class WatchMetrics:
    """Counters for the watch-render-write pipeline.

    Attributes:
        renders_total: Renders completed.
        render_failures_total: Reactions that raised.
        last_render_duration_ms: Duration of the most recent render.
        files_written_total: Successful publishes.
        bytes_written_total: Bytes published.
        rename_retries_total: Failed rename attempts that were retried.
    """

    renders_total: int = 0
    render_failures_total: int = 0
    last_render_duration_ms: float = 0.0
    files_written_total: int = 0
    bytes_written_total: int = 0
    rename_retries_total: int = 0

    _instance: ClassVar["WatchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "WatchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_render(self, duration_ms: float) -> None:
        """Record a completed render.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.renders_total += 1
        self.last_render_duration_ms = duration_ms

    def record_failure(self) -> None:
        """Record a failed reaction."""
        self.render_failures_total += 1

    def record_file_written(self, bytes_written: int) -> None:
        """Record a successful publish.

        Args:
            bytes_written: Number of bytes published.
        """
        self.files_written_total += 1
        self.bytes_written_total += bytes_written

    def record_rename_retry(self) -> None:
        """Record a failed rename that will be retried."""
        self.rename_retries_total += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "renders_total": self.renders_total,
            "render_failures_total": self.render_failures_total,
            "last_render_duration_ms": self.last_render_duration_ms,
            "files_written_total": self.files_written_total,
            "bytes_written_total": self.bytes_written_total,
            "rename_retries_total": self.rename_retries_total,
        }
