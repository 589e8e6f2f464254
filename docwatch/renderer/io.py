"""I/O utilities for the renderer module.

Provides atomic publishing of rendered pages. Content is written to a
uniquely named temporary file next to the destination, which is then
renamed onto the destination. Readers of the destination path see either
the previous complete file or the new complete file, never a partial one.
"""

import asyncio
import contextlib
import hashlib
import os
import random
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog

from docwatch.config.constants import COMPONENT_WRITER, TEMP_SUFFIX
from docwatch.config.schemas import PublishRetryPolicy
from docwatch.errors import PublishError, WriteError
from docwatch.observability.metrics import WatchMetrics
from docwatch.renderer.models import GeneratedFile


logger = structlog.get_logger()

Sleeper = Callable[[float], Awaitable[None]]


def temp_path_for(path: Path) -> Path:
    """Synthesize a temporary file name for a destination.

    Args:
        path: Destination path.

    Returns:
        ``<dest name>.<random digits>.temp`` in the destination directory.
    """
    suffix = random.getrandbits(63)  # noqa: S311
    return path.with_name(f"{path.name}.{suffix}{TEMP_SUFFIX}")


class AtomicWriter:
    """Publishes content to a destination path via write-then-rename.

    A failed temp write fails the call. A failed rename is treated as a
    transient lock held by another process (editor, explorer, the
    live-reload server) and retried according to the retry policy, which
    by default retries forever.
    """

    def __init__(
        self,
        base_dir: Path,
        retry_policy: PublishRetryPolicy | None = None,
        metrics: WatchMetrics | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize the atomic writer.

        Args:
            base_dir: Base directory for relative path calculation.
            retry_policy: Rename retry policy (default: unbounded, 100 ms).
            metrics: Optional metrics instance.
            sleep: Coroutine used to wait between rename attempts.
        """
        self._base_dir = base_dir
        self._retry_policy = retry_policy or PublishRetryPolicy()
        self._metrics = metrics or WatchMetrics.get_instance()
        self._sleep = sleep
        self._log = logger.bind(component=COMPONENT_WRITER)

    async def write(self, path: Path, content: str) -> GeneratedFile:
        """Write content to a path with atomic semantics.

        Args:
            path: Destination path; its directory must exist.
            content: Content to write (encoded as UTF-8).

        Returns:
            GeneratedFile with path, checksum, size and rename attempts.

        Raises:
            WriteError: If the temporary file cannot be written.
            PublishError: If a bounded retry policy is exhausted.
        """
        content_bytes = content.encode("utf-8")
        temp_path = self._write_temp(path, content_bytes)
        attempts = await self._publish(temp_path, path)

        try:
            relative_path = str(path.relative_to(self._base_dir))
        except ValueError:
            relative_path = str(path)

        self._metrics.record_file_written(len(content_bytes))
        self._log.info(
            "file_written",
            path=relative_path,
            bytes=len(content_bytes),
            rename_attempts=attempts,
        )

        return GeneratedFile(
            path=relative_path,
            absolute_path=str(path),
            bytes_written=len(content_bytes),
            sha256=hashlib.sha256(content_bytes).hexdigest(),
            rename_attempts=attempts,
        )

    def _write_temp(self, path: Path, content_bytes: bytes) -> Path:
        """Create a fresh temporary file holding the full content."""
        while True:
            temp_path = temp_path_for(path)
            try:
                handle = temp_path.open("xb")
            except FileExistsError:
                continue
            except OSError as e:
                raise WriteError(temp_path, str(e)) from e

            try:
                with handle:
                    handle.write(content_bytes)
            except OSError as e:
                with contextlib.suppress(OSError):
                    temp_path.unlink()
                raise WriteError(temp_path, str(e)) from e
            return temp_path

    async def _publish(self, temp_path: Path, path: Path) -> int:
        """Rename the temporary file onto the destination, retrying on failure.

        Returns:
            Number of rename attempts made, including the successful one.
        """
        attempts = 0
        while True:
            attempts += 1
            try:
                os.replace(temp_path, path)
            except OSError as e:
                if not self._retry_policy.should_retry(attempts):
                    self._log.error(
                        "rename_abandoned",
                        temp_path=temp_path.name,
                        path=str(path),
                        attempts=attempts,
                        error=str(e),
                    )
                    with contextlib.suppress(OSError):
                        temp_path.unlink()
                    raise PublishError(temp_path, path, attempts) from e

                delay_ms = self._retry_policy.get_delay_ms(attempts)
                self._metrics.record_rename_retry()
                self._log.warning(
                    "rename_failed",
                    temp_path=temp_path.name,
                    path=str(path),
                    attempt=attempts,
                    delay_ms=delay_ms,
                    error=str(e),
                )
                await self._sleep(delay_ms / 1000)
                continue
            return attempts
