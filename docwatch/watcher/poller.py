"""Per-file change polling."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog

from docwatch.config.constants import COMPONENT_POLLER, DEFAULT_POLL_INTERVAL_MS
from docwatch.observability.metrics import WatchMetrics


logger = structlog.get_logger()

Reaction = Callable[[], Awaitable[object]]
Sleeper = Callable[[float], Awaitable[None]]

# Sentinel modification time meaning "never seen"
NEVER_SEEN = 0


class ChangePoller:
    """Invokes a reaction once per detected modification of one file.

    Each cycle stats the file; when the modification time differs from the
    last one seen, the reaction is awaited before anything else happens, so
    reactions for the same file never overlap. The new time is recorded
    whether or not the reaction succeeded: a failed render is not retried
    until the file changes again. Reaction errors are logged and never stop
    the loop.
    """

    def __init__(
        self,
        path: Path,
        reaction: Reaction,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        metrics: WatchMetrics | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize the poller.

        Args:
            path: File to poll.
            reaction: Zero-argument coroutine function run on each change.
            interval_ms: Delay between checks in milliseconds.
            metrics: Optional metrics instance.
            sleep: Coroutine used to wait between checks.
        """
        self._path = path
        self._reaction = reaction
        self._interval_ms = interval_ms
        self._metrics = metrics or WatchMetrics.get_instance()
        self._sleep = sleep
        self._last_seen_mtime = NEVER_SEEN
        self._log = logger.bind(component=COMPONENT_POLLER, source=path.name)

    @property
    def path(self) -> Path:
        """The polled file."""
        return self._path

    @property
    def interval_ms(self) -> int:
        """Delay between checks in milliseconds."""
        return self._interval_ms

    @property
    def last_seen_mtime(self) -> int:
        """Modification time (ns) recorded by the last completed cycle."""
        return self._last_seen_mtime

    async def poll_once(self) -> bool:
        """Run a single poll cycle.

        Returns:
            True if a change was detected and the reaction was invoked.
        """
        try:
            mtime = self._path.stat().st_mtime_ns
        except OSError as e:
            self._log.warning("stat_failed", error=str(e))
            return False

        if mtime == self._last_seen_mtime:
            return False

        try:
            await self._reaction()
        except Exception as e:
            self._metrics.record_failure()
            self._log.exception("reaction_failed", error=str(e))

        self._last_seen_mtime = mtime
        return True

    async def run(self) -> None:
        """Poll forever. Ends only when the task is cancelled."""
        self._log.info("watch_started", interval_ms=self._interval_ms)
        while True:
            await self.poll_once()
            await self._sleep(self._interval_ms / 1000)
