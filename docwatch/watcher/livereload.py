"""Live-reload server adapter.

Serves the watched directory and pushes a refresh to connected browsers
whenever a served file changes. The ``livereload`` server runs its own
tornado event loop, so it is started on a worker thread and the asyncio
loop running the pollers stays free.
"""

import asyncio
import threading
from collections.abc import Callable, Iterable
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

import structlog
from livereload import Server

from docwatch.config.constants import (
    COMPONENT_LIVERELOAD,
    DEFAULT_HOST,
    DEFAULT_IGNORE_DIRS,
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_PORT,
)
from docwatch.errors import StartupError


logger = structlog.get_logger()


class IgnoreMatcher:
    """Decides which changed files must not trigger a browser refresh.

    A path is ignored when any of its directories is in ``ignore_dirs`` or
    its file name matches one of ``ignore_patterns``.
    """

    def __init__(
        self,
        root: Path,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        ignore_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
    ) -> None:
        self._root = root.resolve()
        self._dirs = frozenset(ignore_dirs)
        self._patterns = tuple(ignore_patterns)

    @property
    def ignore_dirs(self) -> frozenset[str]:
        """Directory names that are never watched."""
        return self._dirs

    def __call__(self, path: str) -> bool:
        candidate = Path(path)
        if candidate.is_absolute() and candidate.resolve().is_relative_to(self._root):
            candidate = candidate.resolve().relative_to(self._root)
        if any(part in self._dirs for part in candidate.parts[:-1]):
            return True
        return any(fnmatch(candidate.name, pattern) for pattern in self._patterns)


class LiveReloadServer:
    """Starts a ``livereload`` server over the watched directory."""

    def __init__(
        self,
        root: Path,
        matcher: IgnoreMatcher,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        server_factory: Callable[[], Any] = Server,
    ) -> None:
        """Initialize the adapter.

        Args:
            root: Directory to serve and watch.
            matcher: Ignore rules for watched files.
            host: Bind address.
            port: Bind port.
            server_factory: Creates the underlying livereload server.
        """
        self._root = root
        self._matcher = matcher
        self._host = host
        self._port = port
        self._server_factory = server_factory
        self._log = logger.bind(component=COMPONENT_LIVERELOAD)

        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopping = False

    def _serve_blocking(self) -> None:
        # Tornado needs an event loop of its own on this thread
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        with self._lock:
            self._loop = loop
            stopping = self._stopping

        try:
            if stopping:
                return
            server = self._server_factory()
            ignored_dirs = server.watcher.ignored_dirs
            ignored_dirs.extend(
                d for d in sorted(self._matcher.ignore_dirs) if d not in ignored_dirs
            )
            server.watch(str(self._root), ignore=self._matcher)
            server.serve(
                port=self._port,
                host=self._host,
                root=str(self._root),
                open_url_delay=None,
                debug=False,
            )
        finally:
            with self._lock:
                self._loop = None
            asyncio.set_event_loop(None)
            loop.close()

    def stop(self) -> None:
        """Ask the server thread to stop its event loop and return.

        Safe to call from any thread, before or after the server started.
        """
        with self._lock:
            self._stopping = True
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._loop.stop)

    async def serve(self) -> None:
        """Run the server until it stops or the calling task is cancelled.

        Raises:
            StartupError: If the server cannot bind its port.
        """
        self._log.info(
            "livereload_starting",
            url=f"http://{self._host}:{self._port}/",
            root=str(self._root),
        )
        try:
            await asyncio.to_thread(self._serve_blocking)
        except OSError as e:
            msg = f"Cannot start live-reload server on port {self._port}: {e}"
            raise StartupError(msg) from e
        except asyncio.CancelledError:
            # The worker thread keeps running until its loop is stopped
            self.stop()
            self._log.info("livereload_stopped")
            raise
