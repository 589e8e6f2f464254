"""Unit tests for the live-reload server adapter."""

import asyncio
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docwatch.errors import StartupError
from docwatch.watcher.livereload import IgnoreMatcher, LiveReloadServer


class TestIgnoreMatcher:
    """Tests for IgnoreMatcher."""

    @pytest.mark.parametrize(
        "relative",
        [
            ".git/HEAD",
            ".vscode/settings.json",
            "node_modules/pkg/index.js",
            "notes/todo.html",
            "readme.md",
            "package.json",
            "index.html.123456789.temp",
        ],
    )
    def test_ignored(self, tmp_path: Path, relative: str) -> None:
        """Tool directories, sources, JSON and temp files are ignored."""
        matcher = IgnoreMatcher(tmp_path)
        assert matcher(str(tmp_path / relative))

    @pytest.mark.parametrize(
        "relative", ["index.html", "lake.html", "styles/main.css", "icons/oasis-32x32.png"]
    )
    def test_served(self, tmp_path: Path, relative: str) -> None:
        """Published pages and assets trigger a reload."""
        matcher = IgnoreMatcher(tmp_path)
        assert not matcher(str(tmp_path / relative))

    def test_relative_paths(self, tmp_path: Path) -> None:
        """Relative paths are matched as given."""
        matcher = IgnoreMatcher(tmp_path)
        assert matcher("node_modules/x.js")
        assert not matcher("index.html")

    def test_custom_rules(self, tmp_path: Path) -> None:
        """Configured directories and patterns replace the defaults."""
        matcher = IgnoreMatcher(tmp_path, ignore_dirs=["build"], ignore_patterns=["*.log"])
        assert matcher(str(tmp_path / "build" / "out.html"))
        assert matcher(str(tmp_path / "server.log"))
        assert not matcher(str(tmp_path / "readme.md"))
        assert matcher.ignore_dirs == frozenset({"build"})


def _fake_server_factory() -> MagicMock:
    factory = MagicMock()
    factory.return_value.watcher.ignored_dirs = [".git", ".hg"]
    return factory


class TestLiveReloadServer:
    """Tests for LiveReloadServer."""

    @pytest.mark.asyncio
    async def test_serve_configures_livereload(self, tmp_path: Path) -> None:
        """The root is watched with the matcher and served on the port."""
        factory = _fake_server_factory()
        matcher = IgnoreMatcher(tmp_path)
        adapter = LiveReloadServer(
            tmp_path, matcher, host="0.0.0.0", port=5050, server_factory=factory
        )

        await adapter.serve()

        server = factory.return_value
        server.watch.assert_called_once_with(str(tmp_path), ignore=matcher)
        server.serve.assert_called_once_with(
            port=5050,
            host="0.0.0.0",
            root=str(tmp_path),
            open_url_delay=None,
            debug=False,
        )

    @pytest.mark.asyncio
    async def test_ignored_dirs_are_merged(self, tmp_path: Path) -> None:
        """Ignored directories are added to the watcher without duplicates."""
        factory = _fake_server_factory()
        adapter = LiveReloadServer(
            tmp_path, IgnoreMatcher(tmp_path), server_factory=factory
        )

        await adapter.serve()

        ignored = factory.return_value.watcher.ignored_dirs
        assert ignored.count(".git") == 1
        assert ".hg" in ignored
        assert "node_modules" in ignored
        assert "notes" in ignored

    @pytest.mark.asyncio
    async def test_bind_failure_is_startup_error(self, tmp_path: Path) -> None:
        """A port that cannot be bound is a startup error."""
        factory = _fake_server_factory()
        factory.return_value.serve.side_effect = OSError("Address already in use")
        adapter = LiveReloadServer(
            tmp_path, IgnoreMatcher(tmp_path), port=5000, server_factory=factory
        )

        with pytest.raises(StartupError, match="port 5000"):
            await adapter.serve()

    @pytest.mark.asyncio
    async def test_cancel_stops_server_thread(self, tmp_path: Path) -> None:
        """Cancelling serve() stops the server loop so its thread returns."""
        started = threading.Event()
        returned = threading.Event()

        def serve_forever(**kwargs: object) -> None:
            loop = asyncio.get_event_loop()
            loop.call_soon(started.set)
            loop.run_forever()
            returned.set()

        factory = _fake_server_factory()
        factory.return_value.serve.side_effect = serve_forever
        adapter = LiveReloadServer(
            tmp_path, IgnoreMatcher(tmp_path), server_factory=factory
        )

        task = asyncio.create_task(adapter.serve())
        assert await asyncio.to_thread(started.wait, 2.0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await asyncio.to_thread(returned.wait, 2.0)

    @pytest.mark.asyncio
    async def test_stop_before_start_skips_serving(self, tmp_path: Path) -> None:
        """A server stopped before its thread starts never serves."""
        factory = _fake_server_factory()
        adapter = LiveReloadServer(
            tmp_path, IgnoreMatcher(tmp_path), server_factory=factory
        )

        adapter.stop()
        await adapter.serve()

        factory.return_value.serve.assert_not_called()
