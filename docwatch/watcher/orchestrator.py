"""Watch session orchestrator.

Discovers the markdown documents of the watched directory, binds each one
to an output path and page metadata, starts one ChangePoller per document
and finally starts the live-reload server.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path

import structlog

from docwatch.config.constants import (
    COMPONENT_ORCHESTRATOR,
    DEFAULT_THEME,
    OUTPUT_SUFFIX,
    SOURCE_SUFFIX,
)
from docwatch.config.schemas import DocumentOverride, ProjectConfig
from docwatch.config.settings import WatchSettings
from docwatch.errors import DocwatchError, RenderError, StartupError
from docwatch.observability.metrics import WatchMetrics
from docwatch.renderer.highlighter import Highlighter
from docwatch.renderer.io import AtomicWriter
from docwatch.renderer.models import RenderMetadata
from docwatch.renderer.pipeline import RenderPipeline
from docwatch.watcher.builder import DocumentBuilder
from docwatch.watcher.livereload import IgnoreMatcher, LiveReloadServer
from docwatch.watcher.models import BuildReport, WatchTask
from docwatch.watcher.poller import ChangePoller


logger = structlog.get_logger()

ServerStarter = Callable[[], Awaitable[None]]


def discover_sources(root: Path) -> list[Path]:
    """List the markdown files directly inside a directory.

    Args:
        root: Directory to scan (not recursive).

    Returns:
        Source paths sorted by name.

    Raises:
        StartupError: If the directory cannot be listed.
    """
    try:
        entries = list(root.iterdir())
    except OSError as e:
        msg = f"Cannot list {root}: {e}"
        raise StartupError(msg) from e
    return sorted(
        entry for entry in entries if entry.name.endswith(SOURCE_SUFFIX) and entry.is_file()
    )


def plan_task(
    source: Path, overrides: Mapping[str, DocumentOverride]
) -> WatchTask:
    """Derive the output path and metadata for one source.

    Args:
        source: Markdown source file.
        overrides: Document overrides keyed by source file name.

    Returns:
        The watch task for the source.
    """
    override = overrides.get(source.name)
    if override is None:
        stem = source.name[: -len(SOURCE_SUFFIX)]
        return WatchTask(
            source=source,
            output=source.with_name(stem + OUTPUT_SUFFIX),
            metadata=RenderMetadata(),
        )
    return WatchTask(
        source=source,
        output=source.with_name(override.output),
        metadata=RenderMetadata(
            title=override.title,
            description=override.description,
            author=override.author,
        ),
    )


class Orchestrator:
    """Bootstraps the watch-render-write pipeline for one directory.

    Setup is one-shot: every failure before the pollers start is fatal and
    raised as StartupError. Once running, failures stay local to the
    document that caused them.
    """

    def __init__(
        self,
        settings: WatchSettings,
        project: ProjectConfig | None = None,
        highlighter: Highlighter | None = None,
        server_starter: ServerStarter | None = None,
        metrics: WatchMetrics | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Process settings.
            project: Project configuration (default: built-in defaults).
            highlighter: Prebuilt highlighter; built from the project
                grammars and theme when omitted.
            server_starter: Coroutine function starting the live-reload
                server; a LiveReloadServer over the root when omitted.
            metrics: Optional metrics instance.
        """
        self._settings = settings
        self._project = project or ProjectConfig()
        self._root = settings.root_path
        self._highlighter = highlighter
        self._server_starter = server_starter
        self._metrics = metrics or WatchMetrics.get_instance()
        self._tasks: list[asyncio.Task[None]] = []
        self._log = logger.bind(component=COMPONENT_ORCHESTRATOR, root=str(self._root))

    @property
    def root(self) -> Path:
        """The watched directory."""
        return self._root

    @property
    def running_tasks(self) -> list[asyncio.Task[None]]:
        """Poll loop tasks started by start_watching()."""
        return list(self._tasks)

    def plan(self) -> list[WatchTask]:
        """Discover sources and derive one WatchTask per file."""
        overrides = self._project.document_overrides()
        return [plan_task(source, overrides) for source in discover_sources(self._root)]

    def create_pipeline(self) -> RenderPipeline:
        """Build the shared render pipeline.

        Raises:
            StartupError: If a grammar or the theme cannot be loaded.
        """
        highlighter = self._highlighter
        if highlighter is None:
            theme = self._settings.theme or self._project.theme or DEFAULT_THEME
            try:
                highlighter = Highlighter.create(
                    grammars=self._project.grammars,
                    theme=theme,
                    base_dir=self._root,
                    include_builtin=self._project.builtin_grammars,
                )
            except RenderError as e:
                msg = f"Cannot initialize highlighter: {e}"
                raise StartupError(msg) from e

        return RenderPipeline(
            highlighter,
            permalink_symbol=self._settings.permalink_symbol,
            toc_marker=self._settings.toc_marker,
            stylesheet_href=self._settings.stylesheet_href,
            icon_href=self._settings.icon_href,
        )

    def create_builders(self) -> list[DocumentBuilder]:
        """Create one DocumentBuilder per discovered document."""
        pipeline = self.create_pipeline()
        writer = AtomicWriter(
            self._root, retry_policy=self._project.retry, metrics=self._metrics
        )
        return [
            DocumentBuilder(task, pipeline, writer, metrics=self._metrics)
            for task in self.plan()
        ]

    def start_watching(self) -> list[asyncio.Task[None]]:
        """Start one poll loop per document on the running event loop.

        Returns:
            The started tasks. They run until cancelled.
        """
        builders = self.create_builders()
        for builder in builders:
            poller = ChangePoller(
                builder.task.source,
                builder,
                interval_ms=self._settings.poll_interval_ms,
                metrics=self._metrics,
            )
            self._tasks.append(
                asyncio.create_task(poller.run(), name=f"watch:{builder.task.source.name}")
            )
        self._log.info("watch_tasks_started", document_count=len(builders))
        return self.running_tasks

    def _default_server_starter(self) -> ServerStarter:
        matcher = IgnoreMatcher(
            self._root,
            ignore_dirs=self._project.ignore_dirs,
            ignore_patterns=self._project.ignore_patterns,
        )
        server = LiveReloadServer(
            self._root,
            matcher,
            host=self._settings.host,
            port=self._settings.port,
        )
        return server.serve

    async def run(self) -> None:
        """Start every poll loop, then serve with live reload.

        Returns only when the live-reload server stops; the poll loops are
        cancelled at that point.

        Raises:
            StartupError: If discovery, pipeline setup or the server fails.
        """
        self.start_watching()
        starter = self._server_starter or self._default_server_starter()
        try:
            await starter()
        finally:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks.clear()

    async def build_once(self) -> BuildReport:
        """Render every document once without watching.

        Returns:
            Report of published files and failed sources.
        """
        report = BuildReport()
        for builder in self.create_builders():
            try:
                report.generated.append(await builder())
            except (DocwatchError, OSError) as e:
                self._metrics.record_failure()
                self._log.error(
                    "build_failed", source=builder.task.source.name, error=str(e)
                )
                report.failed.append(builder.task.source.name)
        self._log.info(
            "build_completed",
            generated=len(report.generated),
            failed=len(report.failed),
            **self._metrics.to_dict(),
        )
        return report
