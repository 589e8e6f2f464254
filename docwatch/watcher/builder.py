"""Per-document reaction: read, render, publish."""

import time

import structlog

from docwatch.config.constants import COMPONENT_BUILDER
from docwatch.observability.metrics import WatchMetrics
from docwatch.renderer.io import AtomicWriter
from docwatch.renderer.models import GeneratedFile
from docwatch.renderer.pipeline import RenderPipeline
from docwatch.watcher.models import WatchTask
from docwatch.watcher.state_machine import BuildState, BuildStateMachine


logger = structlog.get_logger()


class DocumentBuilder:
    """Rebuilds one document's HTML page when called.

    Instances are the zero-argument async reactions handed to a
    ChangePoller. Every call re-renders the whole document; failures
    propagate to the caller and leave the output file untouched.
    """

    def __init__(
        self,
        task: WatchTask,
        pipeline: RenderPipeline,
        writer: AtomicWriter,
        metrics: WatchMetrics | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            task: The document to build.
            pipeline: Shared render pipeline.
            writer: Atomic writer for the output.
            metrics: Optional metrics instance.
        """
        self._task = task
        self._pipeline = pipeline
        self._writer = writer
        self._metrics = metrics or WatchMetrics.get_instance()
        self._log = logger.bind(
            component=COMPONENT_BUILDER,
            source=task.source.name,
            output=task.output.name,
        )
        self._machine: BuildStateMachine | None = None

    @property
    def task(self) -> WatchTask:
        """The document this builder renders."""
        return self._task

    @property
    def state(self) -> BuildState | None:
        """State of the most recent build, or None before the first call."""
        if self._machine is None:
            return None
        return self._machine.state

    async def __call__(self) -> GeneratedFile:
        """Read, render and publish the document.

        Returns:
            The published file.

        Raises:
            OSError: If the source cannot be read.
            RenderError: If rendering fails.
            WriteError: If the temporary file cannot be written.
            PublishError: If a bounded retry policy is exhausted.
        """
        machine = BuildStateMachine(self._task.source.name)
        self._machine = machine
        try:
            machine.to_reading()
            source = self._task.source.read_text(encoding="utf-8")

            machine.to_rendering()
            self._log.info("render_started")
            start_time = time.perf_counter()
            document = self._pipeline.render(source, self._task.metadata)
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._metrics.record_render(duration_ms)
            self._log.info("render_completed", duration_ms=round(duration_ms, 2))

            machine.to_writing()
            generated = await self._writer.write(self._task.output, document.html)
            machine.to_done()
        except Exception:
            machine.to_failed()
            raise
        return generated
