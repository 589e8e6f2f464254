"""Unit tests for the per-document builder."""

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from docwatch.errors import UnknownLanguageError
from docwatch.observability.metrics import WatchMetrics
from docwatch.renderer.highlighter import Highlighter
from docwatch.renderer.io import AtomicWriter
from docwatch.renderer.models import RenderMetadata
from docwatch.renderer.pipeline import RenderPipeline
from docwatch.watcher.builder import DocumentBuilder
from docwatch.watcher.models import WatchTask
from docwatch.watcher.state_machine import BuildState


@pytest.fixture(scope="module")
def pipeline() -> RenderPipeline:
    """Pipeline with the default highlighter."""
    return RenderPipeline(Highlighter.create())


def _builder(
    tmp_path: Path, pipeline: RenderPipeline, metrics: WatchMetrics, text: str
) -> DocumentBuilder:
    source = tmp_path / "guide.md"
    source.write_text(text, encoding="utf-8")
    task = WatchTask(
        source=source,
        output=tmp_path / "guide.html",
        metadata=RenderMetadata(title="Guide"),
    )
    writer = AtomicWriter(tmp_path, metrics=metrics)
    return DocumentBuilder(task, pipeline, writer, metrics=metrics)


class TestDocumentBuilder:
    """Tests for DocumentBuilder."""

    @pytest.mark.asyncio
    async def test_builds_page(self, tmp_path: Path, pipeline: RenderPipeline) -> None:
        """Calling the builder publishes the rendered page."""
        metrics = WatchMetrics()
        builder = _builder(tmp_path, pipeline, metrics, "# Guide\n\nHello.\n")

        generated = await builder()

        html = (tmp_path / "guide.html").read_text(encoding="utf-8")
        assert "<title>Guide</title>" in html
        assert "<p>Hello.</p>" in html
        assert generated.path == "guide.html"
        assert metrics.renders_total == 1
        assert metrics.files_written_total == 1

    @pytest.mark.asyncio
    async def test_logs_render_duration(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """Render start and completion are logged with the duration."""
        with capture_logs() as logs:
            builder = _builder(tmp_path, pipeline, WatchMetrics(), "# Guide\n")
            await builder()

        events = [entry["event"] for entry in logs]
        assert events.index("render_started") < events.index("render_completed")
        assert events.index("render_completed") < events.index("file_written")
        completed = next(entry for entry in logs if entry["event"] == "render_completed")
        assert completed["duration_ms"] >= 0
        assert completed["source"] == "guide.md"

    @pytest.mark.asyncio
    async def test_render_failure_leaves_output_untouched(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """A failed render raises and keeps the previous page."""
        (tmp_path / "guide.html").write_text("previous page", encoding="utf-8")
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "```klingon\nx\n```\n")

        with pytest.raises(UnknownLanguageError):
            await builder()

        assert (tmp_path / "guide.html").read_text(encoding="utf-8") == "previous page"
        assert not list(tmp_path.glob("*.temp"))

    @pytest.mark.asyncio
    async def test_failed_render_is_not_counted(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """renders_total only counts renders that completed."""
        metrics = WatchMetrics()
        builder = _builder(tmp_path, pipeline, metrics, "```klingon\nx\n```\n")

        with pytest.raises(UnknownLanguageError):
            await builder()

        assert metrics.renders_total == 0
        assert metrics.last_render_duration_ms == 0.0

    @pytest.mark.asyncio
    async def test_missing_source_raises(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """An unreadable source surfaces the OS error."""
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "")
        builder.task.source.unlink()

        with pytest.raises(FileNotFoundError):
            await builder()

    @pytest.mark.asyncio
    async def test_rebuild_reflects_new_content(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """Each call re-renders the whole document."""
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "first\n")
        await builder()
        builder.task.source.write_text("second\n", encoding="utf-8")
        await builder()

        html = (tmp_path / "guide.html").read_text(encoding="utf-8")
        assert "second" in html
        assert "first" not in html


class TestDocumentBuilderState:
    """The builder reports where its last build ended."""

    def test_state_before_first_build(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "text\n")
        assert builder.state is None

    @pytest.mark.asyncio
    async def test_state_done_after_success(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """A published page leaves the builder in DONE."""
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "text\n")
        await builder()
        assert builder.state == BuildState.DONE

    @pytest.mark.asyncio
    async def test_state_failed_then_recovers(
        self, tmp_path: Path, pipeline: RenderPipeline
    ) -> None:
        """A failed render is FAILED until the next successful build."""
        builder = _builder(tmp_path, pipeline, WatchMetrics(), "```klingon\nx\n```\n")
        with pytest.raises(UnknownLanguageError):
            await builder()
        assert builder.state == BuildState.FAILED

        builder.task.source.write_text("fixed\n", encoding="utf-8")
        await builder()
        assert builder.state == BuildState.DONE
