"""Markdown-to-HTML render pipeline."""

from datetime import datetime

import markdown
import structlog
from jinja2 import Environment, PackageLoader, select_autoescape
from markdown.extensions.toc import TocExtension

from docwatch.config.constants import (
    COMPONENT_RENDERER,
    DEFAULT_ICON_HREF,
    DEFAULT_PERMALINK_SYMBOL,
    DEFAULT_STYLESHEET_HREF,
    DEFAULT_TOC_MARKER,
)
from docwatch.errors import RenderError
from docwatch.renderer.highlighter import Highlighter
from docwatch.renderer.markdown_ext import (
    HeaderSectionsExtension,
    HighlightedFenceExtension,
)
from docwatch.renderer.models import RenderedDocument, RenderMetadata


logger = structlog.get_logger()

PAGE_TEMPLATE = "page.html"


def format_last_edited(timestamp: datetime) -> str:
    """Format a footer timestamp, e.g. ``October 19, 2026``."""
    return f"{timestamp:%B} {timestamp.day}, {timestamp.year}"


def create_markdown(
    highlighter: Highlighter,
    permalink_symbol: str = DEFAULT_PERMALINK_SYMBOL,
    toc_marker: str = DEFAULT_TOC_MARKER,
) -> markdown.Markdown:
    """Create the markdown engine with the document extensions.

    Extensions apply in order: highlighted fences, table of contents,
    heading permalinks, then section wrapping.

    Args:
        highlighter: Highlighter for fenced code blocks.
        permalink_symbol: Glyph placed inside each heading.
        toc_marker: Paragraph text replaced by the table of contents.

    Returns:
        A configured Markdown instance.
    """
    return markdown.Markdown(
        extensions=[
            HighlightedFenceExtension(highlight=highlighter.code_to_html),
            TocExtension(
                marker=toc_marker,
                toc_class="table-of-contents",
                permalink=permalink_symbol,
                permalink_title="Permalink to this heading",
            ),
            HeaderSectionsExtension(),
            "tables",
        ],
        output_format="html",
    )


class RenderPipeline:
    """Turns markdown source and page metadata into a complete HTML page.

    For fixed source and metadata the output only varies in the footer
    timestamp. The page shell is a Jinja2 template with auto-escaping, so
    metadata values are escaped into the head while the rendered body is
    inserted as-is.
    """

    def __init__(
        self,
        highlighter: Highlighter,
        permalink_symbol: str = DEFAULT_PERMALINK_SYMBOL,
        toc_marker: str = DEFAULT_TOC_MARKER,
        stylesheet_href: str = DEFAULT_STYLESHEET_HREF,
        icon_href: str = DEFAULT_ICON_HREF,
    ) -> None:
        """Initialize the render pipeline.

        Args:
            highlighter: Highlighter for fenced code blocks.
            permalink_symbol: Glyph placed inside each heading.
            toc_marker: Paragraph text replaced by the table of contents.
            stylesheet_href: Stylesheet link in the page head.
            icon_href: Favicon link in the page head.
        """
        self._highlighter = highlighter
        self._stylesheet_href = stylesheet_href
        self._icon_href = icon_href
        self._md = create_markdown(highlighter, permalink_symbol, toc_marker)
        self._log = logger.bind(component=COMPONENT_RENDERER)

        self._env = Environment(
            loader=PackageLoader("docwatch.renderer", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )
        self._template = self._env.get_template(PAGE_TEMPLATE)

    @property
    def highlighter(self) -> Highlighter:
        """The highlighter used for fenced code blocks."""
        return self._highlighter

    def render_body(self, source: str) -> str:
        """Convert markdown source to the HTML placed inside ``<main>``.

        Args:
            source: Markdown source text.

        Returns:
            HTML body markup.

        Raises:
            RenderError: If the markdown engine or highlighter fails.
        """
        try:
            return self._md.reset().convert(source)
        except RenderError:
            raise
        except Exception as e:
            self._log.error("markdown_conversion_failed", error=str(e))
            msg = f"Markdown conversion failed: {e}"
            raise RenderError(msg) from e

    def render(
        self,
        source: str,
        metadata: RenderMetadata,
        timestamp: datetime | None = None,
    ) -> RenderedDocument:
        """Render a complete page.

        Args:
            source: Markdown source text.
            metadata: Title, description and author for the page head.
            timestamp: Footer timestamp; defaults to the current local time.

        Returns:
            The rendered document.

        Raises:
            RenderError: If any stage fails. No partial page is produced.
        """
        rendered_at = timestamp or datetime.now().astimezone()
        body = self.render_body(source)
        html = self._template.render(
            metadata=metadata,
            body=body,
            last_edited=format_last_edited(rendered_at),
            stylesheet_href=self._stylesheet_href,
            icon_href=self._icon_href,
        )
        return RenderedDocument(html=html, rendered_at=rendered_at)
