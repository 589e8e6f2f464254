"""Unit tests for the markdown extensions."""

import xml.etree.ElementTree as etree

import markdown

from docwatch.renderer.markdown_ext import (
    HeaderSectionsExtension,
    HighlightedFenceExtension,
)


def _parse(html: str) -> etree.Element:
    return etree.fromstring(f"<root>{html}</root>")


class FakeHighlighter:
    """Records highlight calls and returns a marker block."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def __call__(self, code: str, lang: str) -> str:
        self.calls.append((code, lang))
        return f'<div class="hl" data-lang="{lang}">highlighted</div>'


class TestHighlightedFenceExtension:
    """Tests for HighlightedFenceExtension."""

    def test_fence_goes_through_hook(self) -> None:
        """The fence body and language reach the highlight hook."""
        hook = FakeHighlighter()
        md = markdown.Markdown(extensions=[HighlightedFenceExtension(highlight=hook)])

        html = md.convert("Intro\n\n```isl\nlet a = 1\n```\n\nOutro\n")

        assert hook.calls == [("let a = 1\n", "isl")]
        assert '<div class="hl" data-lang="isl">highlighted</div>' in html
        assert "<p>Intro</p>" in html
        assert "<p>Outro</p>" in html

    def test_highlighted_block_is_not_wrapped_in_paragraph(self) -> None:
        """Stashed markup is inserted as a block."""
        md = markdown.Markdown(
            extensions=[HighlightedFenceExtension(highlight=FakeHighlighter())]
        )
        html = md.convert("```isl\nlet a\n```\n")
        assert "<p><div" not in html

    def test_fence_without_language(self) -> None:
        """A bare fence passes an empty language."""
        hook = FakeHighlighter()
        md = markdown.Markdown(extensions=[HighlightedFenceExtension(highlight=hook)])
        md.convert("```\nplain\n```\n")
        assert hook.calls == [("plain\n", "")]

    def test_tilde_fence_with_info_string(self) -> None:
        """Tilde fences work and extra info after the language is ignored."""
        hook = FakeHighlighter()
        md = markdown.Markdown(extensions=[HighlightedFenceExtension(highlight=hook)])
        md.convert("~~~lake title=example\ncomponent A\n~~~\n")
        assert hook.calls == [("component A\n", "lake")]

    def test_multiple_fences_in_order(self) -> None:
        """Every fence is highlighted, in document order."""
        hook = FakeHighlighter()
        md = markdown.Markdown(extensions=[HighlightedFenceExtension(highlight=hook)])
        md.convert("```isl\none\n```\n\ntext\n\n```lake\ntwo\n```\n")
        assert hook.calls == [("one\n", "isl"), ("two\n", "lake")]


class TestHeaderSectionsExtension:
    """Tests for HeaderSectionsExtension."""

    def test_nests_by_heading_level(self) -> None:
        """Deeper headings nest inside the enclosing section."""
        md = markdown.Markdown(extensions=[HeaderSectionsExtension()])
        html = md.convert("# A\n\nalpha\n\n## B\n\nbeta\n\n# C\n\ngamma\n")

        root = _parse(html)
        sections = list(root)
        assert [child.tag for child in sections] == ["section", "section"]

        first = sections[0]
        assert [child.tag for child in first] == ["h1", "p", "section"]
        assert first[0].text == "A"
        nested = first[2]
        assert [child.tag for child in nested] == ["h2", "p"]
        assert nested[1].text == "beta"

        second = sections[1]
        assert [child.tag for child in second] == ["h1", "p"]
        assert second[1].text == "gamma"

    def test_content_before_first_heading_stays_top_level(self) -> None:
        """A preamble is not wrapped in a section."""
        md = markdown.Markdown(extensions=[HeaderSectionsExtension()])
        root = _parse(md.convert("preamble\n\n# Title\n\nbody\n"))
        assert [child.tag for child in root] == ["p", "section"]

    def test_skipped_levels(self) -> None:
        """An h3 directly under an h1 nests one level, and a following h2 closes it."""
        md = markdown.Markdown(extensions=[HeaderSectionsExtension()])
        root = _parse(md.convert("# A\n\n### deep\n\n## B\n"))

        top = root[0]
        assert [child.tag for child in top] == ["h1", "section", "section"]
        assert top[1][0].tag == "h3"
        assert top[2][0].tag == "h2"

    def test_document_without_headings(self) -> None:
        """Documents without headings are unchanged."""
        md = markdown.Markdown(extensions=[HeaderSectionsExtension()])
        assert md.convert("just text") == "<p>just text</p>"
