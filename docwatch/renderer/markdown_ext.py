"""Python-Markdown extensions used by the render pipeline."""

import re
import xml.etree.ElementTree as etree
from collections.abc import Callable

from markdown import Markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor


HighlightHook = Callable[[str, str], str]

_HEADING_TAG = re.compile(r"^h([1-6])$")


class HighlightedFencePreprocessor(Preprocessor):
    """Replace fenced code blocks with highlighted HTML.

    The highlighted markup is stashed so that later stages treat it as raw
    HTML. The first word of the fence info string is the language tag.
    """

    FENCED_BLOCK_RE = re.compile(
        r"(?P<fence>^(?:~{3,}|`{3,}))[ ]*"
        r"(?P<lang>[^\s`{}]*)[^\n]*\n"
        r"(?P<code>.*?)(?<=\n)"
        r"(?P=fence)[ ]*$",
        re.MULTILINE | re.DOTALL,
    )

    def __init__(self, md: Markdown, highlight: HighlightHook) -> None:
        super().__init__(md)
        self._highlight = highlight

    def run(self, lines: list[str]) -> list[str]:
        text = "\n".join(lines)
        while True:
            m = self.FENCED_BLOCK_RE.search(text)
            if m is None:
                break
            html = self._highlight(m.group("code"), m.group("lang"))
            placeholder = self.md.htmlStash.store(html)
            text = f"{text[: m.start()]}\n{placeholder}\n{text[m.end() :]}"
        return text.split("\n")


class HighlightedFenceExtension(Extension):
    """Fenced code blocks colorized through a highlight hook."""

    def __init__(self, highlight: HighlightHook, **kwargs: object) -> None:
        self._highlight = highlight
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.registerExtension(self)
        # Same slot as the stock fenced_code extension
        md.preprocessors.register(
            HighlightedFencePreprocessor(md, self._highlight), "docwatch_fence", 25
        )


def _heading_level(element: etree.Element) -> int | None:
    if not isinstance(element.tag, str):
        return None
    m = _HEADING_TAG.match(element.tag)
    return int(m.group(1)) if m else None


class HeaderSectionsTreeprocessor(Treeprocessor):
    """Wrap every heading and the content after it in a ``<section>``.

    A section closes at the next heading of the same or a higher level, so
    deeper headings produce nested sections. Content before the first
    heading stays at the top level.
    """

    def run(self, root: etree.Element) -> None:
        children = list(root)
        for child in children:
            root.remove(child)

        stack: list[tuple[int, etree.Element]] = []
        for child in children:
            level = _heading_level(child)
            if level is not None:
                while stack and stack[-1][0] >= level:
                    stack.pop()
                section = etree.Element("section")
                section.text = "\n"
                section.tail = "\n"
                (stack[-1][1] if stack else root).append(section)
                stack.append((level, section))
            (stack[-1][1] if stack else root).append(child)


class HeaderSectionsExtension(Extension):
    """Nest document content into sections by heading level."""

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        md.registerExtension(self)
        # After toc (priority 5) so ids and permalinks are already in place
        md.treeprocessors.register(HeaderSectionsTreeprocessor(md), "header_sections", 4)
