"""Constants for docwatch configuration."""

from typing import Final


# Log component names
COMPONENT_CLI = "cli"
COMPONENT_CONFIG = "config"
COMPONENT_RENDERER = "renderer"
COMPONENT_WRITER = "atomic_writer"
COMPONENT_POLLER = "poller"
COMPONENT_BUILDER = "builder"
COMPONENT_ORCHESTRATOR = "orchestrator"
COMPONENT_LIVERELOAD = "livereload"

# Source discovery
SOURCE_SUFFIX = ".md"
OUTPUT_SUFFIX = ".html"
CONFIG_FILE_NAME = "docwatch.yaml"

# Polling and publishing
DEFAULT_POLL_INTERVAL_MS = 500
DEFAULT_RETRY_DELAY_MS = 100
TEMP_SUFFIX = ".temp"

# Live-reload server
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000

# Page shell
DEFAULT_STYLESHEET_HREF = "styles/main.css"
DEFAULT_ICON_HREF = "icons/oasis-32x32.png"
DEFAULT_PERMALINK_SYMBOL = "§"
DEFAULT_TOC_MARKER = "${toc}"
DEFAULT_THEME = "default"

# Metadata for documents without an override
DEFAULT_TITLE = "Untitled"
DEFAULT_DESCRIPTION = ""
DEFAULT_AUTHOR = ""

DEFAULT_IGNORE_DIRS: Final[tuple[str, ...]] = (
    ".git",
    ".vscode",
    "node_modules",
    ".src",
    ".dist",
    "notes",
)
DEFAULT_IGNORE_PATTERNS: Final[tuple[str, ...]] = ("*.temp", "*.json", "*.md")

AUTHOR_ROTEM_DAN = "Rotem Dan"

BUILTIN_DOCUMENT_OVERRIDES: Final[tuple[dict[str, str], ...]] = (
    {
        "source": "readme.md",
        "output": "index.html",
        "title": "The Island Programming Language",
        "description": (
            "Multiparadigm general-purpose programming language, fusing aspects "
            "of functional, imperative, object-oriented, and various forms of "
            "declarative programming."
        ),
        "author": AUTHOR_ROTEM_DAN,
    },
    {
        "source": "lake.md",
        "output": "lake.html",
        "title": "The Lake Programming Language",
        "description": "Declarative programming language designed for components.",
        "author": AUTHOR_ROTEM_DAN,
    },
)
