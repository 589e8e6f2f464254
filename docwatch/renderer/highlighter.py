"""Syntax highlighting for fenced code blocks.

The Highlighter is built once at startup from the bundled Pygments lexers,
custom grammar definitions and a single color theme, then handed to the
render pipeline. It holds no mutable state after construction.

Custom grammars are ordered regex rules compiled into Pygments
``RegexLexer`` subclasses. Themes are either a Pygments style name or a
VS Code color theme JSON file, whose ``tokenColors`` scopes are mapped
onto Pygments token types.
"""

import json
import re
from collections.abc import Mapping, Sequence
from importlib import resources
from pathlib import Path
from types import MappingProxyType

import structlog
import yaml
from pydantic import ValidationError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer, RegexLexer
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.style import Style
from pygments.styles import get_style_by_name
from pygments.token import (
    STANDARD_TYPES,
    Comment,
    Error,
    Generic,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
    Whitespace,
    _TokenType,
    string_to_tokentype,
)
from pygments.util import ClassNotFound

from docwatch.config.constants import COMPONENT_RENDERER, DEFAULT_THEME
from docwatch.config.schemas import GrammarDefinition, GrammarRule
from docwatch.errors import GrammarError, ThemeError, UnknownLanguageError


logger = structlog.get_logger()

# (id, scope name, aliases, rules file under renderer/grammars)
_BUILTIN_GRAMMARS: tuple[tuple[str, str, tuple[str, ...], str], ...] = (
    ("island", "source.island", ("isl",), "island.yaml"),
    ("lake", "source.lake", (), "lake.yaml"),
)

# TextMate scope prefixes, most specific first wins by prefix length
SCOPE_TOKENS: dict[str, _TokenType] = {
    "comment": Comment,
    "string": String,
    "string.regexp": String.Regex,
    "constant": Name.Constant,
    "constant.numeric": Number,
    "constant.language": Keyword.Constant,
    "constant.character.escape": String.Escape,
    "keyword": Keyword,
    "keyword.operator": Operator,
    "storage": Keyword.Declaration,
    "storage.type": Keyword.Type,
    "entity.name.function": Name.Function,
    "entity.name.type": Name.Class,
    "entity.name.class": Name.Class,
    "entity.name.tag": Name.Tag,
    "entity.other.attribute-name": Name.Attribute,
    "support.function": Name.Builtin,
    "support.type": Keyword.Type,
    "variable": Name.Variable,
    "variable.parameter": Name.Variable,
    "punctuation": Punctuation,
    "markup.heading": Generic.Heading,
    "markup.bold": Generic.Strong,
    "markup.italic": Generic.Emph,
    "invalid": Error,
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_FONT_STYLES = frozenset({"italic", "bold", "underline"})


def _token_type(name: str) -> _TokenType:
    """Resolve a dotted Pygments token name such as ``Keyword.Type``."""
    token = string_to_tokentype(name)
    if token not in STANDARD_TYPES:
        msg = f"Unknown token type '{name}'"
        raise GrammarError(msg)
    return token


def parse_rules(text: str, source: str) -> list[GrammarRule]:
    """Parse a YAML rules document.

    Args:
        text: YAML content with a top-level ``rules`` list.
        source: Name of the document, for error messages.

    Returns:
        Validated grammar rules in declaration order.

    Raises:
        GrammarError: If the document is not valid YAML or a rule is invalid.
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        msg = f"Invalid grammar file {source}: {e}"
        raise GrammarError(msg) from e

    raw_rules = data.get("rules") if isinstance(data, dict) else None
    if not isinstance(raw_rules, list) or not raw_rules:
        msg = f"Grammar file {source} has no rules list"
        raise GrammarError(msg)

    try:
        return [GrammarRule.model_validate(rule) for rule in raw_rules]
    except ValidationError as e:
        msg = f"Invalid rule in grammar file {source}: {e}"
        raise GrammarError(msg) from e


def builtin_grammars() -> list[GrammarDefinition]:
    """Load the grammars shipped with docwatch."""
    grammars_dir = resources.files("docwatch.renderer") / "grammars"
    definitions: list[GrammarDefinition] = []
    for grammar_id, scope_name, aliases, file_name in _BUILTIN_GRAMMARS:
        text = (grammars_dir / file_name).read_text(encoding="utf-8")
        definitions.append(
            GrammarDefinition(
                id=grammar_id,
                scope_name=scope_name,
                aliases=list(aliases),
                rules=parse_rules(text, file_name),
            )
        )
    return definitions


def build_lexer_class(
    grammar: GrammarDefinition, base_dir: Path | None = None
) -> type[RegexLexer]:
    """Compile a grammar definition into a Pygments lexer class.

    Args:
        grammar: The grammar definition.
        base_dir: Directory that relative rule file paths resolve against.

    Returns:
        A RegexLexer subclass whose tokens are the grammar's rules followed
        by whitespace and single-character fallbacks.

    Raises:
        GrammarError: If the rules file is missing or a rule is invalid.
    """
    rules = list(grammar.rules)
    if grammar.path is not None:
        path = grammar.path
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Cannot read grammar '{grammar.id}' from {path}: {e}"
            raise GrammarError(msg) from e
        rules = parse_rules(text, str(path))

    tokens: list[tuple[str, _TokenType]] = [
        (rule.pattern, _token_type(rule.token)) for rule in rules
    ]
    tokens.append((r"\s+", Whitespace))
    tokens.append((r".", Text))

    class_name = "".join(part.capitalize() for part in re.split(r"[-_]", grammar.id))
    lexer_class = type(
        f"{class_name}Lexer",
        (RegexLexer,),
        {
            "name": grammar.id,
            "aliases": list(grammar.names),
            "filenames": [],
            "tokens": {"root": tokens},
        },
    )

    # RegexLexer compiles its token table on first instantiation
    try:
        lexer_class()
    except (re.error, ValueError) as e:
        msg = f"Cannot compile grammar '{grammar.id}': {e}"
        raise GrammarError(msg) from e
    return lexer_class


def _normalize_color(value: object) -> str | None:
    """Normalize a VS Code color to the ``#rgb``/``#rrggbb`` form Pygments accepts."""
    if not isinstance(value, str) or not value:
        return None
    color = value[:7] if len(value) == 9 else value
    color = color[:4] if len(color) == 5 else color
    if not _HEX_COLOR.match(color):
        msg = f"Invalid theme color '{value}'"
        raise ThemeError(msg)
    return color


def _scope_token(scope: str) -> _TokenType | None:
    """Map a TextMate scope to the most specific known token type."""
    best: str | None = None
    for prefix in SCOPE_TOKENS:
        if (scope == prefix or scope.startswith(prefix + ".")) and (
            best is None or len(prefix) > len(best)
        ):
            best = prefix
    return SCOPE_TOKENS[best] if best is not None else None


def style_from_vscode_theme(data: Mapping[str, object]) -> type[Style]:
    """Build a Pygments style from a parsed VS Code color theme.

    Args:
        data: Parsed theme JSON (``name``, ``colors``, ``tokenColors``).

    Returns:
        A Style subclass with inline-able colors.

    Raises:
        ThemeError: If the theme structure or a color is invalid.
    """
    colors = data.get("colors") or {}
    token_colors = data.get("tokenColors") or []
    if not isinstance(colors, dict) or not isinstance(token_colors, list):
        msg = "Theme must have a 'colors' object and a 'tokenColors' list"
        raise ThemeError(msg)

    styles: dict[_TokenType, str] = {}
    foreground = _normalize_color(colors.get("editor.foreground"))
    if foreground:
        styles[Token] = foreground
    background = _normalize_color(colors.get("editor.background")) or "#ffffff"

    for entry in token_colors:
        if not isinstance(entry, dict):
            continue
        settings = entry.get("settings") or {}
        scopes = entry.get("scope")
        if not scopes or not isinstance(settings, dict):
            continue
        if isinstance(scopes, str):
            scopes = [s.strip() for s in scopes.split(",")]

        parts: list[str] = []
        color = _normalize_color(settings.get("foreground"))
        if color:
            parts.append(color)
        font_style = settings.get("fontStyle")
        if isinstance(font_style, str):
            parts.extend(w for w in font_style.split() if w in _FONT_STYLES)
        if not parts:
            continue

        for scope in scopes:
            token = _scope_token(str(scope))
            if token is not None:
                styles[token] = " ".join(parts)

    name = str(data.get("name") or "custom")
    class_name = "".join(ch for ch in name.title() if ch.isalnum()) or "Custom"
    return type(
        f"{class_name}Style",
        (Style,),
        {"name": name, "background_color": background, "styles": styles},
    )


def load_style(theme: str = DEFAULT_THEME, base_dir: Path | None = None) -> type[Style]:
    """Resolve a theme setting to a Pygments style class.

    Args:
        theme: A Pygments style name, or a path to a VS Code theme ``.json``.
        base_dir: Directory that relative theme paths resolve against.

    Returns:
        The style class.

    Raises:
        ThemeError: If the style name is unknown or the file is invalid.
    """
    if theme.endswith(".json"):
        path = Path(theme)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot load theme {path}: {e}"
            raise ThemeError(msg) from e
        if not isinstance(data, dict):
            msg = f"Theme {path} is not a JSON object"
            raise ThemeError(msg)
        return style_from_vscode_theme(data)

    try:
        return get_style_by_name(theme)
    except ClassNotFound as e:
        msg = f"Unknown theme '{theme}'"
        raise ThemeError(msg) from e


class Highlighter:
    """Maps a fence's language tag and code to colorized HTML.

    Custom grammars take precedence over bundled Pygments lexers with the
    same name. An empty tag renders as plain text; an unknown tag raises.
    """

    def __init__(
        self,
        style: type[Style],
        custom_lexers: Mapping[str, type[Lexer]] | None = None,
    ) -> None:
        """Initialize the highlighter.

        Args:
            style: Pygments style used for inline colors.
            custom_lexers: Lexer classes keyed by every id and alias.
        """
        self._style = style
        self._custom_lexers = MappingProxyType(dict(custom_lexers or {}))
        self._formatter = HtmlFormatter(style=style, noclasses=True)

    @classmethod
    def create(
        cls,
        grammars: Sequence[GrammarDefinition] = (),
        theme: str = DEFAULT_THEME,
        base_dir: Path | None = None,
        include_builtin: bool = True,
    ) -> "Highlighter":
        """Build a highlighter from grammar definitions and a theme.

        Args:
            grammars: Custom grammar definitions; later entries win.
            theme: Theme setting, see load_style().
            base_dir: Directory that relative paths resolve against.
            include_builtin: Whether to register the bundled grammars first.

        Returns:
            A ready highlighter.

        Raises:
            GrammarError: If a grammar cannot be compiled.
            ThemeError: If the theme cannot be loaded.
        """
        definitions = [*builtin_grammars(), *grammars] if include_builtin else list(grammars)

        custom_lexers: dict[str, type[Lexer]] = {}
        for grammar in definitions:
            lexer_class = build_lexer_class(grammar, base_dir)
            for name in grammar.names:
                custom_lexers[name.lower()] = lexer_class

        style = load_style(theme, base_dir)
        logger.bind(component=COMPONENT_RENDERER).debug(
            "highlighter_ready",
            theme=theme,
            custom_languages=sorted(custom_lexers),
        )
        return cls(style, custom_lexers)

    @property
    def custom_languages(self) -> tuple[str, ...]:
        """Fence tags served by custom grammars."""
        return tuple(sorted(self._custom_lexers))

    @property
    def style(self) -> type[Style]:
        """The Pygments style in use."""
        return self._style

    def get_lexer(self, lang: str) -> Lexer:
        """Resolve a fence language tag to a lexer instance.

        Args:
            lang: Fence language tag, possibly empty.

        Returns:
            A lexer instance.

        Raises:
            UnknownLanguageError: If no lexer is registered for the tag.
        """
        tag = lang.strip().lower()
        if not tag:
            return TextLexer()
        if tag in self._custom_lexers:
            return self._custom_lexers[tag]()
        try:
            return get_lexer_by_name(tag)
        except ClassNotFound as e:
            raise UnknownLanguageError(tag) from e

    def code_to_html(self, code: str, lang: str) -> str:
        """Highlight code as an inline-styled HTML block.

        Args:
            code: Source code of the fenced block.
            lang: Fence language tag.

        Returns:
            HTML markup for the block.

        Raises:
            UnknownLanguageError: If no lexer is registered for the tag.
        """
        return highlight(code, self.get_lexer(lang), self._formatter)
