"""Plugin list management for Roundcube's PHP configuration file.

This module rewrites the ``plugins`` setting of ``config/config.inc.php``
without executing the file. The assignment is located with a regular
expression, ignoring matches inside comments and string literals. Its
right-hand side runs to the first semicolon outside strings and comments, is
parsed into a list of strings and rendered back in a stable, diff-friendly
layout.

Statement Format:
    $config['plugins'] = array(
        'archive',
        'zipdownload',
    );
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import NamedTuple

PRIMARY_VARIABLE = "$config"
LEGACY_VARIABLE = "$rcmail_config"
DEFAULT_VARIABLES = (PRIMARY_VARIABLE, LEGACY_VARIABLE)

PLUGINS_KEY = "plugins"
END_OF_DOCUMENT = "?>"

_STRING_LITERAL = re.compile(r"""'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)\"""", re.DOTALL)
_ARRAY_LITERAL = re.compile(r"^(?:array\s*\((?P<long>.*)\)|\[(?P<short>.*)\])$", re.I | re.S)
_LEXEME = re.compile(
    r"//[^\n]*|#[^\n]*|/\*.*?(?:\*/|\Z)"
    r"|'(?:[^'\\]|\\.)*(?:'|\Z)|\"(?:[^\"\\]|\\.)*(?:\"|\Z)",
    re.S,
)


class MalformedDocumentError(ValueError):
    """The plugins assignment exists but is not a list of strings."""

    def __init__(self, message: str, variable: str | None = None):
        self.variable = variable
        super().__init__(message)


@dataclass(frozen=True)
class ConfigDocument:
    """Raw text of a configuration file."""

    raw_text: str


class EditResult(NamedTuple):
    """Outcome of applying an activation change to a document."""

    document: ConfigDocument
    changed: bool


@dataclass
class PluginAssignment:
    """Represents the plugins assignment found within a document."""

    variable: str
    plugins: list[str]
    start_pos: int
    end_pos: int


def make_assignment_pattern(variable: str, key: str = PLUGINS_KEY) -> re.Pattern[str]:
    """Create the pattern matching the ``<variable>['<key>'] =`` prefix.

    The value is not part of the pattern; it runs up to the first semicolon
    outside strings and comments (see find_statement_end).

    Args:
        variable: Variable name including the leading ``$``
        key: Setting key

    Returns:
        Compiled pattern with a ``target`` group
    """
    return re.compile(
        rf"(?P<target>{re.escape(variable)}\[\s*(['\"]){re.escape(key)}\2\s*\])\s*=\s*",
        re.I,
    )


def lexeme_spans(text: str) -> list[tuple[int, int]]:
    """Get the ``(start, end)`` spans of comments and string literals.

    An unterminated comment or string runs to the end of the text.
    """
    return [match.span() for match in _LEXEME.finditer(text)]


def _span_at(spans: list[tuple[int, int]], pos: int) -> tuple[int, int] | None:
    index = bisect.bisect_right(spans, pos, key=lambda span: span[0]) - 1
    if index >= 0 and spans[index][0] <= pos < spans[index][1]:
        return spans[index]
    return None


def find_statement_end(text: str, pos: int, spans: list[tuple[int, int]] | None = None) -> int:
    """Find the terminating semicolon of the statement starting at pos.

    Semicolons inside strings and comments are skipped.

    Args:
        text: The full document text
        pos: Position to start searching from
        spans: Precomputed lexeme_spans(text)

    Returns:
        Index of the semicolon, or -1 if the statement is not terminated
    """
    if spans is None:
        spans = lexeme_spans(text)
    while True:
        pos = text.find(";", pos)
        if pos == -1:
            return -1
        span = _span_at(spans, pos)
        if span is None:
            return pos
        pos = span[1]


def strip_comments(value: str) -> str:
    """Replace PHP comments outside string literals with a space."""
    return _LEXEME.sub(lambda m: m.group() if m.group()[0] in "'\"" else " ", value)

def _unescape(value: str, quote: str) -> str:
    if quote == "'":
        return re.sub(r"\\([\\'])", r"\1", value)
    return re.sub(r"\\([\\\"$])", r"\1", value)


def parse_string_list(value: str, variable: str | None = None) -> list[str]:
    """Parse a PHP list literal of strings.

    Accepts ``array(...)``, ``[...]`` and a single string literal (PHP casts
    a scalar to a one-element array). Comments between elements are ignored.

    Args:
        value: Right-hand side of the assignment
        variable: Variable name, used for error reporting

    Returns:
        Ordered list of plugin names

    Raises:
        MalformedDocumentError: If the value is not a list of strings
    """
    value = strip_comments(value).strip()

    literal = _STRING_LITERAL.fullmatch(value)
    if literal:
        quote = "'" if literal.group(1) is not None else '"'
        return [_unescape(literal.group(1) or literal.group(2) or "", quote)]

    array = _ARRAY_LITERAL.match(value)
    if not array:
        raise MalformedDocumentError(f"Cannot parse plugin list: {value!r}", variable)

    inner = array.group("long")
    if inner is None:
        inner = array.group("short")

    items: list[str] = []
    pos = 0
    length = len(inner)
    while True:
        while pos < length and inner[pos].isspace():
            pos += 1
        if pos >= length:
            break

        match = _STRING_LITERAL.match(inner, pos)
        if not match:
            raise MalformedDocumentError(
                f"Unexpected content in plugin list: {inner[pos:].strip()!r}", variable
            )
        if match.group(1) is not None:
            items.append(_unescape(match.group(1), "'"))
        else:
            items.append(_unescape(match.group(2), '"'))
        pos = match.end()

        while pos < length and inner[pos].isspace():
            pos += 1
        if pos >= length:
            break
        if inner[pos] != ",":
            raise MalformedDocumentError(
                f"Expected ',' in plugin list, found {inner[pos:].strip()!r}", variable
            )
        pos += 1

    return items


def render_string_list(plugins: list[str]) -> str:
    """Render plugin names as a PHP array literal.

    One element per line with a trailing comma after each element.

    Args:
        plugins: Plugin names

    Returns:
        PHP ``array(...)`` literal
    """
    lines = ["array(\n"]
    for name in plugins:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        lines.append(f"\t'{escaped}',\n")
    lines.append(")")
    return "".join(lines)


def find_plugin_assignment(
    text: str,
    variables: tuple[str, ...] = DEFAULT_VARIABLES,
    key: str = PLUGINS_KEY,
) -> PluginAssignment | None:
    """Find the plugins assignment in a document.

    Variables are tried in order; the first one with a match wins.

    Args:
        text: The full document text
        variables: Candidate variable names in priority order
        key: Setting key

    Returns:
        PluginAssignment if found, None otherwise

    Raises:
        MalformedDocumentError: If the matched value is not a list of strings
            or the statement has no terminating semicolon
    """
    spans = lexeme_spans(text)
    for variable in variables:
        pattern = make_assignment_pattern(variable, key)
        for match in pattern.finditer(text):
            if _span_at(spans, match.start()) is not None:
                continue
            end = find_statement_end(text, match.end(), spans)
            if end == -1:
                raise MalformedDocumentError(
                    f"Unterminated {variable}['{key}'] assignment", variable
                )
            return PluginAssignment(
                variable=match.group("target")[: len(variable)],
                plugins=parse_string_list(text[match.end() : end], variable),
                start_pos=match.start(),
                end_pos=end + 1,
            )
    return None


class ConfigPluginListEditor:
    """Adds or removes a plugin in the ``plugins`` setting of a document.

    The editor never performs I/O and never mutates its input. Reading and
    writing the file is left to the caller.
    """

    def __init__(self, variables: tuple[str, ...] = DEFAULT_VARIABLES, key: str = PLUGINS_KEY):
        if not variables:
            raise ValueError("At least one config variable name is required")
        self.variables = tuple(variables)
        self.key = key

    def plugins(self, document: ConfigDocument) -> list[str]:
        """Get the plugins currently listed in the document."""
        assignment = find_plugin_assignment(document.raw_text, self.variables, self.key)
        return list(assignment.plugins) if assignment else []

    def apply(self, document: ConfigDocument, plugin_name: str, activate: bool) -> EditResult:
        """Activate or deactivate a plugin.

        Args:
            document: Current configuration document
            plugin_name: Normalized plugin name
            activate: True to ensure membership, False to ensure removal

        Returns:
            EditResult with the new document and whether it changed

        Raises:
            ValueError: If plugin_name is empty
            MalformedDocumentError: If the plugins statement cannot be parsed
        """
        if not plugin_name:
            raise ValueError("Plugin name must not be empty")

        text = document.raw_text
        assignment = find_plugin_assignment(text, self.variables, self.key)
        current = assignment.plugins if assignment else []

        if activate:
            desired = current if plugin_name in current else [*current, plugin_name]
        else:
            desired = [name for name in current if name != plugin_name]

        if desired == current:
            return EditResult(document, False)

        rendered = render_string_list(desired)

        if assignment:
            statement = f"{assignment.variable}['{self.key}'] = {rendered};"
            new_text = text[: assignment.start_pos] + statement + text[assignment.end_pos :]
        else:
            statement = f"\n{self.variables[0]}['{self.key}'] = {rendered};\n"
            stripped = text.rstrip()
            if stripped.endswith(END_OF_DOCUMENT):
                marker_pos = len(stripped) - len(END_OF_DOCUMENT)
                new_text = text[:marker_pos] + statement + text[marker_pos:]
            else:
                new_text = text + statement

        return EditResult(ConfigDocument(new_text), True)
