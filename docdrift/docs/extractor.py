"""
Documentation Extractor for DocDrift

This module splits one Markdown documentation file into ordered sections
and recovers the code symbols each section talks about, so the drift
aggregator can intersect changed symbols with documentation.

Key Components:
    - Front matter: optional leading `---` YAML block (parsed with PyYAML)
    - Sections: one per ATX heading (`#` .. `######`); headings inside fenced
      blocks are ignored; non-blank content before the first heading forms
      an untitled preamble section
    - Code examples: fenced blocks (``` or ~~~) with language, description
      (nearest preceding prose line), referenced symbols, classification
      and validation hints
    - Referenced symbols: inline-code spans, call syntax in prose, CamelCase
      identifiers in prose, and call syntax inside examples
    - Referenced code paths: links and inline code ending in a source file
      extension

Academic Context:
    Input: Markdown text + its path
    Transformation: Line-oriented block scan with fence tracking
    Output: DocumentationSnapshot (immutable)
    Limitation: Symbol recovery is lexical; a prose word that happens to
    match a symbol name counts as a reference

Design Decisions:
    - Call syntax means function, a capitalized bare identifier means class
    - Language keywords and common builtins are never symbols
    - Invalid front matter is ignored rather than failing the file
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from docdrift.docs.classification import (
    extract_dependencies,
    resolve_content_type,
    validation_hints,
)
from docdrift.hash import compute_content_hash
from docdrift.logging import get_logger
from docdrift.models import (
    CodeExample,
    ContentType,
    DocumentationSection,
    DocumentationSnapshot,
)
from docdrift.parser.base import LANGUAGE_BY_EXTENSION

logger = get_logger("docs")

DOC_EXTENSIONS = (".md", ".mdx", ".markdown")

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
FENCE_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^`\s]*)")
INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
LINK_RE = re.compile(r"\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")

CALL_RE = re.compile(r"(?<![\w.$])([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)\s*\(")
PROSE_CALL_RE = re.compile(r"(?<![\w.$])([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)\(")
CAMEL_RE = re.compile(r"(?<![\w.])([A-Z][a-z0-9]+(?:[A-Z][a-z0-9]*)+)\b")
CAPITALIZED_RE = re.compile(r"(?<![\w.$])([A-Z][\w]*)\b")
IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*(?:(?:\.|::|#)[A-Za-z_$][\w$]*)*")
DECLARATION_RE = re.compile(
    r"^(?P<keyword>class|interface|type|enum|struct|trait|def|function|func|fn)\s+"
    r"(?P<name>[A-Za-z_$][\w$]*)"
)

SOURCE_EXTENSIONS = tuple(sorted(LANGUAGE_BY_EXTENSION))

NON_SYMBOLS = frozenset(
    {
        # control flow / declarations across the supported languages
        "if", "elif", "else", "for", "foreach", "while", "until", "do", "switch",
        "case", "match", "catch", "try", "except", "finally", "return", "yield",
        "function", "func", "def", "fn", "class", "new", "await", "async", "import",
        "from", "require", "export", "lambda", "with", "assert", "raise", "throw",
        "super", "this", "self", "typeof", "sizeof", "instanceof", "not", "and",
        "or", "in", "is", "unless", "begin", "end", "then", "fi", "esac",
        # builtins that would otherwise look like calls in every example
        "print", "println", "printf", "puts", "echo", "len", "range", "str",
        "int", "float", "bool", "dict", "list", "set", "tuple", "isinstance",
        "console", "log", "main", "Some", "None", "True", "False", "Ok", "Err",
        "String", "Object", "Array", "Promise", "Error", "Exception", "TODO",
        "NOTE", "API", "URL", "JSON", "YAML", "HTTP", "HTTPS", "CLI",
    }
)


@dataclass
class _SymbolSet:
    """Accumulates symbols for one section in first-seen order."""

    functions: dict[str, None] = field(default_factory=dict)
    classes: dict[str, None] = field(default_factory=dict)
    types: dict[str, None] = field(default_factory=dict)

    def add_function(self, name: str) -> None:
        if _is_symbol(name):
            self.functions.setdefault(name, None)

    def add_class(self, name: str) -> None:
        if _is_symbol(name):
            self.classes.setdefault(name, None)

    def add_type(self, name: str) -> None:
        if _is_symbol(name):
            self.types.setdefault(name, None)

    def add_qualified(self, name: str) -> None:
        """
        Record a dotted name such as `Client.connect`.

        The full name and its last part are recorded by the last part's
        case; capitalized leading parts are recorded as classes.
        """
        parts = re.split(r"\.|::|#", name)
        for owner in parts[:-1]:
            if owner[:1].isupper():
                self.add_class(owner)
        last = parts[-1]
        if last[:1].isupper():
            self.add_class(last)
        else:
            self.add_function(last)
        if len(parts) > 1:
            if last[:1].isupper():
                self.add_class(name)
            else:
                self.add_function(name)


@dataclass
class _RawSection:
    title: str
    start_line: int
    end_line: int = 0
    lines: list[str] = field(default_factory=list)
    # (start_line, language, code, description)
    fences: list[tuple[int, str, str, str]] = field(default_factory=list)
    prose: list[str] = field(default_factory=list)


def is_documentation_file(path: str) -> bool:
    return path.lower().endswith(DOC_EXTENSIONS)


def parse_front_matter(content: str) -> tuple[dict[str, Any], int]:
    """
    Split the optional YAML front matter off a document.

    Returns:
        (metadata mapping, number of lines consumed). Malformed YAML or a
        non-mapping document yields an empty mapping; its lines are still
        consumed so they never become section content.
    """
    match = FRONT_MATTER_RE.match(content)
    if match is None:
        return {}, 0
    consumed = content.count("\n", 0, match.end())
    if not match.group(0).endswith("\n"):
        consumed += 1
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.debug(f"Ignoring malformed front matter: {exc}")
        return {}, consumed
    return (data if isinstance(data, dict) else {}), consumed


def extract_documentation(
    content: str,
    path: str,
    last_updated: str = "",
) -> DocumentationSnapshot:
    """
    Extract a DocumentationSnapshot from Markdown text.

    Args:
        content: Full document text
        path: Snapshot key for the document (posix style); also drives the
            directory-path classification convention
        last_updated: ISO-8601 modification time of the file

    Returns:
        DocumentationSnapshot with ordered sections

    Example:
        >>> snap = extract_documentation("# connect()\\nCall `connect(url)`.", "docs/api.md")
        >>> snap.sections[0].referenced_functions
        ('connect',)
    """
    front_matter, consumed = parse_front_matter(content)
    lines = content.splitlines()

    raw_sections = _split_sections(lines, consumed)
    sections = tuple(_build_section(raw, front_matter, path) for raw in raw_sections)

    return DocumentationSnapshot(
        path=path,
        content_hash=compute_content_hash(content),
        referenced_code=extract_code_references(content),
        sections=sections,
        last_updated=last_updated,
    )


def _split_sections(lines: list[str], first_line: int) -> list[_RawSection]:
    sections: list[_RawSection] = []
    current = _RawSection(title="", start_line=first_line + 1)
    fence: Optional[str] = None
    fence_start = 0
    fence_language = ""
    fence_lines: list[str] = []
    last_prose = ""

    for index in range(first_line, len(lines)):
        number = index + 1
        line = lines[index]

        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence) and stripped.strip(fence[0]) == "":
                current.fences.append((fence_start, fence_language, "\n".join(fence_lines), last_prose))
                fence = None
            else:
                fence_lines.append(line)
            current.lines.append(line)
            current.end_line = number
            continue

        opening = FENCE_RE.match(line)
        if opening:
            fence = opening.group("fence")
            fence_start = number
            fence_language = opening.group("info").lower() or "text"
            fence_lines = []
            current.lines.append(line)
            current.end_line = number
            continue

        heading = HEADING_RE.match(line)
        if heading:
            if current.title or any(l.strip() for l in current.lines):
                sections.append(current)
            current = _RawSection(title=heading.group(2).strip(), start_line=number, end_line=number)
            last_prose = ""
            continue

        current.lines.append(line)
        current.end_line = number
        if line.strip():
            current.prose.append(line)
            last_prose = line.strip()

    if fence is not None:
        # An unterminated fence runs to the end of the document.
        current.fences.append((fence_start, fence_language, "\n".join(fence_lines), last_prose))
    if current.title or any(l.strip() for l in current.lines):
        sections.append(current)
    return sections


def _build_section(
    raw: _RawSection, front_matter: dict[str, Any], path: str
) -> DocumentationSection:
    symbols = _SymbolSet()
    _symbols_from_heading(raw.title, symbols)
    prose = "\n".join(raw.prose)
    _symbols_from_prose(prose, symbols)

    context = f"{raw.title}\n{prose}"
    examples = []
    for _, language, code, description in raw.fences:
        example_symbols = extract_symbols_from_code(code)
        for name in example_symbols:
            if name[:1].isupper():
                symbols.add_class(name)
            else:
                symbols.add_function(name)
        content_type: Optional[ContentType] = resolve_content_type(front_matter, path, context)
        dependencies = extract_dependencies(language, code)
        examples.append(
            CodeExample(
                language=language,
                code=code,
                description=description,
                referenced_symbols=example_symbols,
                content_type=content_type,
                hints=validation_hints(content_type, dependencies),
            )
        )

    return DocumentationSection(
        title=raw.title,
        content="\n".join(raw.lines).strip("\n"),
        referenced_functions=tuple(symbols.functions),
        referenced_classes=tuple(symbols.classes),
        referenced_types=tuple(symbols.types),
        code_examples=tuple(examples),
        start_line=raw.start_line,
        end_line=max(raw.end_line, raw.start_line),
    )


def _symbols_from_heading(title: str, symbols: _SymbolSet) -> None:
    """
    A heading names a symbol when it is call syntax, a declaration, or a
    single identifier that is code-formatted, CamelCase, dotted or
    underscored. Plain words such as "Usage" or "Overview" are not symbols.
    """
    quoted = "`" in title
    text = title.replace("`", "").strip()
    call = CALL_RE.match(text)
    if call:
        symbols.add_qualified(call.group(1))
        return
    declaration = DECLARATION_RE.match(text)
    if declaration:
        _add_declaration(declaration, symbols)
        return
    if not IDENTIFIER_RE.fullmatch(text):
        return
    if quoted or CAMEL_RE.fullmatch(text) or "." in text or "_" in text:
        symbols.add_qualified(text)


def _symbols_from_prose(prose: str, symbols: _SymbolSet) -> None:
    for span in INLINE_CODE_RE.findall(prose):
        _symbols_from_inline_code(span.strip(), symbols)

    plain = INLINE_CODE_RE.sub(" ", prose)
    plain = LINK_RE.sub(" ", plain)
    for match in PROSE_CALL_RE.finditer(plain):
        symbols.add_qualified(match.group(1))
    for match in CAMEL_RE.finditer(plain):
        symbols.add_class(match.group(1))


def _symbols_from_inline_code(span: str, symbols: _SymbolSet) -> None:
    if span.lower().endswith(SOURCE_EXTENSIONS):
        return
    declaration = DECLARATION_RE.match(span)
    if declaration:
        _add_declaration(declaration, symbols)
        return
    call = CALL_RE.match(span)
    if call:
        symbols.add_qualified(call.group(1))
        return
    if IDENTIFIER_RE.fullmatch(span):
        symbols.add_qualified(span)


def _add_declaration(match: "re.Match[str]", symbols: _SymbolSet) -> None:
    keyword, name = match.group("keyword"), match.group("name")
    if keyword in ("interface", "type", "enum", "trait"):
        symbols.add_type(name)
    elif keyword in ("class", "struct"):
        symbols.add_class(name)
    else:
        symbols.add_function(name)


def extract_symbols_from_code(code: str) -> tuple[str, ...]:
    """
    Symbols an example's code uses: call targets and capitalized identifiers.

    Dotted calls contribute their last part (`client.connect()` gives
    `connect`); keywords and common builtins are dropped.
    """
    found: dict[str, None] = {}
    for match in CALL_RE.finditer(code):
        name = match.group(1).rsplit(".", 1)[-1]
        if _is_symbol(name):
            found.setdefault(name, None)
    for match in CAPITALIZED_RE.finditer(code):
        name = match.group(1)
        if _is_symbol(name) and len(name) > 1:
            found.setdefault(name, None)
    return tuple(found)


def extract_code_references(content: str) -> tuple[str, ...]:
    """Source paths referenced by links or inline code, in first-seen order."""
    found: dict[str, None] = {}
    for target in LINK_RE.findall(content):
        target = target.split("#", 1)[0].split("?", 1)[0]
        if target.lower().endswith(SOURCE_EXTENSIONS) and "://" not in target:
            found.setdefault(target, None)
    for span in INLINE_CODE_RE.findall(content):
        span = span.strip()
        if " " not in span and span.lower().endswith(SOURCE_EXTENSIONS):
            found.setdefault(span, None)
    return tuple(found)


def _is_symbol(name: str) -> bool:
    return bool(name) and name not in NON_SYMBOLS and not name.startswith("$")
