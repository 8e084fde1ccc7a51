"""
C / C++ / Java Structure Extractor

Brace-scanning backend shared by the C family. Namespace and `extern "C"`
blocks are transparent, so declarations inside them count as top level.

Export conventions:
    - C and C++: everything that is not `static`
    - Java: `public` types and members
    - C++ class members follow the `public:` / `private:` sections
      (classes default to private, structs to public)
"""

import re
from dataclasses import replace
from typing import Optional

from docdrift.models import (
    ClassInfo,
    FunctionSignature,
    ImportInfo,
    ParameterInfo,
    TypeInfo,
)
from docdrift.parser.base import ExtractedStructure, LanguageBackend
from docdrift.parser.scanning import (
    brace_depths,
    count_matches,
    find_closing,
    join_members,
    line_of,
    mask_source,
    split_top_level,
    squash,
)

FUNCTION_RE = re.compile(
    r"^[ \t]*(?P<prefix>(?:[\w:<>,\[\]]+[ \t*&]+)*?)(?P<name>~?[A-Za-z_][\w:~]*)\s*\(",
    re.MULTILINE,
)
TYPE_DECL_RE = re.compile(
    r"^[ \t]*(?P<mods>(?:(?:public|private|protected|abstract|final|static|sealed|typedef"
    r"|template\s*<[^>]*>)\s+)*)(?P<kind>class|struct|interface|enum|record|union)\s+"
    r"(?P<name>[A-Za-z_]\w*)(?P<rest>[^{;(]*)\{",
    re.MULTILINE,
)
TYPEDEF_RE = re.compile(r"^[ \t]*typedef\s+(?P<definition>[^;{]*?)\s*\b(?P<name>\w+)\s*;", re.MULTILINE)
TYPEDEF_BLOCK_RE = re.compile(r"^[ \t]*typedef\s+(?:struct|enum|union)\s*\w*\s*\{", re.MULTILINE)
USING_ALIAS_RE = re.compile(r"^[ \t]*using\s+(?P<name>\w+)\s*=\s*(?P<definition>[^;]+);", re.MULTILINE)
TRANSPARENT_RE = re.compile(r"\b(?:namespace(?:\s+[\w:]+)?|extern\s*\"\s*\")\s*\{")
ACCESS_LABEL_RE = re.compile(r"^[ \t]*(?P<label>public|private|protected)\s*:", re.MULTILINE)
FIELD_RE = re.compile(
    r"^[ \t]*(?P<mods>(?:(?:public|private|protected|static|final|const|mutable|volatile"
    r"|transient|readonly)\s+)*)[\w:<>,\[\]]+(?:[ \t*&]+[\w:<>,\[\]]+)*?[ \t*&]+"
    r"(?P<name>[A-Za-z_]\w*)\s*(?:\[[^\]]*\])?\s*(?:=[^;]*)?;",
    re.MULTILINE,
)
INCLUDE_RE = re.compile(r"^[ \t]*#\s*include\s*[<\"](?P<src>[^>\"]+)[>\"]", re.MULTILINE)
JAVA_IMPORT_RE = re.compile(r"^[ \t]*import\s+(?:static\s+)?(?P<src>[\w.]+(?:\.\*)?)\s*;", re.MULTILINE)
BASE_RE = re.compile(r"(?:extends|:)\s*(?:(?:public|protected|private|virtual)\s+)*(?P<base>[\w:.]+)")
TRAILER_RE = re.compile(
    r"\s*(?:const\s*)?(?:noexcept\s*)?(?:override\s*)?(?:final\s*)?"
    r"(?:throws\s+[\w.,\s]+?)?\s*(?:=\s*\w+\s*)?(?=[{;:])"
)

DECISION_RE = re.compile(r"\bif\b|\bfor\b|\bwhile\b|\bcase\b|\bcatch\b|&&|\|\||\s\?\s")

_NOT_FUNCTIONS = frozenset(
    {"if", "for", "while", "switch", "return", "sizeof", "catch", "else", "do", "case",
     "new", "delete", "throw", "defined", "typeof", "alignof", "decltype", "static_assert"}
)
_STORAGE_WORDS = frozenset(
    {"static", "inline", "extern", "virtual", "public", "private", "protected", "final",
     "synchronized", "abstract", "explicit", "constexpr", "native", "default", "override"}
)


class CFamilyBackend(LanguageBackend):
    """Structural extraction for C, C++, and Java."""

    languages = ("c", "cpp", "java")

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        if language not in self.languages:
            language = _guess_language(content, path)
        masked = mask_source(content, ("//",), ("/*", "*/"), "'\"")
        return _CFamilyScanner(content, masked, language).scan()


def _guess_language(content: str, path: str) -> str:
    """Fallback when the backend is called without a C-family tag."""
    if path.endswith(".java"):
        return "java"
    if re.search(r"^[ \t]*(?:package|import)\s+[\w.]+\s*;", content, re.MULTILINE):
        return "java"
    return "c"


class _CFamilyScanner:
    def __init__(self, content: str, masked: str, language: str) -> None:
        self.content = content
        self.masked = masked
        self.is_java = language == "java"
        transparent = [m.end() - 1 for m in TRANSPARENT_RE.finditer(masked)]
        self.depths = brace_depths(masked, transparent)

    def scan(self) -> ExtractedStructure:
        classes, types = self._type_declarations()
        types += self._typedefs()
        functions = [] if self.is_java else self._functions(0, len(self.masked), depth=0)

        exports = [f.name for f in functions if f.is_exported]
        exports += [c.name for c in classes if c.is_exported]
        exports += [t.name for t in types if t.is_exported]

        types.sort(key=lambda t: t.start_line)
        return ExtractedStructure(
            functions=functions,
            classes=classes,
            types=types,
            imports=self._imports(),
            exports=exports,
        )

    # -- functions -------------------------------------------------------

    def _functions(
        self, start: int, end: int, depth: int, default_public: bool = True,
        labels: Optional[list[tuple[int, bool]]] = None,
    ) -> list[FunctionSignature]:
        found = []
        for match in FUNCTION_RE.finditer(self.masked, start, end):
            if self.depths[match.start()] != depth:
                continue
            name = match.group("name")
            prefix_words = match.group("prefix").split()
            if name in _NOT_FUNCTIONS or any(w in _NOT_FUNCTIONS for w in prefix_words):
                continue
            if depth == 0 and not prefix_words:
                # Calls and macro invocations at file scope have no return type.
                continue

            paren = match.end() - 1
            close = find_closing(self.masked, paren)
            trailer = TRAILER_RE.match(self.masked, close + 1)
            if trailer is None:
                continue
            cursor = trailer.end()
            if self.masked[cursor] == ":":
                # Constructor initialiser list.
                brace = self.masked.find("{", cursor)
                if brace == -1:
                    continue
                cursor = brace
            if self.masked[cursor] == "{":
                body_end = find_closing(self.masked, cursor)
                body = self.masked[cursor:body_end]
            else:
                body_end, body = cursor, ""

            return_words = [w for w in prefix_words if w not in _STORAGE_WORDS]
            if labels is not None:
                public = _visibility_at(labels, match.start(), default_public)
            elif self.is_java:
                public = "public" in prefix_words
            else:
                public = "static" not in prefix_words

            found.append(
                FunctionSignature(
                    name=name.replace("::", "."),
                    parameters=tuple(_parse_params(self.masked[paren + 1:close])),
                    return_type=" ".join(return_words) or None,
                    is_exported=public,
                    complexity=1 + count_matches(DECISION_RE, body),
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, body_end),
                )
            )
        return found

    # -- classes, structs, interfaces, enums -----------------------------

    def _type_declarations(self) -> tuple[list[ClassInfo], list[TypeInfo]]:
        classes: list[ClassInfo] = []
        types: list[TypeInfo] = []
        for match in TYPE_DECL_RE.finditer(self.masked):
            if self.depths[match.start()] != 0:
                continue
            open_brace = match.end() - 1
            close = find_closing(self.masked, open_brace)
            kind = match.group("kind")
            mods = match.group("mods") or ""
            name = match.group("name")
            exported = "public" in mods if self.is_java else "static" not in mods
            start_line = line_of(self.masked, match.start())
            end_line = line_of(self.masked, close)
            body = self.masked[open_brace + 1:close]

            if kind == "interface":
                members = [squash(m) for m in self.content[open_brace + 1:close].split(";")]
                types.append(TypeInfo(name, "interface", join_members(_strip_comments(members)),
                                      exported, start_line, end_line))
                continue
            if kind == "enum":
                constants = split_top_level(body.split(";")[0])
                types.append(TypeInfo(name, "type", f"enum {{ {join_members(constants)} }}",
                                      exported, start_line, end_line))
                continue

            default_public = kind in ("struct", "union") or self.is_java
            labels = None if self.is_java else _access_labels(self.masked, open_brace, close, default_public)
            member_depth = self.depths[open_brace + 1]
            methods = self._functions(open_brace + 1, close, member_depth, default_public, labels)
            methods = [replace(m, is_exported=exported and m.is_exported) for m in methods]
            properties = [
                field.group("name")
                for field in FIELD_RE.finditer(self.masked, open_brace + 1, close)
                if self.depths[field.start()] == member_depth
            ]
            base_match = BASE_RE.search(match.group("rest") or "")
            classes.append(
                ClassInfo(
                    name=name,
                    methods=tuple(methods),
                    properties=tuple(dict.fromkeys(properties)),
                    base=base_match.group("base") if base_match else None,
                    is_exported=exported,
                    start_line=start_line,
                    end_line=end_line,
                )
            )
        return classes, types

    def _typedefs(self) -> list[TypeInfo]:
        found = []
        for match in TYPEDEF_BLOCK_RE.finditer(self.masked):
            if self.depths[match.start()] != 0:
                continue
            close = find_closing(self.masked, match.end() - 1)
            tail = re.match(r"\s*(\w+)\s*;", self.masked[close + 1:])
            if tail is None:
                continue
            members = [m for m in self.content[match.end():close].split(";")]
            keyword = match.group(0).split()[1].rstrip("{")
            found.append(
                TypeInfo(
                    name=tail.group(1),
                    kind="type",
                    definition=f"{keyword} {{ {join_members(_strip_comments(members))} }}",
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, close),
                )
            )
        for regex in (TYPEDEF_RE, USING_ALIAS_RE):
            for match in regex.finditer(self.masked):
                if self.depths[match.start()] != 0:
                    continue
                found.append(
                    TypeInfo(
                        name=match.group("name"),
                        kind="type",
                        definition=squash(match.group("definition")),
                        start_line=line_of(self.masked, match.start()),
                        end_line=line_of(self.masked, match.end()),
                    )
                )
        return found

    # -- imports ---------------------------------------------------------

    def _imports(self) -> list[ImportInfo]:
        imports = []
        for match in INCLUDE_RE.finditer(self.content):
            imports.append(ImportInfo(source=match.group("src"), line=line_of(self.content, match.start())))
        if self.is_java:
            for match in JAVA_IMPORT_RE.finditer(self.masked):
                source = match.group("src")
                imports.append(
                    ImportInfo(
                        source=source.rsplit(".", 1)[0],
                        names=(source.rsplit(".", 1)[-1],),
                        line=line_of(self.masked, match.start()),
                    )
                )
        return imports


def _access_labels(
    masked: str, start: int, end: int, default_public: bool
) -> list[tuple[int, bool]]:
    labels = [(start, default_public)]
    for match in ACCESS_LABEL_RE.finditer(masked, start, end):
        labels.append((match.start(), match.group("label") == "public"))
    return labels


def _visibility_at(labels: list[tuple[int, bool]], offset: int, default: bool) -> bool:
    public = default
    for position, is_public in labels:
        if position <= offset:
            public = is_public
    return public


def _strip_comments(members: list[str]) -> list[str]:
    cleaned = []
    for member in members:
        text = re.sub(r"/\*.*?\*/|//[^\n]*", "", member, flags=re.DOTALL)
        if squash(text):
            cleaned.append(text)
    return cleaned


def _parse_params(text: str) -> list[ParameterInfo]:
    params = []
    for item in split_top_level(text):
        item = squash(item)
        if item in ("void", ""):
            continue
        if item == "...":
            params.append(ParameterInfo(name="...", optional=True))
            continue
        default = None
        if "=" in item:
            item, default = (part.strip() for part in item.split("=", 1))
        variadic = "..." in item
        item = item.replace("...", " ").strip()
        match = re.match(r"^(?P<type>.*?[\s*&>\]])?(?P<name>[A-Za-z_]\w*)(?P<array>(?:\s*\[[^\]]*\])*)$", item)
        if match is None or not match.group("type"):
            # Unnamed parameter: only the type is given.
            params.append(ParameterInfo(name=f"arg{len(params)}", type=item, optional=variadic))
            continue
        type_text = squash((match.group("type") or "") + match.group("array")).replace("final ", "")
        params.append(
            ParameterInfo(
                name=match.group("name"),
                type=type_text or None,
                optional=variadic or default is not None,
                default=default,
            )
        )
    return params
