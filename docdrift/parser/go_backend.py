"""
Go Structure Extractor

Brace-scanning backend for Go. Methods are attached to the struct named by
their receiver; exported names are the capitalised ones.
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

FUNC_RE = re.compile(
    r"^func\s*(?:\((?P<recv>[^)]*)\)\s*)?(?P<name>[A-Za-z_]\w*)\s*(?:\[[^\]]*\])?\s*\(",
    re.MULTILINE,
)
TYPE_RE = re.compile(
    r"^(?:type\s+|[ \t]+)(?P<name>[A-Za-z_]\w*)\s*(?:\[[^\]]*\])?\s+(?:=\s*)?"
    r"(?P<definition>struct\s*\{|interface\s*\{|[^\n{=]+)",
    re.MULTILINE,
)
TYPE_GROUP_RE = re.compile(r"^type\s*\(", re.MULTILINE)
SINGLE_TYPE_RE = re.compile(r"^type\s+", re.MULTILINE)
IMPORT_SINGLE_RE = re.compile(r"^import\s+(?P<alias>[\w.]+\s+)?\"(?P<src>[^\"]+)\"", re.MULTILINE)
IMPORT_GROUP_RE = re.compile(r"^import\s*\((?P<body>[^)]*)\)", re.MULTILINE)
IMPORT_LINE_RE = re.compile(r"(?P<alias>[\w.]+\s+)?\"(?P<src>[^\"]+)\"")
FIELD_RE = re.compile(r"^[ \t]*(?P<names>[A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s+\S", re.MULTILINE)

DECISION_RE = re.compile(r"\bif\b|\bfor\b|\bcase\b|&&|\|\|")


def is_exported_name(name: str) -> bool:
    return name[:1].isupper()


class GoBackend(LanguageBackend):
    """Structural extraction for Go."""

    languages = ("go",)

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        masked = mask_source(content, ("//",), ("/*", "*/"), "'\"`")
        depths = brace_depths(masked)

        functions: list[FunctionSignature] = []
        methods: dict[str, list[FunctionSignature]] = {}
        for match in FUNC_RE.finditer(masked):
            signature = _function(content, masked, match)
            receiver = _receiver_type(match.group("recv"))
            if receiver is None:
                functions.append(signature)
            else:
                methods.setdefault(receiver, []).append(signature)

        classes: list[ClassInfo] = []
        types: list[TypeInfo] = []
        for match in _type_matches(masked, depths):
            name = match.group("name")
            definition = match.group("definition")
            start_line = line_of(masked, match.start("name"))
            if definition.startswith(("struct", "interface")):
                open_brace = match.end() - 1
                close = find_closing(masked, open_brace)
                body = content[open_brace + 1:close]
                end_line = line_of(masked, close)
                if definition.startswith("interface"):
                    members = _strip_line_comments(body.splitlines())
                    types.append(TypeInfo(name, "interface", join_members(members),
                                          is_exported_name(name), start_line, end_line))
                    continue
                fields = []
                for field in FIELD_RE.finditer(masked, open_brace + 1, close):
                    if depths[field.start()] != depths[open_brace + 1]:
                        continue
                    fields.extend(n.strip() for n in field.group("names").split(","))
                classes.append(
                    ClassInfo(
                        name=name,
                        properties=tuple(dict.fromkeys(fields)),
                        is_exported=is_exported_name(name),
                        start_line=start_line,
                        end_line=end_line,
                    )
                )
            else:
                types.append(TypeInfo(name, "type", squash(definition),
                                      is_exported_name(name), start_line, start_line))

        attached = set()
        for index, info in enumerate(classes):
            if info.name in methods:
                classes[index] = replace(
                    info,
                    methods=tuple(
                        replace(m, is_exported=info.is_exported and is_exported_name(m.name))
                        for m in methods[info.name]
                    ),
                )
                attached.add(info.name)
        # Methods on named non-struct types (type Celsius float64) stay functions.
        for receiver, receiver_methods in methods.items():
            if receiver not in attached:
                functions.extend(
                    replace(
                        m,
                        name=f"{receiver}.{m.name}",
                        is_exported=is_exported_name(receiver) and is_exported_name(m.name),
                    )
                    for m in receiver_methods
                )

        functions.sort(key=lambda f: f.start_line)
        exports = [f.name for f in functions if f.is_exported and "." not in f.name]
        exports += [c.name for c in classes if c.is_exported]
        exports += [t.name for t in types if t.is_exported]

        return ExtractedStructure(
            functions=functions,
            classes=classes,
            types=types,
            imports=_imports(masked, content),
            exports=exports,
        )


def _type_matches(masked: str, depths: list[int]) -> list["re.Match[str]"]:
    """Type specs from `type X ...` lines and `type ( ... )` groups."""
    matches = []
    for match in SINGLE_TYPE_RE.finditer(masked):
        spec = TYPE_RE.match(masked, match.start())
        if spec is not None and depths[match.start()] == 0:
            matches.append(spec)
    for group in TYPE_GROUP_RE.finditer(masked):
        close = find_closing(masked, group.end() - 1)
        for spec in TYPE_RE.finditer(masked, group.end(), close):
            if depths[spec.start()] == 0:
                matches.append(spec)
    return matches


def _function(content: str, masked: str, match: "re.Match[str]") -> FunctionSignature:
    paren = match.end() - 1
    close = find_closing(masked, paren)
    params = _parse_params(content[paren + 1:close])

    cursor = close + 1
    rest = masked[cursor:]
    stripped = rest.lstrip(" \t")
    return_type: Optional[str] = None
    if stripped.startswith("("):
        start = cursor + (len(rest) - len(stripped))
        results_close = find_closing(masked, start)
        return_type = squash(content[start:results_close + 1])
        cursor = results_close + 1
    else:
        end = masked.find("{", cursor)
        newline = masked.find("\n", cursor)
        if end == -1 or (newline != -1 and newline < end):
            end = newline if newline != -1 else len(masked)
        return_type = squash(content[cursor:end]) or None
        cursor = end

    brace = masked.find("{", cursor)
    newline = masked.find("\n", cursor)
    if brace != -1 and (newline == -1 or brace <= newline):
        body_end = find_closing(masked, brace)
        body = masked[brace:body_end]
    else:
        body_end, body = cursor, ""

    name = match.group("name")
    return FunctionSignature(
        name=name,
        parameters=tuple(params),
        return_type=return_type,
        is_exported=is_exported_name(name),
        complexity=1 + count_matches(DECISION_RE, body),
        start_line=line_of(masked, match.start()),
        end_line=line_of(masked, body_end),
    )


def _parse_params(text: str) -> list[ParameterInfo]:
    """
    Parse a Go parameter list, resolving shared types (`a, b int`).

    Unnamed parameters (`func(int, string)`) are named arg0, arg1, ...
    """
    items = split_top_level(squash(text))
    parsed: list[tuple[Optional[str], Optional[str]]] = []
    for item in items:
        parts = item.split(None, 1)
        if len(parts) == 2 and re.fullmatch(r"[A-Za-z_]\w*", parts[0]):
            parsed.append((parts[0], parts[1]))
        else:
            parsed.append((None, item))

    any_named = any(name is not None for name, _ in parsed)
    params: list[ParameterInfo] = []
    pending_type: Optional[str] = None
    for index in range(len(parsed) - 1, -1, -1):
        name, type_text = parsed[index]
        if name is None and any_named:
            # A lone identifier shares the type of the next named parameter.
            name, type_text = type_text, pending_type
        elif name is None:
            name = f"arg{index}"
        pending_type = type_text
        variadic = bool(type_text and type_text.startswith("..."))
        params.append(ParameterInfo(name=name, type=type_text, optional=variadic))
    params.reverse()
    return params


def _receiver_type(receiver: Optional[str]) -> Optional[str]:
    if receiver is None:
        return None
    text = receiver.strip().split()[-1] if receiver.strip() else ""
    text = text.lstrip("*")
    return text.split("[", 1)[0] or None


def _strip_line_comments(lines: list[str]) -> list[str]:
    return [line.split("//", 1)[0] for line in lines]


def _imports(masked: str, content: str) -> list[ImportInfo]:
    imports = []
    for match in IMPORT_SINGLE_RE.finditer(masked):
        source = content[match.start("src"):match.end("src")]
        imports.append(ImportInfo(source=source, names=(source.rsplit("/", 1)[-1],),
                                  line=line_of(masked, match.start())))
    for group in IMPORT_GROUP_RE.finditer(masked):
        offset = group.start("body")
        for match in IMPORT_LINE_RE.finditer(masked, offset, group.end("body")):
            source = content[match.start("src"):match.end("src")]
            imports.append(ImportInfo(source=source, names=(source.rsplit("/", 1)[-1],),
                                      line=line_of(masked, match.start())))
    return imports
