"""
JavaScript / TypeScript Structure Extractor

Line/regex backend for the JS/TS family. Declarations are matched on a
masked copy of the source (comments and string bodies blanked) and only
accepted at brace depth 0, or depth 1 for class members.

Recognised:
    - function declarations, including async and generator functions
    - const/let/var bound arrow functions and function expressions
    - classes with methods, fields, and an `extends` base
    - interfaces, type aliases, and enums
    - ES module and CommonJS imports and exports
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

_IDENT = r"[A-Za-z_$][\w$]*"

FUNCTION_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+(?:default\s+)?)?(?:declare\s+)?(?P<async>async\s+)?"
    rf"function\b\s*\*?\s*(?P<name>{_IDENT})\s*(?:<[^>(]*>)?\s*\(",
    re.MULTILINE,
)
BOUND_FUNCTION_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+)?(?:const|let|var)\s+(?P<name>{_IDENT})\s*(?::[^=\n]+)?="
    rf"\s*(?P<async>async\s+)?(?P<fn>function\b\s*\*?\s*(?:{_IDENT})?\s*)?(?:<[^>(]*>\s*)?\(",
    re.MULTILINE,
)
SINGLE_PARAM_ARROW_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+)?(?:const|let|var)\s+(?P<name>{_IDENT})\s*="
    rf"\s*(?P<async>async\s+)?(?P<param>{_IDENT})\s*=>",
    re.MULTILINE,
)
CLASS_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+(?:default\s+)?)?(?:declare\s+)?(?:abstract\s+)?"
    rf"class\s+(?P<name>{_IDENT})\s*(?:<[^{{]*?>)?\s*"
    rf"(?:extends\s+(?P<base>[\w$.]+)(?:<[^{{]*?>)?)?[^{{;]*\{{",
    re.MULTILINE,
)
METHOD_RE = re.compile(
    r"^[ \t]*(?P<mods>(?:(?:public|private|protected|static|readonly|abstract|override"
    r"|async|get|set|declare)\s+)*)(?:\*\s*)?(?P<name>#?[A-Za-z_$][\w$]*)\s*\??\s*"
    r"(?:<[^>(]*>)?\s*\(",
    re.MULTILINE,
)
PROPERTY_RE = re.compile(
    r"^[ \t]*(?P<mods>(?:(?:public|private|protected|static|readonly|declare|override"
    r"|abstract|accessor)\s+)*)(?P<name>#?[A-Za-z_$][\w$]*)\s*[?!]?\s*(?=[:=;\n])",
    re.MULTILINE,
)
INTERFACE_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+)?(?:declare\s+)?interface\s+(?P<name>{_IDENT})[^{{]*\{{",
    re.MULTILINE,
)
TYPE_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+)?(?:declare\s+)?type\s+(?P<name>{_IDENT})\s*"
    rf"(?:<[^=]*?>)?\s*=",
    re.MULTILINE,
)
ENUM_RE = re.compile(
    rf"^[ \t]*(?P<export>export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(?P<name>{_IDENT})\s*\{{",
    re.MULTILINE,
)
IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?:type\s+)?(?:(?P<clause>[^;'\"]*?)\s*from\s*)?(?P<q>['\"])(?P<src>[^'\"\n]*)(?P=q)",
    re.MULTILINE,
)
REQUIRE_RE = re.compile(r"\brequire\s*\(\s*(?P<q>['\"])(?P<src>[^'\"\n]*)(?P=q)\s*\)")
EXPORT_LIST_RE = re.compile(r"^[ \t]*export\s+(?:type\s+)?\{(?P<names>[^}]*)\}", re.MULTILINE)
EXPORT_DEFAULT_RE = re.compile(rf"^[ \t]*export\s+default\s+(?P<name>{_IDENT})\s*;?[ \t]*$", re.MULTILINE)
CJS_OBJECT_RE = re.compile(r"^[ \t]*module\.exports\s*=\s*\{(?P<names>[^}]*)\}", re.MULTILINE)
CJS_SINGLE_RE = re.compile(rf"^[ \t]*module\.exports\s*=\s*(?P<name>{_IDENT})\s*;?[ \t]*$", re.MULTILINE)
CJS_MEMBER_RE = re.compile(rf"^[ \t]*(?:module\.)?exports\.(?P<name>{_IDENT})\s*=", re.MULTILINE)
RETURN_TYPE_RE = re.compile(r"[ \t]*:[ \t]*(?P<ret>[^{;\n]+?)[ \t]*(?==>|\{|;|\n|$)")

DECISION_RE = re.compile(r"\bif\b|\bfor\b|\bwhile\b|\bcase\b|\bcatch\b|&&|\|\||\?\?|\s\?\s")

_CONTROL_WORDS = frozenset(
    {"if", "for", "while", "switch", "catch", "return", "function", "new", "typeof",
     "await", "super", "do", "else", "try", "throw", "yield"}
)
_MODIFIERS = re.compile(r"^(?:(?:public|private|protected|readonly|override)\s+)+")


class ScriptBackend(LanguageBackend):
    """Structural extraction for JavaScript and TypeScript."""

    languages = ("javascript", "typescript")

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        masked = mask_source(content, ("//",), ("/*", "*/"), "'\"`")
        return _ScriptScanner(content, masked).scan()


class _ScriptScanner:
    def __init__(self, content: str, masked: str) -> None:
        self.content = content
        self.masked = masked
        self.depths = brace_depths(masked)
        self.comment_free = mask_source(content, ("//",), ("/*", "*/"), "")
        self.declared: list[tuple[int, str, bool]] = []

    def _top_level(self, offset: int) -> bool:
        return self.depths[offset] == 0

    def _declare(self, offset: int, name: str, exported: bool) -> None:
        self.declared.append((offset, name, exported))

    # -- scanning --------------------------------------------------------

    def scan(self) -> ExtractedStructure:
        functions = self._functions()
        classes = self._classes()
        types = self._interfaces() + self._type_aliases() + self._enums()

        exports = self._exports()
        exported = set(exports)
        functions = [_with_export(f, f.name in exported) for f in functions]
        classes = [_class_with_export(c, c.name in exported) for c in classes]
        types = [_type_with_export(t, t.name in exported) for t in types]
        functions.sort(key=lambda f: f.start_line)
        classes.sort(key=lambda c: c.start_line)
        types.sort(key=lambda t: t.start_line)

        return ExtractedStructure(
            functions=functions,
            classes=classes,
            types=types,
            imports=self._imports(),
            exports=exports,
        )

    def _functions(self) -> list[FunctionSignature]:
        found: list[FunctionSignature] = []
        for match in FUNCTION_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            signature = self._callable(match, match.end() - 1, arrow=False)
            if signature is not None:
                found.append(signature)
                self._declare(match.start(), signature.name, bool(match.group("export")))

        for match in BOUND_FUNCTION_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            signature = self._callable(match, match.end() - 1, arrow=not match.group("fn"))
            if signature is not None:
                found.append(signature)
                self._declare(match.start(), signature.name, bool(match.group("export")))

        for match in SINGLE_PARAM_ARROW_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            body_start, body_end = self._body(match.end())
            found.append(
                FunctionSignature(
                    name=match.group("name"),
                    parameters=(ParameterInfo(name=match.group("param")),),
                    is_async=bool(match.group("async")),
                    complexity=1 + count_matches(DECISION_RE, self.masked[body_start:body_end]),
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, body_end),
                )
            )
            self._declare(match.start(), match.group("name"), bool(match.group("export")))
        return found

    def _callable(
        self, match: "re.Match[str]", paren: int, arrow: bool, name: Optional[str] = None
    ) -> Optional[FunctionSignature]:
        """Read parameters, return type, and body starting at an opening paren."""
        close = find_closing(self.masked, paren)
        params = [_parse_param(p) for p in split_top_level(self.comment_free[paren + 1:close])]

        cursor = close + 1
        return_type = None
        ret = RETURN_TYPE_RE.match(self.masked, cursor)
        if ret is not None:
            return_type = squash(self.content[ret.start("ret"):ret.end("ret")])
            cursor = ret.end()

        if arrow:
            if not self.masked[cursor:].lstrip().startswith("=>"):
                return None
            cursor = self.masked.index("=>", cursor) + 2

        body_start, body_end = self._body(cursor)
        return FunctionSignature(
            name=name or match.group("name"),
            parameters=tuple(params),
            return_type=return_type,
            is_async=_is_async(match),
            complexity=1 + count_matches(DECISION_RE, self.masked[body_start:body_end]),
            start_line=line_of(self.masked, match.start()),
            end_line=line_of(self.masked, body_end),
        )

    def _body(self, cursor: int) -> tuple[int, int]:
        """Span of a brace body or expression body starting at `cursor`."""
        index = cursor
        while index < len(self.masked) and self.masked[index] in " \t\r\n":
            index += 1
        if index < len(self.masked) and self.masked[index] == "{":
            return index, find_closing(self.masked, index)
        if index < len(self.masked) and self.masked[index] == ";":
            return index, index
        return index, _statement_end(self.masked, index)

    def _classes(self) -> list[ClassInfo]:
        found = []
        for match in CLASS_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            open_brace = match.end() - 1
            close = find_closing(self.masked, open_brace)
            member_depth = self.depths[open_brace + 1]
            methods: list[FunctionSignature] = []
            method_names: set[str] = set()

            for member in METHOD_RE.finditer(self.masked, open_brace + 1, close):
                name = member.group("name")
                if self.depths[member.start()] != member_depth or name in _CONTROL_WORDS:
                    continue
                signature = self._callable(member, member.end() - 1, arrow=False)
                if signature is None:
                    continue
                mods = member.group("mods") or ""
                private = "private" in mods or "protected" in mods or name.startswith(("#", "_"))
                methods.append(_with_export(signature, not private))
                method_names.add(name)

            properties: list[str] = []
            for prop in PROPERTY_RE.finditer(self.masked, open_brace + 1, close):
                name = prop.group("name")
                if (
                    self.depths[prop.start()] != member_depth
                    or name in method_names
                    or name in _CONTROL_WORDS
                    or name in properties
                ):
                    continue
                properties.append(name)

            found.append(
                ClassInfo(
                    name=match.group("name"),
                    methods=tuple(methods),
                    properties=tuple(properties),
                    base=match.group("base"),
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, close),
                )
            )
            self._declare(match.start(), match.group("name"), bool(match.group("export")))
        return found

    def _interfaces(self) -> list[TypeInfo]:
        found = []
        for match in INTERFACE_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            open_brace = match.end() - 1
            close = find_closing(self.masked, open_brace)
            body = self.comment_free[open_brace + 1:close]
            members = [m.rstrip(",") for m in split_top_level(body.replace("\n", ";"), ";")]
            found.append(
                TypeInfo(
                    name=match.group("name"),
                    kind="interface",
                    definition=join_members(members),
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, close),
                )
            )
            self._declare(match.start(), match.group("name"), bool(match.group("export")))
        return found

    def _type_aliases(self) -> list[TypeInfo]:
        found = []
        for match in TYPE_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            end = _statement_end(self.masked, match.end())
            definition = squash(self.comment_free[match.end():end]).rstrip(";").strip()
            found.append(
                TypeInfo(
                    name=match.group("name"),
                    kind="type",
                    definition=definition,
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, end),
                )
            )
            self._declare(match.start(), match.group("name"), bool(match.group("export")))
        return found

    def _enums(self) -> list[TypeInfo]:
        found = []
        for match in ENUM_RE.finditer(self.masked):
            if not self._top_level(match.start()):
                continue
            open_brace = match.end() - 1
            close = find_closing(self.masked, open_brace)
            members = split_top_level(self.comment_free[open_brace + 1:close])
            found.append(
                TypeInfo(
                    name=match.group("name"),
                    kind="type",
                    definition=f"enum {{ {join_members(members)} }}",
                    start_line=line_of(self.masked, match.start()),
                    end_line=line_of(self.masked, close),
                )
            )
            self._declare(match.start(), match.group("name"), bool(match.group("export")))
        return found

    def _imports(self) -> list[ImportInfo]:
        imports = []
        for match in IMPORT_RE.finditer(self.masked):
            source = self.content[match.start("src"):match.end("src")]
            clause = self.comment_free[match.start("clause"):match.end("clause")] if match.group("clause") else ""
            imports.append(
                ImportInfo(
                    source=source,
                    names=_import_names(clause),
                    line=line_of(self.masked, match.start()),
                )
            )
        for match in REQUIRE_RE.finditer(self.masked):
            source = self.content[match.start("src"):match.end("src")]
            imports.append(ImportInfo(source=source, line=line_of(self.masked, match.start())))
        imports.sort(key=lambda i: i.line)
        return imports

    def _exports(self) -> list[str]:
        candidates: list[tuple[int, str]] = [
            (offset, name) for offset, name, exported in self.declared if exported
        ]
        for match in EXPORT_LIST_RE.finditer(self.masked):
            for item in split_top_level(match.group("names")):
                candidates.append((match.start(), item.split(" as ")[-1].strip()))
        for match in EXPORT_DEFAULT_RE.finditer(self.masked):
            candidates.append((match.start(), match.group("name")))
        for match in CJS_OBJECT_RE.finditer(self.masked):
            for item in split_top_level(match.group("names")):
                key = item.split(":")[0].strip()
                if re.fullmatch(_IDENT, key):
                    candidates.append((match.start(), key))
        for regex in (CJS_SINGLE_RE, CJS_MEMBER_RE):
            for match in regex.finditer(self.masked):
                candidates.append((match.start(), match.group("name")))
        candidates.sort(key=lambda item: item[0])
        return list(dict.fromkeys(name for _, name in candidates if name))


def _statement_end(masked: str, start: int) -> int:
    """
    End offset of a statement that is not brace-delimited.

    Stops at a `;` outside brackets, or at a newline outside brackets whose
    next non-blank line does not continue the expression (`|`, `&`, `.`, `?`).
    """
    depth = 0
    index = start
    length = len(masked)
    while index < length:
        char = masked[index]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            if depth == 0:
                return index
            depth -= 1
        elif char == ";" and depth == 0:
            return index
        elif char == "\n" and depth == 0:
            following = masked[index + 1:].lstrip()
            if not following.startswith(("|", "&", ".", "?", ":")):
                return index
        index += 1
    return length


def _split_default(text: str) -> tuple[str, Optional[str]]:
    depth = 0
    for index, char in enumerate(text):
        if char in "([{<":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == ">" and (index == 0 or text[index - 1] != "="):
            depth -= 1
        elif char == "=" and depth == 0 and text[index + 1:index + 2] != ">":
            return text[:index].strip(), text[index + 1:].strip()
    return text.strip(), None


def _parse_param(text: str) -> ParameterInfo:
    text = _MODIFIERS.sub("", squash(text))
    variadic = text.startswith("...")
    if variadic:
        text = text[3:]
    head, default = _split_default(text)

    name, type_text = head, None
    parts = split_top_level(head, ":")
    if len(parts) > 1 and not head.startswith(("{", "[")):
        name, type_text = parts[0], ":".join(parts[1:]).strip()
    elif head.startswith(("{", "[")):
        close = find_closing(head, 0)
        name = head[:close + 1]
        remainder = head[close + 1:].strip()
        if remainder.startswith(":"):
            type_text = remainder[1:].strip()

    optional = variadic or default is not None
    if name.endswith("?"):
        name = name[:-1]
        optional = True
    return ParameterInfo(name=squash(name), type=type_text or None, optional=optional, default=default)


def _import_names(clause: str) -> tuple[str, ...]:
    names: list[str] = []
    clause = clause.strip()
    if not clause:
        return ()
    braces = re.search(r"\{([^}]*)\}", clause)
    if braces:
        for item in split_top_level(braces.group(1)):
            names.append(item.replace("type ", "").split(" as ")[0].strip())
        clause = clause[:braces.start()] + clause[braces.end():]
    for item in split_top_level(clause):
        item = item.strip()
        if item.startswith("*"):
            names.append("*")
        elif item:
            names.append(item)
    return tuple(n for n in names if n)


def _is_async(match: "re.Match[str]") -> bool:
    groups = match.groupdict()
    return bool(groups.get("async")) or "async" in (groups.get("mods") or "")


def _with_export(signature: FunctionSignature, exported: bool) -> FunctionSignature:
    return replace(signature, is_exported=exported)


def _class_with_export(info: ClassInfo, exported: bool) -> ClassInfo:
    methods = tuple(replace(m, is_exported=exported and m.is_exported) for m in info.methods)
    return replace(info, methods=methods, is_exported=exported)


def _type_with_export(info: TypeInfo, exported: bool) -> TypeInfo:
    return replace(info, is_exported=exported)
