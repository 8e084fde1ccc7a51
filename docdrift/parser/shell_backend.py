"""
Shell Structure Extractor

Shell functions declare no parameters, so their parameter list is inferred
from the positional arguments the body reads: `$1`..`$9` and `${N}` become
parameters named `$N`, optional when every use supplies a default
(`${N:-x}` / `${N:=x}`). Reading `$@` or `$*` adds an optional variadic
`$@` parameter.
"""

import re
from dataclasses import replace

from docdrift.errors import ParseError
from docdrift.models import FunctionSignature, ImportInfo, ParameterInfo
from docdrift.parser.base import ExtractedStructure, LanguageBackend
from docdrift.parser.scanning import count_matches, find_closing, line_of, mask_source

FUNCTION_RE = re.compile(
    r"^[ \t]*(?:function[ \t]+(?P<keyword_name>[A-Za-z_][\w:.-]*)[ \t]*(?:\([ \t]*\))?"
    r"|(?P<name>[A-Za-z_][\w:.-]*)[ \t]*\([ \t]*\))\s*(?P<open>[{(])",
    re.MULTILINE,
)
POSITIONAL_RE = re.compile(r"\$(?P<bare>[1-9])|\$\{(?P<braced>[1-9]\d*)(?P<default>:?[-=])?")
VARIADIC_RE = re.compile(r"\$[@*]|\$\{[@*]\}")
SOURCE_RE = re.compile(r"^[ \t]*(?:source|\.)[ \t]+(?P<src>[^\s;&|]+)", re.MULTILINE)
EXPORT_F_RE = re.compile(r"^[ \t]*(?:export|declare)[ \t]+-f[ \t]+(?P<names>[\w:. -]+)", re.MULTILINE)

DECISION_RE = re.compile(r"\bif\b|\belif\b|\bfor\b|\bwhile\b|\buntil\b|&&|\|\||;;")


class ShellBackend(LanguageBackend):
    """Structural extraction for POSIX shell / bash / zsh scripts."""

    languages = ("shell",)

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        # Double-quoted strings stay visible: `"$1"` is still a positional read.
        masked = mask_source(content, ("#",), None, "'")
        if masked.count("{") < masked.count("}"):
            raise ParseError("unbalanced braces", path=path, language="shell")

        functions = []
        for match in FUNCTION_RE.finditer(masked):
            name = match.group("keyword_name") or match.group("name")
            open_index = match.end() - 1
            close = find_closing(masked, open_index)
            body = masked[open_index + 1:close]
            functions.append(
                FunctionSignature(
                    name=name,
                    parameters=_positional_parameters(body),
                    is_exported=not name.startswith("_"),
                    complexity=1 + count_matches(DECISION_RE, body),
                    start_line=line_of(masked, match.start()),
                    end_line=line_of(masked, close),
                )
            )

        explicit = {
            name
            for match in EXPORT_F_RE.finditer(masked)
            for name in match.group("names").split()
        }
        functions = [
            replace(f, is_exported=True) if f.name in explicit else f for f in functions
        ]
        exports = [f.name for f in functions if f.is_exported]

        imports = [
            ImportInfo(source=match.group("src").strip("'\""), line=line_of(masked, match.start()))
            for match in SOURCE_RE.finditer(content)
        ]
        return ExtractedStructure(functions=functions, imports=imports, exports=exports)


def _positional_parameters(body: str) -> tuple[ParameterInfo, ...]:
    required: dict[int, bool] = {}
    for match in POSITIONAL_RE.finditer(body):
        index = int(match.group("bare") or match.group("braced"))
        has_default = bool(match.group("default"))
        required[index] = required.get(index, False) or not has_default

    params = [
        ParameterInfo(name=f"${index}", optional=not required.get(index, False))
        for index in range(1, max(required, default=0) + 1)
    ]
    if VARIADIC_RE.search(body):
        params.append(ParameterInfo(name="$@", optional=True))
    return tuple(params)
