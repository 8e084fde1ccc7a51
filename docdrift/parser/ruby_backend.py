"""
Ruby Structure Extractor

Keyword-block backend for Ruby: `class`, `module`, `def` and the other
block openers are matched against their `end` line by line. Modules are
recorded as classes so their methods are diffed the same way.

Visibility follows `private` / `protected` / `public` sections and the
`private :name` and `private def name` forms.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Optional

from docdrift.errors import ParseError
from docdrift.models import (
    ClassInfo,
    FunctionSignature,
    ImportInfo,
    ParameterInfo,
)
from docdrift.parser.base import ExtractedStructure, LanguageBackend
from docdrift.parser.scanning import count_matches, mask_source, split_top_level, squash

CONTAINER_RE = re.compile(
    r"^\s*(?P<kind>class|module)\s+(?P<name>[A-Z][\w:]*)(?:\s*<\s*(?P<base>[A-Z][\w:]*))?"
)
SINGLETON_CLASS_RE = re.compile(r"^\s*class\s*<<\s*self\b")
DEF_RE = re.compile(
    r"^\s*(?:(?P<vis>private|protected|public)\s+)?def\s+(?P<self>self\.)?"
    r"(?P<name>[A-Za-z_]\w*[?!=]?|\[\]=?|[-+*/%<>=!~^&|]+@?)(?P<params>\s*\([^)]*\)|[ \t]+[^\n;=]*)?(?P<endless>\s*=(?!=))?"
)
OPENER_RE = re.compile(r"^\s*(?:if|unless|while|until|case|begin|for)\b|=\s*(?:if|unless|case|begin)\b")
DO_RE = re.compile(r"\bdo\b\s*(?:\|[^|]*\|)?\s*$")
END_RE = re.compile(r"(?<![.:\w])end\b")
SECTION_RE = re.compile(r"^\s*(?P<vis>private|protected|public)\s*$")
VISIBILITY_LIST_RE = re.compile(r"^\s*(?P<vis>private|protected|public)\s+(?P<names>:\w+[?!=]?(?:\s*,\s*:\w+[?!=]?)*)")
ATTR_RE = re.compile(r"^\s*attr_(?:accessor|reader|writer)\s+(?P<names>.*)$")
REQUIRE_RE = re.compile(
    r"^\s*(?:require|require_relative|load)\s*\(?\s*(?P<q>['\"])(?P<src>[^'\"\n]*)(?P=q)",
    re.MULTILINE,
)

DECISION_RE = re.compile(
    r"\bif\b|\belsif\b|\bunless\b|\bwhile\b|\buntil\b|\bwhen\b|\brescue\b|&&|\|\||\band\b|\bor\b|\s\?\s"
)


@dataclass
class _Block:
    kind: str
    name: str = ""
    start: int = 0
    base: Optional[str] = None
    visibility: str = "public"
    methods: list[FunctionSignature] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)
    private_names: set[str] = field(default_factory=set)
    signature: Optional[FunctionSignature] = None


class RubyBackend(LanguageBackend):
    """Structural extraction for Ruby."""

    languages = ("ruby",)

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        masked = mask_source(_blank_doc_blocks(content), ("#",), None, "'\"")
        lines = masked.split("\n")

        functions: list[FunctionSignature] = []
        classes: list[ClassInfo] = []
        exports: list[str] = []
        stack: list[_Block] = []

        def container() -> Optional[_Block]:
            for block in reversed(stack):
                if block.kind in ("class", "module"):
                    return block
                if block.kind == "def":
                    return None
            return None

        for number, line in enumerate(lines, start=1):
            current = container()
            at_container_level = bool(stack) and stack[-1].kind in ("class", "module", "singleton")

            container_match = CONTAINER_RE.match(line)
            def_match = DEF_RE.match(line)
            if SINGLETON_CLASS_RE.match(line):
                stack.append(_Block(kind="singleton", start=number))
            elif container_match:
                stack.append(
                    _Block(
                        kind=container_match.group("kind"),
                        name=container_match.group("name").split("::")[-1],
                        start=number,
                        base=container_match.group("base"),
                    )
                )
                if len(stack) == 1:
                    exports.append(stack[0].name)
            elif def_match:
                owner = container()
                visibility = def_match.group("vis") or (owner.visibility if owner and at_container_level else "public")
                signature = FunctionSignature(
                    name=def_match.group("name"),
                    parameters=tuple(_parse_params(def_match.group("params") or "")),
                    is_exported=visibility == "public",
                    start_line=number,
                )
                if def_match.group("endless"):
                    self._finish_def(signature, number, lines, owner, functions)
                else:
                    stack.append(_Block(kind="def", start=number, signature=signature))
            elif current is not None and at_container_level:
                section = SECTION_RE.match(line)
                listed = VISIBILITY_LIST_RE.match(line)
                attrs = ATTR_RE.match(line)
                if section:
                    current.visibility = section.group("vis")
                elif listed and listed.group("vis") != "public":
                    current.private_names.update(
                        name.strip().lstrip(":") for name in listed.group("names").split(",")
                    )
                elif attrs:
                    for name in re.findall(r":(\w+)", attrs.group("names")):
                        if name not in current.properties:
                            current.properties.append(name)

            if not def_match and not container_match and not SINGLETON_CLASS_RE.match(line):
                if OPENER_RE.search(line):
                    stack.append(_Block(kind="other", start=number))
            if DO_RE.search(line):
                stack.append(_Block(kind="other", start=number))

            for _ in END_RE.finditer(line):
                if not stack:
                    raise ParseError(f"unexpected 'end' at line {number}", language="ruby")
                block = stack.pop()
                if block.kind == "def" and block.signature is not None:
                    self._finish_def(block.signature, number, lines, container(), functions)
                elif block.kind in ("class", "module"):
                    classes.append(_close_container(block, number))

        if any(block.kind in ("class", "module", "def") for block in stack):
            raise ParseError("missing 'end' at end of file", language="ruby")

        exports.extend(f.name for f in functions if f.is_exported)
        classes.sort(key=lambda c: c.start_line)
        return ExtractedStructure(
            functions=functions,
            classes=classes,
            imports=_imports(masked, content),
            exports=exports,
        )

    @staticmethod
    def _finish_def(
        signature: FunctionSignature,
        end_line: int,
        lines: list[str],
        owner: Optional[_Block],
        functions: list[FunctionSignature],
    ) -> None:
        body = "\n".join(lines[signature.start_line - 1:end_line])
        finished = replace(
            signature,
            end_line=end_line,
            complexity=1 + count_matches(DECISION_RE, body),
        )
        if owner is None:
            functions.append(replace(finished, is_exported=not finished.name.startswith("_")))
        else:
            owner.methods.append(finished)


def _close_container(block: _Block, end_line: int) -> ClassInfo:
    methods = tuple(
        replace(m, is_exported=m.is_exported and m.name not in block.private_names)
        for m in block.methods
    )
    return ClassInfo(
        name=block.name,
        methods=methods,
        properties=tuple(block.properties),
        base=block.base,
        start_line=block.start,
        end_line=end_line,
    )


def _blank_doc_blocks(content: str) -> str:
    """Blank `=begin` ... `=end` documentation blocks, keeping line structure."""
    out = []
    inside = False
    for line in content.split("\n"):
        if not inside and line.startswith("=begin"):
            inside = True
        if inside:
            out.append("")
            if line.startswith("=end"):
                inside = False
        else:
            out.append(line)
    return "\n".join(out)


def _parse_params(text: str) -> list[ParameterInfo]:
    text = text.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1]
    params = []
    for item in split_top_level(squash(text)):
        if item.startswith(("**", "*", "&")):
            params.append(ParameterInfo(name=item.lstrip("*&") or item, optional=True))
        elif re.match(r"^\w+:", item):
            name, _, default = item.partition(":")
            default = default.strip() or None
            params.append(ParameterInfo(name=name, optional=default is not None, default=default))
        elif "=" in item:
            name, _, default = item.partition("=")
            params.append(ParameterInfo(name=name.strip(), optional=True, default=default.strip()))
        else:
            params.append(ParameterInfo(name=item))
    return params


def _imports(masked: str, content: str) -> list[ImportInfo]:
    imports = []
    for match in REQUIRE_RE.finditer(masked):
        imports.append(
            ImportInfo(
                source=content[match.start("src"):match.end("src")],
                line=masked.count("\n", 0, match.start()) + 1,
            )
        )
    return imports
