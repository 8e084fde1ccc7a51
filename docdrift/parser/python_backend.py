"""
LibCST-based Python Structure Extractor

This module provides the Python backend of the Structural Extractor,
extracting the public surface of a module from its concrete syntax tree.

Key Components:
    - StructureCollector: CST visitor collecting functions, classes, types,
      imports, and the `__all__` export list
    - DecisionPointCounter: CST visitor counting branch points of one body
    - SelfAttributeCollector: CST visitor collecting `self.x` assignments
    - PythonBackend: LanguageBackend wrapper around the visitors

Design Decisions:
    - Uses LibCST (not ast) for exact source text of annotations and defaults,
      plus PositionProvider for line ranges
    - Only module-level functions and methods declared directly in a class
      body are recorded; nested functions and classes are part of their
      enclosing body
    - `__all__` defines exports when present; otherwise every top-level name
      without a leading underscore is exported
    - `typing.Protocol` subclasses are interfaces; TypeAlias annotations,
      `type X = ...` statements, and NewType/TypeVar assignments are types

Academic Context:
    Input: Python source string
    Transformation: CST traversal with visitor pattern
    Output: ExtractedStructure (functions, classes, types, imports, exports)
    Limitation: `__all__` built dynamically (e.g. with list comprehensions)
        is not evaluated
"""

from dataclasses import dataclass, field, replace
from typing import Optional

import libcst as cst
from libcst.helpers import get_full_name_for_node
from libcst.metadata import MetadataWrapper, PositionProvider

from docdrift.errors import ParseError
from docdrift.models import (
    ClassInfo,
    FunctionSignature,
    ImportInfo,
    ParameterInfo,
    TypeInfo,
)
from docdrift.parser.base import ExtractedStructure, LanguageBackend

_TYPE_FACTORIES = ("TypeVar", "NewType", "ParamSpec", "TypeVarTuple")
_RECEIVERS = ("self", "cls")


def is_public_name(name: str) -> bool:
    """Names without a leading underscore are public; dunders count as public."""
    if name.startswith("__") and name.endswith("__"):
        return True
    return not name.startswith("_")


def _squash(text: str) -> str:
    return " ".join(text.split())


class DecisionPointCounter(cst.CSTVisitor):
    """
    Counts decision points in a subtree.

    Counted: if/elif, for, while, except handlers, conditional expressions,
    boolean and/or operators, comprehension filters, and match cases.
    """

    def __init__(self) -> None:
        self.count = 0

    def _bump(self) -> None:
        self.count += 1

    def visit_If(self, node: cst.If) -> None:
        self._bump()

    def visit_For(self, node: cst.For) -> None:
        self._bump()

    def visit_While(self, node: cst.While) -> None:
        self._bump()

    def visit_ExceptHandler(self, node: cst.ExceptHandler) -> None:
        self._bump()

    def visit_ExceptStarHandler(self, node: cst.ExceptStarHandler) -> None:
        self._bump()

    def visit_IfExp(self, node: cst.IfExp) -> None:
        self._bump()

    def visit_BooleanOperation(self, node: cst.BooleanOperation) -> None:
        self._bump()

    def visit_CompIf(self, node: cst.CompIf) -> None:
        self._bump()

    def visit_MatchCase(self, node: cst.MatchCase) -> None:
        self._bump()


class SelfAttributeCollector(cst.CSTVisitor):
    """Collects attribute names assigned on `self` inside a method body."""

    def __init__(self) -> None:
        self.names: list[str] = []

    def _record(self, target: cst.BaseExpression) -> None:
        if (
            isinstance(target, cst.Attribute)
            and isinstance(target.value, cst.Name)
            and target.value.value == "self"
            and target.attr.value not in self.names
        ):
            self.names.append(target.attr.value)

    def visit_Assign(self, node: cst.Assign) -> None:
        for target in node.targets:
            self._record(target.target)

    def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
        self._record(node.target)


@dataclass
class _ClassBuilder:
    """Mutable accumulator for a class while its body is being visited."""

    name: str
    base: Optional[str]
    is_protocol: bool
    start_line: int
    end_line: int
    methods: list[FunctionSignature] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)

    def add_property(self, name: str) -> None:
        if name not in self.properties:
            self.properties.append(name)


class StructureCollector(cst.CSTVisitor):
    """
    CST Visitor that collects the structural surface of a module.

    Handles:
        - Top-level functions (sync and async)
        - Classes with their methods, class-level and `self.` attributes
        - Protocol classes (recorded as interfaces)
        - Type aliases, NewType/TypeVar assignments
        - import / from-import statements
        - `__all__` assignments and augmentations

    Usage:
        wrapper = MetadataWrapper(module)
        collector = StructureCollector()
        wrapper.visit(collector)
        structure = collector.build()
    """

    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self) -> None:
        self.functions: list[FunctionSignature] = []
        self.classes: list[ClassInfo] = []
        self.types: list[TypeInfo] = []
        self.imports: list[ImportInfo] = []
        self.declared_all: Optional[list[str]] = None
        self._module: Optional[cst.Module] = None
        self._class_stack: list[Optional[_ClassBuilder]] = []
        self._order: list[str] = []

    # -- helpers ---------------------------------------------------------

    def _code(self, node: cst.CSTNode) -> str:
        assert self._module is not None
        return _squash(self._module.code_for_node(node))

    def _lines(self, node: cst.CSTNode) -> tuple[int, int]:
        try:
            pos = self.get_metadata(PositionProvider, node)
            return pos.start.line, pos.end.line
        except KeyError:
            return 0, 0

    def _declare(self, name: str) -> None:
        if name not in self._order:
            self._order.append(name)

    @property
    def _at_module_level(self) -> bool:
        return not self._class_stack

    @property
    def _current_class(self) -> Optional[_ClassBuilder]:
        if len(self._class_stack) == 1:
            return self._class_stack[0]
        return None

    # -- module ----------------------------------------------------------

    def visit_Module(self, node: cst.Module) -> None:
        self._module = node

    # -- classes ---------------------------------------------------------

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        """Enter a class; only module-level classes are recorded."""
        if not self._at_module_level:
            self._class_stack.append(None)
            return False

        bases = [self._code(arg.value) for arg in node.bases]
        is_protocol = any(
            base == "Protocol" or base.endswith(".Protocol") or base.startswith(("Protocol[", "typing.Protocol["))
            for base in bases
        )
        start, end = self._lines(node)
        self._class_stack.append(
            _ClassBuilder(
                name=node.name.value,
                base=bases[0] if bases else None,
                is_protocol=is_protocol,
                start_line=start,
                end_line=end,
            )
        )
        return True

    def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
        builder = self._class_stack.pop()
        if builder is None:
            return
        self._declare(builder.name)
        if builder.is_protocol:
            members = [m.signature() for m in builder.methods] + builder.properties
            self.types.append(
                TypeInfo(
                    name=builder.name,
                    kind="interface",
                    definition="; ".join(members),
                    start_line=builder.start_line,
                    end_line=builder.end_line,
                )
            )
            return
        self.classes.append(
            ClassInfo(
                name=builder.name,
                methods=tuple(builder.methods),
                properties=tuple(builder.properties),
                base=builder.base,
                start_line=builder.start_line,
                end_line=builder.end_line,
            )
        )

    # -- functions -------------------------------------------------------

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        """
        Record a module-level function or a method of a module-level class.

        Children are never traversed: nested definitions belong to the body.
        """
        if self._at_module_level:
            self.functions.append(self._signature(node, is_method=False))
            self._declare(node.name.value)
        elif self._current_class is not None:
            builder = self._current_class
            builder.methods.append(self._signature(node, is_method=True))
            if node.name.value == "__init__":
                attributes = SelfAttributeCollector()
                node.body.visit(attributes)
                for name in attributes.names:
                    builder.add_property(name)
        return False

    def _signature(self, node: cst.FunctionDef, is_method: bool) -> FunctionSignature:
        params = self._parameters(node.params)
        decorators = {self._code(d.decorator) for d in node.decorators}
        if (
            is_method
            and params
            and params[0].name in _RECEIVERS
            and "staticmethod" not in decorators
        ):
            params = params[1:]

        counter = DecisionPointCounter()
        node.body.visit(counter)
        start, end = self._lines(node)
        return FunctionSignature(
            name=node.name.value,
            parameters=tuple(params),
            return_type=self._code(node.returns.annotation) if node.returns else None,
            is_async=node.asynchronous is not None,
            complexity=1 + counter.count,
            start_line=start,
            end_line=end,
        )

    def _parameters(self, params: cst.Parameters) -> list[ParameterInfo]:
        result: list[ParameterInfo] = []
        for param in list(params.posonly_params) + list(params.params):
            result.append(self._parameter(param))
        if isinstance(params.star_arg, cst.Param):
            result.append(self._parameter(params.star_arg, variadic=True))
        for param in params.kwonly_params:
            result.append(self._parameter(param))
        if params.star_kwarg is not None:
            result.append(self._parameter(params.star_kwarg, variadic=True))
        return result

    def _parameter(self, param: cst.Param, variadic: bool = False) -> ParameterInfo:
        default = self._code(param.default) if param.default is not None else None
        return ParameterInfo(
            name=param.name.value,
            type=self._code(param.annotation.annotation) if param.annotation else None,
            optional=variadic or default is not None,
            default=default,
        )

    # -- assignments -----------------------------------------------------

    def visit_Assign(self, node: cst.Assign) -> None:
        builder = self._current_class
        for target in node.targets:
            if not isinstance(target.target, cst.Name):
                continue
            name = target.target.value
            if builder is not None:
                builder.add_property(name)
            elif self._at_module_level:
                self._module_assignment(name, node.value, node)

    def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
        if not isinstance(node.target, cst.Name):
            return
        name = node.target.value
        builder = self._current_class
        if builder is not None:
            builder.add_property(name)
            return
        if not self._at_module_level:
            return
        annotation = self._code(node.annotation.annotation)
        if annotation in ("TypeAlias", "typing.TypeAlias", "typing_extensions.TypeAlias"):
            if node.value is not None:
                self._add_type(name, self._code(node.value), node)
        elif name == "__all__" and node.value is not None:
            self.declared_all = _string_elements(node.value)

    def visit_AugAssign(self, node: cst.AugAssign) -> None:
        if (
            self._at_module_level
            and isinstance(node.target, cst.Name)
            and node.target.value == "__all__"
            and isinstance(node.operator, cst.AddAssign)
        ):
            extra = _string_elements(node.value) or []
            self.declared_all = (self.declared_all or []) + extra

    def visit_TypeAlias(self, node: cst.TypeAlias) -> None:
        if self._at_module_level:
            self._add_type(node.name.value, self._code(node.value), node)

    def _module_assignment(self, name: str, value: cst.BaseExpression, node: cst.CSTNode) -> None:
        if name == "__all__":
            self.declared_all = _string_elements(value)
            return
        if isinstance(value, cst.Call):
            factory = get_full_name_for_node(value.func) or ""
            if factory.rsplit(".", 1)[-1] in _TYPE_FACTORIES:
                self._add_type(name, self._code(value), node)

    def _add_type(self, name: str, definition: str, node: cst.CSTNode) -> None:
        start, end = self._lines(node)
        self.types.append(
            TypeInfo(name=name, kind="type", definition=definition, start_line=start, end_line=end)
        )
        self._declare(name)

    # -- imports ---------------------------------------------------------

    def visit_Import(self, node: cst.Import) -> None:
        line, _ = self._lines(node)
        for alias in node.names:
            source = get_full_name_for_node(alias.name) or self._code(alias.name)
            self.imports.append(ImportInfo(source=source, names=(source,), line=line))

    def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
        line, _ = self._lines(node)
        dots = "." * len(node.relative)
        module = get_full_name_for_node(node.module) if node.module is not None else ""
        if isinstance(node.names, cst.ImportStar):
            names: tuple[str, ...] = ("*",)
        else:
            names = tuple(
                get_full_name_for_node(alias.name) or self._code(alias.name)
                for alias in node.names
            )
        self.imports.append(ImportInfo(source=f"{dots}{module}", names=names, line=line))

    # -- result ----------------------------------------------------------

    def build(self) -> ExtractedStructure:
        """Apply export rules and return the collected structure."""
        if self.declared_all is not None:
            exports = list(dict.fromkeys(self.declared_all))
        else:
            exports = [name for name in self._order if is_public_name(name)]
        exported = set(exports)

        functions = [replace(f, is_exported=f.name in exported) for f in self.functions]
        classes = []
        for info in self.classes:
            class_exported = info.name in exported
            methods = tuple(
                replace(m, is_exported=class_exported and is_public_name(m.name))
                for m in info.methods
            )
            classes.append(replace(info, methods=methods, is_exported=class_exported))
        types = [replace(t, is_exported=t.name in exported) for t in self.types]

        return ExtractedStructure(
            functions=functions,
            classes=classes,
            types=types,
            imports=list(self.imports),
            exports=exports,
        )


def _string_elements(value: cst.BaseExpression) -> Optional[list[str]]:
    """Return the string literals of a list/tuple literal, or None if not one."""
    if not isinstance(value, (cst.List, cst.Tuple)):
        return None
    names = []
    for element in value.elements:
        if isinstance(element.value, cst.SimpleString):
            evaluated = element.value.evaluated_value
            if isinstance(evaluated, str):
                names.append(evaluated)
    return names


class PythonBackend(LanguageBackend):
    """Structural extraction for Python via LibCST."""

    languages = ("python",)

    def extract(self, content: str, path: str = "", language: str = "") -> ExtractedStructure:
        """
        Parse Python source and collect its structure.

        Raises:
            ParseError: If the source has syntax errors
        """
        try:
            module = cst.parse_module(content)
        except cst.ParserSyntaxError as exc:
            raise ParseError(
                f"syntax error at line {exc.raw_line}: {exc.message}",
                path=path,
                language="python",
            ) from exc

        wrapper = MetadataWrapper(module)
        collector = StructureCollector()
        wrapper.visit(collector)
        return collector.build()
