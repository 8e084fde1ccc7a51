"""
Diff Engine for DocDrift

This module compares two structural fingerprints of the same file and
produces an ordered, impact-classified list of CodeDiffs.

Impact Rules:
    Removed symbol:
        - previously exported -> BREAKING
        - not exported        -> MINOR
    Added symbol:              MINOR
    Export flag:
        - de-exported (still present) -> BREAKING
        - newly exported              -> MINOR
    Modified signature:
        - incompatible (required parameter added, parameter removed,
          renamed or reordered, optional -> required, type or return type
          changed, async flipped):
            exported -> BREAKING, otherwise MAJOR
        - compatible (optional parameter appended, required -> optional,
          annotation added or dropped) -> MINOR
        - default values only -> PATCH

Academic Context:
    Input: Old and new StructuralFingerprint (either may be absent)
    Transformation: Name-matched comparison of functions, methods,
        classes, types and residual exports
    Output: Ordered list of CodeDiff
    Limitation: Renames are seen as a removal plus an addition

Design Decisions:
    - Deterministic ordering: functions, classes (then their methods),
      types, residual exports; names sorted within each group
    - Equal content hashes short-circuit to an empty diff
    - Body-only edits (complexity, comments, formatting) are not changes
"""

from typing import Iterable, Optional, TypeVar

from docdrift.models import (
    ChangeKind,
    ClassInfo,
    CodeDiff,
    DiffCategory,
    FunctionSignature,
    ImpactLevel,
    StructuralFingerprint,
    TypeInfo,
)

Named = TypeVar("Named", FunctionSignature, ClassInfo, TypeInfo)


def diff_fingerprints(
    old: Optional[StructuralFingerprint],
    new: Optional[StructuralFingerprint],
) -> list[CodeDiff]:
    """
    Compare two fingerprints of one path.

    Args:
        old: Fingerprint from the earlier snapshot (None if the file is new)
        new: Fingerprint from the later snapshot (None if the file was deleted)

    Returns:
        Ordered CodeDiffs; empty when nothing structural changed

    Example:
        >>> old = extract_fingerprint("def f(a): pass", "python")
        >>> new = extract_fingerprint("def f(a, b): pass", "python")
        >>> [d.impact.value for d in diff_fingerprints(old, new)]
        ['breaking']
    """
    if old is None and new is None:
        return []
    if old is not None and new is not None and old.content_hash and old.content_hash == new.content_hash:
        return []

    old_functions = _by_name(old.functions if old else ())
    new_functions = _by_name(new.functions if new else ())
    old_classes = _by_name(old.classes if old else ())
    new_classes = _by_name(new.classes if new else ())
    old_types = _by_name(old.types if old else ())
    new_types = _by_name(new.types if new else ())

    diffs: list[CodeDiff] = []
    diffs.extend(_diff_functions(old_functions, new_functions, DiffCategory.FUNCTION))
    diffs.extend(_diff_classes(old_classes, new_classes))
    diffs.extend(_diff_types(old_types, new_types))

    covered = set(old_functions) | set(new_functions) | set(old_classes) | set(new_classes)
    covered |= set(old_types) | set(new_types)
    diffs.extend(
        _diff_residual_exports(
            old.exports if old else (), new.exports if new else (), covered
        )
    )
    return diffs


def _by_name(items: Iterable[Named]) -> dict[str, Named]:
    result: dict[str, Named] = {}
    for item in items:
        # Overloads and redefinitions: the last declaration wins.
        result[item.name] = item
    return result


# ---------------------------------------------------------------------------
# Functions and methods
# ---------------------------------------------------------------------------


def compare_parameters(
    old: FunctionSignature, new: FunctionSignature
) -> tuple[Optional[bool], list[str]]:
    """
    Compare two signatures of the same function.

    Returns:
        (compatible, notes). compatible is None when only default values
        changed, True for backwards-compatible changes, False otherwise.
        notes describe each change; empty means the signatures agree.
    """
    notes: list[str] = []
    compatible: Optional[bool] = None

    def note(text: str, is_compatible: Optional[bool]) -> None:
        nonlocal compatible
        notes.append(text)
        if is_compatible is False:
            compatible = False
        elif is_compatible is True and compatible is None:
            compatible = True

    for index, before in enumerate(old.parameters):
        if index >= len(new.parameters):
            note(f"removed parameter '{before.name}'", False)
            continue
        after = new.parameters[index]
        if after.name != before.name:
            note(f"parameter '{before.name}' renamed or reordered to '{after.name}'", False)
            continue
        if before.optional and not after.optional:
            note(f"parameter '{after.name}' is now required", False)
        elif not before.optional and after.optional:
            note(f"parameter '{after.name}' is now optional", True)
        if before.type != after.type:
            if before.type and after.type:
                note(f"type of '{after.name}' changed from {before.type} to {after.type}", False)
            else:
                note(f"type annotation of '{after.name}' changed", True)
        if before.default != after.default and before.optional and after.optional:
            note(f"default of '{after.name}' changed", None)

    for after in new.parameters[len(old.parameters):]:
        if after.optional:
            note(f"added optional parameter '{after.name}'", True)
        else:
            note(f"added required parameter '{after.name}'", False)

    if old.return_type != new.return_type:
        if old.return_type and new.return_type:
            note(f"return type changed from {old.return_type} to {new.return_type}", False)
        else:
            note("return type annotation changed", True)

    if old.is_async != new.is_async:
        note("now async" if new.is_async else "no longer async", False)

    return compatible, notes


def _diff_functions(
    old: dict[str, FunctionSignature],
    new: dict[str, FunctionSignature],
    category: DiffCategory,
    owner: Optional[str] = None,
    owner_exported: tuple[bool, bool] = (True, True),
) -> list[CodeDiff]:
    """
    Diff two name -> signature maps.

    For methods, `owner` prefixes names ("Class.method") and
    `owner_exported` gates the methods' own export flags.
    """
    diffs = []
    label = "method" if owner else "function"
    for name in sorted(set(old) | set(new)):
        qualified = f"{owner}.{name}" if owner else name
        before, after = old.get(name), new.get(name)
        was_exported = bool(before and before.is_exported and owner_exported[0])
        is_exported = bool(after and after.is_exported and owner_exported[1])

        if after is None:
            diffs.append(_removed(category, qualified, label, before.signature(), was_exported))
            continue
        if before is None:
            diffs.append(_added(category, qualified, label, after.signature(), is_exported))
            continue

        # A class-level export flip is reported once, on the class.
        export_diff = None
        if owner_exported[0] == owner_exported[1]:
            export_diff = _export_change(qualified, label, was_exported, is_exported)
        if export_diff is not None:
            diffs.append(export_diff)

        compatible, notes = compare_parameters(before, after)
        if not notes:
            continue
        if compatible is False:
            impact = ImpactLevel.BREAKING if was_exported else ImpactLevel.MAJOR
        elif compatible is True:
            impact = ImpactLevel.MINOR
        else:
            impact = ImpactLevel.PATCH
        diffs.append(
            CodeDiff(
                kind=ChangeKind.MODIFIED,
                category=category,
                name=qualified,
                description=f"Signature of {label} '{qualified}' changed: {'; '.join(notes)}",
                old_signature=before.signature(),
                new_signature=after.signature(),
                impact=impact,
                was_exported=was_exported,
                is_exported=is_exported,
            )
        )
    return diffs


# ---------------------------------------------------------------------------
# Classes and types
# ---------------------------------------------------------------------------


def _diff_classes(old: dict[str, ClassInfo], new: dict[str, ClassInfo]) -> list[CodeDiff]:
    diffs = []
    for name in sorted(set(old) | set(new)):
        before, after = old.get(name), new.get(name)
        if after is None:
            diffs.append(_removed(DiffCategory.CLASS, name, "class", before.signature(), before.is_exported))
            continue
        if before is None:
            diffs.append(_added(DiffCategory.CLASS, name, "class", after.signature(), after.is_exported))
            continue

        export_diff = _export_change(name, "class", before.is_exported, after.is_exported)
        if export_diff is not None:
            diffs.append(export_diff)

        notes: list[str] = []
        compatible = True
        if before.base != after.base:
            notes.append(f"base changed from {before.base or 'none'} to {after.base or 'none'}")
            compatible = False
        removed_props = [p for p in before.properties if p not in after.properties]
        added_props = [p for p in after.properties if p not in before.properties]
        if removed_props:
            notes.append("removed properties " + ", ".join(removed_props))
            compatible = False
        if added_props:
            notes.append("added properties " + ", ".join(added_props))
        if notes:
            if compatible:
                impact = ImpactLevel.MINOR
            else:
                impact = ImpactLevel.BREAKING if before.is_exported else ImpactLevel.MAJOR
            diffs.append(
                CodeDiff(
                    kind=ChangeKind.MODIFIED,
                    category=DiffCategory.CLASS,
                    name=name,
                    description=f"Class '{name}' changed: {'; '.join(notes)}",
                    old_signature=before.signature(),
                    new_signature=after.signature(),
                    impact=impact,
                    was_exported=before.is_exported,
                    is_exported=after.is_exported,
                )
            )

        diffs.extend(
            _diff_functions(
                _by_name(before.methods),
                _by_name(after.methods),
                DiffCategory.FUNCTION,
                owner=name,
                owner_exported=(before.is_exported, after.is_exported),
            )
        )
    return diffs


def _type_category(info: TypeInfo) -> DiffCategory:
    return DiffCategory.INTERFACE if info.kind == "interface" else DiffCategory.TYPE


def _diff_types(old: dict[str, TypeInfo], new: dict[str, TypeInfo]) -> list[CodeDiff]:
    diffs = []
    for name in sorted(set(old) | set(new)):
        before, after = old.get(name), new.get(name)
        if after is None:
            diffs.append(_removed(_type_category(before), name, before.kind, before.signature(), before.is_exported))
            continue
        if before is None:
            diffs.append(_added(_type_category(after), name, after.kind, after.signature(), after.is_exported))
            continue

        export_diff = _export_change(name, after.kind, before.is_exported, after.is_exported)
        if export_diff is not None:
            diffs.append(export_diff)

        if before.kind != after.kind or before.definition != after.definition:
            diffs.append(
                CodeDiff(
                    kind=ChangeKind.MODIFIED,
                    category=_type_category(after),
                    name=name,
                    description=f"Definition of {after.kind} '{name}' changed",
                    old_signature=before.signature(),
                    new_signature=after.signature(),
                    impact=ImpactLevel.BREAKING if before.is_exported else ImpactLevel.MINOR,
                    was_exported=before.is_exported,
                    is_exported=after.is_exported,
                )
            )
    return diffs


# ---------------------------------------------------------------------------
# Exports and helpers
# ---------------------------------------------------------------------------


def _diff_residual_exports(
    old: Iterable[str], new: Iterable[str], covered: set[str]
) -> list[CodeDiff]:
    """Exports that name no declared symbol (re-exports, aliases)."""
    old_set = {name for name in old if name not in covered}
    new_set = {name for name in new if name not in covered}
    diffs = [
        _removed(DiffCategory.EXPORT, name, "export", None, True)
        for name in sorted(old_set - new_set)
    ]
    diffs.extend(
        _added(DiffCategory.EXPORT, name, "export", None, True)
        for name in sorted(new_set - old_set)
    )
    return diffs


def _removed(
    category: DiffCategory, name: str, label: str, signature: Optional[str], was_exported: bool
) -> CodeDiff:
    return CodeDiff(
        kind=ChangeKind.REMOVED,
        category=category,
        name=name,
        description=f"{label.capitalize()} '{name}' was removed"
        + (" from the public surface" if was_exported else ""),
        old_signature=signature,
        impact=ImpactLevel.BREAKING if was_exported else ImpactLevel.MINOR,
        was_exported=was_exported,
        is_exported=False,
    )


def _added(
    category: DiffCategory, name: str, label: str, signature: Optional[str], is_exported: bool
) -> CodeDiff:
    return CodeDiff(
        kind=ChangeKind.ADDED,
        category=category,
        name=name,
        description=f"{label.capitalize()} '{name}' was added"
        + (" to the public surface" if is_exported else ""),
        new_signature=signature,
        impact=ImpactLevel.MINOR,
        was_exported=False,
        is_exported=is_exported,
    )


def _export_change(
    name: str, label: str, was_exported: bool, is_exported: bool
) -> Optional[CodeDiff]:
    if was_exported == is_exported:
        return None
    if was_exported:
        return CodeDiff(
            kind=ChangeKind.REMOVED,
            category=DiffCategory.EXPORT,
            name=name,
            description=f"{label.capitalize()} '{name}' is no longer exported",
            impact=ImpactLevel.BREAKING,
            was_exported=True,
            is_exported=False,
        )
    return CodeDiff(
        kind=ChangeKind.ADDED,
        category=DiffCategory.EXPORT,
        name=name,
        description=f"{label.capitalize()} '{name}' is now exported",
        impact=ImpactLevel.MINOR,
        was_exported=False,
        is_exported=True,
    )
