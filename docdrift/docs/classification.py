"""
Content classification and validation hints for documentation examples.

A code example's content type (tutorial / how-to / reference / explanation)
is resolved in priority order:

    1. explicit front-matter field (`content_type`, `diataxis`, `category`)
    2. directory-path convention (docs/tutorials/..., docs/reference/...)
    3. keyword heuristics over the surrounding prose
    4. unresolved (None)

Validation hints are a direct function of the resolved type; the example's
dependencies come from per-language import conventions.
"""

import re
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

from docdrift.models import ContentType, ValidationHints

FRONT_MATTER_KEYS = ("content_type", "diataxis", "category")

_ALIASES: dict[str, ContentType] = {
    "tutorial": ContentType.TUTORIAL,
    "tutorials": ContentType.TUTORIAL,
    "getting-started": ContentType.TUTORIAL,
    "how-to": ContentType.HOW_TO,
    "howto": ContentType.HOW_TO,
    "how-tos": ContentType.HOW_TO,
    "how-to-guides": ContentType.HOW_TO,
    "guide": ContentType.HOW_TO,
    "guides": ContentType.HOW_TO,
    "recipes": ContentType.HOW_TO,
    "reference": ContentType.REFERENCE,
    "references": ContentType.REFERENCE,
    "api": ContentType.REFERENCE,
    "api-reference": ContentType.REFERENCE,
    "explanation": ContentType.EXPLANATION,
    "explanations": ContentType.EXPLANATION,
    "concepts": ContentType.EXPLANATION,
    "concept": ContentType.EXPLANATION,
    "background": ContentType.EXPLANATION,
    "architecture": ContentType.EXPLANATION,
}

_KEYWORDS: dict[ContentType, tuple[str, ...]] = {
    ContentType.TUTORIAL: (
        "tutorial", "step", "steps", "getting started", "learn", "walkthrough",
        "first", "beginner", "lesson",
    ),
    ContentType.HOW_TO: (
        "how to", "how-to", "guide", "recipe", "configure", "troubleshoot",
        "solve", "achieve",
    ),
    ContentType.REFERENCE: (
        "reference", "api", "parameter", "parameters", "returns", "signature",
        "arguments", "options", "raises",
    ),
    ContentType.EXPLANATION: (
        "explanation", "concept", "concepts", "why", "architecture", "overview",
        "background", "design", "rationale",
    ),
}

_KEYWORD_PATTERNS: dict[ContentType, list["re.Pattern[str]"]] = {
    content_type: [re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in words]
    for content_type, words in _KEYWORDS.items()
}

_HINTS: dict[ContentType, tuple[str, bool]] = {
    ContentType.TUTORIAL: ("complete step-by-step execution flow", False),
    ContentType.HOW_TO: ("practical outcome achievable", True),
    ContentType.REFERENCE: ("signatures match implementation", False),
    ContentType.EXPLANATION: ("concepts align with behavior", True),
}


def normalize_content_type(value: Any) -> Optional[ContentType]:
    """Map a free-form tag ("How To", "howto", "concepts") to a ContentType."""
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s_]+", "-", value.strip().lower())
    return _ALIASES.get(key)


def classify_from_front_matter(front_matter: Mapping[str, Any]) -> Optional[ContentType]:
    for key in FRONT_MATTER_KEYS:
        resolved = normalize_content_type(front_matter.get(key))
        if resolved is not None:
            return resolved
    return None


def classify_from_path(path: str) -> Optional[ContentType]:
    """Resolve from the nearest directory named after a content type."""
    for part in reversed(PurePosixPath(path).parent.parts):
        resolved = normalize_content_type(part)
        if resolved is not None:
            return resolved
    return None


def classify_from_keywords(text: str) -> Optional[ContentType]:
    """
    Resolve from keyword counts in prose.

    Returns None when no keyword is found or the top count is tied.
    """
    counts = {
        content_type: sum(len(pattern.findall(text)) for pattern in patterns)
        for content_type, patterns in _KEYWORD_PATTERNS.items()
    }
    best = max(counts.values())
    if best == 0:
        return None
    winners = [content_type for content_type, count in counts.items() if count == best]
    return winners[0] if len(winners) == 1 else None


def resolve_content_type(
    front_matter: Mapping[str, Any], path: str, prose: str
) -> Optional[ContentType]:
    """Apply the front matter -> path -> keywords resolution order."""
    return (
        classify_from_front_matter(front_matter)
        or classify_from_path(path)
        or classify_from_keywords(prose)
    )


def validation_hints(
    content_type: Optional[ContentType], dependencies: tuple[str, ...] = ()
) -> Optional[ValidationHints]:
    """Hints for a resolved content type; None when unresolved."""
    if content_type is None:
        return None
    expected, requires_context = _HINTS[content_type]
    return ValidationHints(
        expected_behavior=expected,
        dependencies=dependencies,
        requires_context=requires_context,
    )


# ---------------------------------------------------------------------------
# Example dependencies
# ---------------------------------------------------------------------------

_PY_IMPORT_RE = re.compile(r"^\s*(?:import\s+([\w.]+)|from\s+([\w.]+)\s+import\b)", re.MULTILINE)
_JS_IMPORT_RE = re.compile(
    r"(?:\bfrom\s+|\bimport\s+|\brequire\s*\(\s*)['\"]([^'\"]+)['\"]"
)
_GO_IMPORT_RE = re.compile(r"^\s*(?:import\s+)?(?:[\w.]+\s+)?\"([\w./-]+)\"\s*$", re.MULTILINE)
_RUBY_IMPORT_RE = re.compile(r"^\s*require(?:_relative)?\s*\(?\s*['\"]([^'\"]+)['\"]", re.MULTILINE)
_SHELL_SOURCE_RE = re.compile(r"^\s*(?:source|\.)\s+(\S+)", re.MULTILINE)
_INSTALL_RE = re.compile(
    r"^\s*(?:\$\s*)?(?:pip3?|python3?\s+-m\s+pip|npm|yarn|pnpm|gem|go)\s+(?:install|add|i|get)\s+(.+)$",
    re.MULTILINE,
)

_PYTHON = {"python", "py", "python3", "pycon", "ipython"}
_SCRIPT = {"javascript", "js", "jsx", "typescript", "ts", "tsx", "mjs", "cjs"}
_SHELL = {"bash", "sh", "shell", "zsh", "console", "shell-session", "terminal"}


def extract_dependencies(language: str, code: str) -> tuple[str, ...]:
    """Modules/packages an example imports or installs, in first-seen order."""
    language = language.lower()
    found: list[str] = []

    if language in _PYTHON:
        for match in _PY_IMPORT_RE.finditer(code):
            module = match.group(1) or match.group(2)
            if not module.startswith("."):
                found.append(module.split(".")[0])
    elif language in _SCRIPT:
        for match in _JS_IMPORT_RE.finditer(code):
            found.append(_package_name(match.group(1)))
    elif language == "go":
        found.extend(match.group(1) for match in _GO_IMPORT_RE.finditer(code))
    elif language in ("ruby", "rb"):
        found.extend(match.group(1) for match in _RUBY_IMPORT_RE.finditer(code))
    elif language in _SHELL:
        found.extend(match.group(1) for match in _SHELL_SOURCE_RE.finditer(code))

    if language in _SHELL or language in _PYTHON:
        for match in _INSTALL_RE.finditer(code):
            found.extend(
                re.split(r"[=<>\[@]", token, maxsplit=1)[0]
                for token in match.group(1).split()
                if not token.startswith("-")
            )

    return tuple(dict.fromkeys(dep for dep in found if dep and not dep.startswith(".")))


def _package_name(specifier: str) -> str:
    if specifier.startswith("."):
        return specifier
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]
