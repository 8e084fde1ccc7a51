"""
Shared text-scanning helpers for the line/regex language backends.

The backends run their declaration patterns over a *masked* copy of the
source in which comments and string-literal bodies are blanked out. Masking
keeps every offset and newline in place, so line numbers and brace matching
computed on the masked text are valid for the original content.
"""

import re
from typing import Iterable, Optional

from docdrift.errors import ParseError

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}


def mask_source(
    content: str,
    line_comments: tuple[str, ...] = ("//",),
    block_comment: Optional[tuple[str, str]] = ("/*", "*/"),
    quotes: str = "'\"",
) -> str:
    """
    Blank out comments and string bodies, preserving offsets and newlines.

    Quote characters themselves are kept so that the masked text still shows
    where a literal was. An unterminated block comment or string is masked
    to the end of the input.
    """
    out = list(content)
    i = 0
    n = len(content)

    def blank(start: int, end: int) -> None:
        for k in range(start, min(end, n)):
            if out[k] != "\n":
                out[k] = " "

    while i < n:
        ch = content[i]
        if block_comment and content.startswith(block_comment[0], i):
            end = content.find(block_comment[1], i + len(block_comment[0]))
            end = n if end == -1 else end + len(block_comment[1])
            blank(i, end)
            i = end
            continue
        matched_line_comment = False
        for marker in line_comments:
            if content.startswith(marker, i) and _comment_allowed(content, i, marker):
                end = content.find("\n", i)
                end = n if end == -1 else end
                blank(i, end)
                i = end
                matched_line_comment = True
                break
        if matched_line_comment:
            continue
        if ch in quotes:
            j = i + 1
            while j < n:
                if content[j] == "\\" and ch != "`":
                    j += 2
                    continue
                if content[j] == ch:
                    break
                if content[j] == "\n" and ch != "`":
                    break
                j += 1
            blank(i + 1, j)
            i = j + 1
            continue
        i += 1
    return "".join(out)


def _comment_allowed(content: str, index: int, marker: str) -> bool:
    # `#` only starts a comment at a word boundary (not `$#`, `a#b`).
    if marker != "#" or index == 0:
        return True
    return content[index - 1] in " \t\n;"


def line_of(text: str, offset: int) -> int:
    """1-indexed line number of an offset."""
    return text.count("\n", 0, offset) + 1


def find_closing(text: str, open_index: int) -> int:
    """
    Return the index of the bracket closing the one at `open_index`.

    Only the bracket kind found at `open_index` is counted. An unbalanced
    opener closes at the end of the text.
    """
    opener = text[open_index]
    closer = _OPENERS[opener]
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return len(text) - 1


def brace_depths(text: str, transparent: Iterable[int] = ()) -> list[int]:
    """
    Brace depth at every offset of `text`.

    Braces whose opening offset is in `transparent` (namespace blocks, for
    example) and their matching closers do not change the depth.

    Raises:
        ParseError: If a closing brace has no opener
    """
    skip = set(transparent)
    stack: list[bool] = []
    depth = 0
    depths = [0] * (len(text) + 1)
    for index, char in enumerate(text):
        depths[index] = depth
        if char == "{":
            counted = index not in skip
            stack.append(counted)
            if counted:
                depth += 1
        elif char == "}":
            if not stack:
                raise ParseError(f"unbalanced '}}' at line {line_of(text, index)}")
            if stack.pop():
                depth -= 1
    depths[len(text)] = depth
    return depths


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on `separator` outside of (), [], {}, and <> nesting."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    previous = ""
    for char in text:
        if char in "([{<":
            depth += 1
        elif char in ")]}>" and depth > 0 and not (char == ">" and previous == "="):
            depth -= 1
        previous = char
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def count_matches(pattern: "re.Pattern[str]", text: str) -> int:
    return sum(1 for _ in pattern.finditer(text))


def squash(text: str) -> str:
    """Collapse runs of whitespace to single spaces."""
    return " ".join(text.split())


def join_members(members: Iterable[str]) -> str:
    """Normalised member list used as the definition of interfaces."""
    return "; ".join(squash(m) for m in members if squash(m))
