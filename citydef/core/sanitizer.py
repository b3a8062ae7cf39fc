"""
citydef.core.sanitizer
──────────────────────
Best-effort fixups for the near-JSON a text generator produces.

Every pass is an explicit single-pass scanner that tracks whether it is inside
a string and whether an escape is pending. There are no regular expressions
here: the input is untrusted and a backtracking pattern over a hostile
document is a denial of service.

Passes, in order
----------------
a. strip ``//`` line comments and ``/* */`` block comments
b. turn ``'single quoted'`` literals into double-quoted ones
c. drop trailing commas before ``}`` / ``]``
d. escape raw control characters inside strings
e. close an unterminated string before the next ``}`` / ``]`` (or at EOF)

:func:`sanitize_json` repeats the passes until the text stops changing, so a
second call is always a no-op.
"""
from __future__ import annotations

import json
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple

import bittensor as bt

from citydef.constants import CITYDEF_BLOCK_MIN_LENGTH, REPAIR_MIN_TRUNCATION

__all__ = ["sanitize_json", "try_repair_json", "extract_citydef_blocks"]

_MAX_ROUNDS = 16
_MAX_REPAIR_ATTEMPTS = 256
_MAX_REPAIR_WORK = 4_000_000            # chars handed to the decoder across all attempts
_CLOSERS = {"{": "}", "[": "]"}
_BOUNDARY = frozenset(":,[{")
_CONTROL_ESCAPES = {"\n": "\\n", "\t": "\\t", "\r": "\\r", "\b": "\\b", "\f": "\\f"}


# ──────────────────────────────────────────────────────────────────────
# Passes
# ──────────────────────────────────────────────────────────────────────
def _strip_comments(text: str) -> str:
    out: List[str] = []
    quote = None            # '"' or "'" while inside a literal
    escape = False
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if quote is not None:
            out.append(c)
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == quote:
                quote = None
            i += 1
            continue

        if c == "/" and i + 1 < n:
            nxt = text[i + 1]
            if nxt == "/":
                end = text.find("\n", i + 2)
                i = n if end < 0 else end           # newline itself is kept
                continue
            if nxt == "*":
                end = text.find("*/", i + 2)
                i = n if end < 0 else end + 2
                continue

        if c == '"' or (c == "'" and (not out or out[-1] in _BOUNDARY or out[-1].isspace())):
            quote = c
        out.append(c)
        i += 1
    return "".join(out)


def _single_to_double_quotes(text: str) -> str:
    out: List[str] = []
    in_str = False
    escape = False
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if in_str:
            out.append(c)
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == '"':
                in_str = False
            i += 1
            continue

        if c == '"':
            in_str = True
            out.append(c)
            i += 1
            continue

        prev = text[i - 1] if i else ""
        if c == "'" and i and (prev in _BOUNDARY or prev.isspace()):
            end = _find_single_quote_end(text, i + 1)
            if end >= 0:
                out.append('"')
                _append_single_quoted_body(out, text, i + 1, end)
                out.append('"')
                i = end + 1
                continue

        out.append(c)
        i += 1
    return "".join(out)


def _find_single_quote_end(text: str, start: int) -> int:
    i, n = start, len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == "'":
            return i
        i += 1
    return -1


def _append_single_quoted_body(out: List[str], text: str, start: int, end: int) -> None:
    i = start
    while i < end:
        c = text[i]
        if c == "\\" and i + 1 < end:
            nxt = text[i + 1]
            out.append("'" if nxt == "'" else c + nxt)
            i += 2
            continue
        out.append('\\"' if c == '"' else c)
        i += 1


def _strip_trailing_commas(text: str) -> str:
    out: List[str] = []
    in_str = False
    escape = False
    n = len(text)
    for i, c in enumerate(text):
        if in_str:
            out.append(c)
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == '"':
                in_str = False
            continue
        if c == '"':
            in_str = True
        elif c == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                continue
        out.append(c)
    return "".join(out)


def _escape_control_chars(text: str) -> str:
    out: List[str] = []
    in_str = False
    escape = False
    for c in text:
        if not in_str:
            if c == '"':
                in_str = True
            out.append(c)
            continue
        if escape:
            escape = False
            out.append(c)
        elif c == "\\":
            escape = True
            out.append(c)
        elif c == '"':
            in_str = False
            out.append(c)
        elif c in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[c])
        elif ord(c) < 0x20:
            out.append(f"\\u{ord(c):04x}")
        else:
            out.append(c)
    return "".join(out)


def _close_unterminated_string(text: str) -> str:
    in_str = False
    escape = False
    opened_at = -1
    for i, c in enumerate(text):
        if escape:
            escape = False
        elif c == "\\":
            escape = in_str
        elif c == '"':
            in_str = not in_str
            if in_str:
                opened_at = i
    if not in_str:
        return text

    for j in range(opened_at + 1, len(text)):
        if text[j] in "}]":
            return text[:j] + '"' + text[j:]
    return text + '"'


_PASSES = (
    _strip_comments,
    _single_to_double_quotes,
    _strip_trailing_commas,
    _escape_control_chars,
    _close_unterminated_string,
)


# ──────────────────────────────────────────────────────────────────────
# Public façade
# ──────────────────────────────────────────────────────────────────────
def sanitize_json(text: Any) -> str:
    """Apply the repair passes until the text is stable. Never raises."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    for _ in range(_MAX_ROUNDS):
        fixed = text
        for fix in _PASSES:
            fixed = fix(fixed)
        if fixed == text:
            break
        text = fixed
    return text


def _truncation_points(text: str) -> Deque[Tuple[int, str]]:
    """``(index, closers)`` for the last closing braces outside strings.

    *closers* is the minimal ``]``/``}`` sequence that closes every
    structure still open right after the brace at *index*.
    """
    points: Deque[Tuple[int, str]] = deque(maxlen=_MAX_REPAIR_ATTEMPTS)
    stack: List[str] = []
    in_str = False
    escape = False
    for i, c in enumerate(text):
        if in_str:
            if escape:
                escape = False
            elif c == "\\":
                escape = True
            elif c == '"':
                in_str = False
            continue
        if c == '"':
            in_str = True
        elif c in _CLOSERS:
            stack.append(_CLOSERS[c])
        elif c in "}]":
            if stack and stack[-1] == c:
                stack.pop()
            if c == "}" and i > REPAIR_MIN_TRUNCATION:
                points.append((i, "".join(reversed(stack))))
    return points


def _has_name(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    name = data.get("name")
    return name is not None and not isinstance(name, (dict, list)) and str(name) != ""


def try_repair_json(
    text: str,
    loads: Callable[[str], Any] = json.loads,
) -> Optional[str]:
    """Recover a truncated document.

    Sanitizes once, then walks backwards over the closing braces, truncates
    after each one, closes whatever is still open and keeps the first
    candidate that parses into an object with a non-empty ``name``.
    Returns that candidate or ``None``. Only syntax is restored; the
    surviving content may be incomplete.
    """
    if not text:
        return None

    text = sanitize_json(text)
    work = 0
    for i, closers in reversed(_truncation_points(text)):
        candidate = text[: i + 1] + closers
        work += len(candidate)
        if work > _MAX_REPAIR_WORK:
            bt.logging.debug(f"[CityDef] Repair budget exhausted after {work} chars")
            break
        try:
            data = loads(candidate)
        except (ValueError, RecursionError):
            continue
        if _has_name(data):
            bt.logging.debug(f"[CityDef] Repaired JSON by truncating at pos {i}")
            return candidate

    return None


def extract_citydef_blocks(response: str) -> List[str]:
    """Pull ```citydef / ```json fenced blocks that look like town documents."""
    if not response:
        return []

    lower = response.lower()
    blocks: List[str] = []
    pos = 0
    while pos < len(response):
        starts = [s for s in (lower.find("```citydef", pos), lower.find("```json", pos)) if s >= 0]
        if not starts:
            break
        fence = min(starts)

        body_start = response.find("\n", fence)
        if body_start < 0:
            break
        body_start += 1

        fence_end = response.find("```", body_start)
        if fence_end < 0:
            break

        body = response[body_start:fence_end].strip()
        if (
            len(body) > CITYDEF_BLOCK_MIN_LENGTH
            and '"name"' in body
            and ('"streets"' in body or '"buildings"' in body)
        ):
            blocks.append(body)
        pos = fence_end + 3

    return blocks
