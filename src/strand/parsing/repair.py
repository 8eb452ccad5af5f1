"""Heuristic completion of truncated JSON.

``repair_json`` turns the prefix of a JSON document (as produced token by
token by a streaming model) into a syntactically valid document describing
a prefix of the final value. It tracks the open container stack and the
open string over the raw text, then either closes what is open or cuts back
to the last point where the document was closable.

Semantics are not guaranteed: ``{"color": "yel`` repairs to
``{"color": "yel"}``, which a strict schema may reject. Callers treat such
failures as "no partial yet" and retry on the next delta.
"""

from __future__ import annotations

import json
import re

_WHITESPACE = " \t\n\r"
_DELIMITERS = ",:]}" + _WHITESPACE
_LITERALS = ("true", "false", "null")
_NUMBER_PREFIX = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_PARTIAL_UNICODE_ESCAPE = re.compile(r"\\u[0-9a-fA-F]{0,3}$")


class _Container:
    __slots__ = ("kind", "expect")

    def __init__(self, kind: str) -> None:
        self.kind = kind
        # object: key -> colon -> value -> comma -> key ...
        # array: value -> comma -> value ...
        self.expect = "key" if kind == "{" else "value"

    @property
    def closer(self) -> str:
        return "}" if self.kind == "{" else "]"


def _closers(stack: list[_Container]) -> str:
    return "".join(c.closer for c in reversed(stack))


def _complete_token(token: str) -> str | None:
    """Complete a value token cut off at the end of the text, if possible."""
    for literal in _LITERALS:
        if literal.startswith(token):
            return literal
    match = _NUMBER_PREFIX.match(token)
    if match is None:
        return None
    return match.group()


def _trim_open_string(body: str, escape_pending: bool) -> str:
    """Drop a dangling escape sequence from the tail of an open string."""
    if escape_pending:
        return body[:-1]
    match = _PARTIAL_UNICODE_ESCAPE.search(body)
    if match is not None:
        # Only a real escape if the backslash itself is not escaped.
        start = match.start()
        backslashes = len(body[:start + 1]) - len(body[:start + 1].rstrip("\\"))
        if backslashes % 2 == 1:
            return body[:start]
    return body


def repair_json(text: str) -> str:
    """Close unterminated strings, objects and arrays in ``text``.

    Well-formed JSON is returned unchanged. Returns an empty string when no
    closable prefix exists yet (for example, only whitespace or an object key
    without its value at the top level).

    Args:
        text: Accumulated model output, possibly cut off anywhere.

    Returns:
        A JSON document, or ``""``.
    """
    try:
        json.loads(text)
    except ValueError:
        pass
    else:
        return text

    stack: list[_Container] = []
    top_done = False
    safe_end = 0
    safe_closers = ""

    in_string = False
    string_is_key = False
    escape = False

    def value_done(pos: int) -> None:
        nonlocal top_done, safe_end, safe_closers
        if stack:
            stack[-1].expect = "comma"
        else:
            top_done = True
        safe_end = pos
        safe_closers = _closers(stack)

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                if string_is_key:
                    stack[-1].expect = "colon"
                else:
                    value_done(i + 1)
            i += 1
            continue

        if ch in _WHITESPACE:
            i += 1
            continue
        if top_done:
            break

        if ch == '"':
            in_string = True
            string_is_key = bool(stack) and stack[-1].kind == "{" and stack[-1].expect == "key"
        elif ch in "{[":
            stack.append(_Container(ch))
            safe_end = i + 1
            safe_closers = _closers(stack)
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            value_done(i + 1)
        elif ch == ":":
            if stack:
                stack[-1].expect = "value"
        elif ch == ",":
            if stack:
                stack[-1].expect = "key" if stack[-1].kind == "{" else "value"
        else:
            j = i
            while j < n and text[j] not in _DELIMITERS:
                j += 1
            if j < n:
                value_done(j)
                i = j
                continue
            # Token runs to the end of the text: it may be cut off.
            expecting_value = not stack or stack[-1].expect == "value"
            completed = _complete_token(text[i:]) if expecting_value else None
            if completed is not None:
                return text[:i] + completed + _closers(stack)
            break
        i += 1

    if in_string and not string_is_key:
        return _trim_open_string(text, escape) + '"' + _closers(stack)

    if safe_end == 0:
        return ""
    return text[:safe_end] + safe_closers
