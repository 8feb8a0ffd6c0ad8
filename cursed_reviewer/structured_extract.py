"""
Best-effort structured extraction from free-form model output.

Models wrap their answers in prose, markdown fences, or both. The helpers here
pull out the first balanced top-level JSON array/object, or the first fenced
code block, and report "nothing found" with None instead of raising.
"""

import json
import re
from typing import Any, List, Optional

# The info string only counts as a language tag when a newline follows it
CODE_BLOCK_PATTERN = re.compile(r"```(?:[\w+#.-]*[ \t]*\n)?([\s\S]*?)```")
_FENCED_SPAN_PATTERN = re.compile(r"```[\s\S]*?```")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _balanced_end(text: str, start: int, opener: str, closer: str) -> int:
    """
    Return the index just past the bracket that closes text[start], or -1.

    Brackets inside JSON string literals are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        char = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return idx + 1
    return -1


def _extract_balanced(text: str, opener: str, closer: str, expected: type) -> Optional[Any]:
    if not text:
        return None

    pos = text.find(opener)
    while pos != -1:
        end = _balanced_end(text, pos, opener, closer)
        if end == -1:
            # Unclosed from here; a later opener may still close.
            pos = text.find(opener, pos + 1)
            continue
        try:
            value = json.loads(text[pos:end])
        except json.JSONDecodeError:
            value = None
        if isinstance(value, expected):
            return value
        # Skip the whole malformed candidate so nested fragments are not mistaken for it
        pos = text.find(opener, end)
    return None


def extract_json_array(text: str) -> Optional[List[Any]]:
    """
    Locate and parse the first balanced top-level JSON array in text.

    Args:
        text (str): Raw model output, possibly prose- or fence-wrapped.

    Returns:
        Optional[List[Any]]: The parsed list, or None if no parseable array exists.
    """
    return _extract_balanced(text, "[", "]", list)


def extract_json_object(text: str) -> Optional[dict]:
    """Same contract as extract_json_array, for a JSON object."""
    return _extract_balanced(text, "{", "}", dict)


def extract_code_block(text: str) -> Optional[str]:
    """Return the trimmed contents of the first fenced code block, or None."""
    if not text:
        return None
    match = CODE_BLOCK_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def extract_code_or_text(text: str) -> str:
    """Contents of the first fenced block if there is one, else the trimmed text."""
    block = extract_code_block(text)
    if block is not None:
        return block
    return (text or "").strip()


def clean_prose(text: str) -> str:
    """Drop fenced blocks and collapse whitespace in a short prose answer."""
    without_fences = _FENCED_SPAN_PATTERN.sub("", text or "")
    return _WHITESPACE_PATTERN.sub(" ", without_fences).strip()
