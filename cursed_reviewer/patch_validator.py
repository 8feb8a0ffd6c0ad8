"""
Syntactic sanity checks for a proposed patch.

These are cheap textual checks, not a parser: a patch that passes is
well-formed enough to show a user, nothing more.
"""

import re
from typing import Optional

BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}
OPENERS = set(BRACKET_PAIRS.values())

BROKEN_PATTERNS = [
    re.compile(r"\)\s*\("),  # back-to-back call parens
    re.compile(r"\}\s*\{"),  # back-to-back blocks
    re.compile(r";;+"),      # doubled semicolons
]


def brackets_balanced(code: str) -> bool:
    """Stack scan over ()[]{}; every closer must match the most recent opener."""
    stack = []
    for char in code:
        if char in OPENERS:
            stack.append(char)
        elif char in BRACKET_PAIRS:
            if not stack or stack.pop() != BRACKET_PAIRS[char]:
                return False
    return not stack


def check_patch(original: str, corrected: str, confidence: Optional[float] = None) -> Optional[str]:
    """
    Return the reason a patch is rejected, or None when it is acceptable.

    Checks run in a fixed order and the first failure wins.
    """
    if not original or not original.strip():
        return "original code is empty"
    if not corrected or not corrected.strip():
        return "corrected code is empty"
    if original.strip() == corrected.strip():
        return "corrected code is identical to the original"
    if not brackets_balanced(corrected):
        return "unbalanced brackets in corrected code"
    if confidence is not None and not 0.0 <= confidence <= 1.0:
        return f"confidence {confidence} is outside [0, 1]"
    for pattern in BROKEN_PATTERNS:
        if pattern.search(corrected):
            return f"broken pattern {pattern.pattern!r} in corrected code"
    return None


def is_valid_patch(original: str, corrected: str, confidence: Optional[float] = None) -> bool:
    return check_patch(original, corrected, confidence) is None
