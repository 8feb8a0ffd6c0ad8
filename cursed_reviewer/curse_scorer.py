"""Aggregate severity score for a set of findings."""

import math
from typing import Iterable

from .models import Finding, Severity

SEVERITY_WEIGHTS = {
    Severity.MINOR: 1,
    Severity.MODERATE: 3,
    Severity.CRITICAL: 10,
}

# Weight of a critical finding; a scan of only critical findings scores 100
MAX_WEIGHT = SEVERITY_WEIGHTS[Severity.CRITICAL]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_curse_level(findings: Iterable[Finding]) -> int:
    """
    Score findings on a 0-100 scale.

    The score is the weighted sum of the findings divided by the maximum
    possible weight for that many findings, as a rounded percentage.
    No findings scores 0.
    """
    findings = list(findings)
    if not findings:
        return 0

    total = sum(SEVERITY_WEIGHTS[f.severity] for f in findings)
    score = _round_half_up(100 * total / (MAX_WEIGHT * len(findings)))
    return max(0, min(100, score))
