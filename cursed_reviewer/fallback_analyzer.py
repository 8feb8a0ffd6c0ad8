"""
cursed_reviewer/fallback_analyzer.py

Deterministic, rule-based scanner used when the generative analyzer is
unavailable or returns nothing usable. One pass over the lines of the input;
every rule is evaluated against every line, so a single line can produce
several findings.
"""

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Pattern, Union

from .models import Finding, Severity

MAX_LINE_LENGTH = 120

# Languages where `var` declarations and loose equality are worth flagging.
# "unknown" is included: an undetected snippet may well be script code.
SCRIPT_LANGUAGES = frozenset({"javascript", "typescript", "unknown"})


def _trimmed(line: str, match: "re.Match[str]") -> str:
    return line.strip()


@dataclass(frozen=True)
class PatternRule:
    """
    A single line rule.

    Attributes:
        rule_id: Stable identifier reported on findings.
        severity: Fixed severity of every finding this rule emits.
        pattern: Regex searched in each line.
        message: Message template, or a callable building it from the line.
        languages: Languages the rule applies to; None means all.
        lowercase: Match against the lowercased line.
        column_at_zero: Report column 0 instead of the match position.
        context: Builds the context snippet from the line and match.
    """
    rule_id: str
    severity: Severity
    pattern: Pattern[str]
    message: Union[str, Callable[[str], str]]
    languages: Optional[FrozenSet[str]] = None
    lowercase: bool = False
    column_at_zero: bool = False
    context: Callable[[str, "re.Match[str]"], str] = _trimmed

    def applies_to(self, language: str) -> bool:
        return self.languages is None or language in self.languages

    def check(self, line: str, line_number: int) -> Optional[Finding]:
        subject = line.lower() if self.lowercase else line
        match = self.pattern.search(subject)
        if match is None:
            return None
        message = self.message(line) if callable(self.message) else self.message
        return Finding(
            severity=self.severity,
            line=line_number,
            column=0 if self.column_at_zero else match.start(),
            message=message,
            rule_id=self.rule_id,
            context_snippet=self.context(line, match),
        )


DEFAULT_RULES: List[PatternRule] = [
    PatternRule(
        rule_id="no-console",
        severity=Severity.MINOR,
        pattern=re.compile(r"\bconsole\.(log|debug|info|warn|error)\b"),
        message="Console statement detected",
    ),
    PatternRule(
        rule_id="no-console",
        severity=Severity.MINOR,
        pattern=re.compile(r"^\s*print\s*\("),
        message="Debug print statement detected",
        languages=frozenset({"python"}),
        context=lambda line, match: line.strip(),
    ),
    PatternRule(
        rule_id="no-todo",
        severity=Severity.MINOR,
        pattern=re.compile(r"(//|#)\s*TODO"),
        message="TODO comment found",
    ),
    PatternRule(
        rule_id="max-line-length",
        severity=Severity.MINOR,
        pattern=re.compile(r"^.{%d,}" % (MAX_LINE_LENGTH + 1)),
        message=lambda line: f"Line too long ({len(line)} characters)",
        column_at_zero=True,
        context=lambda line, match: line[:50] + "...",
    ),
    PatternRule(
        rule_id="no-var",
        severity=Severity.MODERATE,
        pattern=re.compile(r"\bvar\s+"),
        message="Use of var instead of let or const",
        languages=SCRIPT_LANGUAGES,
    ),
    PatternRule(
        rule_id="eqeqeq",
        severity=Severity.MODERATE,
        pattern=re.compile(r"(?<=[^=!<>])==(?=[^=])"),
        message="Use === instead of ==",
        languages=SCRIPT_LANGUAGES,
    ),
    PatternRule(
        rule_id="no-empty-catch",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"catch\s*(\(\s*\w*\s*\))?\s*{\s*}"),
        message="Empty catch block",
    ),
    PatternRule(
        rule_id="no-empty-catch",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"^\s*except\b[^:]*:\s*pass\s*(#.*)?$"),
        message="Exception swallowed by an empty except block",
        languages=frozenset({"python", "unknown"}),
    ),
    PatternRule(
        rule_id="no-eval",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"\beval\s*\(|\bnew\s+Function\s*\("),
        message="Use of eval is dangerous",
    ),
    PatternRule(
        rule_id="no-eval",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"(?<![.\w])exec\s*\("),
        message="Use of exec is dangerous",
        languages=frozenset({"python"}),
    ),
    PatternRule(
        rule_id="no-hardcoded-credentials",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"(password|secret|api[_-]?key|token)\s*=\s*['\"][^'\"]+['\"]"),
        message="Potential hardcoded credential",
        lowercase=True,
        column_at_zero=True,
        context=lambda line, match: line.strip()[:30] + "...",
    ),
]


def filter_by_severity(findings: List[Finding], min_severity: Union[Severity, str]) -> List[Finding]:
    """Keep findings at or above min_severity (minor < moderate < critical)."""
    threshold = Severity.parse(min_severity, default=Severity.MINOR)
    if threshold is Severity.MINOR:
        return list(findings)
    return [f for f in findings if f.severity.rank >= threshold.rank]


def analyze_basic(
    code: str,
    language: str = "unknown",
    min_severity: Union[Severity, str] = Severity.MINOR,
    rules: Optional[List[PatternRule]] = None,
) -> List[Finding]:
    """
    Scan code line by line with the fixed rule table.

    Args:
        code (str): Source text to scan.
        language (str): Detected language; some rules only apply to certain languages.
        min_severity: Findings below this severity are dropped after the pass.
        rules: Rule table override, mainly for tests.

    Returns:
        List[Finding]: Findings in line order, rule order within a line.
    """
    active_rules = [r for r in (rules or DEFAULT_RULES) if r.applies_to((language or "unknown").lower())]
    findings: List[Finding] = []

    for index, line in enumerate((code or "").split("\n")):
        line_number = index + 1
        for rule in active_rules:
            finding = rule.check(line, line_number)
            if finding is not None:
                findings.append(finding)

    return filter_by_severity(findings, min_severity)
