"""
cursed_reviewer/generative_analyzer.py

Model-backed analyzer. Asks the generative endpoint for a JSON array of
findings and converts whatever it can parse into Finding objects.

Parse problems are not errors here: an unreadable response simply yields no
findings. Invocation failures are left to propagate so the pipeline can fall
back to the rule-based analyzer.
"""

import logging
from typing import List, Union

from pydantic import ValidationError

from .fallback_analyzer import filter_by_severity
from .models import Finding, RawFinding, Severity
from .prompts import ANALYSIS_TEMPLATE
from .resilient_invoker import GenerationRequest, ResilientInvoker
from .structured_extract import extract_json_array

logger = logging.getLogger(__name__)

SNIPPET_PREFIX_LENGTH = 20


def locate_column(source_line: str, snippet: str) -> int:
    """Best-effort 0-based column of the first characters of snippet in source_line."""
    if not snippet:
        return 0
    return max(0, source_line.find(snippet[:SNIPPET_PREFIX_LENGTH]))


def findings_from_response(text: str, code: str) -> List[Finding]:
    """
    Convert a raw model response into findings.

    Items that fail validation are skipped individually; the rest are kept.
    """
    items = extract_json_array(text)
    if items is None:
        logger.warning("No JSON array found in generative analysis response")
        return []

    lines = code.split("\n")
    findings: List[Finding] = []
    for item in items:
        try:
            raw = RawFinding.model_validate(item)
        except ValidationError as e:
            logger.debug(f"Skipping malformed finding {item!r}: {e.error_count()} validation error(s)")
            continue

        source_line = lines[raw.line_number - 1] if raw.line_number <= len(lines) else ""
        snippet = raw.context or raw.message
        findings.append(
            Finding(
                severity=raw.severity,
                line=raw.line_number,
                column=locate_column(source_line, snippet),
                message=raw.message,
                rule_id=raw.rule_id,
                context_snippet=raw.context or source_line.strip(),
            )
        )
    return findings


class GenerativeAnalyzer:
    """
    Analyzer backed by the generative endpoint.

    Args:
        invoker: Resilient client used for the analysis call.
        max_tokens: Output budget for the analysis call.
        temperature: Sampling temperature; kept low for stable JSON.
    """

    def __init__(self, invoker: ResilientInvoker, max_tokens: int = 4096, temperature: float = 0.3):
        self.invoker = invoker
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_prompt(self, code: str, language: str, min_severity: Union[Severity, str]) -> str:
        severity = Severity.parse(min_severity, default=Severity.MINOR)
        return ANALYSIS_TEMPLATE.format(language=language, min_severity=severity.value, code=code)

    async def analyze(
        self,
        code: str,
        language: str,
        min_severity: Union[Severity, str] = Severity.MINOR,
    ) -> List[Finding]:
        """
        Analyze code with the generative endpoint.

        Returns:
            List[Finding]: Parsed findings at or above min_severity; empty when
            the response held no usable array.

        Raises:
            InvocationError and upstream client errors from the invoker.
        """
        request = GenerationRequest(
            prompt=self.build_prompt(code, language, min_severity),
            max_output_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        text = await self.invoker.invoke(request)
        findings = findings_from_response(text, code)
        logger.info(f"Generative analysis produced {len(findings)} finding(s) for {language} code")
        return filter_by_severity(findings, min_severity)
