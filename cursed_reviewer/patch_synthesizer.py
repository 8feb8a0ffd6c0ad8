"""
cursed_reviewer/patch_synthesizer.py

Two-stage patch generation for a single finding:

1. propose_fix: ask the model for corrected code only.
2. validate_proposal: run the textual checks in patch_validator.
3. explain_fix: ask the model for a short rationale and attach a confidence.

A fix moves ProposedFix -> ValidatedFix -> Patch; only a ValidatedFix can be
explained, so an unvalidated fix never becomes a Patch. ``synthesize`` runs the
three steps under the invoker's overall deadline and reports any failure as
None. ``forge_patch`` is the strict variant for callers that assert a patch is
good: it raises instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .errors import EmptyResponseError, InvocationError, PatchValidationError
from .models import Finding, Patch, Severity
from .patch_validator import check_patch
from .prompts import PATCH_TEMPLATE, RATIONALE_TEMPLATE
from .resilient_invoker import GenerationRequest, ResilientInvoker
from .structured_extract import clean_prose, extract_code_or_text

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.7
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


@dataclass(frozen=True)
class ProposedFix:
    """Model output for a finding, not yet checked."""
    finding: Finding
    original_code: str
    fixed_code: str


@dataclass(frozen=True)
class ValidatedFix:
    """A proposal that passed patch validation and may be explained."""
    finding: Finding
    original_code: str
    fixed_code: str


def calculate_patch_confidence(original: str, fixed: str, severity: Union[Severity, str]) -> float:
    """
    Heuristic confidence for a generated patch.

    Minor findings and small edits raise confidence; critical findings and
    large rewrites lower it. The result is clamped to [0.3, 0.95].
    """
    confidence = BASE_CONFIDENCE

    parsed = Severity.parse(severity)
    if parsed is Severity.MINOR:
        confidence += 0.15
    elif parsed is Severity.CRITICAL:
        confidence -= 0.1

    if original:
        change_ratio = abs(len(fixed) - len(original)) / len(original)
    else:
        change_ratio = float("inf")

    if change_ratio < 0.2:
        confidence += 0.1
    elif change_ratio > 0.5:
        confidence -= 0.15

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def apply_patch(original_code: str, patch: Patch) -> str:
    """Apply a patch by whole-block replacement."""
    return patch.corrected_code


def forge_patch(
    finding_id: str,
    original_code: str,
    corrected_code: str,
    rationale: str,
    confidence: float,
) -> Patch:
    """
    Build a Patch from caller-supplied parts, enforcing every validation rule.

    Raises:
        PatchValidationError: If the rationale is empty or the patch is rejected.
    """
    if not rationale or not rationale.strip():
        raise PatchValidationError("rationale is empty", {"finding_id": finding_id})

    reason = check_patch(original_code, corrected_code, confidence)
    if reason is not None:
        raise PatchValidationError(reason, {"finding_id": finding_id})

    return Patch(
        finding_id=finding_id,
        original_code=original_code,
        corrected_code=corrected_code,
        rationale=rationale.strip(),
        confidence=confidence,
    )


class PatchSynthesizer:
    """
    Generates validated patches through the resilient invoker.

    The step methods run without a deadline of their own; ``synthesize``
    bounds the whole sequence with the invoker's deadline.
    """

    def __init__(self, invoker: ResilientInvoker, max_tokens: int = 500, temperature: float = 0.8):
        self.invoker = invoker
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(prompt=prompt, max_output_tokens=self.max_tokens, temperature=self.temperature)

    async def propose_fix(self, finding: Finding, original_code: str) -> ProposedFix:
        prompt = PATCH_TEMPLATE.format(
            original_code=original_code,
            severity=finding.severity.value,
            line=finding.line,
            message=finding.message,
        )
        response = await self.invoker.invoke_with_retry(self._request(prompt))
        return ProposedFix(
            finding=finding,
            original_code=original_code,
            fixed_code=extract_code_or_text(response),
        )

    def validate_proposal(self, proposed: ProposedFix) -> Optional[ValidatedFix]:
        reason = check_patch(proposed.original_code, proposed.fixed_code)
        if reason is not None:
            logger.warning(f"Generated patch for finding {proposed.finding.id} rejected: {reason}")
            return None
        return ValidatedFix(
            finding=proposed.finding,
            original_code=proposed.original_code,
            fixed_code=proposed.fixed_code,
        )

    async def explain_fix(self, validated: ValidatedFix) -> Patch:
        prompt = RATIONALE_TEMPLATE.format(
            original_code=validated.original_code,
            fixed_code=validated.fixed_code,
            message=validated.finding.message,
        )
        rationale = clean_prose(await self.invoker.invoke_with_retry(self._request(prompt)))
        if not rationale:
            raise EmptyResponseError("rationale is empty", {"finding_id": validated.finding.id})
        return Patch(
            finding_id=validated.finding.id,
            original_code=validated.original_code,
            corrected_code=validated.fixed_code,
            rationale=rationale,
            confidence=calculate_patch_confidence(
                validated.original_code, validated.fixed_code, validated.finding.severity
            ),
        )

    async def _run_steps(self, finding: Finding, original_code: str) -> Optional[Patch]:
        proposed = await self.propose_fix(finding, original_code)
        validated = self.validate_proposal(proposed)
        if validated is None:
            return None
        return await self.explain_fix(validated)

    async def synthesize(self, finding: Finding, original_code: str) -> Optional[Patch]:
        """
        Generate, validate and explain a patch for one finding.

        Returns:
            Optional[Patch]: The patch, or None when generation failed, the
            deadline expired, or the proposal was rejected. Never raises for
            those outcomes.
        """
        if not original_code or not original_code.strip():
            logger.warning(f"No code to patch for finding {finding.id}")
            return None
        try:
            return await self.invoker.run_with_deadline(self._run_steps(finding, original_code))
        except InvocationError as e:
            logger.warning(f"Patch synthesis for finding {finding.id} abandoned: {e}")
            return None
        except Exception as e:
            logger.error(f"Patch synthesis for finding {finding.id} failed: {type(e).__name__}: {e}")
            return None
