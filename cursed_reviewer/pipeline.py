"""
cursed_reviewer/pipeline.py

Public entry point of the review pipeline:

    analyze(code, language, min_severity) -> AnalysisResult
    synthesize_patch(finding, original_code) -> Patch | None

Collaborators are passed in explicitly. ``build_invoker`` and
``build_pipeline`` assemble them from a ReviewerConfig.
"""

import logging
import random
from typing import Optional, Union

from .config import ReviewerConfig, load_config
from .errors import InvocationError
from .fallback_analyzer import analyze_basic
from .feedback import FeedbackOracle
from .generative_analyzer import GenerativeAnalyzer
from .language_detector import UNKNOWN_LANGUAGE, detect_language
from .models import AnalysisResult, Finding, Patch, Severity
from .patch_synthesizer import PatchSynthesizer, forge_patch
from .personality import ChoiceSource
from .resilient_invoker import CompletionFn, ResilientInvoker, RetryPolicy

logger = logging.getLogger(__name__)


class ReviewPipeline:
    """
    Analysis-and-patch pipeline over a single resilient invoker.

    Args:
        invoker: Client for the generative endpoint.
        rng: Random source for personality phrases.
        config: Token budgets and temperatures; defaults apply when omitted.
    """

    def __init__(
        self,
        invoker: ResilientInvoker,
        rng: Optional[ChoiceSource] = None,
        config: Optional[ReviewerConfig] = None,
    ):
        config = config or ReviewerConfig()
        self.invoker = invoker
        self.rng = rng if rng is not None else random.Random()
        self.analyzer = GenerativeAnalyzer(
            invoker, max_tokens=config.analysis_max_tokens, temperature=config.analysis_temperature
        )
        self.synthesizer = PatchSynthesizer(
            invoker, max_tokens=config.oracle_max_tokens, temperature=config.oracle_temperature
        )
        self.oracle = FeedbackOracle(
            invoker, rng=self.rng, max_tokens=config.oracle_max_tokens, temperature=config.oracle_temperature
        )

    @staticmethod
    def resolve_language(code: str, language: Optional[str] = None, filename: Optional[str] = None) -> str:
        if language and language.strip().lower() != UNKNOWN_LANGUAGE:
            return language.strip().lower()
        return detect_language(code, filename)

    async def analyze(
        self,
        code: str,
        language: Optional[str] = None,
        min_severity: Union[Severity, str] = Severity.MINOR,
        filename: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Analyze code, degrading to the rule-based analyzer when needed.

        The generative analyzer is tried first. If it raises, or returns no
        findings, the fallback analyzer's findings are used instead. This
        method does not raise for endpoint failures.
        """
        resolved = self.resolve_language(code, language, filename)
        threshold = Severity.parse(min_severity, default=Severity.MINOR)

        try:
            findings = await self.analyzer.analyze(code, resolved, threshold)
        except InvocationError as e:
            logger.warning(f"Generative analysis unavailable, falling back to rule-based analysis: {e}")
            findings = None
        except Exception as e:
            logger.warning(
                f"Generative analysis failed ({type(e).__name__}: {e}), falling back to rule-based analysis"
            )
            findings = None

        if findings:
            return AnalysisResult(findings=tuple(findings), language=resolved, used_fallback=False)

        if findings is not None:
            logger.info("Generative analysis returned no findings, running rule-based analysis")
        fallback_findings = analyze_basic(code, resolved, threshold)
        return AnalysisResult(findings=tuple(fallback_findings), language=resolved, used_fallback=True)

    async def synthesize_patch(self, finding: Finding, original_code: str) -> Optional[Patch]:
        """Generated, validated patch for the finding, or None."""
        return await self.synthesizer.synthesize(finding, original_code)

    def forge_patch(
        self,
        finding_id: str,
        original_code: str,
        corrected_code: str,
        rationale: str,
        confidence: float,
    ) -> Patch:
        """Caller-asserted patch; raises PatchValidationError if it does not validate."""
        return forge_patch(finding_id, original_code, corrected_code, rationale, confidence)


def build_invoker(config: Optional[ReviewerConfig] = None, completion_fn: Optional[CompletionFn] = None) -> ResilientInvoker:
    """Construct a ResilientInvoker from configuration."""
    config = config or load_config()
    policy = RetryPolicy(
        max_retries=config.max_retries,
        initial_delay=config.initial_delay,
        max_delay=config.max_delay,
        backoff_multiplier=config.backoff_multiplier,
    )
    return ResilientInvoker(
        completion_fn=completion_fn,
        policy=policy,
        deadline_seconds=config.deadline_seconds,
        model=config.model,
    )


def build_pipeline(
    config: Optional[ReviewerConfig] = None,
    completion_fn: Optional[CompletionFn] = None,
    rng: Optional[ChoiceSource] = None,
) -> ReviewPipeline:
    """Construct a ReviewPipeline and its invoker from configuration."""
    config = config or load_config()
    return ReviewPipeline(build_invoker(config, completion_fn), rng=rng, config=config)
