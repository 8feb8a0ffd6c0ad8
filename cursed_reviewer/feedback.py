"""
cursed_reviewer/feedback.py

Personality-voiced feedback for findings. Generated text is preferred; when
the endpoint is unavailable the oracle falls back to a phrase from the
personality table, so callers always get a message.
"""

import logging
import random
from typing import Optional

from .errors import InvocationError
from .models import Finding
from .personality import ChoiceSource, fallback_demonic_message, pick_phrase, select_personality
from .prompts import FEEDBACK_TEMPLATE, HEALTH_CHECK_PROMPT, POSITIVE_FEEDBACK_PROMPT
from .resilient_invoker import GenerationRequest, ResilientInvoker
from .structured_extract import clean_prose

logger = logging.getLogger(__name__)

POSITIVE_FALLBACK_MESSAGE = (
    "✨ Your code is pure! No curses detected! Even the demons are impressed by this clean work!"
)

MIN_FEEDBACK_LENGTH = 20
MIN_TERM_LENGTH = 4


def parse_feedback_response(text: str) -> str:
    """Strip fenced blocks and collapse whitespace."""
    return clean_prose(text)


def validate_feedback(feedback: str, finding: Finding) -> bool:
    """
    True when feedback mentions at least one meaningful word of the finding's
    message (longer than four characters) and is longer than 20 characters.
    """
    terms = [word for word in finding.message.lower().split() if len(word) > MIN_TERM_LENGTH]
    lowered = feedback.lower()
    has_relevant_terms = any(term in lowered for term in terms)
    return has_relevant_terms and len(feedback) > MIN_FEEDBACK_LENGTH


class FeedbackOracle:
    """Voices findings through the generative endpoint, with a phrase-table fallback."""

    def __init__(
        self,
        invoker: ResilientInvoker,
        rng: Optional[ChoiceSource] = None,
        max_tokens: int = 500,
        temperature: float = 0.8,
    ):
        self.invoker = invoker
        self.rng = rng if rng is not None else random.Random()
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(prompt=prompt, max_output_tokens=self.max_tokens, temperature=self.temperature)

    def build_prompt(self, finding: Finding) -> str:
        profile = select_personality(finding.severity)
        return FEEDBACK_TEMPLATE.format(
            tone=profile.tone,
            severity=finding.severity.value,
            line=finding.line,
            message=finding.message,
            context=finding.context_snippet or "N/A",
            phrase=pick_phrase(profile, self.rng),
        )

    async def conjure_feedback(self, finding: Finding) -> str:
        """
        Demonic message for a finding.

        Falls back to ``"<phrase>: <message>"`` when the endpoint fails or the
        generated text does not pass ``validate_feedback``.
        """
        try:
            text = parse_feedback_response(await self.invoker.invoke(self._request(self.build_prompt(finding))))
        except InvocationError as e:
            logger.warning(f"Feedback generation failed, using fallback message: {e}")
            return fallback_demonic_message(finding.message, finding.severity, self.rng)
        except Exception as e:
            logger.error(f"Feedback generation error ({type(e).__name__}): {e}")
            return fallback_demonic_message(finding.message, finding.severity, self.rng)

        if not text or not validate_feedback(text, finding):
            logger.warning(f"Generated feedback for finding {finding.id} is off-topic or empty, using fallback message")
            return fallback_demonic_message(finding.message, finding.severity, self.rng)
        return text

    async def conjure_positive_feedback(self) -> str:
        """Praise for clean code; a fixed message when the endpoint fails."""
        try:
            text = parse_feedback_response(await self.invoker.invoke(self._request(POSITIVE_FEEDBACK_PROMPT)))
        except Exception as e:
            logger.warning(f"Positive feedback generation failed, using fallback message: {e}")
            return POSITIVE_FALLBACK_MESSAGE
        return text or POSITIVE_FALLBACK_MESSAGE

    async def check_health(self) -> bool:
        """True if the endpoint answers a trivial prompt with any text."""
        try:
            response = await self.invoker.invoke(
                GenerationRequest(prompt=HEALTH_CHECK_PROMPT, max_output_tokens=10, temperature=0.0)
            )
        except Exception as e:
            logger.error(f"Generative endpoint health check failed: {e}")
            return False
        return len(response) > 0
