"""
cursed_reviewer/personality.py

Maps a severity to the voice used when presenting a finding.
"""

import random
from typing import Optional, Protocol, Sequence, TypeVar, Union

from .models import PersonalityProfile, Severity

T = TypeVar("T")


class ChoiceSource(Protocol):
    """Anything with ``random.Random.choice`` semantics."""

    def choice(self, seq: Sequence[T]) -> T:
        ...


PERSONALITIES = {
    Severity.MINOR: PersonalityProfile(
        tone="sarcastic and mildly annoyed",
        phrase_bank=(
            "👻 A minor spirit haunts this line",
            "🕷️ The spiders whisper of a small curse",
            "🦇 The bats notice something amiss",
            "🕸️ A tiny web of issues forms here",
            "💀 Even the dead would raise an eyebrow",
            "🎃 This pumpkin has a small bruise",
        ),
        intensity=1,
    ),
    Severity.MODERATE: PersonalityProfile(
        tone="disappointed and stern",
        phrase_bank=(
            "💀 The dead are displeased with this code",
            "🕸️ A moderate curse has been cast upon this",
            "👹 The demons frown upon this transgression",
            "⚰️ This code is halfway to the coffin",
            "🔮 The crystal ball shows troubling visions",
            "🧛 Even vampires would drain this code of life",
        ),
        intensity=2,
    ),
    Severity.CRITICAL: PersonalityProfile(
        tone="furious and dramatic",
        phrase_bank=(
            "🔥 THE FLAMES OF HELL CONSUME THIS CODE",
            "☠️ CRITICAL CURSE DETECTED - IMMEDIATE EXORCISM REQUIRED",
            "⚰️ THIS CODE BELONGS IN A COFFIN, BURIED DEEP",
            "👿 THE DEVIL HIMSELF RECOILS FROM THIS ABOMINATION",
            "💀 THE GRIM REAPER HAS MARKED THIS FOR DELETION",
            "🌋 VOLCANIC RAGE ERUPTS AT THE SIGHT OF THIS",
        ),
        intensity=3,
    ),
}


def select_personality(severity: Union[Severity, str, None]) -> PersonalityProfile:
    """Profile for a severity; anything unrecognized gets the moderate voice."""
    parsed = Severity.parse(severity, default=Severity.MODERATE)
    return PERSONALITIES[parsed]


def pick_phrase(profile: PersonalityProfile, rng: Optional[ChoiceSource] = None) -> str:
    """Pick one phrase from the profile's bank using the given random source."""
    source = rng if rng is not None else random
    return source.choice(profile.phrase_bank)


def fallback_demonic_message(
    message: str,
    severity: Union[Severity, str, None],
    rng: Optional[ChoiceSource] = None,
) -> str:
    """Voice a finding without the generative endpoint: ``"<phrase>: <message>"``."""
    phrase = pick_phrase(select_personality(severity), rng)
    return f"{phrase}: {message}"
