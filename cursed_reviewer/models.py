"""
cursed_reviewer/models.py

Core data models for the review pipeline: findings, patches, personality
profiles and the aggregate analysis result, plus the request/report shapes used
by the scan service and the wire shape exchanged with the generative analyzer.

Built with Pydantic v2. Domain values are frozen: a Finding or Patch never
changes after the analyzer or forge that produced it hands it back.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def _new_id() -> str:
    return str(uuid.uuid4())


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Severity(str, Enum):
    """
    Ordinal severity of a finding: minor < moderate < critical.
    Inherits from str to allow direct string comparison and JSON serialization.
    """
    MINOR = "minor"
    MODERATE = "moderate"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: object, default: Optional["Severity"] = None) -> Optional["Severity"]:
        """Lenient conversion used on model output; returns default when unrecognized."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return default
        return default


_SEVERITY_RANK = {Severity.MINOR: 1, Severity.MODERATE: 2, Severity.CRITICAL: 3}


# -----------------------------------------------------------------------------
# Core Domain Models
# -----------------------------------------------------------------------------

class Finding(BaseModel):
    """A single code issue detected by exactly one analyzer during one scan."""
    id: str = Field(default_factory=_new_id)
    severity: Severity
    line: int = Field(..., ge=1, description="1-based line number.")
    column: int = Field(0, ge=0, description="0-based column, best effort.")
    message: str
    rule_id: str
    context_snippet: str = ""

    model_config = ConfigDict(frozen=True)


class Patch(BaseModel):
    """A validated replacement for the code a finding points at."""
    id: str = Field(default_factory=_new_id)
    finding_id: str
    original_code: str
    corrected_code: str
    rationale: str
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class PersonalityProfile(BaseModel):
    """Tone and phrasing used to voice findings of a given severity."""
    tone: str
    phrase_bank: Tuple[str, ...] = Field(..., min_length=1)
    intensity: Literal[1, 2, 3]

    model_config = ConfigDict(frozen=True)


class AnalysisResult(BaseModel):
    """
    Findings of one scan. The overall score is derived from the findings on
    every access and is never stored on its own.
    """
    findings: Tuple[Finding, ...] = ()
    language: str = "unknown"
    used_fallback: bool = False

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[misc]
    @property
    def overall_score(self) -> int:
        from .curse_scorer import calculate_curse_level
        return calculate_curse_level(self.findings)


# -----------------------------------------------------------------------------
# Generative Contract Models
# -----------------------------------------------------------------------------

class RawFinding(BaseModel):
    """
    One item of the JSON array the generative analyzer is asked to return.
    Configured to ignore extra fields to stay resilient against model verbosity.
    """
    line_number: int = Field(..., alias="lineNumber", ge=1)
    severity: Severity
    message: str
    rule_id: str = Field("generative-review", alias="ruleId")
    context: Optional[str] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v


# -----------------------------------------------------------------------------
# Scan Request / Report Models
# -----------------------------------------------------------------------------

class ScanRequest(BaseModel):
    """A submission to scan: pasted text, an uploaded file, or a pull request URL."""
    type: Literal["file", "pr", "text"]
    content: str
    language: Optional[str] = None
    severity_level: Severity = Severity.MODERATE
    filename: Optional[str] = None


class CursedIssue(BaseModel):
    """A finding as presented to the user, voiced by the matching personality."""
    finding: Finding
    demonic_message: str
    technical_explanation: str

    model_config = ConfigDict(frozen=True)


class ScanReport(BaseModel):
    """The outcome of a full scan submission."""
    scan_id: str = Field(default_factory=_new_id)
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    language: str
    issues: List[CursedIssue] = Field(default_factory=list)
    overall_curse_level: int = Field(..., ge=0, le=100)
    scan_duration_ms: int = Field(0, ge=0)
    status: Literal["completed", "failed", "processing"] = "completed"
    used_fallback: bool = False
    payload_key: Optional[str] = None
    message: str = ""


class PRFile(BaseModel):
    """One changed file of a pull request as reported by the source host."""
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    patch: str = ""

    model_config = ConfigDict(extra="ignore")


class PRDiff(BaseModel):
    files: List[PRFile] = Field(default_factory=list)
    repository: str
    pr_number: int
