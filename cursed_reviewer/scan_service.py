"""
cursed_reviewer/scan_service.py

Orchestrates a full scan submission: resolve the code to review (pasted text,
an uploaded file or a pull request), analyze it, voice the findings, score the
result and hand everything to the optional storage collaborators.

Storage is abstracted behind two small protocols so the service can run with
no persistence at all (the CLI) or against whatever store a host provides.
"""

import logging
import random
import time
import uuid
from typing import List, Optional, Protocol, Tuple

from .diff_source import DiffSource, extract_changed_code
from .errors import DiffSourceError, ScanRequestError
from .language_detector import UNKNOWN_LANGUAGE, detect_language
from .models import CursedIssue, ScanReport, ScanRequest, Severity
from .personality import ChoiceSource, fallback_demonic_message
from .pipeline import ReviewPipeline

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD_THRESHOLD = 100_000
PURE_MESSAGE = "✨ Your code is pure! No curses detected!"


class RecordStore(Protocol):
    """Persists scan summaries and their issues."""

    async def store_scan(self, report: ScanReport, request: ScanRequest) -> None:
        ...

    async def store_issues(self, scan_id: str, issues: List[CursedIssue]) -> None:
        ...


class PayloadStore(Protocol):
    """Holds code too large to keep alongside the scan record."""

    async def store_code(self, scan_id: str, code: str, language: str) -> str:
        """Store the code and return the key it can be retrieved by."""
        ...


def summary_message(issue_count: int) -> str:
    if issue_count == 0:
        return PURE_MESSAGE
    plural = "s" if issue_count > 1 else ""
    return f"👻 {issue_count} curse{plural} detected in your code!"


class ScanService:
    """
    Runs scan submissions through the review pipeline.

    Args:
        pipeline: Analysis pipeline.
        diff_source: Required for pull request submissions.
        record_store: Optional persistence for scans and issues.
        payload_store: Optional store for code above payload_threshold bytes.
        rng: Random source for the demonic phrases.
        payload_threshold: Size in UTF-8 bytes above which code is offloaded.
    """

    def __init__(
        self,
        pipeline: ReviewPipeline,
        diff_source: Optional[DiffSource] = None,
        record_store: Optional[RecordStore] = None,
        payload_store: Optional[PayloadStore] = None,
        rng: Optional[ChoiceSource] = None,
        payload_threshold: int = DEFAULT_PAYLOAD_THRESHOLD,
    ):
        self.pipeline = pipeline
        self.diff_source = diff_source
        self.record_store = record_store
        self.payload_store = payload_store
        self.rng = rng if rng is not None else random.Random()
        self.payload_threshold = payload_threshold

    def should_offload(self, code: str) -> bool:
        return len(code.encode("utf-8")) > self.payload_threshold

    async def _resolve_pr(self, pr_url: str) -> Tuple[str, str]:
        if self.diff_source is None:
            raise ScanRequestError("No diff source configured for pull request scans", code="PR_FETCH_FAILED")
        try:
            diff = await self.diff_source.fetch_pr_diff(pr_url)
        except DiffSourceError as e:
            raise ScanRequestError(e.message, code="PR_FETCH_FAILED") from e

        code = extract_changed_code(diff.files)
        if not code.strip():
            raise ScanRequestError("No code changes found in the PR", code="EMPTY_PR")

        language = detect_language(code, diff.files[0].filename) if diff.files else UNKNOWN_LANGUAGE
        return code, language

    async def submit(self, request: ScanRequest) -> ScanReport:
        """
        Scan one submission.

        Raises:
            ScanRequestError: Missing content, a PR that cannot be fetched, or
                a PR without code changes.
        """
        start = time.monotonic()
        if not request.content or not request.content.strip():
            raise ScanRequestError("Missing required field: content")

        scan_id = str(uuid.uuid4())
        code = request.content
        language = (request.language or UNKNOWN_LANGUAGE).lower()

        if request.type == "pr":
            code, language = await self._resolve_pr(request.content)

        if language == UNKNOWN_LANGUAGE:
            language = detect_language(code, request.filename)

        payload_key = None
        if self.payload_store is not None and self.should_offload(code):
            payload_key = await self.payload_store.store_code(scan_id, code, language)
            logger.info(f"Scan {scan_id}: offloaded {len(code)} characters of code to {payload_key}")

        result = await self.pipeline.analyze(code, language, request.severity_level or Severity.MODERATE)

        issues = [
            CursedIssue(
                finding=finding,
                demonic_message=fallback_demonic_message(finding.message, finding.severity, self.rng),
                technical_explanation=finding.message,
            )
            for finding in result.findings
        ]

        report = ScanReport(
            scan_id=scan_id,
            language=result.language,
            issues=issues,
            overall_curse_level=result.overall_score,
            scan_duration_ms=int((time.monotonic() - start) * 1000),
            used_fallback=result.used_fallback,
            payload_key=payload_key,
            message=summary_message(len(issues)),
        )

        if self.record_store is not None:
            await self.record_store.store_scan(report, request)
            await self.record_store.store_issues(scan_id, issues)

        logger.info(
            f"Scan {scan_id} completed: {len(issues)} issue(s), curse level {report.overall_curse_level}, "
            f"{report.scan_duration_ms}ms"
        )
        return report
