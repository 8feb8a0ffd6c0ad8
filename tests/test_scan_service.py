from unittest.mock import AsyncMock

import pytest

from cursed_reviewer.errors import DiffSourceError, ScanRequestError
from cursed_reviewer.models import PRDiff, PRFile, ScanRequest, Severity
from cursed_reviewer.personality import PERSONALITIES
from cursed_reviewer.pipeline import ReviewPipeline
from cursed_reviewer.scan_service import PURE_MESSAGE, ScanService, summary_message

VAR_EVAL = 'var x = 1;\neval("x")'


class FakeRecordStore:
    def __init__(self):
        self.scans = []
        self.issues = {}

    async def store_scan(self, report, request):
        self.scans.append((report, request))

    async def store_issues(self, scan_id, issues):
        self.issues[scan_id] = list(issues)


class FakePayloadStore:
    def __init__(self):
        self.stored = {}

    async def store_code(self, scan_id, code, language):
        key = f"scans/{scan_id}/code.{language}"
        self.stored[key] = code
        return key


@pytest.fixture
def offline_pipeline(make_invoker, rng, api_errors):
    """Pipeline whose generative endpoint always refuses, forcing the rule-based analyzer."""
    invoker, _ = make_invoker(api_errors.auth())
    return ReviewPipeline(invoker, rng=rng)


def test_summary_message():
    assert summary_message(0) == PURE_MESSAGE
    assert summary_message(1) == "👻 1 curse detected in your code!"
    assert summary_message(3) == "👻 3 curses detected in your code!"


@pytest.mark.asyncio
async def test_text_submission_is_scored_and_persisted(offline_pipeline, rng):
    records = FakeRecordStore()
    service = ScanService(offline_pipeline, record_store=records, rng=rng)

    report = await service.submit(ScanRequest(type="text", content=VAR_EVAL, severity_level=Severity.MINOR))

    assert report.status == "completed"
    assert report.used_fallback
    assert report.overall_curse_level == 65
    assert report.message == "👻 2 curses detected in your code!"
    assert [i.finding.rule_id for i in report.issues] == ["no-var", "no-eval"]

    eval_issue = report.issues[1]
    phrase, _, rest = eval_issue.demonic_message.partition(": ")
    assert phrase in PERSONALITIES[Severity.CRITICAL].phrase_bank
    assert rest == eval_issue.technical_explanation == "Use of eval is dangerous"

    assert records.scans[0][0] is report
    assert records.issues[report.scan_id] == report.issues


@pytest.mark.asyncio
async def test_default_severity_is_moderate(offline_pipeline):
    report = await ScanService(offline_pipeline).submit(
        ScanRequest(type="text", content="console.log(1);\nvar x = 1;", language="javascript")
    )
    assert [i.finding.rule_id for i in report.issues] == ["no-var"]


@pytest.mark.asyncio
async def test_clean_code_is_pure(offline_pipeline):
    report = await ScanService(offline_pipeline).submit(ScanRequest(type="file", content="const x = 1;", filename="x.js"))
    assert report.issues == []
    assert report.overall_curse_level == 0
    assert report.message == PURE_MESSAGE
    assert report.language == "javascript"


@pytest.mark.asyncio
async def test_missing_content_is_rejected(offline_pipeline):
    with pytest.raises(ScanRequestError) as exc_info:
        await ScanService(offline_pipeline).submit(ScanRequest(type="text", content="   "))
    assert exc_info.value.code == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_large_payload_is_offloaded(offline_pipeline):
    payloads = FakePayloadStore()
    service = ScanService(offline_pipeline, payload_store=payloads, payload_threshold=10)

    report = await service.submit(ScanRequest(type="text", content=VAR_EVAL, language="javascript"))

    assert report.payload_key == f"scans/{report.scan_id}/code.javascript"
    assert payloads.stored[report.payload_key] == VAR_EVAL


@pytest.mark.asyncio
async def test_small_payload_is_not_offloaded(offline_pipeline):
    payloads = FakePayloadStore()
    report = await ScanService(offline_pipeline, payload_store=payloads).submit(
        ScanRequest(type="text", content=VAR_EVAL)
    )
    assert report.payload_key is None
    assert payloads.stored == {}


@pytest.mark.asyncio
async def test_pr_submission_scans_changed_lines(offline_pipeline):
    diff_source = AsyncMock()
    diff_source.fetch_pr_diff.return_value = PRDiff(
        repository="spooky/crypt",
        pr_number=13,
        files=[PRFile(filename="app.ts", patch="@@ -0,0 +1,2 @@\n+var x = 1;\n+eval(\"x\")")],
    )
    service = ScanService(offline_pipeline, diff_source=diff_source)

    report = await service.submit(ScanRequest(type="pr", content="https://github.com/spooky/crypt/pull/13"))

    diff_source.fetch_pr_diff.assert_awaited_once_with("https://github.com/spooky/crypt/pull/13")
    assert report.language == "typescript"
    # The "// File:" header is line 1 and a blank line follows it
    assert [(i.finding.rule_id, i.finding.line) for i in report.issues] == [("no-var", 3), ("no-eval", 4)]


@pytest.mark.asyncio
async def test_empty_pr_is_rejected(offline_pipeline):
    diff_source = AsyncMock()
    diff_source.fetch_pr_diff.return_value = PRDiff(
        repository="spooky/crypt", pr_number=1, files=[PRFile(filename="gone.py", status="deleted", patch="-x")]
    )
    with pytest.raises(ScanRequestError) as exc_info:
        await ScanService(offline_pipeline, diff_source=diff_source).submit(
            ScanRequest(type="pr", content="https://github.com/spooky/crypt/pull/1")
        )
    assert exc_info.value.code == "EMPTY_PR"


@pytest.mark.asyncio
async def test_pr_fetch_failure_is_reported(offline_pipeline):
    diff_source = AsyncMock()
    diff_source.fetch_pr_diff.side_effect = DiffSourceError("PR not found or repository is private without access", 404)

    with pytest.raises(ScanRequestError) as exc_info:
        await ScanService(offline_pipeline, diff_source=diff_source).submit(
            ScanRequest(type="pr", content="https://github.com/spooky/crypt/pull/404")
        )
    assert exc_info.value.code == "PR_FETCH_FAILED"
    assert exc_info.value.message == "PR not found or repository is private without access"
    assert isinstance(exc_info.value.__cause__, DiffSourceError)


@pytest.mark.asyncio
async def test_pr_fetch_server_error_message_has_single_prefix(offline_pipeline):
    diff_source = AsyncMock()
    diff_source.fetch_pr_diff.side_effect = DiffSourceError("Failed to fetch PR: upstream exploded", 502)

    with pytest.raises(ScanRequestError) as exc_info:
        await ScanService(offline_pipeline, diff_source=diff_source).submit(
            ScanRequest(type="pr", content="https://github.com/spooky/crypt/pull/7")
        )
    assert exc_info.value.message == "Failed to fetch PR: upstream exploded"


@pytest.mark.asyncio
async def test_pr_without_diff_source_is_rejected(offline_pipeline):
    with pytest.raises(ScanRequestError) as exc_info:
        await ScanService(offline_pipeline).submit(ScanRequest(type="pr", content="https://github.com/a/b/pull/1"))
    assert exc_info.value.code == "PR_FETCH_FAILED"
