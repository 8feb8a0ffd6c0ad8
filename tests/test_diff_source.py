import httpx
import pytest

from cursed_reviewer.diff_source import GitHubDiffSource, extract_changed_code, parse_pr_url
from cursed_reviewer.errors import DiffSourceError
from cursed_reviewer.models import PRFile

PR_URL = "https://github.com/spooky/crypt/pull/13"


# --- parse_pr_url ---

@pytest.mark.parametrize(
    "url,expected",
    [
        (PR_URL, ("spooky", "crypt", 13)),
        ("github.com/spooky/crypt/pull/7/files", ("spooky", "crypt", 7)),
        ("https://gitlab.com/spooky/crypt/merge_requests/1", None),
        ("https://github.com/spooky/crypt/issues/13", None),
        ("", None),
    ],
)
def test_parse_pr_url(url, expected):
    assert parse_pr_url(url) == expected


# --- extract_changed_code ---

def test_extract_changed_code_keeps_added_and_context_lines():
    files = [
        PRFile(
            filename="src/app.js",
            status="modified",
            patch="@@ -1,3 +1,3 @@\n const a = 1;\n-var b = 2;\n+let b = 2;\n+++ not metadata?",
        ),
        PRFile(filename="old.js", status="deleted", patch="-gone();"),
        PRFile(filename="README.md", status="added", patch=""),
    ]

    assert extract_changed_code(files).split("\n") == [
        "// File: src/app.js",
        "",
        " const a = 1;",
        "let b = 2;",
        "",
        "",
        "// File: README.md",
        "",
        "",
        "",
    ]


def test_extract_changed_code_drops_no_newline_markers():
    files = [
        PRFile(
            filename="src/app.js",
            patch="@@ -1 +1 @@\n-var b = 2;\n\\ No newline at end of file\n+let b = 2;\n\\ No newline at end of file",
        ),
    ]

    code = extract_changed_code(files)

    assert "No newline" not in code
    assert code.split("\n")[:3] == ["// File: src/app.js", "", "let b = 2;"]


def test_extract_changed_code_with_only_deleted_files_is_blank():
    assert extract_changed_code([PRFile(filename="x.py", status="deleted", patch="-x")]).strip() == ""


# --- GitHubDiffSource ---

def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_pr_diff():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=[
            {"filename": "a.py", "status": "modified", "additions": 1, "deletions": 0, "patch": "+x = 1", "sha": "abc"},
        ])

    async with _client(handler) as client:
        diff = await GitHubDiffSource(token="ghp_test", client=client).fetch_pr_diff(PR_URL)

    assert seen["url"].startswith("https://api.github.com/repos/spooky/crypt/pulls/13/files")
    assert seen["auth"] == "Bearer ghp_test"
    assert diff.repository == "spooky/crypt"
    assert diff.pr_number == 13
    assert diff.files[0].filename == "a.py"
    assert diff.files[0].patch == "+x = 1"


@pytest.mark.asyncio
async def test_fetch_pr_diff_follows_pages():
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        count = 100 if page == 1 else 3
        return httpx.Response(200, json=[{"filename": f"f{page}_{i}.py"} for i in range(count)])

    async with _client(handler) as client:
        diff = await GitHubDiffSource(client=client).fetch_pr_diff(PR_URL)

    assert len(diff.files) == 103


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,message",
    [
        (404, "PR not found or repository is private without access"),
        (401, "GitHub authentication failed or insufficient permissions"),
        (403, "GitHub authentication failed or insufficient permissions"),
    ],
)
async def test_fetch_pr_diff_http_errors(status, message):
    async with _client(lambda request: httpx.Response(status, json={"message": "nope"})) as client:
        with pytest.raises(DiffSourceError) as exc_info:
            await GitHubDiffSource(client=client).fetch_pr_diff(PR_URL)

    assert exc_info.value.message == message
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_fetch_pr_diff_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("the crypt is unreachable", request=request)

    async with _client(handler) as client:
        with pytest.raises(DiffSourceError, match="Network error"):
            await GitHubDiffSource(client=client).fetch_pr_diff(PR_URL)


@pytest.mark.asyncio
async def test_fetch_pr_diff_invalid_url():
    with pytest.raises(DiffSourceError, match="Invalid GitHub PR URL"):
        await GitHubDiffSource().fetch_pr_diff("https://example.com/not-a-pr")
