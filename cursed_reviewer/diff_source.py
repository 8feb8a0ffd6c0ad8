"""
Pull request diffs from the source host.

Only GitHub is supported. ``parse_pr_url`` and ``extract_changed_code`` are
pure helpers; ``GitHubDiffSource`` talks to the REST API over httpx.
"""

import logging
import re
from typing import List, Optional, Protocol, Tuple

import httpx

from .errors import DiffSourceError
from .models import PRDiff, PRFile

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PR_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)")
FILES_PER_PAGE = 100
# GitHub stops listing PR files after 3000 entries
MAX_FILE_PAGES = 30


class DiffSource(Protocol):
    async def fetch_pr_diff(self, pr_url: str) -> PRDiff:
        ...


def parse_pr_url(url: str) -> Optional[Tuple[str, str, int]]:
    """
    Split a pull request URL into (owner, repo, number).

    Accepts ``https://github.com/owner/repo/pull/123`` with or without scheme.
    Returns None for anything else.
    """
    match = PR_URL_PATTERN.search(url or "")
    if match is None:
        return None
    return match.group(1), match.group(2), int(match.group(3))


def extract_changed_code(files: List[PRFile]) -> str:
    """
    Flatten the patches of changed files into one reviewable text.

    Deleted files are skipped. Each file starts with a ``// File: <name>``
    header and a blank line; added lines lose their ``+`` prefix, context
    lines are kept; removed lines, hunk/file metadata and "\\ No newline"
    markers are dropped.
    Two blank lines separate files.
    """
    code_lines: List[str] = []
    for file in files:
        if file.status == "deleted":
            continue

        code_lines.append(f"// File: {file.filename}")
        code_lines.append("")

        if file.patch:
            for line in file.patch.split("\n"):
                if line.startswith("+") and not line.startswith("+++"):
                    code_lines.append(line[1:])
                elif not line.startswith(("-", "@@", "+++", "---", "\\")):
                    code_lines.append(line)

        code_lines.append("")
        code_lines.append("")

    return "\n".join(code_lines)


class GitHubDiffSource:
    """
    Fetches the changed files of a GitHub pull request.

    Args:
        token: Optional GitHub token; anonymous access only sees public repos.
        client: Shared httpx.AsyncClient. When omitted a short-lived client is
            opened per request.
        base_url: API root, overridable for GitHub Enterprise.
        timeout: Request timeout in seconds for the short-lived client.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
    ):
        self.token = token
        self.client = client
        self.base_url = base_url.rstrip("/")
        self._client_timeout = timeout

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _list_files(self, client: httpx.AsyncClient, owner: str, repo: str, number: int) -> List[PRFile]:
        endpoint = f"{self.base_url}/repos/{owner}/{repo}/pulls/{number}/files"
        files: List[PRFile] = []
        for page in range(1, MAX_FILE_PAGES + 1):
            response = await client.get(
                endpoint,
                params={"per_page": FILES_PER_PAGE, "page": page},
                headers=self._get_headers(),
            )
            if response.status_code == 404:
                raise DiffSourceError("PR not found or repository is private without access", 404)
            if response.status_code in (401, 403):
                raise DiffSourceError(
                    "GitHub authentication failed or insufficient permissions", response.status_code
                )
            if response.status_code >= 400:
                raise DiffSourceError(f"Failed to fetch PR: {response.text}", response.status_code)

            batch = response.json()
            files.extend(PRFile.model_validate(item) for item in batch)
            if len(batch) < FILES_PER_PAGE:
                break
        return files

    async def fetch_pr_diff(self, pr_url: str) -> PRDiff:
        """
        Fetch the changed files of a pull request.

        Raises:
            DiffSourceError: On an invalid URL, HTTP errors or network failures.
        """
        parsed = parse_pr_url(pr_url)
        if parsed is None:
            raise DiffSourceError("Invalid GitHub PR URL format")
        owner, repo, number = parsed

        try:
            if self.client is not None:
                files = await self._list_files(self.client, owner, repo, number)
            else:
                async with httpx.AsyncClient(timeout=self._client_timeout) as client:
                    files = await self._list_files(client, owner, repo, number)
        except httpx.RequestError as e:
            raise DiffSourceError(f"Network error while fetching PR: {str(e)}")

        logger.info(f"Fetched {len(files)} changed file(s) from {owner}/{repo}#{number}")
        return PRDiff(files=files, repository=f"{owner}/{repo}", pr_number=number)
