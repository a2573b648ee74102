"""GitHub REST client for documentation discovery.

Only the four calls the ingestion pipeline needs:

1. ``GET /repos/{owner}/{repo}``                  — description, default branch
2. ``GET /repos/{owner}/{repo}/git/ref/{ref}``    — commit sha for a branch/tag
3. ``GET /repos/{owner}/{repo}/git/trees/{sha}``  — recursive file listing
4. ``GET /repos/{owner}/{repo}/contents/{path}``  — base64 file content
"""
import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from rdcontext import __version__, name as package_name
from rdcontext.errors import InvalidLibraryNameError

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DOC_EXTENSIONS = ("md", "mdx")


@dataclass
class RepositoryInfo:
    description: Optional[str]
    default_branch: str


@dataclass
class RepositoryFile:
    path: str
    sha: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse_library_name(name: str) -> tuple[str, str]:
    """Split ``owner/repo`` (case-insensitive) into its two parts.

    Raises:
        InvalidLibraryNameError: Unless *name* has exactly two non-empty parts.
    """
    parts = name.lower().split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise InvalidLibraryNameError(name)
    return parts[0].strip(), parts[1].strip()


def build_ref(default_branch: str, branch: Optional[str] = None, tag: Optional[str] = None) -> str:
    """Git ref for a tag, an explicit branch, or the default branch."""
    if branch and tag:
        raise ValueError("You can specify either branch or tag, but not both.")
    if tag:
        return f"tags/{tag}"
    return f"heads/{branch or default_branch}"


def is_documentation_file(path: str, extensions: Sequence[str] = DOC_EXTENSIONS) -> bool:
    if "." not in path:
        return False
    return path.rsplit(".", 1)[-1].lower() in extensions


def is_in_target_folders(path: str, folders: Sequence[str] = ()) -> bool:
    """True when *folders* is empty or *path* starts with one of them."""
    return not folders or any(path.startswith(folder) for folder in folders)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class GitHubClient:
    """Async GitHub REST client.

    Args:
        token:  Optional personal access token (private repos, higher limits).
        client: Optional pre-built ``httpx.AsyncClient`` (tests inject one).
    """

    def __init__(self, token: Optional[str] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"{package_name}/{__version__}",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = client or httpx.AsyncClient(base_url=API_BASE, timeout=DEFAULT_TIMEOUT)

    async def _get(self, url: str, params: Optional[dict] = None) -> Any:
        resp = await self._client.get(url, params=params, headers=self._headers)
        resp.raise_for_status()
        return resp.json()

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        data = await self._get(f"{API_BASE}/repos/{owner}/{repo}")
        return RepositoryInfo(
            description=data.get("description"),
            default_branch=data.get("default_branch") or "main",
        )

    async def resolve_ref(self, owner: str, repo: str, ref: str) -> str:
        """Return the commit sha *ref* points to.

        Annotated tags point to a tag object; that object is dereferenced to
        its commit.
        """
        data = await self._get(f"{API_BASE}/repos/{owner}/{repo}/git/ref/{ref}")
        obj = data["object"]
        if obj.get("type") == "tag":
            tag = await self._get(f"{API_BASE}/repos/{owner}/{repo}/git/tags/{obj['sha']}")
            return tag["object"]["sha"]
        return obj["sha"]

    async def list_tree(self, owner: str, repo: str, sha: str) -> list[dict]:
        data = await self._get(
            f"{API_BASE}/repos/{owner}/{repo}/git/trees/{sha}",
            params={"recursive": "true"},
        )
        if data.get("truncated"):
            logger.warning(
                "[GitHub] Tree listing for %s/%s was truncated by the API", owner, repo
            )
        return data.get("tree", [])

    async def list_documentation_files(
        self,
        owner: str,
        repo: str,
        sha: str,
        folders: Sequence[str] = (),
        extensions: Sequence[str] = DOC_EXTENSIONS,
    ) -> list[RepositoryFile]:
        """Blobs under *folders* whose extension is in *extensions*."""
        tree = await self.list_tree(owner, repo, sha)
        return [
            RepositoryFile(path=item["path"], sha=item.get("sha", ""))
            for item in tree
            if item.get("type") == "blob"
            and item.get("path")
            and is_in_target_folders(item["path"], folders)
            and is_documentation_file(item["path"], extensions)
        ]

    async def get_file_content(self, owner: str, repo: str, ref: str, path: str) -> str:
        """Fetch and decode one file.

        Raises:
            ValueError: If *path* is not a regular file.
            httpx.HTTPError: On transport or HTTP status errors.
        """
        data = await self._get(
            f"{API_BASE}/repos/{owner}/{repo}/contents/{path}",
            params={"ref": ref},
        )
        if isinstance(data, list) or data.get("type") != "file":
            kind = "array" if isinstance(data, list) else data.get("type")
            raise ValueError(f"Expected file but got {kind}")

        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8")
        return content

    async def aclose(self) -> None:
        await self._client.aclose()
