"""Tests for the GitHub client and its path/ref helpers."""
import base64

import httpx
import pytest

from rdcontext.errors import InvalidLibraryNameError
from rdcontext.github.client import (
    GitHubClient,
    build_ref,
    is_documentation_file,
    is_in_target_folders,
    parse_library_name,
)

TREE = {
    "sha": "abc",
    "truncated": False,
    "tree": [
        {"path": "README.md", "type": "blob", "sha": "1"},
        {"path": "docs", "type": "tree", "sha": "2"},
        {"path": "docs/guide.mdx", "type": "blob", "sha": "3"},
        {"path": "docs/img.png", "type": "blob", "sha": "4"},
        {"path": "src/index.ts", "type": "blob", "sha": "5"},
        {"path": "src/NOTES.MD", "type": "blob", "sha": "6"},
        {"path": "Makefile", "type": "blob", "sha": "7"},
    ],
}


def _client(routes: dict, token=None, seen=None) -> GitHubClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        path = request.url.path
        if path not in routes:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=routes[path])

    return GitHubClient(token=token, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestHelpers:
    def test_parse_library_name(self):
        assert parse_library_name("Cozmo-AI/RDContext") == ("cozmo-ai", "rdcontext")

    @pytest.mark.parametrize("name", ["rdcontext", "a/b/c", "/repo", "owner/", ""])
    def test_parse_library_name_rejects(self, name):
        with pytest.raises(InvalidLibraryNameError):
            parse_library_name(name)

    def test_build_ref(self):
        assert build_ref("main") == "heads/main"
        assert build_ref("main", branch="dev") == "heads/dev"
        assert build_ref("main", tag="v1.2.3") == "tags/v1.2.3"

    def test_build_ref_rejects_branch_and_tag(self):
        with pytest.raises(ValueError):
            build_ref("main", branch="dev", tag="v1")

    def test_is_documentation_file(self):
        assert is_documentation_file("docs/a.md")
        assert is_documentation_file("docs/a.MDX")
        assert not is_documentation_file("src/a.ts")
        assert not is_documentation_file("Makefile")

    def test_is_in_target_folders(self):
        assert is_in_target_folders("anything.md")
        assert is_in_target_folders("docs/a.md", ["docs"])
        assert not is_in_target_folders("src/a.md", ["docs", "guides"])


class TestGitHubClient:
    @pytest.mark.asyncio
    async def test_get_repository(self):
        client = _client({"/repos/acme/docs": {"description": "Docs", "default_branch": "trunk"}})
        info = await client.get_repository("acme", "docs")
        assert info.description == "Docs"
        assert info.default_branch == "trunk"

    @pytest.mark.asyncio
    async def test_sends_token_and_user_agent(self):
        seen = []
        client = _client({"/repos/acme/docs": {"default_branch": "main"}}, token="ghp_x", seen=seen)
        await client.get_repository("acme", "docs")
        assert seen[0].headers["Authorization"] == "Bearer ghp_x"
        assert seen[0].headers["User-Agent"].startswith("rdcontext/")

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self):
        seen = []
        client = _client({"/repos/acme/docs": {"default_branch": "main"}}, seen=seen)
        await client.get_repository("acme", "docs")
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_resolve_branch_ref(self):
        client = _client({
            "/repos/acme/docs/git/ref/heads/main": {"object": {"type": "commit", "sha": "c0ffee"}},
        })
        assert await client.resolve_ref("acme", "docs", "heads/main") == "c0ffee"

    @pytest.mark.asyncio
    async def test_resolve_annotated_tag(self):
        client = _client({
            "/repos/acme/docs/git/ref/tags/v1": {"object": {"type": "tag", "sha": "tagobj"}},
            "/repos/acme/docs/git/tags/tagobj": {"object": {"type": "commit", "sha": "deadbeef"}},
        })
        assert await client.resolve_ref("acme", "docs", "tags/v1") == "deadbeef"

    @pytest.mark.asyncio
    async def test_missing_ref_raises(self):
        client = _client({})
        with pytest.raises(httpx.HTTPStatusError):
            await client.resolve_ref("acme", "docs", "heads/nope")

    @pytest.mark.asyncio
    async def test_list_documentation_files(self):
        client = _client({"/repos/acme/docs/git/trees/abc": TREE})
        files = await client.list_documentation_files("acme", "docs", "abc")
        assert [f.path for f in files] == ["README.md", "docs/guide.mdx", "src/NOTES.MD"]

    @pytest.mark.asyncio
    async def test_list_documentation_files_in_folders(self):
        client = _client({"/repos/acme/docs/git/trees/abc": TREE})
        files = await client.list_documentation_files("acme", "docs", "abc", folders=["docs"])
        assert [f.path for f in files] == ["docs/guide.mdx"]

    @pytest.mark.asyncio
    async def test_truncated_tree_is_logged(self, caplog):
        client = _client({"/repos/acme/docs/git/trees/abc": {**TREE, "truncated": True}})
        await client.list_tree("acme", "docs", "abc")
        assert "truncated" in caplog.text

    @pytest.mark.asyncio
    async def test_get_file_content_decodes_base64(self):
        encoded = base64.b64encode("# Título\n".encode("utf-8")).decode()
        client = _client({
            "/repos/acme/docs/contents/docs/guide.md": {
                "type": "file", "encoding": "base64", "content": encoded,
            },
        })
        assert await client.get_file_content("acme", "docs", "abc", "docs/guide.md") == "# Título\n"

    @pytest.mark.asyncio
    async def test_get_file_content_passes_ref(self):
        seen = []
        client = _client(
            {"/repos/acme/docs/contents/a.md": {"type": "file", "content": "plain"}}, seen=seen
        )
        assert await client.get_file_content("acme", "docs", "abc", "a.md") == "plain"
        assert seen[0].url.params["ref"] == "abc"

    @pytest.mark.asyncio
    async def test_get_file_content_rejects_directories(self):
        client = _client({"/repos/acme/docs/contents/docs": [{"type": "file"}]})
        with pytest.raises(ValueError, match="Expected file but got array"):
            await client.get_file_content("acme", "docs", "abc", "docs")
