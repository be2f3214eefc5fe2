import asyncio
import base64
import json
import time
from collections.abc import AsyncGenerator, Sequence
from typing import Any

import httpx
import pytest
from pydantic import BaseModel

from github_lessons_mcp.clients.github import GitHubCommitClient, get_githubkit_client
from github_lessons_mcp.clients.openai import ChatCompletionClient, get_openai_client
from github_lessons_mcp.lessons.models import CommitCollection, CommitRecord, RepositoryIdentifier

E2E_OWNER = "octo-org"
E2E_REPO = "hello-world"


def commit_sha(number: int) -> str:
    return f"{number:040x}"


def commit_summary_json(number: int) -> dict[str, Any]:
    return {
        "sha": commit_sha(number),
        "node_id": f"C_{number}",
        "commit": {
            "message": f"Commit number {number}\n\nLonger description of commit {number}.",
            "author": {"name": "Ada Lovelace", "email": "ada@example.com", "date": "2024-05-01T12:00:00Z"},
        },
    }


def commit_detail_json(number: int, files: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    if files is None:
        files = [
            {
                "filename": f"src/module_{number}.py",
                "status": "modified",
                "additions": 1,
                "deletions": 1,
                "patch": f"@@ -1 +1 @@\n-value = {number - 1}\n+value = {number}",
            }
        ]

    return {**commit_summary_json(number), "files": files}


SOURCE_FILES: dict[str, str] = {
    ".github/workflows/ci.yml": "on: push",
    "README.md": "# Hello World",
    "docs/guide/intro.txt": "Start here.",
    "node_modules/left-pad/index.js": "module.exports = leftPad;",
    "src/app.py": "print('hello')",
    "src/logo.png": "not text",
}


def rate_limit_exhausted_headers() -> dict[str, str]:
    """The headers GitHub sends with a 403 once the primary rate limit is used up."""

    return {
        "x-ratelimit-limit": "60",
        "x-ratelimit-remaining": "0",
        "x-ratelimit-used": "60",
        "x-ratelimit-reset": str(int(time.time()) + 3600),
    }


def content_file_json(path: str, text: str) -> dict[str, Any]:
    return {
        "type": "file",
        "name": path.rsplit("/", 1)[-1],
        "path": path,
        "encoding": "base64",
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


def content_entry_json(path: str, entry_type: str) -> dict[str, Any]:
    return {"type": entry_type, "name": path.rsplit("/", 1)[-1], "path": path}


class GitHubApiStub:
    """Serves a repository of `commit_count` commits through the list and single commit endpoints, and the files
    in `source_files` through the contents endpoint.

    `detail_statuses` maps a 1-based position in the commit list to the status its detail request returns, and
    `detail_headers` to the headers sent with it. `content_statuses` maps a path to the status its contents
    request returns.
    """

    def __init__(
        self,
        commit_count: int,
        detail_statuses: dict[int, int] | None = None,
        list_status: int = 200,
        detail_headers: dict[int, dict[str, str]] | None = None,
        source_files: dict[str, str] | None = None,
        content_statuses: dict[str, int] | None = None,
    ):
        self.commit_count: int = commit_count
        self.detail_statuses: dict[int, int] = detail_statuses or {}
        self.detail_headers: dict[int, dict[str, str]] = detail_headers or {}
        self.list_status: int = list_status
        self.source_files: dict[str, str] = source_files or {}
        self.content_statuses: dict[str, int] = content_statuses or {}
        self.list_requests: list[httpx.Request] = []
        self.detail_requests: list[httpx.Request] = []
        self.content_requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path_parts: list[str] = request.url.path.strip("/").split("/")

        if path_parts[3:4] == ["contents"]:
            self.content_requests.append(request)
            return self._get_content(path="/".join(path_parts[4:]))

        if path_parts[-1] == "commits":
            self.list_requests.append(request)
            return self._list_commits(request)

        self.detail_requests.append(request)
        return self._get_commit(sha=path_parts[-1])

    def _list_commits(self, request: httpx.Request) -> httpx.Response:
        if self.list_status != 200:  # noqa: PLR2004
            return httpx.Response(self.list_status, json={"message": "API rate limit exceeded"})

        page = int(request.url.params.get("page", "1"))
        per_page = int(request.url.params.get("per_page", "30"))

        start = (page - 1) * per_page
        numbers = range(start + 1, min(start + per_page, self.commit_count) + 1)

        return httpx.Response(200, json=[commit_summary_json(number) for number in numbers])

    def _get_commit(self, sha: str) -> httpx.Response:
        number = int(sha, 16)

        if (status := self.detail_statuses.get(number)) is not None:
            return httpx.Response(status, json={"message": "Failure"}, headers=self.detail_headers.get(number, {}))

        return httpx.Response(200, json=commit_detail_json(number))

    def _get_content(self, path: str) -> httpx.Response:
        if (status := self.content_statuses.get(path)) is not None:
            return httpx.Response(status, json={"message": "Failure"})

        if path in self.source_files:
            return httpx.Response(200, json=content_file_json(path=path, text=self.source_files[path]))

        prefix: str = f"{path}/" if path else ""
        entries: dict[str, str] = {}

        for file_path in sorted(self.source_files):
            if not file_path.startswith(prefix):
                continue

            name, _, rest = file_path.removeprefix(prefix).partition("/")
            _ = entries.setdefault(f"{prefix}{name}", "dir" if rest else "file")

        if not entries:
            return httpx.Response(404, json={"message": "Not Found"})

        listing = [content_entry_json(path=entry_path, entry_type=entry_type) for entry_path, entry_type in entries.items()]
        return httpx.Response(200, json=listing)


def chat_completion_json(content: str) -> dict[str, Any]:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "gpt-4o",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


class ChatCompletionStub:
    """Answers chat completion requests with the queued responses, in order."""

    def __init__(self, responses: Sequence[httpx.Response] | None = None, gate: asyncio.Event | None = None):
        self.responses: list[httpx.Response] = list(responses or [])
        self.gate: asyncio.Event | None = gate
        self.requests: list[httpx.Request] = []

    @classmethod
    def with_lessons(cls, *lessons: str, gate: asyncio.Event | None = None) -> "ChatCompletionStub":
        return cls(responses=[httpx.Response(200, json=chat_completion_json(lesson)) for lesson in lessons], gate=gate)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.gate is not None:
            _ = await self.gate.wait()

        if not self.responses:
            return httpx.Response(200, json=chat_completion_json(f"Lesson {len(self.requests)}"))

        return self.responses.pop(0)

    def request_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def github_api_stub() -> GitHubApiStub:
    return GitHubApiStub(commit_count=3)


@pytest.fixture
def github_client(github_api_stub: GitHubApiStub) -> GitHubCommitClient:
    return build_github_client(github_api_stub)


def build_github_client(github_api_stub: GitHubApiStub) -> GitHubCommitClient:
    githubkit_client = get_githubkit_client(async_transport=httpx.MockTransport(github_api_stub.handler))
    return GitHubCommitClient(githubkit_client=githubkit_client)


@pytest.fixture
def chat_stub() -> ChatCompletionStub:
    return ChatCompletionStub()


@pytest.fixture
async def chat_client(chat_stub: ChatCompletionStub) -> AsyncGenerator[ChatCompletionClient, Any]:
    chat_client = build_chat_client(chat_stub)

    yield chat_client

    await chat_client.aclose()


def build_chat_client(chat_stub: ChatCompletionStub) -> ChatCompletionClient:
    openai_client = get_openai_client(http_client=httpx.AsyncClient(transport=httpx.MockTransport(chat_stub.handler)))
    return ChatCompletionClient(openai_client=openai_client)


def make_collection(size: int, explained: Sequence[int] = ()) -> CommitCollection:
    records: list[CommitRecord] = [
        CommitRecord(
            sha=commit_sha(number),
            message=f"Commit number {number}",
            diff_text=f"### file_{number}.py\n```diff\n+value = {number}\n```",
            explanation=f"Existing lesson {number}" if number - 1 in explained else None,
        )
        for number in range(1, size + 1)
    ]

    return CommitCollection(repository=RepositoryIdentifier(owner=E2E_OWNER, name=E2E_REPO), records=records)


def dump_for_snapshot(basemodel: BaseModel, /, exclude_none: bool = True, **dump_kwargs: Any) -> dict[str, Any]:
    return basemodel.model_dump(mode="json", exclude_none=exclude_none, **dump_kwargs)
