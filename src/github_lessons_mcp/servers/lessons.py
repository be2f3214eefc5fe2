from collections.abc import Awaitable, Callable
from logging import Logger
from typing import Any

from fastmcp.server import FastMCP
from fastmcp.tools import Tool
from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.clients.errors.base import ClientError
from github_lessons_mcp.clients.github import GitHubCommitClient, get_githubkit_client
from github_lessons_mcp.clients.openai import ChatCompletionClient, get_openai_api_key, validate_api_key
from github_lessons_mcp.lessons.analysis import generate_repository_analysis
from github_lessons_mcp.lessons.errors import LessonError, NoCommitsError, NoRepositoryError
from github_lessons_mcp.lessons.generator import LessonGenerator
from github_lessons_mcp.lessons.history import render_commit_history
from github_lessons_mcp.lessons.ingest import ingest_repository
from github_lessons_mcp.lessons.models import CommitCollection, IngestionResult, NavigatorState, SourceSnapshot
from github_lessons_mcp.lessons.navigator import LessonNavigator
from github_lessons_mcp.lessons.source import crawl_source_code
from github_lessons_mcp.servers.models.lessons import (
    AnalysisResponse,
    CommitListResponse,
    CommitOverview,
    LessonResponse,
    Notification,
    ProcessRepositoryResponse,
    SourceCodeResponse,
    WalkthroughResponse,
)
from github_lessons_mcp.servers.shared.annotations import COMMIT_INDEX, GITHUB_TOKEN, OPENAI_API_KEY, REPOSITORY_URL


def list_commit_overviews(collection: CommitCollection | None) -> list[CommitOverview]:
    if collection is None:
        return []

    return [CommitOverview.from_commit_record(index=index, commit_record=record) for index, record in enumerate(collection.records)]


class LessonServer:
    """Processes a repository, serves lessons for its commits, and reviews the repository as a whole.

    Every tool is an operation boundary: failures are logged and returned as a destructive notification, the
    session stays usable and the action can be retried.
    """

    github_client: GitHubCommitClient
    generator: LessonGenerator
    navigator: LessonNavigator
    collection: CommitCollection | None
    source_snapshot: SourceSnapshot | None
    openai_api_key: str | None
    logger: Logger

    def __init__(
        self,
        github_client: GitHubCommitClient | None = None,
        chat_client: ChatCompletionClient | None = None,
        openai_api_key: str | None = None,
        logger: Logger | None = None,
    ):
        self.logger = logger or get_logger(name=__name__)
        self.github_client = github_client or GitHubCommitClient(logger=self.logger)
        self.generator = LessonGenerator(chat_client=chat_client, logger=self.logger)
        self.navigator = LessonNavigator(generator=self.generator, logger=self.logger)
        self.collection = None
        self.source_snapshot = None
        self.openai_api_key = openai_api_key or get_openai_api_key()

    def register_tools(self, fastmcp: FastMCP[Any]) -> FastMCP[Any]:
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.process_repository))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.list_commits))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_commit_history))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.generate_lesson))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.start_walkthrough))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.next_lesson))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.previous_lesson))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.exit_walkthrough))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_walkthrough))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_source_code))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.analyze_repository))

        return fastmcp

    def _use_api_key(self, openai_api_key: str | None) -> str | None:
        """Remember a key passed to a tool for the rest of the session, it is never written anywhere."""

        if openai_api_key:
            self.openai_api_key = openai_api_key

        return self.openai_api_key

    def _notify_error(self, action: str, error: ClientError | LessonError) -> Notification:
        self.logger.warning(f"{action} failed: {error}")

        return Notification.from_error(error=error)

    async def process_repository(self, repository_url: REPOSITORY_URL, github_token: GITHUB_TOKEN = None) -> ProcessRepositoryResponse:
        """Fetch the commit history of a GitHub repository and the diff of every commit so lessons can be generated."""

        if github_token:
            self.github_client = GitHubCommitClient(githubkit_client=get_githubkit_client(token=github_token), logger=self.logger)

        try:
            result: IngestionResult = await ingest_repository(github_client=self.github_client, repository_url=repository_url)
        except (ClientError, LessonError) as e:
            return ProcessRepositoryResponse(notification=self._notify_error(action="Process repository", error=e))

        self.collection = result.collection
        self.navigator.load(collection=result.collection)
        self.source_snapshot = None

        if result.rate_limited:
            notification = Notification(
                title="Rate limit reached",
                description=f"GitHub stopped answering after {len(result.collection)} commits. The commits fetched so far are available.",
                variant="destructive",
            )
        else:
            notification = Notification(
                title="Repository processed successfully",
                description=f"Fetched {len(result.collection)} commits",
            )

        return ProcessRepositoryResponse(
            repository=result.collection.repository.full_name,
            commits=list_commit_overviews(collection=result.collection),
            skipped_shas=result.skipped_shas,
            rate_limited=result.rate_limited,
            notification=notification,
        )

    def list_commits(self) -> CommitListResponse:
        """List the commits of the processed repository and whether each has a lesson."""

        return CommitListResponse(
            repository=self.collection.repository.full_name if self.collection is not None else None,
            commits=list_commit_overviews(collection=self.collection),
        )

    def get_commit_history(self) -> str:
        """Get the commit history of the processed repository, including authors, changed files, and patches."""

        if self.collection is None:
            return "No repository has been processed yet."

        return render_commit_history(collection=self.collection)

    async def generate_lesson(self, index: COMMIT_INDEX, openai_api_key: OPENAI_API_KEY = None) -> LessonResponse:
        """Generate, or regenerate, the lesson for a commit of the processed repository."""

        api_key: str | None = self._use_api_key(openai_api_key)

        if self.collection is None:
            return LessonResponse(notification=self._notify_error(action="Generate lesson", error=NoCommitsError()))

        try:
            commit_record = await self.generator.generate(collection=self.collection, index=index, api_key=api_key)
        except (ClientError, LessonError) as e:
            commit = (
                CommitOverview.from_commit_record(index=index, commit_record=self.collection[index])
                if self.collection.is_valid_index(index)
                else None
            )
            return LessonResponse(commit=commit, notification=self._notify_error(action="Generate lesson", error=e))

        return LessonResponse(
            commit=CommitOverview.from_commit_record(index=index, commit_record=commit_record),
            lesson=commit_record.explanation,
            notification=Notification(title="Lesson ready", description=f"Generated the lesson for commit {commit_record.short_sha}"),
        )

    async def _navigate(self, action: str, transition: Callable[[], Awaitable[NavigatorState]]) -> WalkthroughResponse:
        notification: Notification | None = None

        try:
            _ = await transition()
        except (ClientError, LessonError) as e:
            notification = self._notify_error(action=action, error=e)

        return self._walkthrough_response(notification=notification)

    def _walkthrough_response(self, notification: Notification | None = None) -> WalkthroughResponse:
        commit_record = self.navigator.current_record

        return WalkthroughResponse(
            state=self.navigator.state,
            commit=CommitOverview.from_commit_record(index=self.navigator.current_index, commit_record=commit_record)
            if commit_record
            else None,
            lesson=commit_record.explanation if commit_record else None,
            notification=notification,
        )

    async def start_walkthrough(self, openai_api_key: OPENAI_API_KEY = None) -> WalkthroughResponse:
        """Start a lesson-by-lesson walkthrough at the newest commit, generating its lesson if needed."""

        api_key: str | None = self._use_api_key(openai_api_key)

        return await self._navigate(action="Start walkthrough", transition=lambda: self.navigator.start(api_key=api_key))

    async def next_lesson(self) -> WalkthroughResponse:
        """Move to the next commit of the walkthrough, generating its lesson if needed."""

        return await self._navigate(action="Next lesson", transition=lambda: self.navigator.next(api_key=self.openai_api_key))

    async def previous_lesson(self) -> WalkthroughResponse:
        """Move to the previous commit of the walkthrough, generating its lesson if needed."""

        return await self._navigate(action="Previous lesson", transition=lambda: self.navigator.previous(api_key=self.openai_api_key))

    def exit_walkthrough(self) -> WalkthroughResponse:
        """Leave the walkthrough and return to the commit list."""

        _ = self.navigator.exit()

        return self._walkthrough_response()

    def get_walkthrough(self) -> WalkthroughResponse:
        """Get the current position in the walkthrough and the lesson being shown."""

        return self._walkthrough_response()

    async def _get_source_snapshot(self) -> SourceSnapshot:
        """Crawl the processed repository once, again only if the previous crawl was cut short by the rate limit."""

        if self.collection is None:
            raise NoRepositoryError

        if self.source_snapshot is None or self.source_snapshot.rate_limited:
            self.source_snapshot = await crawl_source_code(github_client=self.github_client, repository=self.collection.repository)

        return self.source_snapshot

    async def get_source_code(self) -> SourceCodeResponse:
        """Get the source files (code, docs, and config) of the processed repository's default branch."""

        try:
            source_snapshot: SourceSnapshot = await self._get_source_snapshot()
        except (ClientError, LessonError) as e:
            return SourceCodeResponse(notification=self._notify_error(action="Get source code", error=e))

        if source_snapshot.rate_limited:
            notification = Notification(
                title="Rate limit reached",
                description=f"GitHub stopped answering after {len(source_snapshot.files)} files. The files fetched so far are available.",
                variant="destructive",
            )
        else:
            notification = Notification(title="Source code fetched", description=f"Fetched {len(source_snapshot.files)} source files")

        return SourceCodeResponse.from_source_snapshot(source_snapshot=source_snapshot, notification=notification)

    async def analyze_repository(self, openai_api_key: OPENAI_API_KEY = None) -> AnalysisResponse:
        """Review the processed repository as a whole: its architecture, development patterns, and possible improvements."""

        api_key: str | None = self._use_api_key(openai_api_key)

        if self.collection is None:
            return AnalysisResponse(notification=self._notify_error(action="Analyze repository", error=NoRepositoryError()))

        collection: CommitCollection = self.collection

        try:
            _ = validate_api_key(api_key)

            source_snapshot: SourceSnapshot = await self._get_source_snapshot()

            analysis: str = await generate_repository_analysis(
                chat_client=self.generator.chat_client, source_snapshot=source_snapshot, collection=collection, api_key=api_key
            )
        except (ClientError, LessonError) as e:
            return AnalysisResponse(
                repository=collection.repository.full_name, notification=self._notify_error(action="Analyze repository", error=e)
            )

        return AnalysisResponse(
            repository=collection.repository.full_name,
            analysis=analysis,
            notification=Notification(title="Analysis complete", description="Repository has been analyzed by AI"),
        )
