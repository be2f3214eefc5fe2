from datetime import datetime
from typing import Literal, Self

from pydantic import BaseModel, Field

from github_lessons_mcp.clients.errors.base import ClientError
from github_lessons_mcp.lessons.errors import LessonError
from github_lessons_mcp.lessons.models import CommitRecord, NavigatorState, SourceSnapshot


class Notification(BaseModel):
    """A short message describing the outcome of an action."""

    title: str = Field(description="The title of the notification.")
    description: str = Field(description="The details of the notification.")
    variant: Literal["default", "destructive"] = Field(default="default", description="Whether the notification reports a failure.")

    @classmethod
    def from_error(cls, error: ClientError | LessonError) -> Self:
        return cls(title=error.title, description=str(error), variant="destructive")


class CommitOverview(BaseModel):
    """A commit as shown in the commit list."""

    index: int = Field(description="The position of the commit in the commit list.")
    sha: str = Field(description="The SHA of the commit.")
    title: str = Field(description="The first line of the commit message.")
    author: str | None = Field(default=None, description="The name of the author.")
    date: datetime | None = Field(default=None, description="The date and time the commit was authored.")
    files_changed: int = Field(description="The number of files changed by the commit.")
    has_diff: bool = Field(description="Whether the commit has diff content to generate a lesson from.")
    has_lesson: bool = Field(description="Whether a lesson has been generated for the commit.")

    @classmethod
    def from_commit_record(cls, index: int, commit_record: CommitRecord) -> Self:
        return cls(
            index=index,
            sha=commit_record.short_sha,
            title=commit_record.title,
            author=commit_record.author_name,
            date=commit_record.date,
            files_changed=len(commit_record.files),
            has_diff=bool(commit_record.diff_text),
            has_lesson=commit_record.explanation is not None,
        )


class ProcessRepositoryResponse(BaseModel):
    repository: str | None = Field(default=None, description="The repository that was processed, as owner/name.")
    commits: list[CommitOverview] = Field(default_factory=list, description="The commits of the repository, newest first.")
    skipped_shas: list[str] = Field(default_factory=list, description="Commits whose details could not be fetched.")
    rate_limited: bool = Field(default=False, description="Whether fetching stopped early because of the GitHub rate limit.")
    notification: Notification = Field(description="The outcome of processing the repository.")


class CommitListResponse(BaseModel):
    repository: str | None = Field(default=None, description="The repository being browsed, as owner/name.")
    commits: list[CommitOverview] = Field(default_factory=list, description="The commits of the repository, newest first.")


class LessonResponse(BaseModel):
    commit: CommitOverview | None = Field(default=None, description="The commit the lesson is for.")
    lesson: str | None = Field(default=None, description="The lesson for the commit.")
    notification: Notification = Field(description="The outcome of generating the lesson.")


class WalkthroughResponse(BaseModel):
    state: NavigatorState = Field(description="The position in the walkthrough.")
    commit: CommitOverview | None = Field(default=None, description="The commit being shown.")
    lesson: str | None = Field(default=None, description="The lesson for the commit being shown.")
    notification: Notification | None = Field(default=None, description="The outcome of the navigation, if notable.")


class SourceCodeResponse(BaseModel):
    repository: str | None = Field(default=None, description="The repository the source code is from, as owner/name.")
    files: list[str] = Field(default_factory=list, description="The paths of the source files that were fetched.")
    skipped_paths: list[str] = Field(default_factory=list, description="Files and directories that could not be fetched.")
    rate_limited: bool = Field(default=False, description="Whether fetching stopped early because of the GitHub rate limit.")
    source_code: str | None = Field(default=None, description="The source files as a markdown document.")
    notification: Notification = Field(description="The outcome of fetching the source code.")

    @classmethod
    def from_source_snapshot(cls, source_snapshot: SourceSnapshot, notification: Notification) -> Self:
        return cls(
            repository=source_snapshot.repository.full_name,
            files=[source_file.path for source_file in source_snapshot.files],
            skipped_paths=source_snapshot.skipped_paths,
            rate_limited=source_snapshot.rate_limited,
            source_code=source_snapshot.to_markdown(),
            notification=notification,
        )


class AnalysisResponse(BaseModel):
    repository: str | None = Field(default=None, description="The repository that was analyzed, as owner/name.")
    analysis: str | None = Field(default=None, description="The review of the repository.")
    notification: Notification = Field(description="The outcome of the analysis.")
