from datetime import datetime
from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from github_lessons_mcp.clients.models.github import CommitDetail, CommitFile, CommitSummary

SHORT_SHA_LENGTH = 7


class RepositoryIdentifier(BaseModel):
    """The owner and name of a GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1, description="The owner of the repository.")
    name: str = Field(min_length=1, description="The name of the repository, without a `.git` suffix.")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class CommitFileStat(BaseModel):
    filename: str = Field(description="The path of the file.")
    status: str | None = Field(default=None, description="The status of the file.")
    additions: int = Field(default=0, description="The number of lines added.")
    deletions: int = Field(default=0, description="The number of lines removed.")
    patch: str | None = Field(default=None, description="The unified diff of the file, absent for binary or very large files.")

    @property
    def patch_length(self) -> int:
        return len(self.patch or "")

    @classmethod
    def from_commit_file(cls, commit_file: CommitFile) -> Self:
        return cls(
            filename=commit_file.filename,
            status=commit_file.status,
            additions=commit_file.additions,
            deletions=commit_file.deletions,
            patch=commit_file.patch,
        )


class CommitRecord(BaseModel):
    """A commit, its diff, and the lesson generated for it."""

    sha: str = Field(description="The SHA of the commit.")
    message: str = Field(description="The commit message.")
    diff_text: str = Field(default="", description="The fenced per-file patches of the commit.")
    explanation: str | None = Field(default=None, description="The lesson generated for the commit.")

    author_name: str | None = Field(default=None, description="The name of the author.")
    author_email: str | None = Field(default=None, description="The email of the author.")
    date: datetime | None = Field(default=None, description="The date and time the commit was authored.")
    files: list[CommitFileStat] = Field(default_factory=list, description="The files changed by the commit.")

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]

    @property
    def title(self) -> str:
        """The first line of the commit message."""
        return self.message.split("\n", 1)[0]

    @classmethod
    def from_commit(cls, commit_summary: CommitSummary, commit_detail: CommitDetail) -> Self:
        author = commit_summary.commit.author

        return cls(
            sha=commit_summary.sha,
            message=commit_summary.message,
            diff_text=commit_detail.to_diff_text(),
            author_name=author.name if author else None,
            author_email=author.email if author else None,
            date=author.date if author else None,
            files=[CommitFileStat.from_commit_file(commit_file=commit_file) for commit_file in commit_detail.files or []],
        )


class CommitCollection(BaseModel):
    """The commits of one processed repository, in the order GitHub returned them."""

    repository: RepositoryIdentifier
    records: list[CommitRecord] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> CommitRecord:
        return self.records[index]

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.records)

    def set_explanation(self, index: int, explanation: str) -> None:
        """Replace the explanation of the record at `index`."""
        self.records[index].explanation = explanation


class IngestionResult(BaseModel):
    """The outcome of fetching the commits of a repository."""

    collection: CommitCollection
    skipped_shas: list[str] = Field(default_factory=list, description="Commits whose details could not be fetched.")
    rate_limited: bool = Field(default=False, description="Whether fetching stopped early because of the GitHub rate limit.")


class NavigatorMode(str, Enum):
    BROWSING = "browsing"
    WALKTHROUGH = "walkthrough"


class NavigatorState(BaseModel):
    mode: NavigatorMode = Field(default=NavigatorMode.BROWSING, description="Whether the lessons are browsed or walked through.")
    current_index: int = Field(default=0, description="The commit shown in the walkthrough.")
    is_busy: bool = Field(default=False, description="Whether a lesson is being generated.")
    total: int = Field(default=0, description="The number of commits in the walkthrough.")

    @computed_field
    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @computed_field
    @property
    def is_last(self) -> bool:
        return self.total == 0 or self.current_index >= self.total - 1


class SourceFile(BaseModel):
    path: str = Field(description="The path of the file in the repository.")
    content: str = Field(description="The content of the file.")

    def to_markdown(self) -> str:
        return f"## File: {self.path}\n```\n{self.content}\n```"


class SourceSnapshot(BaseModel):
    """The source files of a repository's default branch."""

    repository: RepositoryIdentifier
    files: list[SourceFile] = Field(default_factory=list, description="The source files, in the order they were found.")
    skipped_paths: list[str] = Field(default_factory=list, description="Files and directories that could not be fetched.")
    rate_limited: bool = Field(default=False, description="Whether fetching stopped early because of the GitHub rate limit.")

    def to_markdown(self) -> str:
        document: str = f"# Source Code for {self.repository.full_name}\n\n"

        return document + "".join(f"{source_file.to_markdown()}\n\n" for source_file in self.files)
