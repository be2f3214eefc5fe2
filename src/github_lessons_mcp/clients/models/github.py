import base64
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

DIFF_FENCE = "```"


class GitActor(BaseModel):
    """The author or committer recorded in a git commit."""

    name: str | None = Field(default=None, description="The name of the author.")
    email: str | None = Field(default=None, description="The email of the author.")
    date: datetime | None = Field(default=None, description="The date and time the commit was authored.")


class CommitMetadata(BaseModel):
    """The git portion of a GitHub commit."""

    message: str = Field(description="The commit message.")
    author: GitActor | None = Field(default=None, description="The author of the commit.")


class CommitSummary(BaseModel):
    """A commit as returned by the commit list endpoint."""

    sha: str = Field(description="The SHA of the commit.")
    commit: CommitMetadata = Field(description="The git metadata of the commit.")

    @property
    def message(self) -> str:
        return self.commit.message


class CommitFile(BaseModel):
    """A file changed by a commit."""

    filename: str = Field(description="The path of the file.")
    status: str | None = Field(default=None, description="The status of the file.")
    additions: int = Field(default=0, description="The number of lines added.")
    deletions: int = Field(default=0, description="The number of lines removed.")
    patch: str | None = Field(default=None, description="The unified diff of the file, absent for binary or very large files.")

    def to_diff_block(self) -> str | None:
        """Render the file as a header line and a fenced diff block, or None if there is no patch."""

        if not self.patch:
            return None

        return f"### {self.filename}\n{DIFF_FENCE}diff\n{self.patch}\n{DIFF_FENCE}"


class CommitDetail(CommitSummary):
    """A commit as returned by the single commit endpoint."""

    files: list[CommitFile] | None = Field(default=None, description="The files changed by the commit.")

    def to_diff_text(self) -> str:
        if not self.files:
            return ""

        diff_blocks: list[str] = [diff_block for file in self.files if (diff_block := file.to_diff_block())]

        return "\n\n".join(diff_blocks)


class ContentEntry(BaseModel):
    """An entry of a directory listing from the contents endpoint."""

    name: str = Field(description="The name of the entry.")
    path: str = Field(description="The path of the entry in the repository.")
    type: Literal["file", "dir", "symlink", "submodule"] = Field(description="The type of the entry.")


class ContentFile(BaseModel):
    """A file from the contents endpoint, with its base64 encoded content."""

    name: str = Field(description="The name of the file.")
    path: str = Field(description="The path of the file in the repository.")
    content: str = Field(default="", description="The base64 encoded content of the file.")

    def decoded_content(self) -> str:
        return base64.b64decode(self.content).decode("utf-8", errors="replace")
