from typing import ClassVar

ExtraInfoType = dict[str, str | None]


class LessonError(Exception):
    """An error raised while preparing or navigating lessons."""

    title: ClassVar[str] = "Error"

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class InvalidUrlError(LessonError):
    title: ClassVar[str] = "Invalid GitHub URL"

    def __init__(self, url: str):
        super().__init__(message="Please enter a valid GitHub repository URL", extra_info={"url": url or None})


class EmptyDiffError(LessonError):
    title: ClassVar[str] = "No changes to explain"

    def __init__(self, sha: str):
        super().__init__(message="This commit has no diff content to generate a lesson from.", extra_info={"sha": sha})


class NoCommitsError(LessonError):
    title: ClassVar[str] = "No commits"

    def __init__(self):
        super().__init__(message="Process a repository with at least one commit first.")


class IndexOutOfRangeError(LessonError):
    title: ClassVar[str] = "Unknown commit"

    def __init__(self, index: int, total: int):
        super().__init__(message=f"There is no commit at index {index}.", extra_info={"total": str(total)})


class GenerationInProgressError(LessonError):
    title: ClassVar[str] = "Lesson in progress"

    def __init__(self):
        super().__init__(message="Wait for the current lesson to finish generating.")


class NoRepositoryError(LessonError):
    title: ClassVar[str] = "Missing data"

    def __init__(self):
        super().__init__(message="Process a repository first.")
