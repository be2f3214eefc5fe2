from typing import ClassVar

from github_lessons_mcp.clients.errors.base import ClientError, ExtraInfoType


class RequestError(ClientError):
    """A request error from the GitHub API."""

    title: ClassVar[str] = "Request failed"

    def __init__(self, action: str, message: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(message="A request error occured.", extra_info={"action": action, "message": message, **extra_info})


class RateLimitedError(RequestError):
    """The GitHub API quota has been exhausted."""

    title: ClassVar[str] = "Rate limit exceeded"

    def __init__(self, action: str, resource: str | None = None):
        super().__init__(
            action=action,
            message="The GitHub API rate limit has been exceeded. Provide a GitHub token or try again later.",
            extra_info={"resource": resource},
        )


class FetchFailedError(RequestError):
    """Any other failure fetching data from the GitHub API."""

    title: ClassVar[str] = "Fetch failed"

    def __init__(self, action: str, message: str | None = None, status_code: int | None = None, resource: str | None = None):
        super().__init__(
            action=action,
            message=message or "Failed to fetch data from GitHub.",
            extra_info={"status_code": str(status_code) if status_code is not None else None, "resource": resource},
        )
