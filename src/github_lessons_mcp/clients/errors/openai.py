from typing import ClassVar

from github_lessons_mcp.clients.errors.base import ClientError


class InvalidCredentialError(ClientError):
    """The OpenAI API key does not look like an OpenAI API key."""

    title: ClassVar[str] = "Invalid API Key"

    def __init__(self):
        super().__init__(message="Your OpenAI API key should start with 'sk-'. Please check and try again.")


class ProviderError(ClientError):
    """The chat completion endpoint returned an error status."""

    title: ClassVar[str] = "OpenAI request failed"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code: int | None = status_code
        super().__init__(message=message)


class MalformedResponseError(ClientError):
    """The chat completion endpoint returned a success status without the expected content."""

    title: ClassVar[str] = "OpenAI request failed"

    def __init__(self, reason: str | None = None):
        super().__init__(message="Invalid response format from OpenAI API", extra_info={"reason": reason})
