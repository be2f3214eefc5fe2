import os
from collections.abc import Awaitable, Callable
from logging import Logger, getLogger
from typing import Any, TypeVar

import httpx
from githubkit import GitHub as GitHubKit
from githubkit.auth.token import TokenAuthStrategy
from githubkit.exception import GitHubException as GitHubKitGitHubException
from githubkit.exception import RequestFailed as GitHubKitRequestFailed
from githubkit.response import Response as GitHubKitResponse
from githubkit.retry import RetryServerError
from pydantic import TypeAdapter, ValidationError

from github_lessons_mcp.clients.errors.github import FetchFailedError, RateLimitedError
from github_lessons_mcp.clients.models.github import CommitDetail, CommitSummary, ContentEntry, ContentFile

T = TypeVar("T")

RATE_LIMITED_ERROR = 403

COMMITS_PER_PAGE = 100


def get_github_token() -> str | None:
    for env_var in ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN"):
        if token := os.environ.get(env_var):
            return token
    return None


def get_githubkit_client(token: str | None = None, async_transport: httpx.AsyncBaseTransport | None = None) -> GitHubKit[Any]:
    """Build a githubkit client. Anonymous access is allowed when no token is available."""

    # Retry server errors only, a rate limited response is reported to the caller
    retry_server_error = RetryServerError()

    client_options: dict[str, Any] = {"auto_retry": retry_server_error}

    if async_transport is not None:
        client_options["async_transport"] = async_transport

    if token := token or get_github_token():
        return GitHubKit[TokenAuthStrategy](auth=TokenAuthStrategy(token=token), **client_options)

    return GitHubKit(**client_options)


class GitHubCommitClient:
    githubkit_client: GitHubKit[Any]
    logger: Logger

    log_requests: bool
    log_responses: bool
    log_on_error: bool

    def __init__(
        self,
        githubkit_client: GitHubKit[Any] | None = None,
        logger: Logger | None = None,
        log_requests: bool = True,
        log_responses: bool = False,
        log_on_error: bool = True,
    ):
        self.githubkit_client = githubkit_client or get_githubkit_client()
        self.logger = logger or getLogger(__name__)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_on_error = log_on_error

    def _get_loggers(
        self, log_request: bool | None = None, log_response: bool | None = None, log_on_error: bool | None = None
    ) -> tuple[Callable[[str], Any], Callable[[str], Any], Callable[[str], Any]]:
        request_logger = self.logger.info if log_request or self.log_requests else self.logger.debug
        response_logger = self.logger.info if log_response or self.log_responses else self.logger.debug
        error_logger = self.logger.exception if log_on_error or self.log_on_error else self.logger.debug
        return request_logger, response_logger, error_logger

    async def _perform_rest_request(
        self,
        action: str,
        response_type: type[T],
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[Any]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T:
        """Perform a request and validate the response body.

        Args:
            action: The action being performed.
            response_type: The type the response body is validated against.
            log_request: Whether to log the request.
            log_response: Whether to log the response.
            log_on_error: Whether to log on error.

        Raises:
            RateLimitedError: If GitHub reports that the request quota is exhausted.
            FetchFailedError: If the request fails for any other reason or the body is not the expected shape.
        """

        request_logger, response_logger, error_logger = self._get_loggers(
            log_request=log_request, log_response=log_response, log_on_error=log_on_error
        )

        request_logger(f"Performing {action} using {method.__name__} with kwargs {request_args}")

        try:
            response: GitHubKitResponse[Any] = await method(**request_args)
        except GitHubKitRequestFailed as e:
            resource: str = e.request.url.path

            if e.response.status_code == RATE_LIMITED_ERROR:
                error_logger(f"Rate limited performing {action} using {method.__name__} with kwargs {request_args}")
                raise RateLimitedError(action=action, resource=resource) from e

            error_logger(f"RequestFailed error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise FetchFailedError(action=action, status_code=e.response.status_code, resource=resource) from e
        except GitHubKitGitHubException as e:
            error_logger(f"Error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise FetchFailedError(action=action, message=str(e)) from e

        try:
            validated_response: T = TypeAdapter(response_type).validate_json(response.content)
        except ValidationError as e:
            error_logger(f"Unexpected response shape for {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise FetchFailedError(action=action, message="The response did not have the expected shape.") from e

        response_logger(f"Validated response for {action} using {method.__name__} with kwargs {request_args}")

        return validated_response

    async def list_commits_page(self, owner: str, repo: str, page: int, per_page: int = COMMITS_PER_PAGE) -> list[CommitSummary]:
        """Get a single page of the commit history of a repository."""

        return await self._perform_rest_request(
            action="List commits",
            response_type=list[CommitSummary],
            method=self.githubkit_client.rest.repos.async_list_commits,
            owner=owner,
            repo=repo,
            per_page=per_page,
            page=page,
        )

    async def list_commits(self, owner: str, repo: str, per_page: int = COMMITS_PER_PAGE) -> list[CommitSummary]:
        """Get the complete commit history of a repository, newest first.

        Pages are requested one at a time until a page comes back with fewer than `per_page` commits. When the
        history is an exact multiple of `per_page` this issues one final request that returns an empty page.
        Any failure aborts the enumeration, no partial history is returned.

        Args:
            owner: The owner of the repository.
            repo: The name of the repository.
            per_page: The number of commits to request per page.
        """

        commits: list[CommitSummary] = []
        page: int = 1

        while True:
            page_commits: list[CommitSummary] = await self.list_commits_page(owner=owner, repo=repo, page=page, per_page=per_page)

            commits.extend(page_commits)

            if len(page_commits) < per_page:
                break

            page += 1

        self.logger.info(f"Enumerated {len(commits)} commits from {owner}/{repo} in {page} pages.")

        return commits

    async def get_commit(self, owner: str, repo: str, sha: str) -> CommitDetail:
        """Get a commit including the patches of the files it changed."""

        return await self._perform_rest_request(
            action="Get commit",
            response_type=CommitDetail,
            method=self.githubkit_client.rest.repos.async_get_commit,
            owner=owner,
            repo=repo,
            ref=sha,
        )

    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[ContentEntry]:
        """List the entries of a directory on the default branch. An empty path lists the repository root."""

        return await self._perform_rest_request(
            action="List directory",
            response_type=list[ContentEntry],
            method=self.githubkit_client.rest.repos.async_get_content,
            owner=owner,
            repo=repo,
            path=path,
        )

    async def get_file(self, owner: str, repo: str, path: str) -> ContentFile:
        """Get a file and its content from the default branch."""

        return await self._perform_rest_request(
            action="Get file",
            response_type=ContentFile,
            method=self.githubkit_client.rest.repos.async_get_content,
            owner=owner,
            repo=repo,
            path=path,
        )
