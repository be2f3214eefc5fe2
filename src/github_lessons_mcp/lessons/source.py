from collections.abc import Sequence
from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.clients.errors.github import FetchFailedError, RateLimitedError
from github_lessons_mcp.clients.github import GitHubCommitClient
from github_lessons_mcp.clients.models.github import ContentEntry, ContentFile
from github_lessons_mcp.lessons.models import RepositoryIdentifier, SourceFile, SourceSnapshot

SOURCE_FILE_EXTENSIONS = (".js", ".ts", ".tsx", ".jsx", ".py", ".java", ".cpp", ".c", ".md", ".txt", ".json", ".yml", ".yaml")

SKIPPED_DIRECTORY_NAMES = {"node_modules"}

logger: Logger = get_logger(name=__name__)


def is_source_file(name: str) -> bool:
    return name.endswith(SOURCE_FILE_EXTENSIONS)


def is_crawled_directory(name: str) -> bool:
    return not name.startswith(".") and name not in SKIPPED_DIRECTORY_NAMES


async def _crawl_entries(github_client: GitHubCommitClient, snapshot: SourceSnapshot, entries: Sequence[ContentEntry]) -> None:
    repository: RepositoryIdentifier = snapshot.repository

    for entry in entries:
        if snapshot.rate_limited:
            return

        if entry.type == "file" and is_source_file(entry.name):
            try:
                content_file: ContentFile = await github_client.get_file(owner=repository.owner, repo=repository.name, path=entry.path)
            except RateLimitedError:
                logger.warning(f"Rate limited fetching {entry.path} of {repository.full_name}, keeping {len(snapshot.files)} files.")
                snapshot.rate_limited = True
                return
            except FetchFailedError as e:
                logger.exception(f"Skipping file {entry.path} of {repository.full_name}: {e}")
                snapshot.skipped_paths.append(entry.path)
                continue

            snapshot.files.append(SourceFile(path=entry.path, content=content_file.decoded_content()))

        elif entry.type == "dir" and is_crawled_directory(entry.name):
            try:
                directory_entries: list[ContentEntry] = await github_client.list_directory(
                    owner=repository.owner, repo=repository.name, path=entry.path
                )
            except RateLimitedError:
                logger.warning(f"Rate limited listing {entry.path} of {repository.full_name}, keeping {len(snapshot.files)} files.")
                snapshot.rate_limited = True
                return
            except FetchFailedError as e:
                logger.exception(f"Skipping directory {entry.path} of {repository.full_name}: {e}")
                snapshot.skipped_paths.append(entry.path)
                continue

            await _crawl_entries(github_client=github_client, snapshot=snapshot, entries=directory_entries)


async def crawl_source_code(github_client: GitHubCommitClient, repository: RepositoryIdentifier) -> SourceSnapshot:
    """Walk the default branch depth first and fetch every source file, one request at a time.

    Hidden directories and `node_modules` are not entered. A file or directory that cannot be fetched is skipped. If
    GitHub reports the rate limit as exhausted, the crawl stops and the files gathered so far are returned.

    Raises:
        RateLimitedError: If the rate limit is exhausted while listing the repository root.
        FetchFailedError: If the repository root cannot be listed.
    """

    root_entries: list[ContentEntry] = await github_client.list_directory(owner=repository.owner, repo=repository.name)

    snapshot = SourceSnapshot(repository=repository)

    await _crawl_entries(github_client=github_client, snapshot=snapshot, entries=root_entries)

    logger.info(
        f"Fetched {len(snapshot.files)} source files from {repository.full_name} "
        + f"({len(snapshot.skipped_paths)} skipped, rate limited: {snapshot.rate_limited})."
    )

    return snapshot
