from collections.abc import Sequence
from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.clients.errors.github import FetchFailedError, RateLimitedError
from github_lessons_mcp.clients.github import GitHubCommitClient
from github_lessons_mcp.clients.models.github import CommitDetail, CommitSummary
from github_lessons_mcp.lessons.locator import parse_repository_url
from github_lessons_mcp.lessons.models import CommitCollection, CommitRecord, IngestionResult, RepositoryIdentifier

logger: Logger = get_logger(name=__name__)


async def fetch_commit_records(
    github_client: GitHubCommitClient,
    repository: RepositoryIdentifier,
    commit_summaries: Sequence[CommitSummary],
) -> IngestionResult:
    """Fetch the details of each commit, one at a time and in order, and build its record.

    A commit whose details cannot be fetched is skipped. If GitHub reports the rate limit as exhausted, no further
    commits are requested and the records gathered so far are returned.
    """

    records: list[CommitRecord] = []
    skipped_shas: list[str] = []
    rate_limited: bool = False

    for commit_summary in commit_summaries:
        try:
            commit_detail: CommitDetail = await github_client.get_commit(
                owner=repository.owner, repo=repository.name, sha=commit_summary.sha
            )
        except RateLimitedError:
            logger.warning(
                f"Rate limited fetching commit {commit_summary.sha} of {repository.full_name}, "
                + f"keeping {len(records)} of {len(commit_summaries)} commits."
            )
            rate_limited = True
            break
        except FetchFailedError as e:
            logger.exception(f"Skipping commit {commit_summary.sha} of {repository.full_name}: {e}")
            skipped_shas.append(commit_summary.sha)
            continue

        records.append(CommitRecord.from_commit(commit_summary=commit_summary, commit_detail=commit_detail))

    return IngestionResult(
        collection=CommitCollection(repository=repository, records=records),
        skipped_shas=skipped_shas,
        rate_limited=rate_limited,
    )


async def ingest_repository(github_client: GitHubCommitClient, repository_url: str) -> IngestionResult:
    """Locate the repository, enumerate its commits, and fetch the diff of each.

    Raises:
        InvalidUrlError: If the URL does not identify a repository.
        RateLimitedError: If the rate limit is exhausted while enumerating commits.
        FetchFailedError: If enumerating commits fails.
    """

    repository: RepositoryIdentifier = parse_repository_url(repository_url)

    commit_summaries: list[CommitSummary] = await github_client.list_commits(owner=repository.owner, repo=repository.name)

    result: IngestionResult = await fetch_commit_records(
        github_client=github_client, repository=repository, commit_summaries=commit_summaries
    )

    logger.info(
        f"Ingested {len(result.collection)} of {len(commit_summaries)} commits from {repository.full_name} "
        + f"({len(result.skipped_shas)} skipped, rate limited: {result.rate_limited})."
    )

    return result
