import re
from urllib.parse import urlparse

from github_lessons_mcp.lessons.errors import InvalidUrlError
from github_lessons_mcp.lessons.models import RepositoryIdentifier

GITHUB_HOSTS = {"github.com", "www.github.com"}
GIT_SUFFIX = ".git"

LOOSE_REPOSITORY_PATTERN = re.compile(r"github\.com[/:]([^/?#\s:]+)/([^/?#\s]+)")


def _to_identifier(url: str, owner: str, name: str) -> RepositoryIdentifier:
    name = name.removesuffix(GIT_SUFFIX)

    if not owner or not name:
        raise InvalidUrlError(url=url)

    return RepositoryIdentifier(owner=owner, name=name)


def parse_repository_url(url: str) -> RepositoryIdentifier:
    """Parse a GitHub repository URL into its owner and name.

    Accepts `https://github.com/owner/name[.git]` (extra path segments such as `/tree/main` are ignored) as well as
    anything containing `github.com/owner/name` or the SSH form `github.com:owner/name`, e.g.
    `git@github.com:owner/name.git` or `github.com/owner/name`.

    Raises:
        InvalidUrlError: If an owner and a name cannot be found.
    """

    text: str = url.strip()

    if not text:
        raise InvalidUrlError(url=url)

    parsed_url = urlparse(text)

    if parsed_url.scheme in {"http", "https"} and parsed_url.hostname in GITHUB_HOSTS:
        segments: list[str] = [segment for segment in parsed_url.path.split("/") if segment]

        if len(segments) < 2:  # noqa: PLR2004
            raise InvalidUrlError(url=url)

        return _to_identifier(url=url, owner=segments[0], name=segments[1])

    if match := LOOSE_REPOSITORY_PATTERN.search(text):
        return _to_identifier(url=url, owner=match.group(1), name=match.group(2))

    raise InvalidUrlError(url=url)
