from typing import Annotated

from pydantic import Field

REPOSITORY_URL = Annotated[str, Field(description="The URL of the GitHub repository, e.g. https://github.com/owner/repo.")]

GITHUB_TOKEN = Annotated[
    str | None,
    Field(description="An optional GitHub token, used for the rest of the session. Without one the lower anonymous rate limit applies."),
]

OPENAI_API_KEY = Annotated[
    str | None,
    Field(description="The OpenAI API key used to generate lessons. Defaults to the key the server was started with."),
]

COMMIT_INDEX = Annotated[int, Field(description="The position of the commit in the commit list, starting at 0.")]
