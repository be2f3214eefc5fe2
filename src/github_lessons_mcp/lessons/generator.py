from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.clients.openai import ChatCompletionClient
from github_lessons_mcp.lessons.errors import GenerationInProgressError, IndexOutOfRangeError
from github_lessons_mcp.lessons.models import CommitCollection, CommitRecord
from github_lessons_mcp.lessons.prompts import LESSON_SYSTEM_PROMPT, build_lesson_prompt


def estimate_tokens(text: str) -> int:
    """Estimate the number of tokens for a given text."""
    return len(text) // 4


class LessonGenerator:
    """Generates the lesson for one commit at a time.

    Only one generation may be in flight. A second request while one is running is refused rather than queued,
    so two requests never race to write the same record.
    """

    chat_client: ChatCompletionClient
    logger: Logger

    def __init__(self, chat_client: ChatCompletionClient | None = None, logger: Logger | None = None):
        self.chat_client = chat_client or ChatCompletionClient()
        self.logger = logger or get_logger(name=__name__)
        self._in_flight: bool = False

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    async def generate(self, collection: CommitCollection, index: int, api_key: str | None) -> CommitRecord:
        """Generate (or regenerate) the lesson for the commit at `index` and store it on the record.

        Raises:
            GenerationInProgressError: If another lesson is being generated.
            IndexOutOfRangeError: If there is no commit at `index`.
            EmptyDiffError: If the commit has no diff content.
            InvalidCredentialError: If the API key does not start with `sk-`.
            ProviderError: If the chat completion endpoint returns an error.
            MalformedResponseError: If the chat completion response has no content.
        """

        if self._in_flight:
            raise GenerationInProgressError

        if not collection.is_valid_index(index):
            raise IndexOutOfRangeError(index=index, total=len(collection))

        commit_record: CommitRecord = collection[index]

        user_prompt: str = build_lesson_prompt(commit_record)

        self.logger.info(
            f"Generating lesson for commit {commit_record.short_sha} of {collection.repository.full_name} "
            + f"with a prompt of {len(user_prompt)} characters (~{estimate_tokens(LESSON_SYSTEM_PROMPT + user_prompt)} tokens)."
        )

        self._in_flight = True

        try:
            explanation: str = await self.chat_client.complete(api_key=api_key, system_prompt=LESSON_SYSTEM_PROMPT, user_prompt=user_prompt)
        finally:
            self._in_flight = False

        # The index captured above is used even if the user has moved on, records are never reordered
        collection.set_explanation(index=index, explanation=explanation)

        return commit_record
