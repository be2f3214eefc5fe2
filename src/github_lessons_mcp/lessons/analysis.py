from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.clients.openai import ChatCompletionClient
from github_lessons_mcp.lessons.generator import estimate_tokens
from github_lessons_mcp.lessons.history import render_commit_history
from github_lessons_mcp.lessons.models import CommitCollection, SourceSnapshot
from github_lessons_mcp.lessons.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt

logger: Logger = get_logger(name=__name__)


async def generate_repository_analysis(
    chat_client: ChatCompletionClient, source_snapshot: SourceSnapshot, collection: CommitCollection, api_key: str | None
) -> str:
    """Review the whole repository, its source code and its commit history, in a single chat completion.

    Raises:
        InvalidCredentialError: If the API key does not start with `sk-`.
        ProviderError: If the chat completion endpoint returns an error.
        MalformedResponseError: If the chat completion response has no content.
    """

    user_prompt: str = build_analysis_prompt(
        source_code=source_snapshot.to_markdown(), commit_history=render_commit_history(collection=collection)
    )

    logger.info(
        f"Analyzing {collection.repository.full_name} with a prompt of {len(user_prompt)} characters "
        + f"(~{estimate_tokens(ANALYSIS_SYSTEM_PROMPT + user_prompt)} tokens)."
    )

    return await chat_client.complete(api_key=api_key, system_prompt=ANALYSIS_SYSTEM_PROMPT, user_prompt=user_prompt)
