import os
from logging import Logger, getLogger

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from pydantic import ValidationError

from github_lessons_mcp.clients.errors.openai import InvalidCredentialError, MalformedResponseError, ProviderError
from github_lessons_mcp.clients.models.openai import ChatCompletion, ProviderErrorBody

LESSON_MODEL = "gpt-4o"
LESSON_MAX_TOKENS = 3000
LESSON_TEMPERATURE = 0.7

OPENAI_API_KEY_PREFIX = "sk-"

DEFAULT_TIMEOUT = 120.0


def get_openai_api_key() -> str | None:
    return os.environ.get("OPENAI_API_KEY")


def get_openai_client(http_client: httpx.AsyncClient | None = None) -> AsyncOpenAI:
    """Build an OpenAI client. The API key is supplied per request, failed requests are not retried."""

    return AsyncOpenAI(api_key=get_openai_api_key() or "", http_client=http_client, max_retries=0, timeout=DEFAULT_TIMEOUT)


def validate_api_key(api_key: str | None) -> str:
    """Check the shape of an OpenAI API key before it is sent anywhere."""

    api_key = (api_key or "").strip()

    if not api_key.startswith(OPENAI_API_KEY_PREFIX):
        raise InvalidCredentialError

    return api_key


def extract_error_message(response: httpx.Response) -> str:
    """Use the upstream error message when the body carries one."""

    fallback: str = f"OpenAI API error: {response.status_code}"

    try:
        error_body = ProviderErrorBody.model_validate_json(response.content)
    except ValidationError:
        return fallback

    if error_body.error and error_body.error.message:
        return error_body.error.message

    return fallback


class ChatCompletionClient:
    """Sends a system and user prompt to the chat completion endpoint and returns the reply text."""

    openai_client: AsyncOpenAI
    logger: Logger

    def __init__(self, openai_client: AsyncOpenAI | None = None, logger: Logger | None = None):
        self.openai_client = openai_client or get_openai_client()
        self.logger = logger or getLogger(__name__)

    async def complete(self, api_key: str | None, system_prompt: str, user_prompt: str) -> str:
        """Request a completion.

        Raises:
            InvalidCredentialError: If the API key does not start with `sk-`. No request is made.
            ProviderError: If the endpoint cannot be reached or returns an error status.
            MalformedResponseError: If a success response has no message content.
        """

        api_key = validate_api_key(api_key)

        self.logger.info(f"Requesting chat completion from {LESSON_MODEL} with a {len(user_prompt)} character prompt.")

        try:
            raw_response = await self.openai_client.with_options(api_key=api_key).chat.completions.with_raw_response.create(
                model=LESSON_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=LESSON_MAX_TOKENS,
                temperature=LESSON_TEMPERATURE,
            )
        except APIConnectionError as e:
            self.logger.exception(f"Failed to reach {self.openai_client.base_url}: {e}")
            raise ProviderError(message=f"Failed to reach the OpenAI API: {e}") from e
        except APIStatusError as e:
            message: str = extract_error_message(e.response)
            self.logger.exception(f"Chat completion failed with status {e.status_code}: {message}")
            raise ProviderError(message=message, status_code=e.status_code) from e

        try:
            chat_completion = ChatCompletion.model_validate_json(raw_response.http_response.content)
        except ValidationError as e:
            self.logger.exception(f"Chat completion response did not have the expected shape: {e}")
            raise MalformedResponseError(reason="missing choices[0].message.content") from e

        self.logger.info("Chat completion received.")

        return chat_completion.content

    async def aclose(self) -> None:
        await self.openai_client.close()
