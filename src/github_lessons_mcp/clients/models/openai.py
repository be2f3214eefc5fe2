from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"] = Field(description="The author of the message.")
    content: str = Field(description="The text of the message.")


class ChatCompletionChoice(BaseModel):
    message: ChatMessage


class ChatCompletion(BaseModel):
    """The parts of a chat completion response that are read."""

    choices: list[ChatCompletionChoice] = Field(min_length=1)

    @property
    def content(self) -> str:
        return self.choices[0].message.content


class ProviderErrorDetail(BaseModel):
    message: str | None = None


class ProviderErrorBody(BaseModel):
    error: ProviderErrorDetail | None = None
