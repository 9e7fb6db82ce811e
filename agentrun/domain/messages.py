"""
Conversation messages and their content parts.

A Message is one turn in a conversation. Its content is an ordered list of
tagged parts, so a single assistant turn can carry text, reasoning, sources
and tool calls side by side, in the order the model produced them.

Examples:
    User message:
        Message.user("What's the weather in SF?")

    Assistant message with a tool call:
        Message(
            role=MessageRole.ASSISTANT,
            content=[
                TextPart(text="Let me check."),
                ToolCallPart(
                    id="call_1",
                    name="get_weather",
                    arguments_json='{"location":"SF"}',
                ),
            ],
        )

    Tool message answering it:
        Message(
            role=MessageRole.TOOL,
            content=[ToolResultPart(call_id="call_1", output_json='{"temp":72}')],
        )
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Standard LLM message roles"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(BaseModel):
    """
    A tool invocation requested by the model.

    ``parse_error`` is set when streamed argument fragments did not form
    valid JSON; the tool executor turns such a call into an error result
    without running the tool.
    """

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments_json: str = "{}"
    parse_error: str | None = None


class ToolResultPart(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    call_id: str
    tool_name: str | None = None
    output_json: str
    is_error: bool = False


class ReasoningPart(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    text: str


class SourcePart(BaseModel):
    type: Literal["source"] = "source"
    reference: str


ContentPart = Annotated[
    Union[TextPart, ToolCallPart, ToolResultPart, ReasoningPart, SourcePart],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """One turn in a conversation."""

    role: MessageRole
    content: list[ContentPart] = Field(default_factory=list)

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=[TextPart(text=text)])

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=MessageRole.USER, content=[TextPart(text=text)])

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=[TextPart(text=text)])

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def reasoning(self) -> str | None:
        parts = [p.text for p in self.content if isinstance(p, ReasoningPart)]
        return "".join(parts) if parts else None

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.content if isinstance(p, ToolCallPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.content if isinstance(p, ToolResultPart)]

    def has_tool_calls(self) -> bool:
        """Check if this is an assistant message that requests tools"""
        return self.role == MessageRole.ASSISTANT and bool(self.tool_calls)


__all__ = [
    "MessageRole",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ReasoningPart",
    "SourcePart",
    "ContentPart",
    "Message",
]
