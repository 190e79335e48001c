"""
Chat request types shared by all inference backends.
"""

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    """
    One chat completion request.

    Attributes:
        messages: Role-tagged messages, system prompt first
        model_ref: GGUF file path (local backend) or model id (ollama)
        temperature: Sampling temperature
        top_p: Nucleus sampling parameter
        max_tokens: Maximum number of tokens to generate
        task_id: Writing task that produced this request (for logging)
    """

    messages: tuple[ChatMessage, ...]
    model_ref: str
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 512
    task_id: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.messages:
            raise ValueError("A chat request needs at least one message")
        if not self.model_ref:
            raise ValueError("A chat request needs a model reference")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")

    def to_messages(self) -> list[dict]:
        """Messages in the {'role': ..., 'content': ...} form both libraries accept."""
        return [message.to_dict() for message in self.messages]

    @property
    def system_prompt(self) -> str:
        return next((m.content for m in self.messages if m.role == Role.SYSTEM), "")

    @property
    def user_prompt(self) -> str:
        return next((m.content for m in reversed(self.messages) if m.role == Role.USER), "")
