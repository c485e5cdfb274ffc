from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "User"
    ASSISTANT = "AI"


class ChatMessage(BaseModel):
    role: str  # "system", "user" or "assistant"
    content: str


class Exchange(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    timestamp: datetime


class UserFacts(BaseModel):
    """Durable attributes inferred from a user's own messages."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    age: int | None = None
    location: str | None = None
    topics: list[str] = Field(default_factory=list)
    last_topic: str | None = Field(default=None, alias="lastTopic")
    last_interaction: datetime | None = Field(default=None, alias="lastInteraction")
    message_count: int = Field(default=0, alias="messageCount")


class ConversationSummary(BaseModel):
    turn_count: int = 0
    exchange_count: int = 0
    last_interaction: datetime | None = None
    size_bytes: int = 0
    context_length: int = 0


class UserConversation(BaseModel):
    user_id: str
    summary: ConversationSummary


class InboundMessage(BaseModel):
    user_id: str
    text: str


class OutboundReply(BaseModel):
    user_id: str
    reply: str | None = None


class OllamaCheck(BaseModel):
    available: bool
    model: str


class HealthResponse(BaseModel):
    status: str  # "ok" or "degraded"
    checks: OllamaCheck
    live_sessions: int = 0
