from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relay.conversation.manager import ConversationManager
    from relay.prompts import PromptStore
    from relay.session.coordinator import SessionRegistry


@dataclass
class CommandContext:
    user_id: str
    conversation: ConversationManager
    sessions: SessionRegistry
    prompts: PromptStore
    registry: Any = field(default=None, repr=False)
    prefix: str = "/"
