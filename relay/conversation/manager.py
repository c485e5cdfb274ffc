from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager

from relay.context.context_builder import ContextBuilder
from relay.context.user_facts import UserFactStore
from relay.conversation.exchange_store import ExchangeStore
from relay.conversation.locks import KeyedLock
from relay.models import ConversationSummary, Exchange, Role, UserConversation, UserFacts

logger = logging.getLogger(__name__)


class ConversationManager:
    """Per-user conversation state: exchange log, fact record and prompt context."""

    def __init__(
        self,
        exchange_store: ExchangeStore,
        fact_store: UserFactStore,
        max_turns: int = 10,
        max_chars: int = 8000,
    ):
        self._exchanges = exchange_store
        self._facts = fact_store
        self._max_turns = max_turns
        self._context = ContextBuilder(
            exchange_store, fact_store, max_turns=max_turns, max_chars=max_chars
        )
        self._locks = KeyedLock()

    @property
    def context_builder(self) -> ContextBuilder:
        return self._context

    def lock(self, user_id: str) -> AbstractAsyncContextManager[None]:
        """Serialize everything touching one user's files."""
        return self._locks.hold(user_id)

    async def get_facts(self, user_id: str) -> UserFacts:
        return await self._facts.load(user_id)

    async def get_history(self, user_id: str) -> list[Exchange]:
        return await self._exchanges.recent(user_id, self._max_turns)

    async def build_context(self, user_id: str, current_message: str | None = None) -> str:
        return await self._context.build(user_id, current_message)

    async def add_exchange(
        self, user_id: str, user_text: str, reply: str, facts: UserFacts
    ) -> None:
        """Persist both sides of a completed turn, then the updated facts."""
        await self._exchanges.append(user_id, Role.USER, user_text)
        await self._exchanges.append(user_id, Role.ASSISTANT, reply)
        await self._facts.save(user_id, facts)
        if facts.name:
            logger.debug("Context for user %s: name=%s", user_id, facts.name)

    async def summarize(self, user_id: str) -> ConversationSummary:
        return await self._exchanges.summarize(user_id, self._context)

    async def list_all(self) -> list[UserConversation]:
        return await self._exchanges.list_all(self._context)

    async def clear(self, user_id: str) -> bool:
        cleared = await self._exchanges.clear(user_id)
        await self._facts.delete(user_id)
        return cleared
