"""ContextBuilder: composes the per-user prompt context from durable state.

Sections, in order, each skipped when empty and separated by a blank line:
- the fact preamble (one sentence per known fact)
- "Recent conversation:" with the last N turns as "<Role>: <text>"
- "Current message:" with the message being answered

The lookback is a fixed number of turns; the character budget is only logged.

Usage:
    builder = ContextBuilder(exchange_store, fact_store, max_turns=10)
    context = await builder.build(user_id, current_message="Hi again")
"""

from __future__ import annotations

import logging

from relay.context.fact_extractor import format_facts_for_prompt
from relay.context.token_estimator import log_context_budget
from relay.context.user_facts import UserFactStore
from relay.conversation.exchange_store import ExchangeStore
from relay.models import Exchange

logger = logging.getLogger(__name__)

RECENT_LABEL = "Recent conversation:"
CURRENT_LABEL = "Current message:"


def format_turns(exchanges: list[Exchange]) -> str:
    return "\n".join(f"{e.role.value}: {e.text}" for e in exchanges)


class ContextBuilder:
    def __init__(
        self,
        exchange_store: ExchangeStore,
        fact_store: UserFactStore,
        max_turns: int = 10,
        max_chars: int = 8000,
    ) -> None:
        self._exchanges = exchange_store
        self._facts = fact_store
        self._max_turns = max_turns
        self._max_chars = max_chars

    async def build(self, user_id: str, current_message: str | None = None) -> str:
        facts = await self._facts.load(user_id)
        recent = await self._exchanges.recent(user_id, self._max_turns)

        sections: list[str] = []
        preamble = format_facts_for_prompt(facts)
        if preamble:
            sections.append(preamble)
        if recent:
            sections.append(f"{RECENT_LABEL}\n{format_turns(recent)}")
        if current_message:
            sections.append(f"{CURRENT_LABEL}\n{current_message}")

        context = "\n\n".join(sections)
        log_context_budget(context, self._max_chars, extra={"user_id": user_id})
        return context
