"""The process-wide service registry, built once at startup.

Everything that holds per-user state (conversation files, per-user locks, chat
sessions) lives on one RelayServices object that is passed explicitly to the
message pipeline and stored on ``app.state`` for the HTTP layer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from relay.commands.builtins import register_builtins
from relay.commands.registry import CommandRegistry
from relay.config import Settings
from relay.context.user_facts import UserFactStore
from relay.conversation.exchange_store import ExchangeStore
from relay.conversation.manager import ConversationManager
from relay.llm.client import OllamaClient
from relay.prompts import PromptStore
from relay.session.coordinator import RetryPolicy, SessionCoordinator, SessionRegistry


@dataclass
class RelayServices:
    settings: Settings
    ollama_client: OllamaClient
    conversation: ConversationManager
    sessions: SessionRegistry
    coordinator: SessionCoordinator
    prompts: PromptStore
    commands: CommandRegistry


def build_services(
    settings: Settings,
    http_client: httpx.AsyncClient,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RelayServices:
    ollama_client = OllamaClient(
        http_client=http_client,
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
    )
    conversation = ConversationManager(
        exchange_store=ExchangeStore(data_dir=settings.data_dir),
        fact_store=UserFactStore(data_dir=settings.data_dir),
        max_turns=settings.context_max_turns,
        max_chars=settings.context_max_chars,
    )
    sessions = SessionRegistry(ollama_client, options=settings.ollama_options)
    coordinator = SessionCoordinator(
        sessions,
        retry=RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            delay=settings.retry_delay,
            sleep=sleep,
        ),
        model=settings.ollama_model,
    )
    commands = CommandRegistry()
    register_builtins(commands)
    return RelayServices(
        settings=settings,
        ollama_client=ollama_client,
        conversation=conversation,
        sessions=sessions,
        coordinator=coordinator,
        prompts=PromptStore(settings.prompt_path, default=settings.system_prompt),
        commands=commands,
    )
