"""Per-user chat sessions, the session registry, and the retrying coordinator.

The backend is stateless: every send replays the whole mirrored turn history,
starting with the system prompt recorded as turn zero at initialization.

    UNINITIALIZED -> INITIALIZING -> READY
    READY -> UNINITIALIZED            (reset, or failure handled by the coordinator)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from relay.errors import RetryExhaustedError, SessionStateError
from relay.llm.client import OllamaClient
from relay.models import ChatMessage

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class ChatSession:
    def __init__(
        self,
        user_id: str,
        client: OllamaClient,
        model: str | None = None,
        options: dict | None = None,
    ) -> None:
        self.user_id = user_id
        self.model = model or client.model
        self._client = client
        self._options = options
        self.state = SessionState.UNINITIALIZED
        self.turn_history: list[ChatMessage] = []
        self.last_error: Exception | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    async def initialize(self, system_prompt: str) -> None:
        """Prime the backend with the system prompt as the only turn."""
        if self.state is SessionState.READY:
            return
        if self.state is not SessionState.UNINITIALIZED:
            raise SessionStateError(self.user_id, "initialize", self.state.value)

        self.state = SessionState.INITIALIZING
        seed = ChatMessage(role="system", content=system_prompt)
        try:
            await self._client.chat([seed], model=self.model)
        except Exception as e:
            self.state = SessionState.UNINITIALIZED
            self.last_error = e
            logger.error("Failed to initialize session for user %s: %s", self.user_id, e)
            raise

        self.turn_history = [seed]
        self.state = SessionState.READY
        logger.info("Initialized session for user %s", self.user_id)

    async def send(self, message: str) -> str:
        """Send one user turn with the full history replayed; return the reply text."""
        if self.state is not SessionState.READY:
            raise SessionStateError(self.user_id, "send", self.state.value)

        self.turn_history.append(ChatMessage(role="user", content=message))
        try:
            reply = await self._client.chat(
                self.turn_history, model=self.model, options=self._options
            )
        except Exception as e:
            self.turn_history.pop()
            self.last_error = e
            logger.error("Error in session %s: %s", self.user_id, e)
            raise

        self.turn_history.append(ChatMessage(role="assistant", content=reply))
        return reply

    def reset(self) -> None:
        self.turn_history = []
        self.state = SessionState.UNINITIALIZED
        logger.info("Reset session for user %s", self.user_id)

    @property
    def message_count(self) -> int:
        return len(self.turn_history)


class SessionRegistry:
    """Process-wide map of user id -> ChatSession, at most one per user."""

    def __init__(self, client: OllamaClient, options: dict | None = None) -> None:
        self._client = client
        self._options = options
        self._sessions: dict[str, ChatSession] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, user_id: str, model: str | None = None) -> ChatSession:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = ChatSession(user_id, self._client, model=model, options=self._options)
                self._sessions[user_id] = session
            return session

    def get(self, user_id: str) -> ChatSession | None:
        return self._sessions.get(user_id)

    async def reset(self, user_id: str) -> None:
        async with self._lock:
            session = self._sessions.get(user_id)
        if session is not None:
            session.reset()

    async def remove(self, user_id: str) -> None:
        async with self._lock:
            self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)


class SessionCoordinator:
    """Runs one logical request against a user's session with bounded retry."""

    def __init__(
        self,
        registry: SessionRegistry,
        retry: RetryPolicy | None = None,
        model: str | None = None,
    ) -> None:
        self._registry = registry
        self._retry = retry or RetryPolicy()
        self._model = model

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def respond(self, user_id: str, message: str, system_prompt: str) -> str:
        """Initialize the session if needed and send message.

        On failure the session is reset and the request retried after a fixed
        delay. SessionStateError is a contract violation and is never retried.
        Raises RetryExhaustedError when every attempt failed.
        """
        attempts = self._retry.max_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            session = await self._registry.get_or_create(user_id, self._model)
            try:
                if session.state is SessionState.UNINITIALIZED:
                    await session.initialize(system_prompt)
                reply = await session.send(message)
                logger.info("Got response for user %s (attempt %d)", user_id, attempt)
                return reply
            except SessionStateError:
                raise
            except Exception as e:
                last_error = e
                logger.error("Backend error for user %s, attempt %d: %s", user_id, attempt, e)
                if attempt < attempts:
                    session.reset()
                    await self._retry.sleep(self._retry.delay)

        raise RetryExhaustedError(user_id, attempts, last_error)
