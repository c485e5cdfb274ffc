from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from relay import storage
from relay.errors import StorageError
from relay.models import ConversationSummary, Exchange, Role, UserConversation

if TYPE_CHECKING:
    from relay.context.context_builder import ContextBuilder

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%m/%d/%Y, %H:%M:%S"
_LINE_RE = re.compile(r"\[(.*?)\] (User|AI): (.+)")
_NEWLINES_RE = re.compile(r"\s*[\r\n]+\s*")


def format_line(role: Role, text: str, when: datetime) -> str:
    flat = _NEWLINES_RE.sub(" ", text).strip()
    return f"[{when.strftime(TIMESTAMP_FORMAT)}] {role.value}: {flat}\n"


def parse_line(line: str) -> Exchange | None:
    """Parse one log line. Returns None for anything malformed."""
    match = _LINE_RE.match(line.strip())
    if not match:
        return None
    stamp, role, text = match.groups()
    try:
        timestamp = datetime.strptime(stamp, TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return Exchange(role=Role(role), text=text, timestamp=timestamp)


def parse_log(content: str) -> list[Exchange]:
    exchanges: list[Exchange] = []
    for line in content.splitlines():
        if not line.strip():
            continue
        exchange = parse_line(line)
        if exchange is None:
            logger.debug("Skipping malformed log line: %s", line[:80])
            continue
        exchanges.append(exchange)
    return exchanges


class ExchangeStore:
    """Append-only, one text file per user."""

    def __init__(self, data_dir: str = ".conversations"):
        self._dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    async def append(self, user_id: str, role: Role, text: str) -> None:
        """Append one timestamped turn. Storage failures are logged, never raised.

        The text is stored trimmed, inner newlines folded to spaces. Blank
        text is skipped.
        """
        if not text or not text.strip():
            logger.warning("Skipping blank %s turn for user %s", role.value, user_id)
            return
        path = storage.log_path(self._dir, user_id)
        line = format_line(role, text, datetime.now())
        try:
            await asyncio.to_thread(storage.append_line, path, line)
            logger.debug("Appended %s turn for user %s", role.value, user_id)
        except StorageError:
            logger.exception("Error appending message for user %s", user_id)

    async def _read(self, user_id: str) -> tuple[list[Exchange], int]:
        path = storage.log_path(self._dir, user_id)

        def _do_read() -> tuple[str | None, int]:
            content = storage.read_text(path)
            size = path.stat().st_size if content is not None else 0
            return content, size

        try:
            content, size = await asyncio.to_thread(_do_read)
        except (StorageError, OSError):
            logger.exception("Error reading conversation for user %s", user_id)
            return [], 0
        if content is None:
            return [], 0
        return parse_log(content), size

    async def recent(self, user_id: str, limit: int = 10) -> list[Exchange]:
        """Last ``limit`` turns, oldest first."""
        if limit <= 0:
            return []
        exchanges, _ = await self._read(user_id)
        return exchanges[-limit:]

    async def clear(self, user_id: str) -> bool:
        """Delete the log and the derived fact record. Idempotent."""
        paths = [storage.log_path(self._dir, user_id), storage.facts_path(self._dir, user_id)]

        def _do_clear() -> list[Path]:
            return [p for p in paths if storage.remove(p)]

        try:
            removed = await asyncio.to_thread(_do_clear)
        except StorageError:
            logger.exception("Error clearing data for user %s", user_id)
            return False
        for p in removed:
            logger.info("Deleted %s for user %s", p.name, user_id)
        return True

    async def summarize(
        self, user_id: str, context_builder: ContextBuilder | None = None
    ) -> ConversationSummary:
        exchanges, size = await self._read(user_id)
        context_length = 0
        if context_builder is not None:
            context_length = len(await context_builder.build(user_id))
        return ConversationSummary(
            turn_count=len(exchanges),
            exchange_count=len(exchanges) // 2,
            last_interaction=exchanges[-1].timestamp if exchanges else None,
            size_bytes=size,
            context_length=context_length,
        )

    async def list_all(
        self, context_builder: ContextBuilder | None = None
    ) -> list[UserConversation]:
        def _do_list() -> list[str]:
            if not self._dir.exists():
                return []
            return sorted(
                p.name.removesuffix(storage.LOG_SUFFIX)
                for p in self._dir.iterdir()
                if p.is_file() and p.name.endswith(storage.LOG_SUFFIX)
            )

        try:
            user_ids = await asyncio.to_thread(_do_list)
        except OSError:
            logger.exception("Error listing conversations")
            return []
        return [
            UserConversation(user_id=uid, summary=await self.summarize(uid, context_builder))
            for uid in user_ids
        ]
