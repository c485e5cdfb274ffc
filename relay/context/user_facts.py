from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from relay import storage
from relay.errors import StorageError
from relay.models import UserFacts

logger = logging.getLogger(__name__)


class UserFactStore:
    """JSON fact record per user, next to the user's exchange log."""

    def __init__(self, data_dir: str = ".conversations"):
        self._dir = Path(data_dir)

    async def load(self, user_id: str) -> UserFacts:
        """Return the stored facts, or an empty record. Never raises."""
        path = storage.facts_path(self._dir, user_id)
        try:
            content = await asyncio.to_thread(storage.read_text, path)
        except StorageError:
            logger.exception("Error reading context for user %s", user_id)
            return UserFacts()
        if not content:
            return UserFacts()
        try:
            return UserFacts.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Corrupt context file for user %s, starting fresh", user_id, exc_info=True)
            return UserFacts()

    async def save(self, user_id: str, facts: UserFacts) -> None:
        """Best-effort write; failures are logged, not raised."""
        path = storage.facts_path(self._dir, user_id)
        content = facts.model_dump_json(by_alias=True, indent=2)
        try:
            await asyncio.to_thread(storage.write_text_atomic, path, content)
        except StorageError:
            logger.exception("Error saving context for user %s", user_id)

    async def delete(self, user_id: str) -> None:
        path = storage.facts_path(self._dir, user_id)
        try:
            await asyncio.to_thread(storage.remove, path)
        except StorageError:
            logger.exception("Error deleting context for user %s", user_id)
