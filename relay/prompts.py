"""System prompt kept in a plain text file so /prompt can change it at runtime.

The file is created with the default prompt the first time it is read. New
sessions pick up whatever the file holds when they initialize.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from relay import storage
from relay.errors import StorageError

logger = logging.getLogger(__name__)


class PromptStore:
    def __init__(self, path: str, default: str):
        self._path = Path(path)
        self._default = default

    async def load(self) -> str:
        try:
            content = await asyncio.to_thread(storage.read_text, self._path)
        except StorageError:
            logger.exception("Error loading system prompt, using default")
            return self._default
        if content is None:
            await self.save(self._default)
            return self._default
        return content

    async def save(self, prompt: str) -> bool:
        try:
            await asyncio.to_thread(storage.write_text_atomic, self._path, prompt)
        except StorageError:
            logger.exception("Error saving system prompt")
            return False
        logger.info("System prompt updated (%d chars)", len(prompt))
        return True
