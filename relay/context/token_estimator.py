"""Context size accounting in characters.

Length is measured in characters, not model tokens. Used for logging and
alerting only; the context builder never truncates on this budget.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_CONTEXT_LIMIT = 8_000


def log_context_budget(
    context: str,
    context_limit: int = _CONTEXT_LIMIT,
    extra: dict | None = None,
) -> int:
    """Log context size and warn if nearing or exceeding the limit.

    Returns the context length in characters.
    """
    length = len(context)
    log_extra = {"context_chars": length, "context_limit": context_limit, **(extra or {})}

    if length > context_limit:
        logger.error(
            "context.budget.exceeded: %d chars (limit=%d)",
            length,
            context_limit,
            extra=log_extra,
        )
    elif length > context_limit * 0.8:
        logger.warning(
            "context.budget.near_limit: %d chars (%.0f%% of %d)",
            length,
            length / context_limit * 100,
            context_limit,
            extra=log_extra,
        )
    else:
        logger.debug("context.budget: %d chars", length, extra=log_extra)

    return length
