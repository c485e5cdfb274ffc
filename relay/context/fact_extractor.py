"""Deterministic extraction of durable user facts from a user's message.

No LLM calls: an ordered list of regex rules evaluated uniformly. Each rule
captures one value for one field; a rule that does not match leaves the field
as it was (facts are sticky). When several rules target the same field, the
later rule in FACT_RULES overrides the earlier one, and within one rule the
last match in the message wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from relay.models import UserFacts

logger = logging.getLogger(__name__)

# Words that follow "I'm" without being a name ("I'm from", "I'm not sure", ...)
_NOT_A_NAME: frozenset[str] = frozenset(
    {
        "a", "an", "the", "from", "not", "so", "just", "here", "there", "in", "at", "on",
        "going", "doing", "trying", "looking", "talking", "living", "feeling", "thinking",
        "fine", "good", "great", "ok", "okay", "sure", "sorry", "glad", "happy", "sad",
        "tired", "busy", "back", "done", "still", "also", "really", "very", "well",
        "interested", "new", "curious", "home", "about", "into", "currently", "always",
    }
)

_APOS = "['’]"
# A phrase runs to the next sentence boundary
_PHRASE = r"(.+?)(?=[.!?\n]|$)"


def _name(value: str) -> str | None:
    return None if value.isdigit() else value


def _name_after_im(value: str) -> str | None:
    if value.lower() in _NOT_A_NAME:
        return None
    return _name(value)


def _age(value: str) -> int | None:
    age = int(value)
    return age if 0 < age < 150 else None


def _phrase(value: str) -> str | None:
    value = value.strip().strip("\"'")
    return value or None


@dataclass(frozen=True)
class FactRule:
    field: str
    pattern: re.Pattern[str]
    transform: Callable[[str], object | None] = _phrase

    def apply(self, message: str) -> object | None:
        """Value from the last match of this rule in message, or None."""
        value = None
        for match in self.pattern.finditer(message):
            candidate = self.transform(match.group(1))
            if candidate is not None:
                value = candidate
        return value


def _rule(field: str, pattern: str, transform: Callable[[str], object | None] = _phrase) -> FactRule:
    return FactRule(field, re.compile(pattern, re.IGNORECASE), transform)


FACT_RULES: list[FactRule] = [
    _rule("name", r"\bmy name is (\w+)", _name),
    _rule("name", rf"\bI{_APOS}m (\w+)", _name_after_im),
    _rule("name", r"\bcall me (\w+)", _name),
    _rule("name", rf"\bname{_APOS}s (\w+)", _name),
    _rule("name", rf"^(\w+), that{_APOS}s my name$", _name),
    _rule("age", rf"\bI(?:\s+am|{_APOS}m)\s+(\d{{1,3}})\s+years?\s+old\b", _age),
    _rule("location", rf"\b(?:I live in|I am from|I{_APOS}m from|I reside in|from)\s+{_PHRASE}"),
    _rule("topic", rf"\b(?:talking about|discussing|regarding|about)\s+{_PHRASE}"),
]


def extract_facts(message: str, existing: UserFacts | None = None) -> UserFacts:
    """Return a copy of ``existing`` updated with facts found in ``message``.

    message_count and last_interaction are updated on every call.
    """
    facts = existing.model_copy(deep=True) if existing is not None else UserFacts()
    text = message.strip()

    found: dict[str, object] = {}
    for rule in FACT_RULES:
        value = rule.apply(text)
        if value is not None:
            found[rule.field] = value

    for field, value in found.items():
        if field == "topic":
            facts.topics.append(str(value))
            facts.last_topic = str(value)
        else:
            setattr(facts, field, value)

    if found:
        logger.debug("Extracted facts: %s", sorted(found))

    facts.message_count += 1
    facts.last_interaction = datetime.now()
    return facts


def format_facts_for_prompt(facts: UserFacts) -> str | None:
    """One declarative sentence per known fact. Returns None if none are known."""
    sentences: list[str] = []
    if facts.name:
        sentences.append(
            f"The user's name is {facts.name}. Always remember to use their name when appropriate."
        )
    if facts.age is not None:
        sentences.append(f"The user is {facts.age} years old.")
    if facts.location:
        sentences.append(f"The user lives in {facts.location}.")
    if not sentences:
        return None
    return " ".join(sentences)
