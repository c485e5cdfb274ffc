"""Deterministic cleanup of raw model output before it is stored or delivered.

Stages run in order, the scrubbing ones repeatedly until nothing changes. Each
stage is fail-open: if one raises, the text from the previous stage carries on,
so clean_response() never raises. The pipeline is
idempotent: cleaning an already-clean reply returns it unchanged.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from relay.models import UserFacts

logger = logging.getLogger(__name__)

Stage = Callable[[str, UserFacts], str]

# --- patterns ---

# Instruction-like sentences leaked from the system prompt, removed up to the line break
_RE_LEAKED_INSTRUCTION = re.compile(
    r"(?:You are (?:an? )?(?:AI|artificial intelligence|language model|model|assistant|"
    r"virtual|chat ?bot|helpful|friendly)\b"
    r"|You (?:always|should always|must always|will always) address (?:the )?users?\b"
    r"|You are having a casual conversation\b"
    r"|Keep the following in mind\b)"
    r"[^\n]*",
    re.IGNORECASE,
)
_RE_INSTRUCTION_LINE = re.compile(
    r"^[ \t]*(?:System prompt|System|Instructions?)[ \t]*:[^\n]*", re.IGNORECASE | re.MULTILINE
)
# Stray log-style tags such as "[Context]" or "[01/02/2024, 10:00:00]"
_RE_BRACKETED = re.compile(r"\[[^\[\]\n]*\]")
# A hallucinated user turn: the whole line goes
_RE_USER_TURN = re.compile(r"^[ \t]*(?:Human|User)[ \t]*:[^\n]*(?:\n|$)", re.IGNORECASE | re.MULTILINE)
# Our own speaker label: only the label goes
_RE_SPEAKER_LABEL = re.compile(r"^([ \t]*)(?:Assistant|AI|Friend)[ \t]*:[ \t]*", re.IGNORECASE | re.MULTILINE)
_RE_META_WORDS = re.compile(r"\b(?:language model|AI|assistant|model)\b", re.IGNORECASE)
_RE_PREVIOUS_RESPONSE = re.compile(r"Previous response[ \t]*:[ \t]*", re.IGNORECASE)
_RE_SECOND_PERSON = re.compile(r"\byour?\b", re.IGNORECASE)
_RE_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")

_RE_MULTI_SPACE = re.compile(r"[ \t]{2,}")
_RE_SPACE_BEFORE_PUNCT = re.compile(r"[ \t]+([,.!?;:])")

_TERMINAL = (".", "!", "?")
_MAX_SCRUB_PASSES = 8


def _tidy(text: str) -> str:
    text = _RE_MULTI_SPACE.sub(" ", text)
    return _RE_SPACE_BEFORE_PUNCT.sub(r"\1", text)


# --- stages ---


def strip_leaked_instructions(text: str, facts: UserFacts) -> str:
    text = _RE_LEAKED_INSTRUCTION.sub("", text)
    return _RE_INSTRUCTION_LINE.sub("", text)


def strip_artifacts(text: str, facts: UserFacts) -> str:
    text = _RE_BRACKETED.sub("", text)
    text = _RE_USER_TURN.sub("", text)
    text = _RE_SPEAKER_LABEL.sub(r"\1", text)
    return _tidy(text)


def strip_meta_words(text: str, facts: UserFacts) -> str:
    """Drop meta words, except a leading word that is the user's own name ("Ai, ...")."""
    name = (facts.name or "").strip().lower()
    lead = len(text) - len(text.lstrip())

    def _drop(match: re.Match[str]) -> str:
        if name and match.start() == lead and match.group(0).lower() == name:
            return match.group(0)
        return ""

    return _tidy(_RE_META_WORDS.sub(_drop, text))


def strip_echoed_labels(text: str, facts: UserFacts) -> str:
    return _tidy(_RE_PREVIOUS_RESPONSE.sub("", text))


def trim(text: str, facts: UserFacts) -> str:
    return text.strip()


def address_by_name(text: str, facts: UserFacts) -> str:
    """Prepend the user's name when the reply neither names nor addresses them."""
    name = (facts.name or "").strip()
    if not name or not text:
        return text
    if re.search(rf"\b{re.escape(name)}\b", text, re.IGNORECASE):
        return text
    if _RE_SECOND_PERSON.search(text):
        return text
    return f"{name}, {text}"


def dedupe_sentences(text: str, facts: UserFacts) -> str:
    seen: set[str] = set()
    sentences: list[str] = []
    for part in _RE_SENTENCE_END.split(text):
        sentence = part.strip()
        if sentence and sentence not in seen:
            seen.add(sentence)
            sentences.append(sentence)
    return ". ".join(sentences)


def ensure_terminal_punctuation(text: str, facts: UserFacts) -> str:
    if text and not text.endswith(_TERMINAL):
        return text + "."
    return text


# Run to a fixed point: removing one artifact can expose another ("AI User: hi", "[[tag]]")
SCRUB_STAGES: list[Stage] = [
    strip_leaked_instructions,
    strip_artifacts,
    strip_meta_words,
    strip_echoed_labels,
]

FINISH_STAGES: list[Stage] = [
    trim,
    address_by_name,
    dedupe_sentences,
    ensure_terminal_punctuation,
]


def clean_response(raw: str, facts: UserFacts | None = None) -> str:
    """Run every stage over raw model output and return the cleaned reply."""
    facts = facts or UserFacts()
    text = raw or ""
    for _ in range(_MAX_SCRUB_PASSES):
        scrubbed = text
        for stage in SCRUB_STAGES:
            scrubbed = _run_stage(stage, scrubbed, facts)
        if scrubbed == text:
            break
        text = scrubbed
    else:
        logger.warning("Sanitizer did not settle after %d passes", _MAX_SCRUB_PASSES)
    for stage in FINISH_STAGES:
        text = _run_stage(stage, text, facts)
    if text != raw:
        logger.debug("Sanitized reply: %r -> %r", raw[:120] if raw else raw, text[:120])
    return text


def _run_stage(stage: Stage, text: str, facts: UserFacts) -> str:
    """Run one stage. On any exception keep the previous text (fail open)."""
    try:
        return stage(text, facts)
    except Exception as e:
        logger.warning("Sanitizer stage %s raised: %s", stage.__name__, e)
        return text
