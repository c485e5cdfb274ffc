from __future__ import annotations

import logging

from relay.commands.context import CommandContext
from relay.commands.parser import parse_command
from relay.context.fact_extractor import extract_facts
from relay.guardrails.sanitizer import clean_response
from relay.services import RelayServices

logger = logging.getLogger(__name__)

ERROR_REPLY = "I encountered an error processing your message. Please try again in a moment."
EMPTY_REPLY = (
    "I apologize, but I couldn't generate a proper response. Could you please try again?"
)
COMMAND_ERROR_REPLY = "Sorry, that command failed. Please try again."


async def handle_message(user_id: str, text: str, services: RelayServices) -> str | None:
    """Answer one inbound message. Returns None when the message is ignored.

    Never raises: failures become a generic apology for this user only.
    """
    settings = services.settings
    if settings.allowed_user_ids and user_id not in settings.allowed_user_ids:
        logger.info("Ignoring message from non-allowed user %s", user_id)
        return None

    if not text or not text.strip():
        logger.warning("Empty or invalid message from %s", user_id)
        return None

    logger.info("Incoming [%s]: %s", user_id, text[:80])

    parsed = parse_command(text, settings.command_prefix)
    if parsed:
        return await _handle_command(user_id, *parsed, services)

    try:
        return await _respond(user_id, text, services)
    except Exception:
        logger.exception("Error processing message from %s", user_id)
        return ERROR_REPLY


async def _handle_command(
    user_id: str, cmd_name: str, cmd_args: str, services: RelayServices
) -> str:
    prefix = services.settings.command_prefix
    command = services.commands.get(cmd_name)
    if command is None:
        return f"Unknown command: {prefix}{cmd_name}. Type {prefix}help for available commands."
    ctx = CommandContext(
        user_id=user_id,
        conversation=services.conversation,
        sessions=services.sessions,
        prompts=services.prompts,
        registry=services.commands,
        prefix=prefix,
    )
    try:
        return await command.handler(cmd_args, ctx)
    except Exception:
        logger.exception("Command %s failed", cmd_name)
        return COMMAND_ERROR_REPLY


async def _respond(user_id: str, text: str, services: RelayServices) -> str:
    conversation = services.conversation

    async with conversation.lock(user_id):
        summary = await conversation.summarize(user_id)
        logger.info(
            "Conversation [%s]: %d exchanges, last interaction %s",
            user_id,
            summary.exchange_count,
            summary.last_interaction.isoformat() if summary.last_interaction else "never",
        )

        facts = extract_facts(text, await conversation.get_facts(user_id))

        # Seed for a fresh session: base prompt plus what we durably know
        context = await conversation.build_context(user_id)
        base_prompt = await services.prompts.load()
        system_prompt = f"{base_prompt}\n\n{context}" if context else base_prompt

        raw = await services.coordinator.respond(user_id, text, system_prompt)

        reply = clean_response(raw, facts)
        if not reply.strip():
            logger.warning("Empty AI response for %s", user_id)
            reply = EMPTY_REPLY
        logger.info("Outgoing [%s]: %s", user_id, reply[:80])

        await conversation.add_exchange(user_id, text, reply, facts)
        return reply
