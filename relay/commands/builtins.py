from __future__ import annotations

import logging

from relay.commands.context import CommandContext
from relay.commands.registry import CommandRegistry, CommandSpec
from relay.conversation.exchange_store import TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)


async def cmd_clear(args: str, context: CommandContext) -> str:
    """Forget everything about this user: log, facts and the live session."""
    async with context.conversation.lock(context.user_id):
        await context.conversation.clear(context.user_id)
        await context.sessions.remove(context.user_id)
    logger.info("Cleared memory for user %s", context.user_id)
    return (
        "Memory cleared! I've forgotten our previous conversation. "
        "What would you like to talk about?"
    )


async def cmd_status(args: str, context: CommandContext) -> str:
    summary = await context.conversation.summarize(context.user_id)
    last = (
        summary.last_interaction.strftime(TIMESTAMP_FORMAT)
        if summary.last_interaction
        else "Never"
    )
    return (
        "Conversation Status:\n"
        f"• Total Exchanges: {summary.exchange_count}\n"
        f"• Last Interaction: {last}\n"
        f"• Memory Size: {summary.size_bytes / 1024:.2f} KB\n"
        f"• Context Length: {summary.context_length} characters"
    )


async def cmd_prompt(args: str, context: CommandContext) -> str:
    if not args:
        prompt = await context.prompts.load()
        return f"Current system prompt:\n\n{prompt}"
    if await context.prompts.save(args):
        return (
            "System prompt updated successfully! "
            "The new prompt will be used for future messages."
        )
    return "Failed to update system prompt. Please try again."


async def cmd_help(args: str, context: CommandContext) -> str:
    registry: CommandRegistry = context.registry
    lines = ["Available commands:"]
    for command in registry.list_commands():
        usage = context.prefix + command.usage.removeprefix("/")
        label = " or ".join([usage, *(f"{context.prefix}{a}" for a in command.aliases)])
        lines.append(f"{label} - {command.description}")
    return "\n".join(lines)


def register_builtins(registry: CommandRegistry) -> None:
    registry.register(
        CommandSpec(
            name="clear",
            description="Clear conversation memory",
            usage="/clear",
            handler=cmd_clear,
            aliases=["reset"],
        )
    )
    registry.register(
        CommandSpec(
            name="status",
            description="Show conversation statistics",
            usage="/status",
            handler=cmd_status,
        )
    )
    registry.register(
        CommandSpec(
            name="prompt",
            description="Show the current system prompt, or replace it",
            usage="/prompt [new prompt]",
            handler=cmd_prompt,
        )
    )
    registry.register(
        CommandSpec(
            name="help",
            description="Show this help message",
            usage="/help",
            handler=cmd_help,
        )
    )
