from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class CommandSpec:
    name: str
    description: str
    usage: str
    handler: Callable  # async function(args: str, context: CommandContext) -> str
    aliases: list[str] = field(default_factory=list)


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: dict[str, CommandSpec] = {}
        self._aliases: dict[str, str] = {}

    def register(self, command: CommandSpec) -> None:
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name

    def get(self, name: str) -> CommandSpec | None:
        return self._commands.get(self._aliases.get(name, name))

    def list_commands(self) -> list[CommandSpec]:
        return list(self._commands.values())
