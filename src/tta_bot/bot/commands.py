"""
Chat Command Parsing.

Commands are parsed once into tagged variants and the chat handler
dispatches on the variant type:

    /start               -> StartCommand
    /help                -> HelpCommand
    /voice               -> ListVoicesCommand
    /setvoice <name>     -> SetVoiceCommand(value="<name>")
    /speed               -> ListSpeedsCommand
    /setspeed <value>    -> SetSpeedCommand(value="<value>")
    /anything_else       -> UnknownCommand(name="anything_else")

Group chats append the bot name (/setvoice@my_bot nova); the suffix is
stripped. Text that does not start with "/" is not a command.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class StartCommand:
    pass


@dataclass(frozen=True)
class HelpCommand:
    pass


@dataclass(frozen=True)
class ListVoicesCommand:
    pass


@dataclass(frozen=True)
class SetVoiceCommand:
    value: Optional[str] = None


@dataclass(frozen=True)
class ListSpeedsCommand:
    pass


@dataclass(frozen=True)
class SetSpeedCommand:
    value: Optional[str] = None


@dataclass(frozen=True)
class UnknownCommand:
    name: str


Command = Union[
    StartCommand,
    HelpCommand,
    ListVoicesCommand,
    SetVoiceCommand,
    ListSpeedsCommand,
    SetSpeedCommand,
    UnknownCommand,
]

COMMAND_PREFIX = "/"


def parse_command(text: Optional[str]) -> Optional[Command]:
    """
    Parse a chat message into a command.

    Returns:
        The command variant, or None if text is not a command.
    """
    if not text or not text.startswith(COMMAND_PREFIX):
        return None

    parts = text.strip().split(maxsplit=1)
    name = parts[0][len(COMMAND_PREFIX):].split("@", 1)[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else None

    if name == "start":
        return StartCommand()
    if name == "help":
        return HelpCommand()
    if name == "voice":
        return ListVoicesCommand()
    if name == "setvoice":
        return SetVoiceCommand(arg.lower() if arg else None)
    if name == "speed":
        return ListSpeedsCommand()
    if name == "setspeed":
        return SetSpeedCommand(arg)
    return UnknownCommand(name)
