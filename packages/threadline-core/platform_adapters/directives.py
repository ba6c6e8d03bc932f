"""
Chat directives recognized in inbound messages.

    /start [param]      begin pairing (deep links carry the project id)
    /connect <param>    connect to the project named by param
    /new, /reset        clear the conversation
    connect <param>     bare form, for platforms without bot commands

Commands may carry a ``@botname`` suffix, as Telegram adds in group chats.
Anything else is ordinary content for the assistant.
"""

import re
from dataclasses import dataclass
from enum import Enum


class DirectiveKind(str, Enum):
    BEGIN = "begin"
    CONNECT = "connect"
    RESET = "reset"
    CONTENT = "content"


@dataclass
class Directive:
    kind: DirectiveKind
    param: str = ""

    @property
    def is_connect(self) -> bool:
        return self.kind in (DirectiveKind.BEGIN, DirectiveKind.CONNECT)


COMMANDS = {
    "start": DirectiveKind.BEGIN,
    "connect": DirectiveKind.CONNECT,
    "new": DirectiveKind.RESET,
    "reset": DirectiveKind.RESET,
}

BARE_CONNECT_RE = re.compile(r"^connect\s+(\S+)$", re.IGNORECASE)

CONTENT = Directive(DirectiveKind.CONTENT)


def parse_directive(text: str, *, bot_username: str = "", accepts_bare_connect: bool = False) -> Directive:
    """
    Classify an inbound message text.

    Args:
        text: Message text (caption for media messages)
        bot_username: This bot's username; commands addressed to another
            bot are treated as content
        accepts_bare_connect: Also accept ``connect <param>`` without a slash
    """
    stripped = (text or "").strip()

    if stripped.startswith("/"):
        parts = stripped[1:].split(maxsplit=1)
        if not parts:
            return CONTENT
        command, _, mention = parts[0].partition("@")
        if mention and bot_username and mention.lower() != bot_username.lower():
            return CONTENT

        kind = COMMANDS.get(command.lower())
        if kind is None:
            return CONTENT

        rest = parts[1].split() if len(parts) > 1 else []
        param = rest[0] if rest and kind != DirectiveKind.RESET else ""
        return Directive(kind, param)

    if accepts_bare_connect:
        match = BARE_CONNECT_RE.match(stripped)
        if match:
            return Directive(DirectiveKind.CONNECT, match.group(1))

    return CONTENT


def names_project(param: str, project) -> bool:
    """Whether a directive parameter refers to the given project (by id or slug)."""
    param = (param or "").strip()
    if not param:
        return False
    return param == str(project.id) or param.lower() == (project.slug or "").lower()
