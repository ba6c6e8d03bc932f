"""
Generator contract for assistant replies.

The language model itself is an external collaborator. A generator is any
object with a ``stream`` method yielding reply text in fragments; each
fragment becomes one stream delta. Configure it with a dotted path:

    THREADLINE_GENERATOR = "myproject.llm.OpenAIGenerator"

The path may name a class (instantiated with no arguments), a factory
function or a ready-made instance.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from django.conf import settings
from django.utils.module_loading import import_string

from .exceptions import GeneratorNotConfiguredError


class Generator(Protocol):
    def stream(self, conversation, history, prompt: str, files) -> Iterable[str]:
        """
        Yield the assistant reply in fragments.

        Args:
            conversation: The chat.Conversation being answered
            history: Committed earlier messages, oldest first
            prompt: Text of the user message being answered
            files: StoredFile records attached to that message
        """
        ...


class EchoGenerator:
    """Development generator that answers by echoing the prompt word by word."""

    def stream(self, conversation, history, prompt, files):
        words = prompt.split(" ")
        for index, word in enumerate(words):
            yield word if index == len(words) - 1 else f"{word} "
        if files:
            yield f" [{len(files)} attachment(s)]"


def get_generator() -> Generator:
    """
    Load the configured generator.

    Raises:
        GeneratorNotConfiguredError: If ``THREADLINE_GENERATOR`` is unset or
            does not resolve to a generator
    """
    path = getattr(settings, "THREADLINE_GENERATOR", None)
    if not path:
        raise GeneratorNotConfiguredError("THREADLINE_GENERATOR is not set")

    try:
        target = import_string(path)
    except ImportError as exc:
        raise GeneratorNotConfiguredError(f"Cannot import generator '{path}'") from exc

    if isinstance(target, type) or (callable(target) and not hasattr(target, "stream")):
        generator = target()
    else:
        generator = target
    if not hasattr(generator, "stream"):
        raise GeneratorNotConfiguredError(f"'{path}' does not provide a stream() method")
    return generator
