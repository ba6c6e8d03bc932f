"""
Exceptions for the conversation engine and generation dispatch.
"""


class ChatError(Exception):
    """Base exception for conversation engine operations."""

    pass


class ThreadResolutionError(ChatError):
    """A thread id cannot be resolved in the requested mode."""

    pass


class ThreadNotFoundError(ChatError):
    """No conversation exists for a native thread id."""

    pass


class GenerationError(ChatError):
    """Generation could not be dispatched or produced no usable output."""

    pass


class GeneratorNotConfiguredError(GenerationError):
    """No generator is configured or the configured path cannot be loaded."""

    pass
