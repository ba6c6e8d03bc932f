"""
Thread identity resolution.

Two thread id schemes coexist:

* native ids, minted by the conversation engine (``Conversation.native_id``),
* legacy ids, minted locally before the engine existed (``thread-...`` or
  ``thread_...``), still stored on channels and used by older clients.

Legacy ids are translated through the append-only ``ThreadMapping`` table.
Reads never create mappings and report ``NOT_YET_MAPPED`` for unknown legacy
ids; writes mint the native thread and the mapping on first use.

Example usage:
    native_id = resolver.resolve_write(channel.thread_id, project=project, user=owner)
    native_id = resolver.resolve_read(thread_id)
    if native_id is NOT_YET_MAPPED:
        ...  # nothing has been written to this thread yet
"""

from __future__ import annotations

import logging
from enum import Enum

from django.db import IntegrityError, transaction

from . import engine
from .exceptions import ThreadResolutionError
from .models import ThreadMapping

logger = logging.getLogger(__name__)

LEGACY_PREFIXES = ("thread-", "thread_")
PLACEHOLDER_THREAD_ID = "__no_thread__"


class _NotYetMapped:
    """Sentinel for a legacy id with no native thread yet."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_YET_MAPPED"


NOT_YET_MAPPED = _NotYetMapped()


class ThreadIdKind(str, Enum):
    LEGACY = "legacy"
    NATIVE = "native"
    EMPTY = "empty"


class ResolveMode(str, Enum):
    READ = "read"
    WRITE = "write"


def is_legacy_thread_id(thread_id: str | None) -> bool:
    return bool(thread_id) and thread_id.startswith(LEGACY_PREFIXES)


def project_thread_id(project) -> str:
    """
    Legacy id of a project's primary thread.

    The thread belongs to the project owner, so every surface (web chat and
    each paired messaging channel) lands in the same conversation.
    """
    return f"thread-{project.pk}-{project.created_by_id or 0}"


class ThreadIdentityResolver:
    """Translate legacy and native thread ids to native ids."""

    def classify(self, thread_id: str | None) -> ThreadIdKind:
        """Classify an id by shape alone, without touching the database."""
        if not thread_id or thread_id == PLACEHOLDER_THREAD_ID:
            return ThreadIdKind.EMPTY
        if thread_id.startswith(LEGACY_PREFIXES):
            return ThreadIdKind.LEGACY
        return ThreadIdKind.NATIVE

    def resolve_read(self, thread_id: str | None):
        """
        Resolve without side effects.

        Returns:
            The native id, or NOT_YET_MAPPED for empty ids and unmapped
            legacy ids
        """
        kind = self.classify(thread_id)
        if kind == ThreadIdKind.EMPTY:
            return NOT_YET_MAPPED
        if kind == ThreadIdKind.NATIVE:
            return thread_id

        native_id = (
            ThreadMapping.objects.filter(legacy_id=thread_id)
            .values_list('conversation__native_id', flat=True)
            .first()
        )
        return native_id if native_id is not None else NOT_YET_MAPPED

    def resolve_write(self, thread_id: str | None, *, project, user=None) -> str:
        """
        Resolve, minting the native thread and mapping for an unmapped legacy id.

        Concurrent first writes for the same legacy id converge on one
        mapping: the unique ``legacy_id`` constraint admits a single insert,
        and the losing caller discards the thread it minted and adopts the
        winner's.

        Raises:
            ThreadResolutionError: If the id is empty
        """
        kind = self.classify(thread_id)
        if kind == ThreadIdKind.EMPTY:
            raise ThreadResolutionError("Cannot write to an empty thread id")
        if kind == ThreadIdKind.NATIVE:
            return thread_id

        existing = self.resolve_read(thread_id)
        if existing is not NOT_YET_MAPPED:
            return existing

        conversation = engine.mint_thread(project=project, created_by=user)
        try:
            with transaction.atomic():
                ThreadMapping.objects.create(legacy_id=thread_id, conversation=conversation)
        except IntegrityError:
            conversation.delete()
            winner = ThreadMapping.objects.select_related('conversation').get(legacy_id=thread_id)
            logger.info(
                f"Lost mapping race for {thread_id}; using thread {winner.conversation.native_id}"
            )
            return winner.conversation.native_id

        logger.info(f"Mapped legacy thread {thread_id} -> {conversation.native_id}")
        return conversation.native_id

    def resolve(self, thread_id: str | None, mode: str = ResolveMode.READ, **kwargs):
        if mode == ResolveMode.WRITE:
            return self.resolve_write(thread_id, **kwargs)
        return self.resolve_read(thread_id)


resolver = ThreadIdentityResolver()


def resolve(thread_id: str | None, mode: str = ResolveMode.READ, **kwargs):
    """Resolve a thread id with the module-level resolver."""
    return resolver.resolve(thread_id, mode, **kwargs)
