"""
Cooperative cancellation of assistant replies.

A generation task cannot be preempted once scheduled. Aborting a thread only
records an abort epoch (``Conversation.aborted_at``); every consumer of
generated output then treats output from generations that started at or
before that epoch as discarded:

* the streaming sync query reports such messages as ``aborted`` and hides
  deltas recorded after the epoch,
* the reply poller never delivers them to a messaging platform,
* the generation task itself commits the message as ``aborted`` when it
  finishes.

The task keeps running in the background; its results are simply ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.utils import timezone

logger = logging.getLogger(__name__)

ABORT_MESSAGE = "Response stopped. The AI may still complete in the background but results will be ignored."


def request_abort(thread_id: str) -> bool:
    """
    Record an abort epoch on a thread.

    The id is resolved in read mode, so aborting an unmapped legacy id
    creates nothing.

    Returns:
        True if a thread was found and marked, False otherwise
    """
    from .identity import NOT_YET_MAPPED, resolver
    from .models import Conversation

    native_id = resolver.resolve_read(thread_id)
    if native_id is NOT_YET_MAPPED:
        logger.info(f"Abort requested for unmapped thread {thread_id}; nothing to stop")
        return False

    updated = Conversation.objects.filter(native_id=native_id).update(aborted_at=timezone.now())
    if not updated:
        logger.warning(f"Abort requested for unknown thread {native_id}")
        return False

    logger.info(f"Abort recorded for thread {native_id} (requested as {thread_id})")
    return True


def suppression_cutoff(message, aborted_at: datetime | None = None) -> datetime | None:
    """
    Return the abort epoch that suppresses a message's output, if any.

    Output recorded after the returned time must not be shown or delivered.
    Messages that are not generations, that started after the most recent
    abort, or that had already finished when it was requested are never
    suppressed.
    """
    if aborted_at is None:
        aborted_at = message.conversation.aborted_at
    started = message.generation_started_at
    if aborted_at is None or started is None:
        return None
    if message.finished_at is not None and message.finished_at < aborted_at:
        return None
    if started <= aborted_at:
        return aborted_at
    return None


def is_suppressed(message, aborted_at: datetime | None = None) -> bool:
    return suppression_cutoff(message, aborted_at) is not None
