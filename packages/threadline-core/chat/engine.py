"""
Conversation engine primitives.

Everything that writes conversation state goes through these functions:
minting threads, appending messages and deltas, committing replies and
clearing a thread. Readers (streaming sync, reply polling) only query.
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from .abort import is_suppressed
from .exceptions import ThreadNotFoundError
from .models import (
    Conversation,
    Message,
    MessageOrigin,
    MessageRole,
    MessageStatus,
    StreamDelta,
)

logger = logging.getLogger(__name__)

# Attempts at allocating an order/seq before giving up on a concurrent writer
MAX_ALLOCATION_ATTEMPTS = 5


def mint_thread(*, project, created_by=None, title: str = "") -> Conversation:
    """Create a new engine thread for a project and return it."""
    conversation = Conversation.objects.create(
        organization_id=project.organization_id,
        project=project,
        created_by=created_by,
        title=title,
    )
    logger.info(f"Minted thread {conversation.native_id} for project {project.id}")
    return conversation


def get_thread(native_id: str) -> Conversation:
    """
    Load a conversation by its native id.

    Raises:
        ThreadNotFoundError: If no conversation has that id
    """
    conversation = Conversation.objects.select_related('project').filter(native_id=native_id).first()
    if conversation is None:
        raise ThreadNotFoundError(f"Thread {native_id} not found")
    return conversation


def append_message(
    conversation: Conversation,
    role: str,
    content: str = "",
    *,
    status: str = MessageStatus.FINISHED,
    origin: str = MessageOrigin.WEB,
    file_ids=(),
    reply_to: Message | None = None,
) -> Message:
    """
    Append a message at the end of a conversation.

    The order is allocated as ``max(order) + 1`` and guarded by the
    (conversation, order) unique constraint; a concurrent writer taking the
    same slot makes this retry with the next one.
    """
    now = timezone.now()
    is_generation = role == MessageRole.ASSISTANT and status == MessageStatus.IN_PROGRESS

    for _attempt in range(MAX_ALLOCATION_ATTEMPTS):
        last = conversation.messages.aggregate(last=Max('order'))['last']
        order = 0 if last is None else last + 1
        try:
            with transaction.atomic():
                message = Message.objects.create(
                    conversation=conversation,
                    role=role,
                    content=content,
                    status=status,
                    order=order,
                    origin=origin,
                    file_ids=list(file_ids),
                    reply_to=reply_to,
                    generation_started_at=now if is_generation else None,
                    finished_at=None if is_generation else now,
                )
        except IntegrityError:
            logger.debug(f"Order {order} taken in thread {conversation.native_id}, retrying")
            continue

        Conversation.objects.filter(pk=conversation.pk).update(updated_at=now)
        return message

    raise IntegrityError(f"Could not allocate message order in thread {conversation.native_id}")


def append_delta(message: Message, text: str) -> StreamDelta:
    """Record the next fragment of an in-progress assistant reply."""
    for _attempt in range(MAX_ALLOCATION_ATTEMPTS):
        last = message.deltas.aggregate(last=Max('seq'))['last']
        seq = 0 if last is None else last + 1
        try:
            with transaction.atomic():
                return StreamDelta.objects.create(
                    message=message,
                    seq=seq,
                    text=text,
                    created_at=timezone.now(),
                )
        except IntegrityError:
            continue

    raise IntegrityError(f"Could not allocate delta seq for message {message.id}")


def joined_deltas(message: Message, until=None) -> str:
    """Concatenate a message's deltas in seq order, optionally up to a cutoff time."""
    deltas = message.deltas.order_by('seq')
    if until is not None:
        deltas = deltas.filter(created_at__lte=until)
    return "".join(deltas.values_list('text', flat=True))


def finish_message(message: Message, status: str | None = None, error: str = "") -> Message:
    """
    Commit an assistant reply.

    The committed body is the concatenation of the message's deltas. Unless
    an explicit status is given, the message ends ``aborted`` when its thread
    was aborted at or after the generation started, and ``finished``
    otherwise.
    """
    message.conversation.refresh_from_db(fields=['aborted_at'])

    if status is None:
        status = MessageStatus.ABORTED if is_suppressed(message) else MessageStatus.FINISHED

    message.content = joined_deltas(message)
    message.status = status
    message.error = error
    message.finished_at = timezone.now()
    message.save(update_fields=['content', 'status', 'error', 'finished_at'])

    logger.info(f"Message {message.id} committed as {status} ({len(message.content)} chars)")
    return message


def history(conversation: Conversation, before: Message | None = None) -> list[Message]:
    """Committed, non-suppressed messages to hand to a generator as context."""
    messages = conversation.messages.filter(status=MessageStatus.FINISHED)
    if before is not None:
        messages = messages.filter(order__lt=before.order)
    return list(messages.order_by('order'))


def clear_thread(conversation: Conversation) -> int:
    """
    Remove every message from a thread, keeping the thread and its id.

    Returns:
        Number of messages deleted
    """
    with transaction.atomic():
        _total, per_model = conversation.messages.all().delete()
        Conversation.objects.filter(pk=conversation.pk).update(aborted_at=None, updated_at=timezone.now())

    count = per_model.get(Message._meta.label, 0)
    logger.info(f"Cleared {count} messages from thread {conversation.native_id}")
    return count
