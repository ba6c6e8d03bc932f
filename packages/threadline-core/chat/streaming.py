"""
Streaming synchronization query.

Live subscribers poll ``sync_thread`` to follow a thread. Each call returns
two things:

* a page of committed messages in creation order, with an opaque cursor to
  continue from,
* stream state for assistant replies that are in progress, finished or
  aborted (all three together, so a subscriber that is mid-stream when the
  reply finishes still receives the final deltas).

Deltas are keyed by ``(message_id, seq)``. Clients pass back the next seq
they still need per message in ``stream_cursors``; receiving a delta twice
is harmless. Concatenating a finished reply's deltas reproduces its
committed body exactly.

The query never raises: failures degrade to an empty result with
``meta.error`` set, so a polling subscriber is never torn down.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from django.conf import settings
from django.db.models import Q

from .abort import suppression_cutoff
from .engine import joined_deltas
from .identity import NOT_YET_MAPPED, resolver
from .models import Conversation, Message, MessageRole, MessageStatus

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

STREAM_STATUSES = (
    MessageStatus.IN_PROGRESS,
    MessageStatus.FINISHED,
    MessageStatus.ABORTED,
)


@dataclass
class MessageItem:
    """A committed message as shown to subscribers."""

    id: int
    role: str
    content: str
    status: str
    order: int
    origin: str
    file_ids: list[int]
    created_at: datetime


@dataclass
class DeltaItem:
    seq: int
    text: str


@dataclass
class StreamState:
    """Deltas of one assistant reply from the client's cursor onwards."""

    message_id: int
    status: str
    deltas: list[DeltaItem] = field(default_factory=list)
    next_seq: int = 0


@dataclass
class SyncMeta:
    requested_thread_id: str
    native_thread_id: str | None = None
    mapping_found: bool = False
    waiting: bool = False
    error: str | None = None


@dataclass
class SyncResult:
    page: list[MessageItem]
    is_done: bool
    continue_cursor: str
    streams: list[StreamState]
    meta: SyncMeta


def empty_result(thread_id: str, *, waiting: bool = False, error: str | None = None) -> SyncResult:
    return SyncResult(
        page=[],
        is_done=True,
        continue_cursor="",
        streams=[],
        meta=SyncMeta(requested_thread_id=thread_id, waiting=waiting, error=error),
    )


def _parse_cursor(cursor: str | None) -> int:
    if not cursor:
        return -1
    return int(cursor)


def sync_thread(
    thread_id: str,
    *,
    cursor: str | None = None,
    num_items: int = DEFAULT_PAGE_SIZE,
    stream_cursors: dict[int, int] | None = None,
) -> SyncResult:
    """
    Return committed messages after ``cursor`` and live stream state.

    An unmapped legacy id yields an explicitly empty result with
    ``meta.waiting`` set: the thread simply has no messages yet.
    """
    try:
        native_id = resolver.resolve_read(thread_id)
        if native_id is NOT_YET_MAPPED:
            return empty_result(thread_id, waiting=True)

        conversation = Conversation.objects.filter(native_id=native_id).first()
        if conversation is None:
            result = empty_result(thread_id)
            result.meta.native_thread_id = native_id
            result.meta.mapping_found = True
            return result

        return _sync_conversation(conversation, thread_id, cursor, num_items, stream_cursors or {})
    except Exception as exc:
        logger.exception(f"Streaming sync failed for thread {thread_id}")
        return empty_result(thread_id, error=str(exc))


def _sync_conversation(
    conversation: Conversation,
    thread_id: str,
    cursor: str | None,
    num_items: int,
    stream_cursors: dict[int, int],
) -> SyncResult:
    after = _parse_cursor(cursor)
    aborted_at = conversation.aborted_at

    # One extra row tells us whether more follow
    candidates = list(
        conversation.messages.filter(order__gt=after).order_by('order')[: num_items + 1]
    )

    # The page is the committed prefix: it stops at the first reply still in
    # progress, so the cursor never moves past a message that has not been
    # committed yet. A reply overtaken by an abort counts as committed: its
    # visible body is fixed even while its worker keeps running.
    page: list[MessageItem] = []
    blocked = False
    for message in candidates[:num_items]:
        if message.status == MessageStatus.IN_PROGRESS and suppression_cutoff(message, aborted_at) is None:
            blocked = True
            break
        page.append(_message_item(message, aborted_at))

    is_done = not blocked and len(candidates) <= num_items
    continue_cursor = str(page[-1].order) if page else (cursor or "")

    streams = _stream_states(conversation, after, aborted_at, stream_cursors)

    return SyncResult(
        page=page,
        is_done=is_done,
        continue_cursor=continue_cursor,
        streams=streams,
        meta=SyncMeta(
            requested_thread_id=thread_id,
            native_thread_id=conversation.native_id,
            mapping_found=True,
        ),
    )


def _message_item(message: Message, aborted_at) -> MessageItem:
    status = message.status
    content = message.content
    cutoff = suppression_cutoff(message, aborted_at)
    if cutoff is not None:
        status = MessageStatus.ABORTED
        content = joined_deltas(message, until=cutoff)

    return MessageItem(
        id=message.id,
        role=message.role,
        content=content,
        status=status,
        order=message.order,
        origin=message.origin,
        file_ids=list(message.file_ids or []),
        created_at=message.created_at,
    )


def _stream_states(conversation, after: int, aborted_at, stream_cursors) -> list[StreamState]:
    """
    Stream state for assistant replies past the cursor, plus any reply the
    client is explicitly following.
    """
    wanted = Q(order__gt=after)
    if stream_cursors:
        wanted |= Q(id__in=list(stream_cursors))

    messages = conversation.messages.filter(
        wanted,
        role=MessageRole.ASSISTANT,
        status__in=STREAM_STATUSES,
    ).order_by('order')

    states = []
    for message in messages:
        start = max(int(stream_cursors.get(message.id, 0)), 0)
        deltas = message.deltas.filter(seq__gte=start).order_by('seq')

        status = message.status
        cutoff = suppression_cutoff(message, aborted_at)
        if cutoff is not None:
            status = MessageStatus.ABORTED
            deltas = deltas.filter(created_at__lte=cutoff)

        items = [DeltaItem(seq=d.seq, text=d.text) for d in deltas]
        next_seq = items[-1].seq + 1 if items else start
        states.append(StreamState(message_id=message.id, status=status, deltas=items, next_seq=next_seq))
    return states


# =============================================================================
# Reply polling
# =============================================================================


@dataclass
class ReplyOutcome:
    """Final state of a reply as observed through the streaming query."""

    status: str
    text: str = ""

    @property
    def delivered(self) -> bool:
        return self.status == MessageStatus.FINISHED and bool(self.text.strip())


REPLY_TIMEOUT = "timeout"


def wait_for_reply(
    thread_id: str,
    message_id: int,
    *,
    timeout: float | None = None,
    poll_interval: float | None = None,
) -> ReplyOutcome:
    """
    Poll the streaming query until an assistant reply settles.

    Output of an aborted generation is never returned. Gives up after
    ``timeout`` seconds (``THREADLINE_REPLY_TIMEOUT`` by default) with a
    ``timeout`` outcome.
    """
    if timeout is None:
        timeout = getattr(settings, "THREADLINE_REPLY_TIMEOUT", 120)
    if poll_interval is None:
        poll_interval = getattr(settings, "THREADLINE_REPLY_POLL_INTERVAL", 1.0)

    order = Message.objects.filter(id=message_id).values_list('order', flat=True).first()
    if order is None:
        return ReplyOutcome(status=MessageStatus.FAILED)

    cursor = str(order - 1) if order > 0 else None
    deadline = time.monotonic() + timeout
    parts: dict[int, str] = {}

    while True:
        result = sync_thread(
            thread_id,
            cursor=cursor,
            num_items=1,
            stream_cursors={message_id: len(parts)},
        )

        for item in result.page:
            if item.id == message_id and item.status == MessageStatus.FAILED:
                return ReplyOutcome(status=MessageStatus.FAILED)

        for state in result.streams:
            if state.message_id != message_id:
                continue
            if state.status == MessageStatus.ABORTED:
                return ReplyOutcome(status=MessageStatus.ABORTED)
            for delta in state.deltas:
                parts[delta.seq] = delta.text
            if state.status == MessageStatus.FINISHED:
                text = "".join(parts[seq] for seq in sorted(parts))
                return ReplyOutcome(status=MessageStatus.FINISHED, text=text)

        if time.monotonic() >= deadline:
            logger.warning(f"Timed out waiting for reply {message_id} in thread {thread_id}")
            return ReplyOutcome(status=REPLY_TIMEOUT, text="")

        time.sleep(poll_interval)
