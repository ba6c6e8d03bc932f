"""
Generation dispatch.

Fire-and-forget: the user message and an in-progress assistant message are
recorded, a worker task is queued, and control returns immediately. The
reply is observed through the streaming sync query.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from . import engine
from .exceptions import ThreadResolutionError
from .identity import resolver
from .models import MessageOrigin, MessageRole, MessageStatus
from .tasks import queue_generation

logger = logging.getLogger(__name__)


@dataclass
class GenerationHandle:
    """Where to look for the reply of a dispatched generation."""

    native_thread_id: str
    message_id: int
    user_message_id: int
    task_id: str | None = None


def dispatch_generation(
    thread_id: str,
    project,
    actor,
    prompt_text: str,
    media_file_ids=(),
    *,
    origin: str = MessageOrigin.WEB,
) -> GenerationHandle:
    """
    Record a user message and schedule the assistant reply.

    ``thread_id`` may be legacy or native; it is resolved in write mode, so
    the first dispatch for a legacy id creates its native thread.

    Args:
        thread_id: Thread to post into
        project: Project the thread belongs to
        actor: User on whose behalf the message is sent
        prompt_text: User message text
        media_file_ids: Ids of StoredFile records attached to the message
        origin: Surface the message arrived through

    Returns:
        GenerationHandle identifying the in-progress reply

    Raises:
        ThreadResolutionError: If the thread belongs to another project
    """
    native_id = resolver.resolve_write(thread_id, project=project, user=actor)
    conversation = engine.get_thread(native_id)
    if conversation.project_id != project.id:
        raise ThreadResolutionError(
            f"Thread {thread_id} belongs to project {conversation.project_id}, not {project.id}"
        )

    with transaction.atomic():
        user_message = engine.append_message(
            conversation,
            MessageRole.USER,
            prompt_text,
            origin=origin,
            file_ids=media_file_ids,
        )
        reply = engine.append_message(
            conversation,
            MessageRole.ASSISTANT,
            status=MessageStatus.IN_PROGRESS,
            origin=origin,
            reply_to=user_message,
        )

    task_id = queue_generation(reply.id)

    logger.info(
        f"Dispatched generation for thread {native_id} (message {reply.id}, origin {origin})"
    )
    return GenerationHandle(
        native_thread_id=native_id,
        message_id=reply.id,
        user_message_id=user_message.id,
        task_id=task_id,
    )
