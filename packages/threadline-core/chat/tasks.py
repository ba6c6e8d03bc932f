"""
Background tasks for assistant reply generation.

Uses Django-Q2 for async task execution. The worker never blocks the
request that dispatched it; the reply is observed through the streaming
sync query by whoever is interested.
"""

from __future__ import annotations

import logging

from django.conf import settings

from . import engine
from .generation import get_generator
from .models import Message, MessageStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Task Functions
# =============================================================================


def run_generation(message_id: int) -> dict:
    """
    Background task producing one assistant reply.

    Each fragment from the generator is stored as a stream delta as soon as
    it arrives. The task always runs to completion, even if the thread was
    aborted meanwhile; the message is then committed as ``aborted`` and its
    output is ignored by every consumer.

    Args:
        message_id: ID of the in-progress assistant Message

    Returns:
        Dict with the final status
    """
    message = (
        Message.objects.select_related('conversation', 'reply_to')
        .filter(id=message_id)
        .first()
    )
    if message is None:
        logger.warning(f"Message {message_id} not found for generation")
        return {"message_id": message_id, "status": "not_found"}

    if message.status != MessageStatus.IN_PROGRESS:
        logger.info(f"Message {message_id} already {message.status}; skipping generation")
        return {"message_id": message_id, "status": message.status}

    conversation = message.conversation
    prompt = message.reply_to.content if message.reply_to else ""
    file_ids = message.reply_to.file_ids if message.reply_to else []

    try:
        from files.models import StoredFile

        generator = get_generator()
        files = list(StoredFile.objects.filter(id__in=file_ids, project_id=conversation.project_id))
        history = engine.history(conversation, before=message.reply_to or message)

        for chunk in generator.stream(
            conversation=conversation,
            history=history,
            prompt=prompt,
            files=files,
        ):
            if chunk:
                engine.append_delta(message, chunk)

    except Exception as e:
        logger.exception(f"Generation failed for message {message_id}")
        engine.finish_message(message, status=MessageStatus.FAILED, error=str(e))
        return {"message_id": message_id, "status": MessageStatus.FAILED, "error": str(e)}

    engine.finish_message(message)
    logger.info(f"Generation for message {message_id} ended as {message.status}")
    return {"message_id": message_id, "status": message.status}


# =============================================================================
# Queue Helpers
# =============================================================================


def queue_generation(message_id: int) -> str | None:
    """
    Queue reply generation for an in-progress assistant message.

    Args:
        message_id: ID of the assistant Message to generate

    Returns:
        Task ID if queued, None if the task ran inline
    """
    if getattr(settings, "THREADLINE_RUN_TASKS_INLINE", False):
        run_generation(message_id)
        return None

    from django_q.tasks import async_task

    task_id = async_task(
        "chat.tasks.run_generation",
        message_id,
        task_name=f"generate_reply_{message_id}",
        timeout=600,  # 10 minute ceiling for a single reply
    )

    logger.debug(f"Queued generation for message {message_id}: task {task_id}")
    return task_id
