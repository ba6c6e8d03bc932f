"""
Django Ninja API for thread endpoints.

Web chat clients post messages, poll the streaming sync query and stop
replies here. Thread ids may be legacy or native; every endpoint resolves
them the same way the messaging channels do.
"""

import logging
from dataclasses import asdict

from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from accounts.utils import get_accessible_project
from files.models import StoredFile

from .abort import ABORT_MESSAGE, request_abort
from .dispatch import dispatch_generation
from .exceptions import ChatError
from .identity import NOT_YET_MAPPED, ThreadIdKind, project_thread_id, resolver
from .models import Conversation, MessageOrigin
from .schemas import (
    AbortResponse,
    ProjectThreadResponse,
    SendMessageRequest,
    SendMessageResponse,
    SyncRequest,
    SyncResponse,
    ThreadInfoResponse,
)
from .streaming import empty_result, sync_thread

router = Router()
logger = logging.getLogger(__name__)


def _require_user(request: HttpRequest):
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")
    return request.user


def _accessible_conversation(request: HttpRequest, thread_id: str):
    """
    Resolve a thread id in read mode and check the caller may see it.

    Returns:
        The Conversation, or None when the id is not mapped yet

    Raises:
        HttpError: 404 if the thread exists but belongs to another team
    """
    native_id = resolver.resolve_read(thread_id)
    if native_id is NOT_YET_MAPPED:
        return None

    conversation = Conversation.objects.for_user(request.user).filter(native_id=native_id).first()
    if conversation is None:
        raise HttpError(404, f"Thread {thread_id} not found or access denied")
    return conversation


@router.post("/threads/messages", response=SendMessageResponse)
def send_message(request: HttpRequest, payload: SendMessageRequest):
    """
    Post a web chat message and schedule the assistant reply.

    Without a thread id the message goes to the project's primary thread,
    the same one its paired messaging channels write to.
    """
    user = _require_user(request)
    project = get_accessible_project(user, payload.project_id)
    if project is None:
        raise HttpError(404, f"Project {payload.project_id} not found or access denied")

    thread_id = payload.thread_id or project_thread_id(project)
    if resolver.classify(thread_id) == ThreadIdKind.EMPTY:
        thread_id = project_thread_id(project)

    conversation = _accessible_conversation(request, thread_id)
    if conversation is not None and conversation.project_id != project.id:
        raise HttpError(400, "Thread does not belong to this project")

    # Writing to an unmapped legacy id claims it, so only the project's own
    # thread may be claimed here
    if (
        conversation is None
        and resolver.classify(thread_id) == ThreadIdKind.LEGACY
        and thread_id != project_thread_id(project)
    ):
        logger.warning(
            f"User {user.pk} tried to start unmapped thread {thread_id} in project {project.id}"
        )
        raise HttpError(400, "Thread does not belong to this project")

    file_ids = sorted(set(payload.file_ids))
    if file_ids:
        found = StoredFile.objects.filter(id__in=file_ids, project=project).count()
        if found != len(file_ids):
            raise HttpError(400, "One or more files do not belong to this project")

    try:
        handle = dispatch_generation(
            thread_id,
            project,
            user,
            payload.prompt,
            file_ids,
            origin=MessageOrigin.WEB,
        )
    except ChatError as exc:
        raise HttpError(400, str(exc))

    return SendMessageResponse(
        thread_id=thread_id,
        native_thread_id=handle.native_thread_id,
        message_id=handle.message_id,
    )


@router.post("/threads/{thread_id}/sync", response=SyncResponse)
def sync(request: HttpRequest, thread_id: str, payload: SyncRequest):
    """
    Streaming synchronization query.

    Returns committed messages after the cursor and live deltas for replies
    being generated. Unmapped legacy ids return an empty result with
    ``meta.waiting`` set rather than an error.
    """
    _require_user(request)
    if _accessible_conversation(request, thread_id) is None:
        return asdict(empty_result(thread_id, waiting=True))

    result = sync_thread(
        thread_id,
        cursor=payload.cursor,
        num_items=payload.num_items,
        stream_cursors=payload.stream_cursors,
    )
    return asdict(result)


@router.get("/threads/{thread_id}/info", response=ThreadInfoResponse)
def thread_info(request: HttpRequest, thread_id: str):
    """Describe how a thread id resolves."""
    _require_user(request)
    is_legacy = resolver.classify(thread_id) == ThreadIdKind.LEGACY
    conversation = _accessible_conversation(request, thread_id)

    return ThreadInfoResponse(
        exists=conversation is not None,
        native_thread_id=conversation.native_id if conversation else None,
        is_legacy_id=is_legacy,
        has_mapping=is_legacy and conversation is not None,
    )


@router.post("/threads/{thread_id}/abort", response=AbortResponse)
def abort(request: HttpRequest, thread_id: str):
    """
    Stop the reply being generated in a thread.

    Cancellation is cooperative: the generation keeps running in the
    background but its output is discarded.
    """
    _require_user(request)
    if _accessible_conversation(request, thread_id) is None:
        return AbortResponse(success=False, message="No active thread to stop.")

    if not request_abort(thread_id):
        return AbortResponse(success=False, message="No active thread to stop.")
    return AbortResponse(success=True, message=ABORT_MESSAGE)


@router.get("/projects/{project_id}/thread", response=ProjectThreadResponse)
def project_thread(request: HttpRequest, project_id: int):
    """Return the id of a project's primary thread."""
    user = _require_user(request)
    project = get_accessible_project(user, project_id)
    if project is None:
        raise HttpError(404, f"Project {project_id} not found or access denied")

    thread_id = project_thread_id(project)
    native_id = resolver.resolve_read(thread_id)
    return ProjectThreadResponse(
        thread_id=thread_id,
        native_thread_id=None if native_id is NOT_YET_MAPPED else native_id,
    )
