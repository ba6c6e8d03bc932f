"""
Background tasks for inbound messaging.

Webhook endpoints only authenticate, parse and enqueue; everything that
talks to the assistant or back to the platform runs here, via Django-Q2.
Each step's failure is caught and turned into a best-effort reply, so a
user is never left without an answer because of an internal error.
"""

from __future__ import annotations

import logging

from django.conf import settings

from channels.models import Channel, Platform
from channels.pairing import PairingError, request_pairing
from channels.services import get_channel_for_external_id, get_or_create_channel, update_channel_thread
from chat import engine
from chat.dispatch import dispatch_generation
from chat.exceptions import ThreadNotFoundError
from chat.identity import NOT_YET_MAPPED, project_thread_id, resolver
from chat.models import MessageStatus
from chat.streaming import wait_for_reply
from projects.models import Project

from .adapters import BasePlatformAdapter, InboundMessage, get_adapter
from .directives import DirectiveKind, names_project, parse_directive
from .exceptions import MediaIngestionError
from .media import ingest_media

logger = logging.getLogger(__name__)


# =============================================================================
# Reply Texts
# =============================================================================

BELONGS_TO_PROJECT = 'This bot belongs to project "{project}". Please use the correct bot for your project.'
ALREADY_CONNECTED = "Connected to project: {project}\n\nSend a message to start chatting."
PAIRING_CODE = (
    "Pairing code: {code}\n\n"
    'Enter this code in the messaging settings of project "{project}" to connect your {platform} account.'
)
PAIRING_FAILED = "Something went wrong. Please try again later."
NOT_CONNECTED = "You are not connected to a project. {hint}"
RESET_DONE = "Chat reset. Send a message to start a new conversation."
ATTACHMENT_FAILED = "Failed to process the attachment. Please try again."
NO_RESPONSE = "Sorry, I couldn't generate a response. Please try again."
PROCESSING_FAILED = "Something went wrong while processing your message. Please try again."
ACCESS_APPROVED = "✅ {project} - access approved. Send a message to start chatting."

PHOTO_PROMPT = "User attached a photo."
FILE_PROMPT = "User attached a file."


# =============================================================================
# Task Functions
# =============================================================================


def process_inbound_message(project_id: int, platform: str, message: dict) -> dict:
    """
    Background task handling one inbound platform message.

    Args:
        project_id: Project the webhook was authenticated for
        platform: Platform value (see channels.models.Platform)
        message: InboundMessage as a dict

    Returns:
        Dict with the outcome, for the task result log
    """
    project = Project.objects.filter(id=project_id).first()
    if project is None:
        logger.warning(f"Project {project_id} not found for inbound {platform} message")
        return {"status": "project_not_found"}

    adapter = get_adapter(platform, project)
    inbound = InboundMessage.from_dict(message)
    directive = parse_directive(
        inbound.text,
        bot_username=adapter.bot_username,
        accepts_bare_connect=adapter.accepts_bare_connect,
    )

    try:
        if directive.is_connect:
            outcome = _handle_connect(adapter, inbound, directive.param)
        elif directive.kind == DirectiveKind.RESET:
            outcome = _handle_reset(adapter, inbound)
        else:
            outcome = _handle_content(adapter, inbound)
    except Exception as e:
        logger.exception(
            f"Failed to process {platform} message {inbound.message_id} for project {project.id}"
        )
        adapter.send_message(inbound.external_user_id, PROCESSING_FAILED)
        return {"status": "failed", "error": str(e)}

    return {"status": outcome, "directive": directive.kind.value}


def send_pairing_approval(channel_id: int) -> dict:
    """Background task telling an external user their pairing was approved."""
    channel = Channel.objects.select_related("project").filter(id=channel_id).first()
    if channel is None:
        logger.warning(f"Channel {channel_id} not found for approval notification")
        return {"status": "channel_not_found"}

    adapter = get_adapter(channel.platform, channel.project)
    result = adapter.send_message(channel.external_user_id, ACCESS_APPROVED.format(project=channel.project.name))
    return {"status": "sent" if result.success else "send_failed"}


# =============================================================================
# Directive Handlers
# =============================================================================


def _handle_connect(adapter: BasePlatformAdapter, inbound: InboundMessage, param: str) -> str:
    project = adapter.project
    reply = adapter.send_message

    if param and not names_project(param, project):
        reply(inbound.external_user_id, BELONGS_TO_PROJECT.format(project=project.name))
        return "wrong_project"

    channel = get_channel_for_external_id(adapter.platform, inbound.external_user_id, project=project)
    if channel is not None:
        reply(inbound.external_user_id, ALREADY_CONNECTED.format(project=project.name))
        return "already_connected"

    try:
        pairing = request_pairing(project, adapter.platform, inbound.external_user_id, metadata=inbound.metadata)
    except PairingError:
        logger.exception(f"Could not create pairing request for {adapter.platform}:{inbound.external_user_id}")
        reply(inbound.external_user_id, PAIRING_FAILED)
        return "pairing_failed"

    reply(
        inbound.external_user_id,
        PAIRING_CODE.format(
            code=pairing.code,
            project=project.name,
            platform=Platform(adapter.platform).label,
        ),
    )
    return "pairing_requested"


def _handle_reset(adapter: BasePlatformAdapter, inbound: InboundMessage) -> str:
    project = adapter.project
    channel = get_channel_for_external_id(adapter.platform, inbound.external_user_id, project=project)
    if channel is None:
        adapter.send_message(inbound.external_user_id, NOT_CONNECTED.format(hint=adapter.connect_hint))
        return "not_connected"

    thread_id = channel.thread_id or project_thread_id(project)
    native_id = resolver.resolve_read(thread_id)
    if native_id is not NOT_YET_MAPPED:
        try:
            engine.clear_thread(engine.get_thread(native_id))
        except ThreadNotFoundError:
            logger.warning(f"Channel {channel.id} points at missing thread {native_id}")

    update_channel_thread(channel.id, thread_id)
    adapter.send_message(inbound.external_user_id, RESET_DONE)
    return "reset"


def _handle_content(adapter: BasePlatformAdapter, inbound: InboundMessage) -> str:
    project = adapter.project
    external_user_id = inbound.external_user_id

    channel = get_channel_for_external_id(adapter.platform, external_user_id, project=project)
    if channel is None:
        adapter.send_message(external_user_id, NOT_CONNECTED.format(hint=adapter.connect_hint))
        return "not_connected"

    # Bump activity and keep the profile data current
    get_or_create_channel(adapter.platform, external_user_id, project, metadata=inbound.metadata or None)

    actor = channel.bound_user or project.created_by
    adapter.send_typing(external_user_id)

    file_ids = []
    if inbound.media is not None:
        try:
            file_ids.append(ingest_media(adapter, inbound.media, project, actor))
        except MediaIngestionError:
            logger.exception(
                f"Failed to ingest {inbound.media.kind} from {adapter.platform} message {inbound.message_id}"
            )
            adapter.send_message(external_user_id, ATTACHMENT_FAILED)
            return "attachment_failed"

    prompt = inbound.text.strip()
    if not prompt:
        prompt = PHOTO_PROMPT if inbound.media and inbound.media.kind in ("photo", "image") else FILE_PROMPT

    # Messages from every surface land in the project's primary thread, so
    # they show up in the web chat too
    thread_id = project_thread_id(project)
    if channel.thread_id != thread_id:
        update_channel_thread(channel.id, thread_id)

    handle = dispatch_generation(
        thread_id,
        project,
        actor,
        prompt,
        file_ids,
        origin=adapter.platform,
    )
    outcome = wait_for_reply(handle.native_thread_id, handle.message_id)

    if outcome.status == MessageStatus.ABORTED:
        logger.info(f"Reply {handle.message_id} was aborted; nothing delivered to {adapter.platform}")
        return "aborted"

    if not outcome.delivered:
        adapter.send_message(external_user_id, NO_RESPONSE)
        return "no_response"

    adapter.send_message(external_user_id, outcome.text)
    return "replied"


# =============================================================================
# Queue Helpers
# =============================================================================


def _run_inline() -> bool:
    return getattr(settings, "THREADLINE_RUN_TASKS_INLINE", False)


def queue_inbound_message(project_id: int, platform: str, message: dict) -> str | None:
    """
    Queue processing of an inbound message.

    Returns:
        Task ID if queued, None if the task ran inline
    """
    if _run_inline():
        process_inbound_message(project_id, platform, message)
        return None

    from django_q.tasks import async_task

    task_id = async_task(
        "platform_adapters.tasks.process_inbound_message",
        project_id,
        platform,
        message,
        task_name=f"inbound_{platform}_{project_id}",
        timeout=300,  # reply wait plus media transfer
    )

    logger.debug(f"Queued inbound {platform} message for project {project_id}: task {task_id}")
    return task_id


def queue_pairing_approval(channel_id: int) -> str | None:
    """
    Queue the approval notification for a freshly paired channel.

    Returns:
        Task ID if queued, None if the task ran inline
    """
    if _run_inline():
        send_pairing_approval(channel_id)
        return None

    from django_q.tasks import async_task

    task_id = async_task(
        "platform_adapters.tasks.send_pairing_approval",
        channel_id,
        task_name=f"pairing_approval_{channel_id}",
        timeout=60,
    )

    logger.debug(f"Queued pairing approval for channel {channel_id}: task {task_id}")
    return task_id
