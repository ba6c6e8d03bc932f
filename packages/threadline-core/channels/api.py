"""
API endpoints for messaging channels and pairing.

Team members list and disconnect the channels of their projects, and
redeem the pairing codes external users receive from the bots.
"""

import logging
from urllib.parse import quote

from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from accounts.utils import get_accessible_project

from .models import Channel
from .pairing import (
    PairingAuthError,
    PairingError,
    PairingNotFoundError,
    list_pending_requests,
    redeem_pairing_code,
    reject_pairing_request,
)
from .schemas import (
    ChannelListResponse,
    ChannelOut,
    ConnectLinksResponse,
    DisconnectRequest,
    DisconnectResponse,
    PairingRequestListResponse,
    PairingRequestOut,
    RedeemRequest,
)
from .services import deactivate_channel, list_channels_for_project

router = Router()
logger = logging.getLogger(__name__)


def _require_project(request: HttpRequest, project_id: int):
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")
    project = get_accessible_project(request.user, project_id)
    if project is None:
        raise HttpError(404, f"Project {project_id} not found or access denied")
    return project


def _pairing_http_error(exc: PairingError) -> HttpError:
    if isinstance(exc, PairingAuthError):
        return HttpError(401, str(exc))
    if isinstance(exc, PairingNotFoundError):
        return HttpError(404, str(exc))
    return HttpError(400, str(exc))


@router.get("/projects/{project_id}/channels", response=ChannelListResponse)
def list_channels(request: HttpRequest, project_id: int, active_only: bool = False):
    """List the messaging channels of a project."""
    project = _require_project(request, project_id)
    channels = [ChannelOut.model_validate(c) for c in list_channels_for_project(project, active_only=active_only)]
    return ChannelListResponse(channels=channels, total=len(channels))


@router.post("/projects/{project_id}/channels/disconnect", response=DisconnectResponse)
def disconnect_channel(request: HttpRequest, project_id: int, payload: DisconnectRequest):
    """
    Disconnect a channel from a project.

    The channel is deactivated rather than deleted; the external user has to
    pair again to reconnect.
    """
    project = _require_project(request, project_id)
    if not Channel.objects.filter(pk=payload.channel_id, project=project).exists():
        raise HttpError(404, f"Channel {payload.channel_id} not found")

    success = deactivate_channel(payload.channel_id)
    logger.info(
        f"User {request.user.pk} disconnected channel {payload.channel_id} from project {project.id}"
    )
    return DisconnectResponse(success=success)


@router.get("/projects/{project_id}/pairing-requests", response=PairingRequestListResponse)
def list_pairing_requests(request: HttpRequest, project_id: int):
    """List pending pairing requests of a project."""
    project = _require_project(request, project_id)
    pending = [PairingRequestOut.model_validate(p) for p in list_pending_requests(project)]
    return PairingRequestListResponse(requests=pending, total=len(pending))


@router.get("/projects/{project_id}/connect-links", response=ConnectLinksResponse)
def connect_links(request: HttpRequest, project_id: int):
    """Links external users follow to start pairing with this project's bots."""
    project = _require_project(request, project_id)

    telegram_url = None
    if project.telegram_bot_username:
        telegram_url = f"https://t.me/{project.telegram_bot_username}?start={project.id}"

    whatsapp_url = None
    digits = "".join(ch for ch in project.whatsapp_number if ch.isdigit())
    if digits:
        whatsapp_url = f"https://wa.me/{digits}?text={quote(f'connect {project.id}')}"

    return ConnectLinksResponse(telegram_url=telegram_url, whatsapp_url=whatsapp_url)


@router.post("/pairing/redeem", response=ChannelOut)
def redeem(request: HttpRequest, payload: RedeemRequest):
    """
    Redeem a pairing code.

    The signed-in user must belong to the team owning the project the code
    was issued for. The resulting channel is bound to that user.
    """
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")

    project = None
    if payload.project_id is not None:
        project = _require_project(request, payload.project_id)

    try:
        channel = redeem_pairing_code(payload.code, request.user, project=project)
    except PairingError as exc:
        raise _pairing_http_error(exc)

    return ChannelOut.model_validate(channel)


@router.post("/pairing-requests/{request_id}/reject", response=PairingRequestOut)
def reject(request: HttpRequest, request_id: int):
    """Reject a pending pairing request."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Authentication required")

    try:
        pairing = reject_pairing_request(request_id, request.user)
    except PairingError as exc:
        raise _pairing_http_error(exc)

    return PairingRequestOut.model_validate(pairing)
