"""
Pairing service.

An external messaging identity cannot authenticate itself, so it asks for a
short pairing code instead. A signed-in team member redeems the code, which
creates (or reactivates) the identity's channel bound to that member.

States per (project, platform, external_user_id):

    NONE -> PENDING -> APPROVED | REJECTED | EXPIRED

Expiry is enforced lazily: a pending request past ``expires_at`` becomes
EXPIRED the next time it is requested or redeemed. There is no sweeper.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.utils import user_can_access_project

from .models import PAIRING_CODE_ALPHABET, PAIRING_CODE_LENGTH, Channel, PairingRequest, PairingStatus
from .services import get_or_create_channel

logger = logging.getLogger(__name__)

# Attempts at drawing a code not held by another pending request
MAX_CODE_ATTEMPTS = 10


class PairingError(Exception):
    """Base exception for pairing operations."""
    pass


class PairingAuthError(PairingError):
    """The acting user is not signed in or not allowed to act on the project."""
    pass


class PairingNotFoundError(PairingError):
    """No pairing request matches the code or id."""
    pass


class PairingAlreadyResolvedError(PairingError):
    """The pairing request was already approved, rejected or expired."""
    pass


class PairingExpiredError(PairingError):
    """The pairing code is past its expiry time."""
    pass


@dataclass
class PairingResult:
    code: str
    created: bool
    request_id: int
    expires_at: datetime


def generate_pairing_code() -> str:
    return "".join(secrets.choice(PAIRING_CODE_ALPHABET) for _ in range(PAIRING_CODE_LENGTH))


def normalize_code(code: Optional[str]) -> str:
    """Uppercase a code and drop whitespace so retyped codes still match."""
    return "".join((code or "").split()).upper()


def get_pairing_ttl() -> timedelta:
    return getattr(settings, "THREADLINE_PAIRING_CODE_TTL", timedelta(hours=1))


def _expire(pairing: PairingRequest, now: datetime) -> None:
    PairingRequest.objects.filter(pk=pairing.pk, status=PairingStatus.PENDING).update(
        status=PairingStatus.EXPIRED,
        resolved_at=now,
    )
    logger.info(f"Pairing request {pairing.id} expired")


def _pending_for(project, platform: str, external_user_id: str) -> Optional[PairingRequest]:
    return PairingRequest.objects.filter(
        project=project,
        platform=platform,
        external_user_id=external_user_id,
        status=PairingStatus.PENDING,
    ).first()


def request_pairing(project, platform: str, external_user_id, metadata: Optional[dict] = None) -> PairingResult:
    """
    Return the pending pairing code for an identity, minting one if needed.

    Idempotent while a request is pending: repeated calls return the same
    code. An expired pending request is closed and replaced.

    Raises:
        PairingError: If no unused code could be drawn
    """
    external_user_id = str(external_user_id)
    now = timezone.now()

    existing = _pending_for(project, platform, external_user_id)
    if existing is not None:
        if existing.expires_at > now:
            return PairingResult(existing.pairing_code, False, existing.id, existing.expires_at)
        _expire(existing, now)

    expires_at = now + get_pairing_ttl()
    for _attempt in range(MAX_CODE_ATTEMPTS):
        code = generate_pairing_code()
        try:
            with transaction.atomic():
                pairing = PairingRequest.objects.create(
                    project=project,
                    platform=platform,
                    external_user_id=external_user_id,
                    pairing_code=code,
                    metadata=metadata or {},
                    expires_at=expires_at,
                )
        except IntegrityError:
            # Either a concurrent request for the same identity won, or the
            # code is held by another pending request
            racing = _pending_for(project, platform, external_user_id)
            if racing is not None:
                return PairingResult(racing.pairing_code, False, racing.id, racing.expires_at)
            continue

        logger.info(
            f"Pairing requested for {platform}:{external_user_id} in project {project.id} "
            f"(request {pairing.id})"
        )
        return PairingResult(code, True, pairing.id, expires_at)

    raise PairingError("Could not allocate a unique pairing code")


def redeem_pairing_code(code: str, acting_user, *, project=None) -> Channel:
    """
    Redeem a pairing code on behalf of a signed-in team member.

    The transition out of PENDING is a conditional update, so of two
    concurrent redemptions of one code exactly one succeeds.

    Args:
        code: Code as typed by the user (case and whitespace are ignored)
        acting_user: User redeeming the code
        project: Restrict the lookup to one project

    Returns:
        The channel bound to the acting user

    Raises:
        PairingAuthError: If the user is anonymous
        PairingNotFoundError: If no request matches the code, or it belongs
            to a project outside the user's team
        PairingAlreadyResolvedError: If the request is no longer pending
        PairingExpiredError: If the code has expired
    """
    if acting_user is None or not acting_user.is_authenticated:
        raise PairingAuthError("Sign in to redeem a pairing code")

    normalized = normalize_code(code)
    if not normalized:
        raise PairingNotFoundError("Pairing code is required")

    candidates = PairingRequest.objects.select_related("project").filter(pairing_code=normalized)
    if project is not None:
        candidates = candidates.filter(project=project)
    pairing = candidates.filter(status=PairingStatus.PENDING).first() or candidates.first()
    if pairing is None:
        raise PairingNotFoundError("Invalid pairing code")

    # Indistinguishable from an unknown code
    if not user_can_access_project(acting_user, pairing.project):
        logger.warning(
            f"User {acting_user.pk} tried to redeem a pairing code for project {pairing.project_id} "
            "without team membership"
        )
        raise PairingNotFoundError("Invalid pairing code")

    if pairing.status != PairingStatus.PENDING:
        raise PairingAlreadyResolvedError(f"Pairing code was already {pairing.status}")

    now = timezone.now()
    if pairing.expires_at <= now:
        _expire(pairing, now)
        raise PairingExpiredError("Pairing code has expired")

    with transaction.atomic():
        claimed = PairingRequest.objects.filter(pk=pairing.pk, status=PairingStatus.PENDING).update(
            status=PairingStatus.APPROVED,
            resolved_at=now,
            resolved_by=acting_user,
        )
        if not claimed:
            raise PairingAlreadyResolvedError("Pairing code was already used")

        result = get_or_create_channel(
            pairing.platform,
            pairing.external_user_id,
            pairing.project,
            bound_user=acting_user,
            metadata=pairing.metadata or None,
        )

    logger.info(
        f"Pairing request {pairing.id} approved by user {acting_user.pk}; channel {result.channel_id}"
    )

    channel_id = result.channel_id
    transaction.on_commit(lambda: _notify_approval(channel_id))
    return result.channel


def _notify_approval(channel_id: int) -> None:
    from platform_adapters.tasks import queue_pairing_approval

    queue_pairing_approval(channel_id)


def reject_pairing_request(request_id: int, acting_user) -> PairingRequest:
    """
    Reject a pending pairing request.

    Raises:
        PairingAuthError: If the user is anonymous or not a team member
        PairingNotFoundError: If the request does not exist
        PairingAlreadyResolvedError: If the request is no longer pending
    """
    if acting_user is None or not acting_user.is_authenticated:
        raise PairingAuthError("Sign in to manage pairing requests")

    pairing = PairingRequest.objects.select_related("project").filter(pk=request_id).first()
    if pairing is None or not user_can_access_project(acting_user, pairing.project):
        raise PairingNotFoundError(f"Pairing request {request_id} not found")

    rejected = PairingRequest.objects.filter(pk=pairing.pk, status=PairingStatus.PENDING).update(
        status=PairingStatus.REJECTED,
        resolved_at=timezone.now(),
        resolved_by=acting_user,
    )
    if not rejected:
        raise PairingAlreadyResolvedError(f"Pairing request {request_id} is no longer pending")

    pairing.refresh_from_db()
    logger.info(f"Pairing request {pairing.id} rejected by user {acting_user.pk}")
    return pairing


def list_pending_requests(project):
    """Pending, unexpired pairing requests of a project, oldest first."""
    return PairingRequest.objects.filter(
        project=project,
        status=PairingStatus.PENDING,
        expires_at__gt=timezone.now(),
    ).order_by("created_at")
