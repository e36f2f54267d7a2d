"""
Invitation Workflow – the send / resend / accept / decline / revoke lifecycle.

State per (trip_id, email):

    NONE -> PENDING -> ACCEPTED
            PENDING -> DECLINED -> PENDING (re-invite)
            PENDING -> expired (implicit, evaluated when the token is presented)
    any     -> NONE (revoke)

Record creation and email delivery are decoupled: a pending record whose email
did not go out is a valid end state, and the caller gets the invite URL back
to share by hand. Only the invited address may accept or decline.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from tripshare.core.exceptions import (
    AlreadyInvitedError,
    AlreadyMemberError,
    DeliveryFailedError,
    InvalidTokenError,
    InviteExpiredError,
    PermissionDeniedError,
    ValidationError,
)
from tripshare.core.permissions import Action, TripRole, authorize
from tripshare.crud import crud_access, crud_trip
from tripshare.schemas.access import (
    AcceptResult,
    AccessRecord,
    AccessStatus,
    DeclineResult,
    InvitationResult,
)
from tripshare.schemas.invite import Invite, InvitePreview
from tripshare.schemas.notification import InviteNotification, WelcomeNotification
from tripshare.schemas.trip import Trip
from tripshare.services.invite_tokens import InviteTokenService
from tripshare.services.notifications import NotificationSink
from tripshare.services.session import ViewerSession
from tripshare.utils.doc_helpers import normalize_email, utcnow

logger = logging.getLogger(__name__)


def invite_url_for(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/accept-invite/{token}"


def trip_url_for(origin: str, trip_id: str) -> str:
    return f"{origin.rstrip('/')}/trips/{trip_id}"


def clean_email(raw: str) -> str:
    """Syntax-check and normalise an invitee email. Raises ``ValidationError``."""
    if not raw or not raw.strip():
        raise ValidationError("Email address is required.")
    try:
        checked = validate_email(raw.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email address: {exc}") from exc
    return normalize_email(checked.normalized)


class InvitationWorkflow:

    def __init__(
        self,
        session: ViewerSession,
        notifier: NotificationSink,
        *,
        origin: str,
        tokens: Optional[InviteTokenService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.store = session.store
        self.notifier = notifier
        self.origin = origin
        self.clock = clock
        self.tokens = tokens or InviteTokenService(self.store, clock=clock)

    @property
    def user(self):
        return self.session.user

    # ------------------------------------------------------------------ #
    #  Helpers                                                            #
    # ------------------------------------------------------------------ #
    async def _trip_for_owner_action(self, trip_id: str) -> Trip:
        trip = await crud_trip.get_trip_or_raise(self.store, trip_id)
        role = await self.session.role_for(trip)
        if not authorize(Action.TRIP_INVITE, self.user, trip, role):
            logger.warning("User %s denied %s on trip %s", self.user.id, Action.TRIP_INVITE.value, trip_id)
            raise PermissionDeniedError("Only the trip owner can manage collaborators.")
        return trip

    async def _checked_invitee(self, trip_id: str, raw_email: str) -> Tuple[Trip, str, Optional[AccessRecord]]:
        """Authorization, self-invite and email checks shared by send and resend. No writes."""
        trip = await self._trip_for_owner_action(trip_id)
        email = clean_email(raw_email)
        # Only the owner gets past the check above, so the owner's email is the caller's.
        # An owner signed in without an email claim has no address to invite, so
        # there is nothing to compare and the invite goes ahead.
        if self.user.normalized_email and email == self.user.normalized_email:
            raise ValidationError("You cannot invite yourself to your own trip.")
        existing = await crud_access.get_by_trip_and_email(self.store, trip.id, email)
        return trip, email, existing

    async def _deliver(self, trip: Trip, invite: Invite) -> Tuple[bool, str]:
        url = invite_url_for(self.origin, invite.token)
        message = InviteNotification(
            to=invite.email,
            trip_title=trip.title,
            invite_url=url,
            expires_at=invite.expires_at,
        )
        try:
            await self.notifier.send_invite(message)
        except DeliveryFailedError as exc:
            logger.warning("Invite email to %s for trip %s not delivered: %s", invite.email, trip.id, exc.message)
            return False, url
        return True, url

    async def _deliver_and_report(self, trip: Trip, record: AccessRecord, invite: Invite, verb: str) -> InvitationResult:
        delivered, url = await self._deliver(trip, invite)
        if delivered:
            return InvitationResult(
                success=True,
                message=f"Invitation {verb} to {record.email}.",
                access_id=record.id,
                email_delivered=True,
            )
        return InvitationResult(
            success=True,
            message=(
                f"Invitation created for {record.email}, but the email could not be sent. "
                "Share the invite link with them directly."
            ),
            access_id=record.id,
            email_delivered=False,
            invite_url=url,
        )

    # ------------------------------------------------------------------ #
    #  Owner operations                                                   #
    # ------------------------------------------------------------------ #
    async def send_invite(self, trip_id: str, email: str) -> InvitationResult:
        trip, email, existing = await self._checked_invitee(trip_id, email)

        if existing is not None:
            if existing.status is AccessStatus.PENDING:
                raise AlreadyInvitedError()
            if existing.status is AccessStatus.ACCEPTED:
                raise AlreadyMemberError()
            logger.info("Replacing declined access %s for %s on trip %s", existing.id, email, trip.id)
            await crud_access.delete_access(self.store, existing.id)

        invite = await self.tokens.issue(trip.id, email)
        try:
            record = await crud_access.create_access(
                self.store, trip_id=trip.id, email=email, invited_by=self.user.id, now=invite.created_at
            )
        except (AlreadyInvitedError, AlreadyMemberError):
            # Lost a race with a concurrent invite for the same pair.
            await self.tokens.discard(invite)
            raise

        return await self._deliver_and_report(trip, record, invite, "sent")

    async def reinvite(self, trip_id: str, email: str) -> InvitationResult:
        """Resend: a pending record is refreshed and its token replaced; otherwise like ``send_invite``."""
        trip, email, existing = await self._checked_invitee(trip_id, email)

        if existing is None or existing.status is AccessStatus.DECLINED:
            return await self.send_invite(trip_id, email)
        if existing.status is AccessStatus.ACCEPTED:
            raise AlreadyMemberError()

        invite = await self.tokens.issue(trip.id, email)
        record = await crud_access.update_access(
            self.store,
            existing.id,
            {"invited_by": self.user.id, "invited_at": invite.created_at},
        )
        if record is None:
            # Revoked between the read and the write; start over as a fresh invite.
            await self.tokens.discard(invite)
            return await self.send_invite(trip_id, email)

        logger.info("Re-issued invite for %s on trip %s", email, trip.id)
        return await self._deliver_and_report(trip, record, invite, "resent")

    async def revoke_access(self, trip_id: str, access_id: str) -> bool:
        """
        Remove a collaborator or cancel a pending invite. Unknown ids are a
        no-op returning False, so repeating a revoke is harmless.
        """
        trip = await self._trip_for_owner_action(trip_id)
        record = await crud_access.get_access(self.store, access_id)
        if record is None or record.trip_id != trip.id:
            logger.info("Revoke of unknown access %s on trip %s ignored", access_id, trip.id)
            return False

        await crud_access.delete_access(self.store, record.id)
        removed = await self.tokens.discard_for(trip.id, record.email)
        logger.info(
            "Revoked %s access for %s on trip %s (%s invite(s) removed)",
            record.status.value, record.email, trip.id, removed,
        )
        return True

    async def list_access(self, trip_id: str) -> List[AccessRecord]:
        trip = await self._trip_for_owner_action(trip_id)
        return await crud_access.list_by_trip(self.store, trip.id)

    # ------------------------------------------------------------------ #
    #  Invitee operations                                                 #
    # ------------------------------------------------------------------ #
    async def _live_invite(self, token: str, now: datetime) -> Invite:
        invite = await self.tokens.resolve(token)
        if self.tokens.is_expired(invite, now):
            logger.info("Expired invite %s presented for trip %s", invite.id, invite.trip_id)
            raise InviteExpiredError("This invitation has expired. Ask the trip owner to send a new one.")
        if self.user.normalized_email != invite.email:
            logger.warning(
                "User %s tried to redeem invite %s for trip %s addressed to another email",
                self.user.id, invite.id, invite.trip_id,
            )
            raise PermissionDeniedError(
                "This invitation was sent to a different email address. "
                "Sign in with the invited address to respond."
            )
        return invite

    async def accept_invite(self, token: str) -> AcceptResult:
        now = self.clock()
        invite = await self._live_invite(token, now)

        # From here on the invite is spent, whatever happens next.
        try:
            trip = await crud_trip.get_trip(self.store, invite.trip_id)
            if trip is None:
                raise InvalidTokenError("This invitation is no longer valid.")

            record = await crud_access.get_by_trip_and_email(self.store, trip.id, invite.email)
            if record is not None and record.status is AccessStatus.ACCEPTED:
                raise AlreadyMemberError("You already have access to this trip.")

            if record is None:
                record = await crud_access.create_access(
                    self.store,
                    trip_id=trip.id,
                    email=invite.email,
                    invited_by=trip.owner_id,
                    status=AccessStatus.ACCEPTED,
                    accepted_by=self.user.id,
                    now=now,
                )
            else:
                record = await crud_access.update_access(
                    self.store,
                    record.id,
                    {"status": AccessStatus.ACCEPTED, "accepted_at": now, "accepted_by": self.user.id},
                )
                if record is None:
                    raise InvalidTokenError("This invitation is no longer valid.")
        finally:
            await self.tokens.discard(invite)

        self.session.remember(trip.id, TripRole.COLLABORATOR)
        logger.info("User %s accepted invite to trip %s as %s", self.user.id, trip.id, record.email)

        await self._send_welcome(trip, invite.email)
        return AcceptResult(trip_id=trip.id, message=f'You now have access to "{trip.title}".')

    async def _send_welcome(self, trip: Trip, email: str) -> None:
        """Post-commit and best-effort: a failure is logged, the acceptance stands."""
        message = WelcomeNotification(
            to=email, trip_title=trip.title, trip_url=trip_url_for(self.origin, trip.id)
        )
        try:
            await self.notifier.send_welcome(message)
        except DeliveryFailedError as exc:
            logger.info("Welcome email to %s not delivered: %s", email, exc.message)
        except Exception:
            logger.exception("Unexpected error sending welcome email to %s", email)

    async def decline_invite(self, token: str) -> DeclineResult:
        now = self.clock()
        invite = await self._live_invite(token, now)
        try:
            record = await crud_access.get_by_trip_and_email(self.store, invite.trip_id, invite.email)
            if record is not None and record.status is AccessStatus.ACCEPTED:
                raise AlreadyMemberError("You already have access to this trip.")
            if record is not None and record.status is AccessStatus.PENDING:
                await crud_access.update_access(self.store, record.id, {"status": AccessStatus.DECLINED})
        finally:
            await self.tokens.discard(invite)

        logger.info("Invite to trip %s declined by user %s", invite.trip_id, self.user.id)
        return DeclineResult(trip_id=invite.trip_id, message="Invitation declined.")

    async def preview_invite(self, token: str) -> InvitePreview:
        return await preview_invite(self.tokens, token)


async def preview_invite(tokens: InviteTokenService, token: str) -> InvitePreview:
    """
    What the accept page shows before sign-in. Reads only; an expired invite is
    reported as such rather than rejected.
    """
    invite = await tokens.resolve(token)
    trip = await crud_trip.get_trip(tokens.store, invite.trip_id)
    if trip is None:
        raise InvalidTokenError()
    return InvitePreview(
        trip_id=trip.id,
        trip_title=trip.title,
        email=invite.email,
        expires_at=invite.expires_at,
        status="expired" if tokens.is_expired(invite) else "valid",
    )
