# tests/utils.py
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tripshare.core.exceptions import DeliveryFailedError
from tripshare.crud import crud_trip
from tripshare.db.store import DocumentStore
from tripshare.schemas.notification import InviteNotification, WelcomeNotification
from tripshare.schemas.trip import Trip, TripCreate
from tripshare.schemas.user import CurrentUser
from tripshare.services.notifications import NotificationSink

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# --- Fakes ---

class FrozenClock:
    """Callable clock the services accept; tests move it by hand."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingNotifier(NotificationSink):
    """Keeps every message; can be told to fail like an unreachable email API."""

    def __init__(self, fail_invites: bool = False, fail_welcomes: bool = False):
        self.fail_invites = fail_invites
        self.fail_welcomes = fail_welcomes
        self.invites: List[InviteNotification] = []
        self.welcomes: List[WelcomeNotification] = []

    async def send_invite(self, message: InviteNotification) -> None:
        self.invites.append(message)
        if self.fail_invites:
            raise DeliveryFailedError("Email service timed out.")

    async def send_welcome(self, message: WelcomeNotification) -> None:
        self.welcomes.append(message)
        if self.fail_welcomes:
            raise DeliveryFailedError("Email service timed out.")

    @property
    def last_token(self) -> str:
        return self.invites[-1].invite_url.rsplit("/", 1)[-1]


# --- Identities ---

def make_user(uid: str, email: Optional[str] = None) -> CurrentUser:
    return CurrentUser(id=uid, email=email if email is not None else f"{uid}@example.com")


def auth_header(uid: str, email: str) -> Dict[str, str]:
    """Stub bearer token understood by deps.get_verified_token_data when ENVIRONMENT=test."""
    return {"Authorization": f"Bearer test:{uid}:{email}"}


# --- Direct store helpers (bypass authorization) ---

async def create_test_trip_direct(
    store: DocumentStore,
    owner_id: str,
    title: str = "Lisbon Long Weekend",
    **fields: Any,
) -> Trip:
    trip_in = TripCreate(
        title=title,
        description=fields.get("description"),
        start_date=fields.get("start_date", date(2025, 7, 1)),
        end_date=fields.get("end_date", date(2025, 7, 4)),
    )
    return await crud_trip.create_trip(store, trip_in, owner_id=owner_id, now=fields.get("now"))
