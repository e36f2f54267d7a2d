# tripshare/api/deps.py
import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status

# Firebase Admin SDK (initialized in main.py)
from firebase_admin import auth as firebase_auth

from tripshare.core.config import settings
from tripshare.db import base as db_base
from tripshare.db.store import DocumentStore, PostgresDocumentStore
from tripshare.schemas.token import FirebaseTokenData
from tripshare.schemas.user import CurrentUser, GlobalRole
from tripshare.services.gateway import TripGateway
from tripshare.services.invitations import InvitationWorkflow
from tripshare.services.invite_tokens import InviteTokenService
from tripshare.services.notifications import NotificationSink, build_notifier
from tripshare.services.session import ViewerSession

logger = logging.getLogger(__name__)

UNAUTH_TEXT = "Could not validate credentials"


class InvalidIdTokenError(Exception):
    """Bearer token could not be verified."""


# --- Storage Dependency ---
async def get_store() -> AsyncGenerator[DocumentStore, None]:
    """
    Provides the document store for one request: the shared in-memory store,
    or a PostgreSQL-backed one over a pooled asyncpg connection that is
    released when the request finishes.
    """
    if settings.STORAGE_BACKEND == "memory":
        yield db_base.memory_store
        return

    pool = db_base.db_pool
    if not pool:
        # This should ideally not happen if lifespan startup succeeded
        logger.error("Database pool is not available when trying to get connection.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )

    async with pool.acquire() as conn:
        yield PostgresDocumentStore(conn)


# --- Authentication Dependencies ---
def _unauthorized(detail: str = UNAUTH_TEXT) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _stub_token_data(token: str) -> FirebaseTokenData:
    """``test:<uid>:<email>`` – accepted only when ENVIRONMENT=test."""
    _, uid, email = (token.split(":", 2) + ["", ""])[:3]
    if not uid:
        raise InvalidIdTokenError("Stub token without uid")
    return FirebaseTokenData(uid=uid, email=email or None)


async def firebase_verify_token(token: str) -> FirebaseTokenData:
    """
    Verifies a Firebase ID token and converts the decoded claims into our
    FirebaseTokenData schema. Raises InvalidIdTokenError on any failure so the
    caller can respond with 401.
    """
    try:
        claims = firebase_auth.verify_id_token(token)
    except Exception as exc:          # all errors → InvalidIdTokenError
        raise InvalidIdTokenError(str(exc)) from exc

    return FirebaseTokenData(
        uid=claims.get("uid") or claims.get("user_id"),
        email=claims.get("email"),
        name=claims.get("name"),
        role=claims.get("role"),
    )


async def get_verified_token_data(request: Request) -> FirebaseTokenData:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized()

    try:
        scheme, token = auth_header.split(" ", 1)
    except ValueError:
        raise _unauthorized()

    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized()

    try:
        if settings.ENVIRONMENT == "test" and token.startswith("test:"):
            return _stub_token_data(token)
        return await firebase_verify_token(token)
    except InvalidIdTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise _unauthorized("Invalid Firebase token")
    except ValueError as exc:
        # Claims that do not fit FirebaseTokenData (e.g. malformed email)
        logger.warning("Token claims failed validation: %s", exc)
        raise _unauthorized("Invalid Firebase token")


async def get_current_user(
    token_data: FirebaseTokenData = Depends(get_verified_token_data),
) -> CurrentUser:
    """Identity comes straight from the verified token; users are never stored."""
    try:
        global_role = GlobalRole(token_data.role) if token_data.role else GlobalRole.USER
    except ValueError:
        logger.warning(f"Ignoring unknown role claim {token_data.role!r} for uid {token_data.uid}")
        global_role = GlobalRole.USER
    return CurrentUser(
        id=token_data.uid,
        email=str(token_data.email) if token_data.email else None,
        display_name=token_data.name,
        global_role=global_role,
    )


# --- Service Dependencies ---
async def get_viewer_session(
    store: DocumentStore = Depends(get_store),
    user: CurrentUser = Depends(get_current_user),
) -> AsyncGenerator[ViewerSession, None]:
    session = ViewerSession(store, user)
    try:
        yield session
    finally:
        session.clear()


def get_notifier() -> NotificationSink:
    return build_notifier(settings)


async def get_workflow(
    session: ViewerSession = Depends(get_viewer_session),
    notifier: NotificationSink = Depends(get_notifier),
) -> InvitationWorkflow:
    return InvitationWorkflow(session, notifier, origin=settings.APP_ORIGIN)


async def get_gateway(session: ViewerSession = Depends(get_viewer_session)) -> TripGateway:
    return TripGateway(session)


async def get_token_service(store: DocumentStore = Depends(get_store)) -> InviteTokenService:
    """For the unauthenticated invite preview."""
    return InviteTokenService(store)
