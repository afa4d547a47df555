import logging
from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blightstone.auth.service import AuthService, LoginResult
from blightstone.auth.sessions import (
    SessionBackend,
    SessionRecord,
    get_session_backend,
    new_session_id,
)
from blightstone.auth.settings import auth_settings
from blightstone.database import get_db
from blightstone.exceptions import (
    AuthenticationError,
    InvalidSessionError,
    PermissionDeniedError,
    ProfileNotFoundError,
)
from blightstone.notifications.email import EmailSender, get_email_sender
from blightstone.users.models import SessionUser, UserRead

logger = logging.getLogger(__name__)

# Key under which the signed cookie stores the server-side session id
SESSION_ID_KEY = "session_id"


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AuthService:
    return AuthService(db, email_sender=email_sender)


async def open_session(
    request: Request,
    backend: SessionBackend,
    result: LoginResult,
) -> str:
    """Store a new session record and point the cookie at it."""
    previous = request.session.get(SESSION_ID_KEY)
    if previous:
        await backend.delete(previous)

    session_id = new_session_id()
    record = SessionRecord(
        user=SessionUser.from_user(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_at=result.tokens.expires_at,
    )
    await backend.set(session_id, record, auth_settings.SESSION_MAX_AGE_SECONDS)
    request.session.clear()
    request.session[SESSION_ID_KEY] = session_id
    return session_id


async def load_session(
    request: Request, backend: SessionBackend
) -> tuple[str | None, SessionRecord | None]:
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        return None, None
    return session_id, await backend.get(session_id)


async def destroy_session(request: Request, backend: SessionBackend) -> None:
    session_id = request.session.get(SESSION_ID_KEY)
    if session_id:
        await backend.delete(session_id)
    request.session.clear()


async def _refresh(
    session_id: str,
    record: SessionRecord,
    backend: SessionBackend,
    auth_service: AuthService,
) -> UserRead | None:
    """Try the refresh token once. Returns None if the session is dead."""
    try:
        tokens = await auth_service.refresh_session(record.refresh_token)
    except InvalidSessionError:
        # A concurrent request may have rotated the tokens first
        current = await backend.get(session_id)
        if current is None or current.refresh_token == record.refresh_token:
            return None
        logger.debug("Session for user %s was refreshed by a concurrent request", record.user.id)
        try:
            return await auth_service.get_current_user(current.access_token)
        except InvalidSessionError:
            return None
    await backend.set(
        session_id,
        record.with_tokens(tokens),
        auth_settings.SESSION_MAX_AGE_SECONDS,
    )
    return await auth_service.get_current_user(tokens.access_token)


async def get_current_user(
    request: Request,
    backend: SessionBackend = Depends(get_session_backend),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserRead:
    """
    Resolve the session cookie to the live user.
    Raises 401 if there is no session or the credential store rejects it;
    a rejected session is destroyed so later requests fail fast.
    """
    session_id, record = await load_session(request, backend)
    if record is None:
        if session_id:
            request.session.clear()
        raise AuthenticationError("Authentication required")

    try:
        try:
            user = await auth_service.get_current_user(record.access_token)
        except InvalidSessionError:
            user = await _refresh(session_id, record, backend, auth_service)
    except ProfileNotFoundError:
        await destroy_session(request, backend)
        raise

    if user is None:
        logger.info("Session for user %s expired", record.user.id)
        await destroy_session(request, backend)
        raise InvalidSessionError("Session expired")

    request.state.user = user
    return user


def require_role(*roles: str) -> Callable:
    """Factory that returns a FastAPI dependency requiring one of the given roles."""

    async def dependency(
        current_user: UserRead = Depends(get_current_user),
    ) -> UserRead:
        if current_user.role not in roles:
            raise PermissionDeniedError(f"{' or '.join(roles)} access required")
        return current_user

    return dependency


require_admin = require_role(auth_settings.ADMIN_ROLE)
