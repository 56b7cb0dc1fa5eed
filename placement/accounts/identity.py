"""Identity context for the current request.

A ``Session`` is the authenticated identity plus its role claim. It is built
once per request from the Django auth user and never mutated; a role change
only takes effect through a new login. Consumers receive an
``IdentityContext`` on ``request.identity`` instead of reading ``request.user``
directly, which lets tests hand any session state to a view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from django.contrib.auth import logout as django_logout

from .models import Role

logger = logging.getLogger(__name__)

# Django session key holding the role a session was started with.
SESSION_ROLE_KEY = "role"


@dataclass(frozen=True)
class Session:
    user_id: int
    role: str
    display_name: str
    company_code: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    session: Optional[Session] = None
    is_loading: bool = False

    @classmethod
    def loading(cls) -> "SessionState":
        return cls(session=None, is_loading=True)

    @classmethod
    def anonymous(cls) -> "SessionState":
        return cls()

    @classmethod
    def for_session(cls, session: Session) -> "SessionState":
        return cls(session=session)

    @property
    def is_authenticated(self) -> bool:
        return not self.is_loading and self.session is not None

    @property
    def user(self) -> Optional[Session]:
        return self.session

    @property
    def role(self) -> Optional[str]:
        return self.session.role if self.session else None


class AuthCollaborator(Protocol):
    def current_session(self) -> Optional[Session]: ...

    def is_loading(self) -> bool: ...

    def logout(self) -> None: ...


def session_from_user(user) -> Optional[Session]:
    if user is None or not getattr(user, "is_authenticated", False) or not user.is_active:
        return None
    role = user.role or (Role.ADMIN if user.is_superuser else "")
    return Session(
        user_id=user.pk,
        role=str(role),
        display_name=user.display_name,
        company_code=(user.company_code or None) if role == Role.COMPANY else None,
    )


class DjangoSessionAuth:
    """Auth collaborator backed by django.contrib.auth.

    The authentication middleware resolves ``request.user`` before any view
    runs, so this collaborator is never in the loading state.

    The role is pinned in the Django session when it starts. If the stored
    user's role later differs, the session is ended rather than re-scoped.
    """

    def __init__(self, request):
        self.request = request

    def current_session(self) -> Optional[Session]:
        session = session_from_user(getattr(self.request, "user", None))
        store = getattr(self.request, "session", None)
        if session is None or store is None:
            return session
        pinned = store.get(SESSION_ROLE_KEY)
        if pinned is None:
            store[SESSION_ROLE_KEY] = session.role
            return session
        if pinned != session.role:
            logger.warning(
                "Role changed mid-session, logging out: user_id=%s session_role=%s current_role=%s",
                session.user_id,
                pinned,
                session.role,
            )
            django_logout(self.request)
            return None
        return session

    def is_loading(self) -> bool:
        return False

    def logout(self) -> None:
        django_logout(self.request)


class StaticAuth:
    """Collaborator with a fixed state, for tests and previews."""

    def __init__(self, state: SessionState):
        self._state = state

    def current_session(self) -> Optional[Session]:
        return self._state.session

    def is_loading(self) -> bool:
        return self._state.is_loading

    def logout(self) -> None:
        self._state = SessionState.anonymous()


class IdentityContext:
    def __init__(self, auth: AuthCollaborator):
        self._auth = auth
        self._state: Optional[SessionState] = None

    @classmethod
    def for_state(cls, state: SessionState) -> "IdentityContext":
        return cls(StaticAuth(state))

    def state(self) -> SessionState:
        if self._state is None:
            self._state = self._resolve()
        return self._state

    def _resolve(self) -> SessionState:
        if self._auth.is_loading():
            return SessionState.loading()
        session = self._auth.current_session()
        if session is None:
            return SessionState.anonymous()
        return SessionState.for_session(session)

    def refresh(self) -> SessionState:
        self._state = None
        return self.state()

    @property
    def is_authenticated(self) -> bool:
        return self.state().is_authenticated

    @property
    def is_loading(self) -> bool:
        return self.state().is_loading

    @property
    def user(self) -> Optional[Session]:
        return self.state().user

    def logout(self) -> None:
        session = self.state().session
        self._auth.logout()
        self._state = SessionState.anonymous()
        if session:
            logger.info("Session destroyed: user_id=%s role=%s", session.user_id, session.role)


def identity_for(request) -> IdentityContext:
    identity = getattr(request, "identity", None)
    if identity is None:
        identity = IdentityContext(DjangoSessionAuth(request))
        request.identity = identity
    return identity
