"""Route access decisions by role.

``decide`` maps a resolved session state and the role a page requires to one
of three actions. It reads nothing but its arguments, so the decorator in
``accounts.decorators`` is the only place a decision turns into a response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from django.core.exceptions import ImproperlyConfigured

from .identity import SessionState
from .models import Role

LOGIN = "login"
COMPANY_LOGIN = "company_login"

DASHBOARDS = {
    Role.STUDENT: "student_dashboard",
    Role.ADMIN: "admin_dashboard",
    Role.COMPANY: "company_dashboard",
}


@dataclass(frozen=True)
class Wait:
    pass


@dataclass(frozen=True)
class Render:
    pass


@dataclass(frozen=True)
class RedirectTo:
    url_name: str


Action = Union[Wait, Render, RedirectTo]

WAIT = Wait()
RENDER = Render()

# (session role, required role) -> where the session belongs instead
MISMATCH_REDIRECTS = {
    (Role.STUDENT, Role.ADMIN): DASHBOARDS[Role.STUDENT],
    (Role.ADMIN, Role.STUDENT): DASHBOARDS[Role.ADMIN],
    (Role.COMPANY, Role.STUDENT): DASHBOARDS[Role.COMPANY],
    (Role.COMPANY, Role.ADMIN): DASHBOARDS[Role.COMPANY],
    (Role.STUDENT, Role.COMPANY): COMPANY_LOGIN,
    (Role.ADMIN, Role.COMPANY): COMPANY_LOGIN,
}

_uncovered = sorted(
    f"{have}->{need}"
    for have in Role
    for need in Role
    if have != need and (have, need) not in MISMATCH_REDIRECTS
)
if _uncovered:
    raise ImproperlyConfigured(f"Access guard has no redirect for role pairs: {', '.join(_uncovered)}")
if set(DASHBOARDS) != set(Role):
    raise ImproperlyConfigured("Every role needs a dashboard.")


def login_for(required_role: str) -> str:
    return COMPANY_LOGIN if required_role == Role.COMPANY else LOGIN


def decide(state: SessionState, required_role: str) -> Action:
    if state.is_loading:
        return WAIT
    if not state.is_authenticated:
        return RedirectTo(login_for(required_role))
    if state.role == required_role:
        return RENDER
    return RedirectTo(MISMATCH_REDIRECTS.get((state.role, required_role), LOGIN))


def home_for(state: SessionState) -> str:
    """URL name an authenticated session lands on; login otherwise."""
    if state.is_authenticated and state.role in DASHBOARDS:
        return DASHBOARDS[state.role]
    return LOGIN
