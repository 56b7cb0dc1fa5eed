import logging
from functools import wraps

from django.conf import settings
from django.shortcuts import redirect, render

from .guard import Render, RedirectTo, Wait, decide
from .identity import identity_for
from .models import Role

logger = logging.getLogger(__name__)


def role_required(role: str):
    """Render the view only for sessions holding ``role``; redirect or wait otherwise."""
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            state = identity_for(request).state()
            action = decide(state, role)
            if isinstance(action, Render):
                return view_func(request, *args, **kwargs)
            if isinstance(action, Wait):
                return render(
                    request,
                    "accounts/waiting.html",
                    {"refresh_seconds": getattr(settings, "PORTAL_WAIT_REFRESH_SECONDS", 2)},
                    status=202,
                )
            if isinstance(action, RedirectTo):
                logger.debug(
                    "Access guard redirect: path=%s session_role=%s required=%s to=%s",
                    request.path,
                    state.role,
                    role,
                    action.url_name,
                )
                return redirect(action.url_name)
            raise TypeError(f"Unhandled guard action: {action!r}")
        return _wrapped
    return decorator


student_required = role_required(Role.STUDENT)
admin_required = role_required(Role.ADMIN)
company_required = role_required(Role.COMPANY)
