from .guard import home_for
from .models import Notification


def portal_nav(request):
    identity = getattr(request, "identity", None)
    state = identity.state() if identity is not None else None
    if state is None or not state.is_authenticated:
        return {"nav_unread_notifications": 0, "nav_recent_notifications": [], "nav_session": None}
    qs = Notification.objects.filter(user_id=state.session.user_id)
    unread = qs.filter(is_read=False).count()
    recent = list(qs[:5])
    return {
        "nav_unread_notifications": unread,
        "nav_recent_notifications": recent,
        "nav_session": state.session,
        "nav_home": home_for(state),
    }
