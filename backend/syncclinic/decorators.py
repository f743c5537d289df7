# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, request


ACTOR_HEADER = "X-Clinic-User"


def with_actor(f):
    """
    Establish who is acting for history and audit entries.

    Sets g.actor from the X-Clinic-User header, falling back to the
    configured DEFAULT_ACTOR. This is attribution only; the dashboard's
    local credential check is not a security boundary.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        g.actor = actor or current_app.config.get("DEFAULT_ACTOR", "Admin")
        return f(*args, **kwargs)

    return decorated_function
