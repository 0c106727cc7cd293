# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from . import get_engine


ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Resolve the acting user from the X-Actor-Id header.

    Sets g.actor to the User row. Identity is supplied by the upstream
    gateway; there is no password or session check here.

    Returns 401 if the header is missing or not an integer, 404 if no
    such user exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER, "").strip()
        if not raw.isdigit():
            return jsonify({"success": False, "message": f"Missing or invalid {ACTOR_HEADER} header"}), 401

        actor = get_engine().directory.get_user(int(raw))
        if actor is None:
            return jsonify({"success": False, "message": f"User #{raw} not found"}), 404

        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function
