from __future__ import annotations
from functools import wraps
from flask import request, g, abort

from services.errors import AuthError
from utils.extensions import get_auth_service


def jwt_required():
    """Require a valid access token; the user is re-read so deleted users are rejected."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            service = get_auth_service()
            try:
                decoded = service.issuer.verify_access_token(token)
            except AuthError:
                abort(401, description="Invalid or expired access token")

            user = service.users.get_user_by_id(decoded["userId"])
            if not user:
                abort(401, description="Invalid or expired access token")
            g.current_user = user
            g.current_user_role = user.role
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user's role is one of the required roles.
    """
    req = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if getattr(g, "current_user_role", None) not in req:
                abort(403, description="Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
