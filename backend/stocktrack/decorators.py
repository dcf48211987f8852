# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .actors import Actor, ROLES, ROLE_EMPLOYEE
from .errors import PermissionDeniedError


def _unauthenticated(message: str):
    return jsonify({"error": {"kind": "authentication_required", "message": message, "details": {}}}), 401


def _is_authenticated() -> bool:
    return hasattr(g, "actor")


def require_actor(f):
    """
    Establish the calling actor for the request.

    Identity is owned by an upstream collaborator; it forwards the resolved
    caller as headers:
    - X-Actor-Id: integer user id (required)
    - X-Actor-Role: "admin" or "employee" (defaults to employee)

    Sets g.actor. Returns 401 when the id is missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get("X-Actor-Id", "").strip()
        if not raw_id:
            return _unauthenticated("Authentication required")
        try:
            actor_id = int(raw_id)
        except ValueError:
            return _unauthenticated("Invalid X-Actor-Id")

        role = request.headers.get("X-Actor-Role", ROLE_EMPLOYEE).strip().lower()
        if role not in ROLES:
            return _unauthenticated(f"Unknown role: {role}")

        g.actor = Actor(id=actor_id, role=role)
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require a specific role. Must be stacked under @require_actor."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return _unauthenticated("Authentication required")

            if g.actor.role != role:
                raise PermissionDeniedError(
                    "Permission denied",
                    details={"required_role": role},
                )

            return f(*args, **kwargs)

        return decorated_function

    return decorator
