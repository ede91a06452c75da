"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g, jsonify, session


def login_required(f=None, admin_required=False):
    """Reject the request with 401 JSON if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session or g.get("user") is None:
                return jsonify({"message": "Authentication required"}), 401
            if admin_required and not g.user.get("isAdmin"):
                return jsonify({"message": "Not allowed"}), 403
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
