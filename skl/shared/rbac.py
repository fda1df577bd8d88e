from functools import wraps

from flask import jsonify, session

from ..app import db, User


def _current_user():
    user_id = session.get("user_id")
    if not user_id:
        return None
    return db.session.get(User, user_id)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _current_user()
        if not user:
            return jsonify({"message": "Belum login"}), 401
        return fn(*args, **kwargs, current_user=user)

    return wrapper


def roles_required(*roles):
    """Allow only users whose role is one of ``roles``; 401 when anonymous."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = _current_user()
            if not user:
                return jsonify({"message": "Belum login"}), 401
            if user.role not in roles:
                return jsonify({"message": "Akses ditolak"}), 403
            return fn(*args, **kwargs, current_user=user)

        return wrapper

    return decorator
