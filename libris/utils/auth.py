from functools import wraps
from flask import g, jsonify, session

from libris.extensions import db
from libris.models.user import Role
from libris.repositories.user_repo import UserRepo
from libris.utils.decorators import role_required


def load_current_user():
    """
    before_request hook: resolve the session cookie to a User row.

    A session pointing at a user that no longer exists is cleared.
    """
    g.current_user = None
    user_id = session.get("user_id")
    if user_id is None:
        return

    user = UserRepo(db.session).get_by_id(int(user_id))
    if user is None:
        session.clear()
        return
    g.current_user = user


def current_user():
    return g.get("current_user")


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if g.get("current_user") is None:
            return jsonify({"error": "Not authenticated"}), 401
        return view(*args, **kwargs)
    return wrapped


admin_required = role_required(Role.ADMIN)
