from flask import Blueprint, request, jsonify

from libris.errors import ValidationError
from libris.extensions import db
from libris.services.activity_service import ActivityService
from libris.utils.auth import current_user, login_required
from libris.utils.serializers import activity_to_dict

activity_bp = Blueprint("activities", __name__)


def _limit_arg():
    raw = request.args.get("limit")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("limit must be an integer")


@activity_bp.get("")
def recent():
    rows = ActivityService(db.session).recent(_limit_arg())
    return jsonify([activity_to_dict(a) for a in rows])


@activity_bp.get("/me")
@login_required
def mine():
    rows = ActivityService(db.session).by_user(current_user().id, _limit_arg())
    return jsonify([activity_to_dict(a) for a in rows])
