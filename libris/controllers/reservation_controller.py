from flask import Blueprint, jsonify

from libris.extensions import db
from libris.services.reservation_service import ReservationService
from libris.utils.auth import current_user, login_required
from libris.utils.serializers import reservation_to_dict

reservation_bp = Blueprint("reservations", __name__)


@reservation_bp.get("")
@login_required
def my_reservations():
    rows = ReservationService(db.session).list_for_user(current_user().id)
    return jsonify([reservation_to_dict(r, position, eligible) for r, position, eligible in rows])


@reservation_bp.get("/book/<int:book_id>")
@login_required
def book_queue(book_id: int):
    rows = ReservationService(db.session).queue_for_book(book_id)
    return jsonify([reservation_to_dict(r, position, eligible, with_user=True) for position, r, eligible in rows])


@reservation_bp.post("/<int:book_id>")
@login_required
def reserve(book_id: int):
    service = ReservationService(db.session)
    r = service.reserve(current_user().id, book_id)
    position, eligible = service.queue_status(r)
    return jsonify({
        "message": "Book reserved successfully.",
        "reservation": reservation_to_dict(r, position, eligible),
    }), 201


@reservation_bp.delete("/<int:reservation_id>")
@login_required
def cancel(reservation_id: int):
    ReservationService(db.session).cancel(current_user().id, reservation_id)
    return jsonify({"message": "Reservation cancelled successfully."})
