from datetime import datetime

from flask import Blueprint, request, jsonify

from libris.extensions import db
from libris.services.borrow_service import BorrowService
from libris.utils.auth import admin_required, current_user, login_required
from libris.utils.serializers import borrowing_to_dict

borrow_bp = Blueprint("borrowings", __name__)


def _flag(name: str) -> bool:
    return request.args.get(name, "0").lower() in ("1", "true", "yes")


@borrow_bp.get("/my-borrowings")
@login_required
def my_borrowings():
    now = datetime.utcnow()
    rows = BorrowService(db.session).my_borrowings(current_user().id)
    return jsonify([borrowing_to_dict(x, now) for x in rows])


@borrow_bp.get("")
@admin_required
def all_borrowings():
    now = datetime.utcnow()
    rows = BorrowService(db.session).all_borrowings(
        only_open=_flag("open"),
        only_overdue=_flag("overdue"),
        now=now,
    )
    return jsonify([borrowing_to_dict(x, now, with_user=True) for x in rows])


@borrow_bp.post("/borrow/<int:book_id>")
@login_required
def borrow_book(book_id: int):
    b = BorrowService(db.session).borrow(current_user().id, book_id)
    return jsonify({"message": "Book borrowed successfully.", "borrowing": borrowing_to_dict(b)})


@borrow_bp.post("/return/<int:book_id>")
@login_required
def return_book(book_id: int):
    returned, promoted = BorrowService(db.session).return_book(current_user().id, book_id)

    body = {"message": "Book returned successfully.", "borrowing": borrowing_to_dict(returned)}
    if promoted:
        body["message"] = (
            "Book returned successfully. Book automatically borrowed by the next user in the reservation queue."
        )
        body["promoted_borrowing"] = borrowing_to_dict(promoted)
    return jsonify(body)
