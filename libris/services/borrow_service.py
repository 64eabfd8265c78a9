from datetime import datetime

from flask import current_app

from libris.errors import ConflictError, NotFoundError
from libris.models.activity import ActivityType
from libris.models.book import BookStatus
from libris.models.borrowing import Borrowing
from libris.repositories.book_repo import BookRepo
from libris.repositories.borrowing_repo import BorrowingRepo
from libris.repositories.reservation_repo import ReservationRepo
from libris.repositories.user_repo import UserRepo
from libris.services.activity_service import ActivityService
from libris.services.reservation_service import ReservationService, loan_period
from libris.utils.db import atomic


class BorrowService:
    """
    Borrow / return lifecycle.

    Each operation is one transaction. The user row (borrow) and the book row
    (borrow, return) are locked first so concurrent requests for the same
    user or book run one after the other; the partial unique indexes on open
    borrowings are the last line if a backend ignores FOR UPDATE.
    """

    def __init__(self, session):
        self.session = session
        self.users = UserRepo(session)
        self.books = BookRepo(session)
        self.borrowings = BorrowingRepo(session)
        self.reservations = ReservationRepo(session)
        self.activities = ActivityService(session)
        self.queue = ReservationService(session)

    def borrow(self, user_id: int, book_id: int, now: datetime | None = None) -> Borrowing:
        now = now or datetime.utcnow()

        with atomic(self.session, conflict_message="Book is no longer available."):
            self.users.get_for_update(user_id)

            if self.borrowings.find_open_by_user(user_id):
                raise ConflictError("You already have a borrowed book.")

            book = self.books.find_active(book_id, for_update=True)
            if not book:
                raise NotFoundError("Book not found.")

            if book.status != BookStatus.AVAILABLE:
                raise ConflictError("Book is not available.")

            borrowing = self.borrowings.add(Borrowing(
                user_id=user_id,
                book_id=book.id,
                borrowed_at=now,
                due_date=now + loan_period(),
            ))
            book.status = BookStatus.BORROWED

            # borrowing directly consumes the borrower's own reservation
            own = self.reservations.find_by_user_and_book(user_id, book.id)
            if own:
                self.reservations.delete(own)

            self.activities.record(
                ActivityType.CHECKOUT, user_id, book.id, book.title,
                f'Borrowed "{book.title}", due {borrowing.due_date.date().isoformat()}'
            )

        current_app.logger.info(f"[borrow] user={user_id} book={book_id} borrowing={borrowing.id}")
        return borrowing

    def return_book(self, user_id: int, book_id: int, now: datetime | None = None):
        """
        Close the caller's open loan on ``book_id`` and promote the queue.

        Returns ``(closed, promoted)``; ``promoted`` is the Borrowing created
        for the next reservation holder, or None when the book became
        available.
        """
        now = now or datetime.utcnow()

        with atomic(self.session, conflict_message="Return conflicts with another request."):
            book = self.books.lock(book_id)

            borrowing = self.borrowings.find_open(user_id, book_id, for_update=True)
            if not borrowing or book is None:
                raise ConflictError("You do not have this book borrowed.")

            borrowing.returned_at = now
            # the open-loan index must see the close before any new loan row
            self.session.flush()

            self.activities.record(
                ActivityType.RETURN, user_id, book.id, book.title,
                f'Returned "{book.title}"'
            )

            promoted = self.queue.promote_next(book, now)
            if promoted is None:
                book.status = BookStatus.AVAILABLE

        if promoted:
            current_app.logger.info(
                f"[return] user={user_id} book={book_id} handed to user={promoted.user_id}"
            )
        else:
            current_app.logger.info(f"[return] user={user_id} book={book_id} now available")
        return borrowing, promoted

    def my_borrowings(self, user_id: int):
        return self.borrowings.list_by_user(user_id)

    def all_borrowings(self, only_open: bool = False, only_overdue: bool = False, now: datetime | None = None):
        if only_overdue:
            return self.borrowings.find_overdue(now or datetime.utcnow())
        return self.borrowings.list_all(only_open=only_open)
