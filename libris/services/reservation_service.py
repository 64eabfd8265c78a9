from datetime import datetime, timedelta

from flask import current_app

from libris.errors import ConflictError, NotFoundError
from libris.models.activity import ActivityType
from libris.models.book import BookStatus
from libris.models.borrowing import Borrowing
from libris.models.reservation import Reservation
from libris.repositories.book_repo import BookRepo
from libris.repositories.borrowing_repo import BorrowingRepo
from libris.repositories.reservation_repo import ReservationRepo
from libris.services.activity_service import ActivityService
from libris.utils.db import atomic


def loan_period() -> timedelta:
    return timedelta(days=current_app.config.get("LOAN_DAYS", 7))


class ReservationService:
    def __init__(self, session):
        self.session = session
        self.books = BookRepo(session)
        self.borrowings = BorrowingRepo(session)
        self.reservations = ReservationRepo(session)
        self.activities = ActivityService(session)

    def reserve(self, user_id: int, book_id: int, now: datetime | None = None) -> Reservation:
        now = now or datetime.utcnow()

        with atomic(self.session, conflict_message="You have already reserved this book."):
            book = self.books.find_active(book_id, for_update=True)
            if not book:
                raise NotFoundError("Book not found.")

            if self.reservations.find_by_user_and_book(user_id, book_id):
                raise ConflictError("You have already reserved this book.")

            if book.status == BookStatus.AVAILABLE:
                raise ConflictError("Book is currently available. You can borrow it instead.")

            if self.borrowings.find_open(user_id, book_id):
                raise ConflictError("You already have this book borrowed.")

            reservation = self.reservations.add(Reservation(user_id=user_id, book_id=book_id, created_at=now))
            position, _eligible = self.queue_status(reservation)

            self.activities.record(
                ActivityType.RESERVATION, user_id, book.id, book.title,
                f'Reserved "{book.title}" (queue position {position})'
            )

        current_app.logger.info(f"[reservation] user={user_id} reserved book={book_id} position={position}")
        return reservation

    def cancel(self, user_id: int, reservation_id: int) -> None:
        with atomic(self.session):
            reservation = self.reservations.find_for_user(reservation_id, user_id)
            if not reservation:
                raise NotFoundError("Reservation not found or you don't have permission to cancel it.")

            book = self.books.find_including_deleted(reservation.book_id)
            title = book.title if book else None
            self.reservations.delete(reservation)

            self.activities.record(
                ActivityType.SYSTEM, user_id, reservation.book_id, title,
                f'Reservation cancelled: "{title}"' if title else "Reservation cancelled"
            )

        current_app.logger.info(f"[reservation] user={user_id} cancelled reservation={reservation_id}")

    def queue_status(self, reservation: Reservation):
        """
        ``(position, eligible)`` for one reservation.

        The position counts only holders ahead who can be promoted right now,
        so the eligible reservation at position 1 is exactly the one
        ``promote_next`` serves. A holder with another open loan is not
        eligible; their position is where they stand once that loan is
        returned.
        """
        ahead = self.reservations.ahead_of(reservation)
        busy = self.borrowings.user_ids_with_open_loans({r.user_id for r in ahead} | {reservation.user_id})
        position = 1 + sum(1 for r in ahead if r.user_id not in busy)
        return position, reservation.user_id not in busy

    def list_for_user(self, user_id: int):
        """``(reservation, queue_position, eligible)`` triples, oldest first."""
        rows = []
        for r in self.reservations.list_by_user(user_id):
            position, eligible = self.queue_status(r)
            rows.append((r, position, eligible))
        return rows

    def queue_for_book(self, book_id: int):
        """``(queue_position, reservation, eligible)`` triples in FIFO order."""
        if not self.books.find_active(book_id):
            raise NotFoundError("Book not found.")

        queue = self.reservations.queue_for_book(book_id)
        busy = self.borrowings.user_ids_with_open_loans({r.user_id for r in queue})

        rows = []
        served_before = 0
        for r in queue:
            eligible = r.user_id not in busy
            rows.append((served_before + 1, r, eligible))
            if eligible:
                served_before += 1
        return rows

    def promote_next(self, book, now: datetime) -> Borrowing | None:
        """
        Hand ``book`` to the head of its reservation queue.

        Must run inside the caller's transaction with the book row locked.
        Holders who already have an open loan are skipped and keep their
        place; the first eligible holder gets a new Borrowing and their
        reservation is consumed. Returns None when nobody could be promoted;
        the book status is then left to the caller.
        """
        queue = self.reservations.queue_for_book(book.id, for_update=True)
        if not queue:
            return None

        busy = self.borrowings.user_ids_with_open_loans({r.user_id for r in queue})

        for reservation in queue:
            if reservation.user_id in busy:
                current_app.logger.info(
                    f"[reservation] skip user={reservation.user_id} for book={book.id}: already has an open loan"
                )
                continue

            borrowing = self.borrowings.add(Borrowing(
                user_id=reservation.user_id,
                book_id=book.id,
                borrowed_at=now,
                due_date=now + loan_period(),
            ))
            book.status = BookStatus.BORROWED

            self.activities.record(
                ActivityType.CHECKOUT, reservation.user_id, book.id, book.title,
                f'Auto-borrowed "{book.title}" from the reservation queue'
            )
            self.reservations.delete(reservation)

            current_app.logger.info(
                f"[reservation] promoted user={reservation.user_id} book={book.id} borrowing={borrowing.id}"
            )
            return borrowing

        return None
