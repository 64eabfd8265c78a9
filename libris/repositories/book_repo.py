from datetime import datetime

from sqlalchemy import func

from libris.models.book import Book
from libris.models.borrowing import Borrowing
from libris.models.reservation import Reservation


class BookRepo:
    """Soft delete is explicit: default reads go through ``find_active``."""

    def __init__(self, session):
        self.session = session

    def _active(self):
        return self.session.query(Book).filter(Book.deleted_at.is_(None))

    def find_active(self, book_id: int, for_update: bool = False):
        q = self._active().filter(Book.id == book_id)
        if for_update:
            q = q.with_for_update()
        return q.first()

    def find_including_deleted(self, book_id: int):
        return self.session.get(Book, book_id)

    def list_active(self):
        return self._active().order_by(Book.title.asc(), Book.id.asc()).all()

    def list_with_counts(self):
        """Returns ``(book, borrow_count, reservation_count)`` tuples, title order."""
        borrow_counts = (
            self.session.query(Borrowing.book_id, func.count(Borrowing.id).label("n"))
            .group_by(Borrowing.book_id)
            .subquery()
        )
        reservation_counts = (
            self.session.query(Reservation.book_id, func.count(Reservation.id).label("n"))
            .group_by(Reservation.book_id)
            .subquery()
        )
        return (
            self.session.query(
                Book,
                func.coalesce(borrow_counts.c.n, 0),
                func.coalesce(reservation_counts.c.n, 0),
            )
            .outerjoin(borrow_counts, borrow_counts.c.book_id == Book.id)
            .outerjoin(reservation_counts, reservation_counts.c.book_id == Book.id)
            .filter(Book.deleted_at.is_(None))
            .order_by(Book.title.asc(), Book.id.asc())
            .all()
        )

    def counts_for(self, book_id: int):
        borrows = self.session.query(func.count(Borrowing.id)).filter(Borrowing.book_id == book_id).scalar()
        reservations = self.session.query(func.count(Reservation.id)).filter(Reservation.book_id == book_id).scalar()
        return int(borrows or 0), int(reservations or 0)

    def add(self, book: Book):
        self.session.add(book)
        self.session.flush()
        return book

    def soft_delete(self, book: Book, now: datetime | None = None):
        book.deleted_at = now or datetime.utcnow()
        self.session.flush()
        return book

    def lock(self, book_id: int):
        """Row-locks a book, soft-deleted or not, for the rest of the transaction."""
        return self.session.query(Book).filter(Book.id == book_id).with_for_update().first()
