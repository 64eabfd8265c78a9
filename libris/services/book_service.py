from datetime import datetime

from flask import current_app

from libris.errors import ConflictError, NotFoundError, ValidationError
from libris.models.activity import ActivityType
from libris.models.book import Book, BookStatus
from libris.repositories.book_repo import BookRepo
from libris.repositories.borrowing_repo import BorrowingRepo
from libris.repositories.reservation_repo import ReservationRepo
from libris.services.activity_service import ActivityService
from libris.services.reservation_service import ReservationService
from libris.utils.db import atomic

# statuses an admin may set by hand; "borrowed" only comes from a loan
MANUAL_STATUSES = (BookStatus.AVAILABLE, BookStatus.UNAVAILABLE)


class BookService:
    def __init__(self, session):
        self.session = session
        self.books = BookRepo(session)
        self.borrowings = BorrowingRepo(session)
        self.reservations = ReservationRepo(session)
        self.activities = ActivityService(session)

    def list_books(self):
        return self.books.list_with_counts()

    def get_book(self, book_id: int) -> Book:
        book = self.books.find_active(book_id)
        if not book:
            raise NotFoundError("Book not found.")
        return book

    def get_book_with_counts(self, book_id: int):
        book = self.get_book(book_id)
        borrows, reservations = self.books.counts_for(book.id)
        return book, borrows, reservations

    @staticmethod
    def _clean(data: dict, key: str) -> str:
        return str(data.get(key) or "").strip()

    def create_book(self, admin_id: int, data: dict) -> Book:
        title = self._clean(data, "title")
        author = self._clean(data, "author")
        if not title or not author:
            raise ValidationError("Title and author are required")

        status = data.get("status") or BookStatus.AVAILABLE
        if status not in MANUAL_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        with atomic(self.session):
            book = self.books.add(Book(title=title, author=author, status=status))
            self.activities.record(
                ActivityType.SYSTEM, admin_id, book.id, book.title,
                f'Book added to catalog: "{book.title}" by {book.author}'
            )

        current_app.logger.info(f"[books] admin={admin_id} created book={book.id}")
        return book

    def update_book(self, admin_id: int, book_id: int, data: dict, now: datetime | None = None) -> Book:
        now = now or datetime.utcnow()

        with atomic(self.session):
            book = self.books.find_active(book_id, for_update=True)
            if not book:
                raise NotFoundError("Book not found.")

            for k in ["title", "author"]:
                if k in data:
                    value = self._clean(data, k)
                    if not value:
                        raise ValidationError(f"{k} cannot be empty")
                    setattr(book, k, value)

            if "status" in data and data["status"] != book.status:
                self._change_status(admin_id, book, data["status"], now)

        return book

    def _change_status(self, admin_id: int, book: Book, status: str, now: datetime):
        if status not in MANUAL_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        if book.status == BookStatus.BORROWED or self.borrowings.find_open_by_book(book.id):
            raise ConflictError("Book is currently borrowed. Its status changes when it is returned.")

        book.status = status
        self.activities.record(
            ActivityType.SYSTEM, admin_id, book.id, book.title,
            f'Book marked as {status}: "{book.title}"'
        )
        current_app.logger.info(f"[books] admin={admin_id} book={book.id} status -> {status}")

        # back in circulation: the queue goes first
        if status == BookStatus.AVAILABLE:
            ReservationService(self.session).promote_next(book, now)

    def delete_book(self, admin_id: int, book_id: int, now: datetime | None = None) -> Book:
        with atomic(self.session):
            book = self.books.find_active(book_id, for_update=True)
            if not book:
                raise NotFoundError("Book not found.")

            if self.borrowings.find_open_by_book(book.id):
                raise ConflictError("Book is currently borrowed. It must be returned before it can be deleted.")

            if self.reservations.count_for_book(book.id):
                raise ConflictError("Book has pending reservations. Cancel them before deleting the book.")

            self.books.soft_delete(book, now)
            self.activities.record(
                ActivityType.SYSTEM, admin_id, book.id, book.title,
                f'Book removed from catalog: "{book.title}" by {book.author}'
            )

        current_app.logger.info(f"[books] admin={admin_id} soft-deleted book={book.id}")
        return book
