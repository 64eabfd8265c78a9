from datetime import datetime

from sqlalchemy.orm import joinedload

from libris.models.borrowing import Borrowing


class BorrowingRepo:
    def __init__(self, session):
        self.session = session

    def get(self, borrowing_id: int):
        return self.session.get(Borrowing, borrowing_id)

    def find_open_by_user(self, user_id: int):
        return self.session.query(Borrowing).filter(
            Borrowing.user_id == user_id,
            Borrowing.returned_at.is_(None)
        ).first()

    def find_open_by_book(self, book_id: int):
        return self.session.query(Borrowing).filter(
            Borrowing.book_id == book_id,
            Borrowing.returned_at.is_(None)
        ).first()

    def find_open(self, user_id: int, book_id: int, for_update: bool = False):
        q = self.session.query(Borrowing).filter(
            Borrowing.user_id == user_id,
            Borrowing.book_id == book_id,
            Borrowing.returned_at.is_(None)
        )
        if for_update:
            q = q.with_for_update()
        return q.first()

    def user_ids_with_open_loans(self, user_ids):
        if not user_ids:
            return set()
        rows = self.session.query(Borrowing.user_id).filter(
            Borrowing.user_id.in_(list(user_ids)),
            Borrowing.returned_at.is_(None)
        ).all()
        return {r[0] for r in rows}

    def list_by_user(self, user_id: int):
        return (
            self.session.query(Borrowing)
            .options(joinedload(Borrowing.book))
            .filter(Borrowing.user_id == user_id)
            .order_by(Borrowing.borrowed_at.desc(), Borrowing.id.desc())
            .all()
        )

    def list_all(self, only_open: bool = False):
        q = self.session.query(Borrowing).options(joinedload(Borrowing.book), joinedload(Borrowing.user))
        if only_open:
            q = q.filter(Borrowing.returned_at.is_(None))
        return q.order_by(Borrowing.id.desc()).all()

    def find_overdue(self, now: datetime):
        return (
            self.session.query(Borrowing)
            .options(joinedload(Borrowing.book), joinedload(Borrowing.user))
            .filter(Borrowing.returned_at.is_(None), Borrowing.due_date < now)
            .order_by(Borrowing.due_date.asc())
            .all()
        )

    def add(self, borrowing: Borrowing):
        self.session.add(borrowing)
        self.session.flush()
        return borrowing
