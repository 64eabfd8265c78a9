from sqlalchemy import and_, func, or_
from sqlalchemy.orm import joinedload

from libris.models.reservation import Reservation


class ReservationRepo:
    def __init__(self, session):
        self.session = session

    def get(self, reservation_id: int):
        return self.session.get(Reservation, reservation_id)

    def find_for_user(self, reservation_id: int, user_id: int):
        return self.session.query(Reservation).filter(
            Reservation.id == reservation_id,
            Reservation.user_id == user_id
        ).first()

    def find_by_user_and_book(self, user_id: int, book_id: int):
        return self.session.query(Reservation).filter_by(user_id=user_id, book_id=book_id).first()

    def queue_for_book(self, book_id: int, for_update: bool = False):
        """FIFO order: created_at, then id for identical timestamps."""
        q = (
            self.session.query(Reservation)
            .filter(Reservation.book_id == book_id)
            .order_by(Reservation.created_at.asc(), Reservation.id.asc())
        )
        if for_update:
            q = q.with_for_update()
        return q.all()

    def count_for_book(self, book_id: int) -> int:
        return self.session.query(func.count(Reservation.id)).filter(Reservation.book_id == book_id).scalar() or 0

    def list_by_user(self, user_id: int):
        return (
            self.session.query(Reservation)
            .options(joinedload(Reservation.book))
            .filter(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.asc(), Reservation.id.asc())
            .all()
        )

    def ahead_of(self, reservation: Reservation):
        """Reservations served before ``reservation`` in FIFO order."""
        return (
            self.session.query(Reservation)
            .filter(
                Reservation.book_id == reservation.book_id,
                or_(
                    Reservation.created_at < reservation.created_at,
                    and_(Reservation.created_at == reservation.created_at, Reservation.id < reservation.id),
                )
            )
            .order_by(Reservation.created_at.asc(), Reservation.id.asc())
            .all()
        )

    def add(self, reservation: Reservation):
        self.session.add(reservation)
        self.session.flush()
        return reservation

    def delete(self, reservation: Reservation):
        self.session.delete(reservation)
        self.session.flush()
