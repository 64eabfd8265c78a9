from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from libris.errors import ConflictError, NotFoundError
from libris.extensions import db
from libris.models.activity import Activity, ActivityType
from libris.models.book import BookStatus
from libris.models.borrowing import Borrowing
from libris.models.reservation import Reservation
from libris.services.book_service import BookService
from libris.services.borrow_service import BorrowService
from libris.services.reservation_service import ReservationService


def open_borrowings(**filters):
    return Borrowing.query.filter_by(returned_at=None, **filters).all()


def test_borrow_sets_due_date_and_status(make_user, make_book):
    user = make_user()
    book = make_book()
    now = datetime(2026, 1, 10, 12, 0, 0)

    b = BorrowService(db.session).borrow(user.id, book.id, now=now)

    assert b.borrowed_at == now
    assert b.due_date == now + timedelta(days=7)
    assert b.returned_at is None
    assert book.status == BookStatus.BORROWED

    activity = Activity.query.filter_by(type=ActivityType.CHECKOUT).one()
    assert activity.user_id == user.id
    assert activity.book_title == "Dune"


def test_borrow_fails_when_user_already_has_a_loan(make_user, make_book):
    user = make_user()
    first, second = make_book("Dune"), make_book("Emma", "Jane Austen")
    service = BorrowService(db.session)
    service.borrow(user.id, first.id)

    with pytest.raises(ConflictError, match="already have a borrowed book"):
        service.borrow(user.id, second.id)

    assert len(open_borrowings(user_id=user.id)) == 1
    assert second.status == BookStatus.AVAILABLE


def test_borrow_unavailable_book_creates_nothing(make_user, make_book):
    user = make_user()
    book = make_book(status=BookStatus.UNAVAILABLE)

    with pytest.raises(ConflictError, match="not available"):
        BorrowService(db.session).borrow(user.id, book.id)

    assert Borrowing.query.count() == 0
    assert Activity.query.count() == 0


def test_borrow_missing_or_deleted_book(make_user, make_book, admin):
    user = make_user()
    book = make_book()
    BookService(db.session).delete_book(admin.id, book.id)

    with pytest.raises(NotFoundError):
        BorrowService(db.session).borrow(user.id, book.id)
    with pytest.raises(NotFoundError):
        BorrowService(db.session).borrow(user.id, 9999)


def test_return_without_queue_frees_book(make_user, make_book):
    user = make_user()
    book = make_book()
    service = BorrowService(db.session)
    service.borrow(user.id, book.id)

    closed, promoted = service.return_book(user.id, book.id)

    assert promoted is None
    assert closed.returned_at is not None
    assert book.status == BookStatus.AVAILABLE
    assert Reservation.query.filter_by(book_id=book.id).count() == 0
    assert Activity.query.filter_by(type=ActivityType.RETURN).count() == 1


def test_return_requires_own_open_loan(make_user, make_book):
    alice, bob = make_user(), make_user()
    book = make_book()
    service = BorrowService(db.session)
    service.borrow(alice.id, book.id)

    with pytest.raises(ConflictError, match="do not have this book borrowed"):
        service.return_book(bob.id, book.id)

    service.return_book(alice.id, book.id)
    with pytest.raises(ConflictError):
        service.return_book(alice.id, book.id)


def test_return_promotes_head_of_queue(make_user, make_book):
    alice, bob, carol = make_user("Alice"), make_user("Bob"), make_user("Carol")
    book = make_book()
    borrow = BorrowService(db.session)
    queue = ReservationService(db.session)
    t0 = datetime(2026, 3, 1, 9, 0, 0)

    borrow.borrow(alice.id, book.id, now=t0)
    queue.reserve(bob.id, book.id, now=t0 + timedelta(minutes=1))
    carol_res = queue.reserve(carol.id, book.id, now=t0 + timedelta(minutes=2))

    returned_at = t0 + timedelta(days=2)
    _, promoted = borrow.return_book(alice.id, book.id, now=returned_at)

    assert promoted.user_id == bob.id
    assert promoted.borrowed_at == returned_at
    assert promoted.due_date == returned_at + timedelta(days=7)
    assert book.status == BookStatus.BORROWED
    assert [r.user_id for r in Reservation.query.all()] == [carol.id]
    assert queue.queue_status(carol_res) == (1, True)

    checkout = (
        Activity.query.filter_by(type=ActivityType.CHECKOUT, user_id=bob.id).one()
    )
    assert "reservation queue" in checkout.details


def test_identical_timestamps_break_ties_by_id(make_user, make_book):
    alice, bob, carol = make_user(), make_user(), make_user()
    book = make_book()
    borrow = BorrowService(db.session)
    queue = ReservationService(db.session)
    borrow.borrow(alice.id, book.id)

    same = datetime(2026, 3, 1, 9, 0, 0)
    first = queue.reserve(bob.id, book.id, now=same)
    second = queue.reserve(carol.id, book.id, now=same)
    assert first.id < second.id
    assert queue.queue_status(first) == (1, True)
    assert queue.queue_status(second) == (2, True)

    _, promoted = borrow.return_book(alice.id, book.id)
    assert promoted.user_id == bob.id


def test_queue_skips_holders_with_an_open_loan(make_user, make_book):
    alice, bob, carol = make_user(), make_user(), make_user()
    dune, emma = make_book("Dune"), make_book("Emma", "Jane Austen")
    borrow = BorrowService(db.session)
    queue = ReservationService(db.session)
    t0 = datetime(2026, 3, 1, 9, 0, 0)

    borrow.borrow(alice.id, dune.id, now=t0)
    queue.reserve(bob.id, dune.id, now=t0 + timedelta(minutes=1))
    queue.reserve(carol.id, dune.id, now=t0 + timedelta(minutes=2))
    borrow.borrow(bob.id, emma.id, now=t0 + timedelta(minutes=3))

    _, promoted = borrow.return_book(alice.id, dune.id)

    assert promoted.user_id == carol.id
    assert len(open_borrowings(user_id=bob.id)) == 1
    remaining = Reservation.query.filter_by(book_id=dune.id).all()
    assert [r.user_id for r in remaining] == [bob.id]


def test_queue_position_names_the_holder_promoted_next(make_user, make_book):
    alice, bob, carol = make_user(), make_user(), make_user()
    dune, emma = make_book("Dune"), make_book("Emma", "Jane Austen")
    borrow = BorrowService(db.session)
    queue = ReservationService(db.session)
    t0 = datetime(2026, 3, 1, 9, 0, 0)

    borrow.borrow(alice.id, dune.id, now=t0)
    bob_res = queue.reserve(bob.id, dune.id, now=t0 + timedelta(minutes=1))
    carol_res = queue.reserve(carol.id, dune.id, now=t0 + timedelta(minutes=2))
    borrow.borrow(bob.id, emma.id, now=t0 + timedelta(minutes=3))

    # bob holds another loan, so carol is first in line
    assert queue.queue_status(bob_res) == (1, False)
    assert queue.queue_status(carol_res) == (1, True)
    rows = queue.queue_for_book(dune.id)
    assert [(pos, r.user_id, ok) for pos, r, ok in rows] == [(1, bob.id, False), (1, carol.id, True)]

    _, promoted = borrow.return_book(alice.id, dune.id)
    assert promoted.user_id == carol.id

    # bob is next in line once emma is back
    borrow.return_book(bob.id, emma.id)
    assert queue.queue_status(bob_res) == (1, True)


def test_book_becomes_available_when_no_holder_is_eligible(make_user, make_book):
    alice, bob = make_user(), make_user()
    dune, emma = make_book("Dune"), make_book("Emma", "Jane Austen")
    borrow = BorrowService(db.session)

    borrow.borrow(alice.id, dune.id)
    ReservationService(db.session).reserve(bob.id, dune.id)
    borrow.borrow(bob.id, emma.id)

    _, promoted = borrow.return_book(alice.id, dune.id)

    assert promoted is None
    assert dune.status == BookStatus.AVAILABLE
    assert Reservation.query.filter_by(book_id=dune.id, user_id=bob.id).count() == 1


def test_borrowing_consumes_own_reservation(make_user, make_book):
    alice, bob = make_user(), make_user()
    dune, emma = make_book("Dune"), make_book("Emma", "Jane Austen")
    borrow = BorrowService(db.session)

    borrow.borrow(alice.id, dune.id)
    ReservationService(db.session).reserve(bob.id, dune.id)
    borrow.borrow(bob.id, emma.id)
    borrow.return_book(alice.id, dune.id)  # bob skipped, dune available

    borrow.return_book(bob.id, emma.id)
    borrow.borrow(bob.id, dune.id)

    assert Reservation.query.count() == 0


def test_failed_promotion_rolls_back_the_whole_return(make_user, make_book, monkeypatch):
    alice, bob = make_user(), make_user()
    book = make_book()
    borrow = BorrowService(db.session)
    borrow.borrow(alice.id, book.id)
    ReservationService(db.session).reserve(bob.id, book.id)

    def boom(*args, **kwargs):
        raise RuntimeError("db went away")

    monkeypatch.setattr(borrow.queue, "promote_next", boom)

    with pytest.raises(RuntimeError):
        borrow.return_book(alice.id, book.id)

    assert len(open_borrowings(book_id=book.id, user_id=alice.id)) == 1
    assert Reservation.query.filter_by(book_id=book.id).count() == 1
    assert Activity.query.filter_by(type=ActivityType.RETURN).count() == 0
    assert book.status == BookStatus.BORROWED


def test_schema_rejects_second_open_loan(make_user, make_book):
    user = make_user()
    first, second = make_book("Dune"), make_book("Emma", "Jane Austen")
    now = datetime.utcnow()
    db.session.add(Borrowing(user_id=user.id, book_id=first.id, borrowed_at=now, due_date=now))
    db.session.add(Borrowing(user_id=user.id, book_id=second.id, borrowed_at=now, due_date=now))

    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_schema_allows_loan_history(make_user, make_book):
    user = make_user()
    book = make_book()
    service = BorrowService(db.session)
    for _ in range(3):
        service.borrow(user.id, book.id)
        service.return_book(user.id, book.id)

    assert Borrowing.query.filter_by(user_id=user.id).count() == 3
    assert open_borrowings(user_id=user.id) == []


def test_overdue_is_computed_on_read(make_user, make_book):
    user = make_user()
    book = make_book()
    service = BorrowService(db.session)
    long_ago = datetime.utcnow() - timedelta(days=30)
    b = service.borrow(user.id, book.id, now=long_ago)

    assert b.is_overdue()
    assert not b.is_overdue(now=long_ago + timedelta(days=1))
    assert [x.id for x in service.all_borrowings(only_overdue=True)] == [b.id]

    service.return_book(user.id, book.id)
    assert not b.is_overdue()
    assert service.all_borrowings(only_overdue=True) == []
