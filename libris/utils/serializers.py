from datetime import datetime


def _iso(value):
    return value.isoformat() if value else None


def user_to_dict(u, counts: dict | None = None):
    data = {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "created_at": _iso(u.created_at),
    }
    if counts is not None:
        data["counts"] = counts
    return data


def user_brief(u):
    if u is None:
        return None
    return {"id": u.id, "name": u.name, "email": u.email}


def book_to_dict(b, borrow_count: int | None = None, reservation_count: int | None = None):
    data = {
        "id": b.id,
        "title": b.title,
        "author": b.author,
        "status": b.status,
        "created_at": _iso(b.created_at),
        "updated_at": _iso(b.updated_at),
    }
    if borrow_count is not None or reservation_count is not None:
        data["counts"] = {
            "borrowings": int(borrow_count or 0),
            "reservations": int(reservation_count or 0),
        }
    return data


def book_brief(b):
    if b is None:
        return None
    return {"id": b.id, "title": b.title, "author": b.author, "status": b.status}


def borrowing_to_dict(x, now: datetime | None = None, with_user: bool = False):
    data = {
        "id": x.id,
        "user_id": x.user_id,
        "book_id": x.book_id,
        "book": book_brief(x.book),
        "borrowed_at": _iso(x.borrowed_at),
        "due_date": _iso(x.due_date),
        "returned_at": _iso(x.returned_at),
        "is_overdue": x.is_overdue(now),
    }
    if with_user:
        data["user"] = user_brief(x.user)
    return data


def reservation_to_dict(r, queue_position: int | None = None, eligible: bool | None = None,
                        with_user: bool = False):
    data = {
        "id": r.id,
        "user_id": r.user_id,
        "book_id": r.book_id,
        "book": book_brief(r.book),
        "created_at": _iso(r.created_at),
    }
    if queue_position is not None:
        data["queue_position"] = queue_position
    if eligible is not None:
        data["eligible"] = eligible
    if with_user:
        data["user"] = user_brief(r.user)
    return data


def suggestion_to_dict(s, vote_count: int = 0, has_voted: bool | None = None):
    data = {
        "id": s.id,
        "title": s.title,
        "author": s.author,
        "reason": s.reason,
        "status": s.status,
        "user_id": s.user_id,
        "user_name": s.user.name if s.user else None,
        "user_email": s.user.email if s.user else None,
        "vote_count": int(vote_count or 0),
        "created_at": _iso(s.created_at),
        "updated_at": _iso(s.updated_at),
    }
    if has_voted is not None:
        data["has_voted"] = has_voted
    return data


def activity_to_dict(a):
    return {
        "id": a.id,
        "type": a.type,
        "user_id": a.user_id,
        "book_id": a.book_id,
        "book_title": a.book_title,
        "details": a.details,
        "created_at": _iso(a.created_at),
        "user": user_brief(a.user),
        "book": book_brief(a.book),
    }
