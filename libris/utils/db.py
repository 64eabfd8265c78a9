from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError

from libris.errors import ConflictError


@contextmanager
def atomic(session, conflict_message: str | None = None):
    """
    One commit point for a multi-step write.

    Everything inside the block commits together or is rolled back. When a
    unique index rejects the commit (two requests raced past the same
    precondition) and ``conflict_message`` is given, the caller sees a
    ConflictError instead of the raw IntegrityError.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if conflict_message:
            raise ConflictError(conflict_message) from e
        raise
    except Exception:
        session.rollback()
        raise
