# Overview: Human-readable code allocation ({tag}/{year}/{n}) backed by CodeSequence rows.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CodeSequence
from ..time_utils import utcnow


class CodeSequenceError(Exception):
    """Raised when code sequence operations fail."""
    pass


def generate_code(tag: str, *, year: int | None = None) -> str:
    """
    Atomically allocate the next code for a tag in the current year.

    n is the number of codes already issued for (tag, year), so the first
    sale of a year is "SAL/<year>/0". The increment is a single UPDATE,
    which keeps concurrent creates from getting the same number.

    The first code of a (tag, year) inserts its row inside a savepoint;
    losing that race to a concurrent create falls back to the UPDATE.
    """
    if not tag:
        raise CodeSequenceError("tag is required")
    year = year or utcnow().year

    stmt = (
        update(CodeSequence)
        .where(CodeSequence.tag == tag, CodeSequence.year == year)
        .values(next_number=CodeSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        issued = _current_number(tag, year) - 1
    else:
        nested = db.session.begin_nested()
        try:
            db.session.add(CodeSequence(tag=tag, year=year, next_number=1))
            db.session.flush()
            nested.commit()
            issued = 0
        except IntegrityError:
            nested.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            issued = _current_number(tag, year) - 1

    return f"{tag}/{year}/{issued}"


def _current_number(tag: str, year: int) -> int:
    db.session.flush()
    return (
        db.session.query(CodeSequence.next_number)
        .filter_by(tag=tag, year=year)
        .scalar()
    )
