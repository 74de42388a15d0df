"""
Dialect-aware INSERT ... ON CONFLICT helpers.

PostgreSQL and SQLite both implement ``ON CONFLICT`` with the same
semantics; SQLAlchemy exposes them through dialect-specific ``insert``
constructs.  These helpers pick the construct from the session's bind so
services can express natural-key upserts once.

Failure modes:
    - ValueError for any other dialect.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: Session, model: type):
    """Return a dialect-specific Core ``insert`` on the model's table."""
    name = session.get_bind().dialect.name
    try:
        return _INSERT_BY_DIALECT[name](model.__table__)
    except KeyError:
        raise ValueError(f"ON CONFLICT upserts are not supported on {name!r}") from None


def insert_or_ignore(
    session: Session,
    model: type,
    values: Mapping[str, Any],
    conflict_columns: Iterable[str],
) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING.  Returns True when a row was inserted."""
    stmt = (
        dialect_insert(session, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=list(conflict_columns))
    )
    result = session.execute(stmt)
    return result.rowcount == 1


def insert_or_update(
    session: Session,
    model: type,
    values: Mapping[str, Any],
    conflict_columns: Iterable[str],
    update_columns: Iterable[str],
) -> None:
    """INSERT ... ON CONFLICT DO UPDATE, refreshing only ``update_columns``.

    ``updated_at`` is stamped as well when the table has one; column
    ``onupdate`` defaults do not fire for the ON CONFLICT branch.
    """
    stmt = dialect_insert(session, model).values(**values)
    set_: dict[str, Any] = {col: stmt.excluded[col] for col in update_columns}
    if "updated_at" in model.__table__.c:
        set_["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_=set_,
    )
    session.execute(stmt)
