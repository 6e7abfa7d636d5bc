from contextlib import contextmanager
from flask import current_app
from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlalchemy.exc import IntegrityError

from pagebuilder.domain.exceptions import ConstraintViolation
from pagebuilder.extensions import db


def constraint_name(exc: IntegrityError) -> str:
    """
    Best-effort name of the constraint behind an IntegrityError.

    PostgreSQL drivers expose it directly; SQLite and MySQL only put it
    (or the offending columns) in the message.
    """
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name

    message = str(exc.orig)
    for table in db.metadata.tables.values():
        for constraint in table.constraints:
            if not constraint.name:
                continue
            if constraint.name in message:
                return constraint.name
            if isinstance(constraint, UniqueConstraint):
                columns = ", ".join(f"{table.name}.{c.name}" for c in constraint.columns)
                if columns in message:
                    return constraint.name
            # older SQLite versions report the check expression instead of its name
            if isinstance(constraint, CheckConstraint) and str(constraint.sqltext) in message:
                return constraint.name

    if "FOREIGN KEY" in message.upper():
        return "foreign_key"
    return "unknown"


@contextmanager
def transactional(*, operation: str, entity_id=None):
    """
    Context manager for database transactions.

    Integrity errors are re-raised as ConstraintViolation; anything else
    is rolled back and propagated untouched.
    """
    try:
        yield
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        name = constraint_name(exc)
        current_app.logger.warning("%s violated %s (id=%s)", operation, name, entity_id)
        raise ConstraintViolation(
            operation=operation,
            constraint=name,
            entity_id=entity_id,
        ) from exc
    except Exception:
        db.session.rollback()
        raise
