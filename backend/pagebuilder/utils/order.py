from pagebuilder.extensions import db


def compact_order(items, order_field="order"):
    """
    Re-assigns sequential order values (0..N-1) to already ordered rows,
    so that order values always match array indices.
    """
    for index, item in enumerate(items):
        if getattr(item, order_field) != index:
            setattr(item, order_field, index)

    db.session.flush()


def next_order(model, order_field="order", **scope):
    """Order value for appending a row at the end of a scoped sequence."""
    column = getattr(model, order_field)
    current = db.session.execute(
        db.select(db.func.max(column)).where(
            *(getattr(model, field) == value for field, value in scope.items())
        )
    ).scalar()
    return 0 if current is None else current + 1
