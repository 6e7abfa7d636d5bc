from datetime import datetime, timezone
from dateutil.parser import parse

from pagebuilder.domain.exceptions import ConcurrencyConflict, ValidationError


def normalize_ts(ts):
    """
    Ensure datetime is timezone-aware.
    Defaults to UTC if naive.
    """
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_version_token(token):
    """Accepts a datetime or any string dateutil understands."""
    if isinstance(token, datetime):
        return normalize_ts(token)

    try:
        return normalize_ts(parse(token))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValidationError(f"Invalid version token: {token!r}") from exc


def enforce_optimistic_lock(stored_ts, expected, *, operation, entity_id):
    """
    Rejects a write when the stored page is newer than the caller's token.
    No token means last write wins.
    """
    if expected is None:
        return

    client_ts = parse_version_token(expected)
    server_ts = normalize_ts(stored_ts)

    if server_ts is not None and server_ts > client_ts:
        raise ConcurrencyConflict(operation=operation, entity_id=entity_id)
