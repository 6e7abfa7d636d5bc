from typing import Tuple

from pagebuilder.domain.exceptions import ValidationError

PAGE_STATUSES: Tuple[str, ...] = ("draft", "published", "archived")
DEFAULT_STATUS = "draft"
PUBLISHED = "published"


def assert_status(status) -> None:
    """
    Guards the page status enumeration.
    Single source of truth for both backends.
    """
    if status not in PAGE_STATUSES:
        raise ValidationError(
            f"Invalid page status: {status!r} (expected one of {', '.join(PAGE_STATUSES)})"
        )
