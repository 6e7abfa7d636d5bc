from pagebuilder.domain.exceptions import ConstraintViolation, ValidationError

WIDGET_FIELDS = {"widget", "position_x", "position_y", "parent_id", "settings"}
# Embedded in create/update payloads; parent links need persisted ids
NESTED_WIDGET_FIELDS = WIDGET_FIELDS - {"parent_id"}

POSITION_CONSTRAINTS = {
    "position_x": "chk_widgets_position_x",
    "position_y": "chk_widgets_position_y",
}
PARENT_FK_CONSTRAINT = "fk_widgets_parent"
ACYCLIC_CONSTRAINT = "widget_parent_acyclic"


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def assert_widget_data(data, *, partial=False, allowed=WIDGET_FIELDS):
    if not isinstance(data, dict):
        raise ValidationError(f"Widget must be a mapping, got {type(data).__name__}")

    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(f"Unknown widget fields: {', '.join(sorted(unknown))}")

    if not partial and "widget" not in data:
        raise ValidationError("Widget type is required")

    if "widget" in data and (not isinstance(data["widget"], str) or not data["widget"]):
        raise ValidationError("Widget type must be a non-empty string")

    for field in POSITION_CONSTRAINTS:
        if field in data and not _is_int(data[field]):
            raise ValidationError(f"{field} must be an integer")

    parent_id = data.get("parent_id")
    if parent_id is not None and (isinstance(parent_id, bool) or not isinstance(parent_id, (str, int))):
        raise ValidationError("parent_id must be a widget id or None")

    if "settings" in data:
        assert_settings_shape(data["settings"])


def assert_settings_shape(settings):
    if not isinstance(settings, list):
        raise ValidationError("Widget settings must be a list")

    for setting in settings:
        if not isinstance(setting, dict) or set(setting) != {"key", "value"}:
            raise ValidationError("Widget settings must be {key, value} pairs")
        if not isinstance(setting["key"], str) or not setting["key"]:
            raise ValidationError("Widget setting key must be a non-empty string")


def assert_widget_positions(data, *, operation, entity_id=None):
    """Application-level mirror of the relational position checks."""
    for field, constraint in POSITION_CONSTRAINTS.items():
        if data.get(field, 0) < 0:
            raise ConstraintViolation(
                operation=operation,
                constraint=constraint,
                entity_id=entity_id,
            )


def assert_acyclic(parents, *, widget_id, parent_id, operation, entity_id=None):
    """
    Validate linking ``widget_id`` under ``parent_id``.

    ``parents`` maps every widget id of the page to its current parent id.
    The parent must belong to the same page and the resulting chain must
    never lead back to ``widget_id``.
    """
    if parent_id is None:
        return

    if parent_id not in parents:
        raise ConstraintViolation(
            operation=operation,
            constraint=PARENT_FK_CONSTRAINT,
            entity_id=entity_id,
        )

    seen = set()
    current = parent_id
    while current is not None:
        if current == widget_id or current in seen:
            raise ConstraintViolation(
                operation=operation,
                constraint=ACYCLIC_CONSTRAINT,
                entity_id=entity_id,
            )
        seen.add(current)
        current = parents.get(current)
