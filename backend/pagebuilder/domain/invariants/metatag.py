from pagebuilder.domain.exceptions import ConstraintViolation, ValidationError

METATAG_FIELDS = {"name", "property", "content"}
METATAG_XOR_CONSTRAINT = "chk_metatags_name_xor_property"


def assert_metatag_shape(tag):
    if not isinstance(tag, dict):
        raise ValidationError(f"Metatag must be a mapping, got {type(tag).__name__}")

    unknown = set(tag) - METATAG_FIELDS
    if unknown:
        raise ValidationError(f"Unknown metatag fields: {', '.join(sorted(unknown))}")

    if not isinstance(tag.get("content"), str):
        raise ValidationError("Metatag content is required")

    for field in ("name", "property"):
        value = tag.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"Metatag {field} must be a string")


def assert_metatag_xor(tag, *, operation, entity_id=None):
    """Exactly one of name/property must be set."""
    has_name = tag.get("name") is not None
    has_property = tag.get("property") is not None

    if has_name == has_property:
        raise ConstraintViolation(
            operation=operation,
            constraint=METATAG_XOR_CONSTRAINT,
            entity_id=entity_id,
        )
