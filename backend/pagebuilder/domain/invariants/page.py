from pagebuilder.domain.exceptions import ValidationError
from pagebuilder.domain.lifecycle.page import assert_status
from .metatag import assert_metatag_shape
from .widget import NESTED_WIDGET_FIELDS, assert_widget_data

PAGE_FIELDS = {
    "title",
    "extra_css",
    "extra_js",
    "slug",
    "status",
    "theme",
    "metatags",
    "widgets",
}
SCALAR_PAGE_FIELDS = PAGE_FIELDS - {"metatags", "widgets"}


def assert_page_data(data, partial=False):
    """
    Validate a create/update payload before it reaches storage.

    - Only fillable fields are accepted
    - title and slug are required on create and never blank
    - nested metatags/widgets are shape-checked; storage rules
      (uniqueness, XOR, positions) are left to the backend
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Page data must be a mapping, got {type(data).__name__}")

    unknown = set(data) - PAGE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown page fields: {', '.join(sorted(unknown))}")

    if not partial:
        for field in ("title", "slug"):
            if field not in data:
                raise ValidationError(f"Page {field} is required")

    for field in ("title", "slug"):
        if field in data and (not isinstance(data[field], str) or not data[field].strip()):
            raise ValidationError(f"Page {field} must be a non-empty string")

    for field in ("extra_css", "extra_js"):
        if data.get(field) is not None and not isinstance(data[field], str):
            raise ValidationError(f"Page {field} must be text")

    if "status" in data:
        assert_status(data["status"])

    if "theme" in data and not isinstance(data["theme"], bool):
        raise ValidationError("Page theme must be a boolean")

    if "metatags" in data:
        if not isinstance(data["metatags"], list):
            raise ValidationError("Page metatags must be a list")
        for tag in data["metatags"]:
            assert_metatag_shape(tag)

    if "widgets" in data:
        if not isinstance(data["widgets"], list):
            raise ValidationError("Page widgets must be a list")
        for widget in data["widgets"]:
            assert_widget_data(widget, allowed=NESTED_WIDGET_FIELDS)
