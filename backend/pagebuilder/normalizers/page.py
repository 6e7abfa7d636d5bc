from pagebuilder.utils.optimistic_lock import normalize_ts
from .metatag import normalize_metatag, normalize_metatag_document
from .widget import normalize_widget, normalize_widget_document


def normalize_page(page, widgets=False, metatags=False):
    """
    Normalizes a Page row into the shape shared by both backends.

    Children are only included when explicitly requested, so callers
    never trigger a lazy load by accident.
    """
    data = {
        "id": page.id,
        "title": page.title,
        "extra_css": page.extra_css,
        "extra_js": page.extra_js,
        "slug": page.slug,
        "status": page.status,
        "theme": bool(page.theme),
        "created_at": normalize_ts(page.created_at),
        "updated_at": normalize_ts(page.updated_at),
    }

    if widgets:
        data["widgets"] = [normalize_widget(w) for w in page.widgets]

    if metatags:
        data["metatags"] = [normalize_metatag(t) for t in page.metatags]

    return data


def normalize_page_document(doc, widgets=True, metatags=True):
    """Page document -> the same shape as normalize_page."""
    data = {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "extra_css": doc.get("extra_css"),
        "extra_js": doc.get("extra_js"),
        "slug": doc.get("slug"),
        "status": doc.get("status"),
        "theme": bool(doc.get("theme", False)),
        "created_at": normalize_ts(doc.get("created_at")),
        "updated_at": normalize_ts(doc.get("updated_at")),
    }

    if widgets:
        data["widgets"] = [normalize_widget_document(w) for w in doc.get("widgets") or []]

    if metatags:
        data["metatags"] = [normalize_metatag_document(t) for t in doc.get("metatags") or []]

    return data
