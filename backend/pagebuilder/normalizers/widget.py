def normalize_setting(setting):
    return {"key": setting.key, "value": setting.value}


def normalize_widget(widget):
    return {
        "id": widget.id,
        "widget": widget.widget,
        "position_x": widget.position_x,
        "position_y": widget.position_y,
        "parent_id": widget.parent_id,
        "settings": [normalize_setting(s) for s in widget.settings],
    }


def normalize_widget_document(widget):
    return {
        "id": widget.get("id"),
        "widget": widget.get("widget"),
        "position_x": widget.get("position_x", 0),
        "position_y": widget.get("position_y", 0),
        "parent_id": widget.get("parent_id"),
        "settings": [
            {"key": s.get("key"), "value": s.get("value")}
            for s in widget.get("settings") or []
        ],
    }


def widget_tree(widgets):
    """
    Build a forest from a flat, ordered widget list.

    Each node is a copy of the widget with a ``children`` list. Sibling order
    follows the input order. Widgets pointing at an unknown parent are roots.
    """
    nodes = {w["id"]: {**w, "children": []} for w in widgets}
    roots = []

    for widget in widgets:
        node = nodes[widget["id"]]
        parent = nodes.get(widget.get("parent_id"))
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)

    return roots
