def normalize_metatag(tag):
    return {
        "name": tag.name,
        "property": tag.property,
        "content": tag.content,
    }


def normalize_metatag_document(tag):
    return {
        "name": tag.get("name"),
        "property": tag.get("property"),
        "content": tag.get("content"),
    }
