def to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def clean_tags(raw) -> list[str]:
    """Trim tag input and drop empties and repeats, keeping first-seen order."""
    if not raw:
        return []
    if isinstance(raw, str):
        tokens = raw.replace(";", ",").split(",")
    else:
        tokens = [str(item) for item in raw if item is not None]

    cleaned: list[str] = []
    seen: set[str] = set()
    for token in tokens:
        tag = token.strip()
        if tag and tag not in seen:
            seen.add(tag)
            cleaned.append(tag)
    return cleaned


def merge_tags(existing, additions) -> list[str]:
    return clean_tags(list(existing or []) + list(additions or []))
