import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """'Pastelería Dulce Día' -> 'pasteleria-dulce-dia'"""
    ascii_value = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG.sub("-", ascii_value.lower()).strip("-")


def literal_like(value: str) -> str:
    """LIKE pattern matching ``value`` as a plain substring (wildcards escaped with '\\')."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
