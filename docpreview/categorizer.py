"""
Sort detail keys into display buckets. Rules are checked top to bottom and the first
match wins, so "Property Address" is a party detail (address) rather than a property one.
"""
from typing import Callable

from docpreview.details import DOCUMENT_TYPE_KEY

PARTIES = "parties"
DATES = "dates"
PROPERTY = "property"
LEGAL = "legal"
OTHER = "other"

CATEGORIES = (PARTIES, DATES, PROPERTY, LEGAL, OTHER)

CATEGORY_LABELS = {
    PARTIES: "Parties Information",
    DATES: "Dates & Duration",
    PROPERTY: "Property Details",
    LEGAL: "Legal Terms",
    OTHER: "Other Details",
}

KeyPredicate = Callable[[str], bool]


def key_contains(*needles: str) -> KeyPredicate:
    """Case-insensitive substring test against the detail key."""
    lowered = tuple(n.lower() for n in needles)

    def predicate(key: str) -> bool:
        k = key.lower()
        return any(n in k for n in lowered)

    return predicate


def key_equals(name: str) -> KeyPredicate:
    return lambda key: key == name


# (predicate, category); None means the key is not bucketed at all.
CATEGORY_RULES: list[tuple[KeyPredicate, str | None]] = [
    (key_equals(DOCUMENT_TYPE_KEY), None),
    (key_contains("party", "name", "relationship", "address"), PARTIES),
    (key_contains("date", "period", "duration"), DATES),
    (key_contains("property", "legal description", "subject"), PROPERTY),
    (key_contains("governing", "law", "consideration", "transfer type"), LEGAL),
]


def category_for(key: str) -> str | None:
    for predicate, category in CATEGORY_RULES:
        if predicate(key):
            return category
    return OTHER


def categorize(details: dict[str, str]) -> dict[str, dict[str, str]]:
    """Return all five buckets (possibly empty), each keeping the record's insertion order."""
    buckets: dict[str, dict[str, str]] = {c: {} for c in CATEGORIES}
    for key, value in details.items():
        category = category_for(key)
        if category is not None:
            buckets[category][key] = value
    return buckets
