from rapidfuzz import fuzz
from typing import Iterable
from recofeed.config import FUZZY_THRESHOLD


def names_overlap(name: str, other: str, threshold: float = FUZZY_THRESHOLD) -> bool:
    """
    Case-insensitive containment check between two restaurant names.

    A partial_ratio of 100 means the shorter name appears verbatim inside the
    longer one, in either direction. Empty names never match.
    """
    a = (name or "").strip().lower()
    b = (other or "").strip().lower()
    if not a or not b:
        return False
    return fuzz.partial_ratio(a, b) >= threshold


def matches_any_rated(name: str, rated_names: Iterable[str]) -> bool:
    """
    Determine whether a candidate name overlaps any of the user's rated names.

    Short generic names such as "Cafe" match broadly; that is accepted.
    """
    for rated in rated_names:
        if names_overlap(name, rated):
            return True
    return False
