"""Building-name similarity for registry matching."""
from __future__ import annotations

import re

# Words common to most facility names in a school-district portfolio; they
# carry no identifying signal.
NAME_STOP_WORDS = frozenset({
    "USD", "USD260", "SCHOOL", "SCHOOLS", "DISTRICT", "ELEMENTARY", "MIDDLE", "HIGH", "SENIOR",
    "JUNIOR", "CENTER", "CENTRE", "LEARNING", "ADMIN", "ADMINISTRATIVE", "BUILDING", "FACILITY",
    "CAMPUS", "STADIUM", "FIELD", "GYM", "AUXILIARY", "MAINTENANCE", "KITCHEN", "CENTRAL",
    "PRIMARY", "SECONDARY", "THE", "OF", "AND", "DE", "OPERATIONS", "OPERATION",
})

_FOLDS = (
    (re.compile(r"\b(administration|administrative)\b"), "admin"),
    (re.compile(r"\b(ctr|center)\b"), "center"),
    (re.compile(r"\b(elem|elementary)\b"), "elementary"),
)


def normalize_name(name: str | None) -> str:
    """Lowercase, spell out ``&`` and fold common abbreviations."""
    s = (name or "").lower().replace("&", " and ")
    s = re.sub(r"[^a-z0-9 ]+", " ", s)
    for pattern, replacement in _FOLDS:
        s = pattern.sub(replacement, s)
    return re.sub(r"\s+", " ", s).strip()


def name_tokens(name: str | None) -> set[str]:
    cleaned = re.sub(r"[^A-Z0-9 ]+", " ", (name or "").upper().replace(".", " "))
    return {t for t in cleaned.split() if len(t) >= 3 and t not in NAME_STOP_WORDS}


def name_similarity(a: str | None, b: str | None) -> float:
    """Jaccard similarity of stop-word-filtered name tokens.

    Names that are equal after :func:`normalize_name` score 1.0 even when
    every token is a stop word ("Central Kitchen").
    """
    na, nb = normalize_name(a), normalize_name(b)
    if na and na == nb:
        return 1.0
    ta, tb = name_tokens(a), name_tokens(b)
    if not ta or not tb:
        return 0.0
    inter = len(ta & tb)
    return inter / len(ta | tb)
