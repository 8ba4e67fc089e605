"""Street-address canonicalisation used for matching bills to buildings.

``normalize_address`` is idempotent: running it on its own output returns the
same string. Misspellings are preserved, only layout noise, directionals and
the trailing street suffix are folded.
"""

from __future__ import annotations

import re

USPS_SUFFIX = {
    "AVENUE": "AVE",
    "AVE": "AVE",
    "AV": "AVE",
    "BOULEVARD": "BLVD",
    "BLVD": "BLVD",
    "CIRCLE": "CIR",
    "CIR": "CIR",
    "COURT": "CT",
    "CT": "CT",
    "DRIVE": "DR",
    "DR": "DR",
    "HIGHWAY": "HWY",
    "HWY": "HWY",
    "LANE": "LN",
    "LN": "LN",
    "PARKWAY": "PKWY",
    "PKWY": "PKWY",
    "PLACE": "PL",
    "PL": "PL",
    "ROAD": "RD",
    "RD": "RD",
    "STREET": "ST",
    "ST": "ST",
    "TERRACE": "TER",
    "TER": "TER",
    "WAY": "WAY",
}

DIRECTIONALS = {
    "NORTH": "N",
    "SOUTH": "S",
    "EAST": "E",
    "WEST": "W",
    "NORTHEAST": "NE",
    "NORTHWEST": "NW",
    "SOUTHEAST": "SE",
    "SOUTHWEST": "SW",
}
DIRECTIONAL_ABBREVIATIONS = frozenset(DIRECTIONALS.values())

_NOISE_RE = re.compile(r"[|().,#]")
_WS_RE = re.compile(r"\s+")
_PER_MCF_TAIL_RE = re.compile(r"\bPER\s+MCF\b.*$", re.IGNORECASE)
_HOUSE_NUMBER_RE = re.compile(r"^\d+[A-Z]?$")


def _fold_suffix(token: str) -> str:
    if token in USPS_SUFFIX:
        return USPS_SUFFIX[token]
    if len(token) > 1 and token.endswith("S") and token[:-1] in USPS_SUFFIX:
        return USPS_SUFFIX[token[:-1]]
    return token


def normalize_address(raw: str | None) -> str:
    """Uppercase, strip punctuation noise, fold directionals and the suffix.

    >>> normalize_address("3012 N. Tripple Creek Drive")
    '3012 N TRIPPLE CREEK DR'
    """
    if not raw:
        return ""
    text = _NOISE_RE.sub(" ", raw.upper())
    tokens = _WS_RE.sub(" ", text).strip().split(" ")
    if tokens == [""]:
        return ""
    # Directionals are folded everywhere except the final token, which may be
    # a street name ("100 NORTH").
    tokens = [DIRECTIONALS.get(t, t) for t in tokens[:-1]] + [tokens[-1]]
    if len(tokens) > 1:
        tokens[-1] = _fold_suffix(tokens[-1])
    return " ".join(tokens)


def clean_address_raw(raw: str | None) -> str:
    """Normalize an extractor-captured address line.

    Drops anything before the first digit (labels, account names) and a
    trailing ``PER MCF`` rate fragment before normalizing.
    """
    if not raw:
        return ""
    m = re.search(r"\d", raw)
    text = raw[m.start():] if m else raw
    text = _PER_MCF_TAIL_RE.sub("", text)
    return normalize_address(text)


def loose_key(raw: str | None) -> str | None:
    """House number plus the first five characters of the street name.

    The first non-directional token after the house number is used, so
    ``"3012 N TRIPPLE CREEK DR"`` and ``"3012 TRIPLE CREEK"`` differ while
    ``"3012 N TRIPPLE CRK"`` and ``"3012 TRIPPLE CREEK DR"`` agree.
    Returns ``None`` when there is no leading house number or street token.
    """
    tokens = normalize_address(raw).split()
    if len(tokens) < 2 or not _HOUSE_NUMBER_RE.match(tokens[0]):
        return None
    for token in tokens[1:]:
        if token in DIRECTIONAL_ABBREVIATIONS:
            continue
        return f"{tokens[0]} {token[:5]}"
    return None


def address_key(line1: str | None, city: str | None, state: str | None, postal_code: str | None) -> str:
    """Full postal key used to line local buildings up with registry properties."""
    postal = re.sub(r"\D", "", postal_code or "")[:5]
    parts = [
        normalize_address(line1),
        _WS_RE.sub(" ", (city or "").upper()).strip(),
        (state or "").strip().upper(),
        postal,
    ]
    return "|".join(parts)
