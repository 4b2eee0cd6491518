"""
Brand-name query variants for search-engine lookups.
"""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def brand_variants(name: str) -> list[str]:
    """
    Return de-duplicated query variants in lookup order:
    verbatim, upper, lower, hyphenated, quoted exact.
    """

    verbatim = _WHITESPACE.sub(" ", name).strip()
    if not verbatim:
        return []

    candidates = [
        verbatim,
        verbatim.upper(),
        verbatim.lower(),
        verbatim.replace(" ", "-"),
        f'"{verbatim}"',
    ]
    return list(dict.fromkeys(candidates))
