from __future__ import annotations

import re
from collections.abc import Callable

"""Slug generation.

Slugs are derived from the product name once, when the product is created, and
never regenerated on update: they are part of public URLs.

Uniqueness is checked with a live lookup per candidate instead of a snapshot,
so two new products with the same name in one file still get distinct slugs.
"""

__all__ = [
    "FALLBACK_SLUG",
    "slugify",
    "generate_unique_slug",
]

FALLBACK_SLUG = "product"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumerics into single hyphens, trim hyphens.

    >>> slugify("  Brake Pad (Front) ")
    'brake-pad-front'
    """
    slug = _NON_ALNUM.sub("-", name.strip().lower()).strip("-")
    return slug or FALLBACK_SLUG


def generate_unique_slug(name: str, slug_exists: Callable[[str], bool]) -> str:
    """Return the first free slug among ``base``, ``base-2``, ``base-3``, ...

    ``slug_exists`` is a point lookup against the store; it is called once per
    candidate, sequentially.
    """
    base = slugify(name)
    if not slug_exists(base):
        return base
    suffix = 2
    while True:
        candidate = f"{base}-{suffix}"
        if not slug_exists(candidate):
            return candidate
        suffix += 1
