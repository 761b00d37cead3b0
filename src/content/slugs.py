"""URL slug generation."""

from __future__ import annotations

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Turn arbitrary text into a URL-safe slug.

    Lowercases, folds accented letters to ASCII, collapses every run of
    non-alphanumeric characters into one hyphen, and trims hyphens from
    both ends.  ``slugify(slugify(x)) == slugify(x)`` for any input.

    >>> slugify("Digital Marketing & SEO!")
    'digital-marketing-seo'
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", folded.lower()).strip("-")
