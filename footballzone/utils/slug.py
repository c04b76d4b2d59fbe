"""URL-safe slugs and excerpts for Bulgarian article titles."""

import random
import re
from typing import Callable

CYRILLIC_TO_LATIN = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ж": "zh",
    "з": "z", "и": "i", "й": "y", "к": "k", "л": "l", "м": "m", "н": "n",
    "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u", "ф": "f",
    "х": "h", "ц": "ts", "ч": "ch", "ш": "sh", "щ": "sht", "ъ": "a",
    "ь": "y", "ю": "yu", "я": "ya",
}

MIN_SLUG_LENGTH = 3

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def transliterate(text: str) -> str:
    out = []
    for ch in text:
        latin = CYRILLIC_TO_LATIN.get(ch.lower())
        if latin is None:
            out.append(ch)
        elif ch.isupper():
            out.append(latin.capitalize())
        else:
            out.append(latin)
    return "".join(out)


def generate_slug(text: str, max_length: int = 50) -> str:
    """Convert a (Bulgarian) title into a URL-safe slug."""
    slug = transliterate(text or "").lower().strip()
    slug = _SPACE_RE.sub("-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")

    if len(slug) < MIN_SLUG_LENGTH:
        suffix = f"{random.randint(0, 999999):06d}"
        slug = f"{slug}-{suffix}" if slug else f"article-{suffix}"

    if len(slug) > max_length:
        cut = slug[:max_length]
        # drop a partial word at the end
        slug = cut.rsplit("-", 1)[0] if "-" in cut else cut
    return slug


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Append ``-2``, ``-3``... to ``base`` until ``exists`` says it is free."""
    candidate = base
    n = 2
    while exists(candidate):
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def make_excerpt(content: str, length: int = 200) -> str:
    """Plain-text summary of an (HTML) body, cut on a word boundary."""
    text = _SPACE_RE.sub(" ", _TAG_RE.sub(" ", content or "")).strip()
    if len(text) <= length:
        return text
    cut = text[:length].rsplit(" ", 1)[0]
    return cut.rstrip(",.;:!?-") + "…"
