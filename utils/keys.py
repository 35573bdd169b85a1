"""Header key generation"""

import re
import unicodedata
from typing import Any, Iterable, List


_NON_WORD = re.compile(r"[^\w\s\-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def is_blank(value: Any) -> bool:
    """True for None and strings that are empty after trimming"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def cell_text(value: Any) -> str:
    """Display text of a raw cell"""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def header_key(label: Any, position: int) -> str:
    """
    Build a machine-safe key from a header label

    1. Unicode-normalize and strip diacritics
    2. Drop characters other than word chars, whitespace and hyphens
    3. Collapse whitespace and hyphen runs to underscores
    4. Lowercase

    Args:
        label: Raw header cell
        position: 0-based column position, used for the empty-label fallback

    Returns:
        Key, or ``column_{position + 1}`` when nothing survives
    """
    text = cell_text(label)
    if not text:
        return f"column_{position + 1}"

    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_WORD.sub("", text).strip()
    text = _WHITESPACE.sub("_", text)
    text = _HYPHENS.sub("_", text)
    key = text.lower()

    return key or f"column_{position + 1}"


def unique_header_keys(labels: List[Any], reserved: Iterable[str] = ()) -> List[str]:
    """Generate keys for a header row, suffixing repeats with _2, _3, ..."""
    keys = []
    used = set(reserved)
    seen = {key: 1 for key in used}

    for i, label in enumerate(labels):
        key = header_key(label, i)
        if key in used:
            # A literal label may already occupy the suffixed name
            n = seen.get(key, 1)
            candidate = key
            while candidate in used:
                n += 1
                candidate = f"{key}_{n}"
            seen[key] = n
            key = candidate
        else:
            seen.setdefault(key, 1)
        used.add(key)
        keys.append(key)

    return keys
