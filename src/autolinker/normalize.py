"""Canonical key form used for both index storage and lookup."""

from __future__ import annotations

import unicodedata


def normalize(text: str) -> str:
    """Return *text* decomposed, stripped of diacritics, case-folded and alphanumeric-only.

    "Café au lait" -> "cafeaulait". Empty input gives an empty key.
    """
    decomposed = unicodedata.normalize("NFD", text)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    # Folding can reintroduce composed characters (e.g. U+0130), so decompose once more
    return "".join(ch for ch in unicodedata.normalize("NFD", folded) if ch.isalnum())
