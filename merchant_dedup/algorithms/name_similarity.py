#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Fuzzy Name Matching

Computes similarity scores between merchant names using normalised
Levenshtein distance (or a bigram Dice coefficient), with normalisations
tuned for the generic business words that crowd Bitcoin merchant listings.

Dependencies:
    pip install rapidfuzz
"""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from typing import Iterable

from rapidfuzz.distance import Levenshtein


# ---------------------------------------------------------------------------
# Merchant naming noise
# ---------------------------------------------------------------------------

# Business-type and filler words that carry no identity signal.  Multi-word
# entries are matched as whole phrases.
DEFAULT_STOP_WORDS: tuple[str, ...] = (
    "cafe",
    "restaurant",
    "bar",
    "shop",
    "store",
    "ltd",
    "inc",
    "limited",
    "llc",
    "attorney",
    "notary",
    "law",
    "firm",
    "lawyer",
    "abogado",
    "legal",
    "salvadoran",
    "el salvador",
    "and",
    "the",
    "specialty",
    "roasters",
    "bit",
    "bitcofe",
    "bitcoin",
)

NAME_METRICS = ("levenshtein", "dice")

_MULTI_SPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]|_")


def _fold(text: str) -> str:
    """Lowercase, strip accents, turn punctuation into spaces, collapse whitespace."""
    text = text.lower()

    # Unicode normalise, then strip combining marks (accents)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))

    text = _NON_WORD.sub(" ", text)
    return _MULTI_SPACE.sub(" ", text).strip()


def build_stop_pattern(stop_words: Iterable[str]) -> re.Pattern[str] | None:
    """
    Compile a whole-word pattern for the given stop list (None if empty).

    Entries are folded the same way names are, so ``café`` also strips
    ``Cafe`` and ``CAFÉ``.
    """
    words = sorted({_fold(w) for w in stop_words if isinstance(w, str)} - {""}, key=len, reverse=True)
    if not words:
        return None
    alternation = "|".join(r"\s+".join(map(re.escape, w.split())) for w in words)
    return re.compile(rf"\b(?:{alternation})\b")


_DEFAULT_STOP_RE = build_stop_pattern(DEFAULT_STOP_WORDS)


def normalize_name(name: str | None, stop_pattern: re.Pattern[str] | None = _DEFAULT_STOP_RE) -> str:
    """
    Normalize a merchant name for comparison.

    Steps:
        1. Lowercase
        2. Unicode NFKD normalisation (strip accents)
        3. Replace punctuation and symbols with spaces
        4. Strip stop-list words
        5. Collapse whitespace and trim
    """
    if not name:
        return ""

    text = _fold(name)
    if stop_pattern is not None:
        text = stop_pattern.sub(" ", text)

    return _MULTI_SPACE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# Scoring functions
# ---------------------------------------------------------------------------


def levenshtein_similarity(a: str, b: str) -> float:
    """
    Normalised Levenshtein similarity between two strings.

    Returns a value in [0.0, 1.0] where 1.0 means identical.  Two empty
    strings are identical.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    max_len = max(len(a), len(b))
    dist = Levenshtein.distance(a, b)
    return 1.0 - (dist / max_len)


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_similarity(a: str, b: str) -> float:
    """
    Sørensen–Dice coefficient over character bigrams (whitespace ignored).

    Strings shorter than two characters have no bigrams; they only score
    1.0 when identical.
    """
    a = a.replace(" ", "")
    b = b.replace(" ", "")
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams_a = _bigrams(a)
    bigrams_b = _bigrams(b)
    overlap = sum((bigrams_a & bigrams_b).values())
    return (2.0 * overlap) / (len(a) + len(b) - 2)


_METRIC_FUNCS = {
    "levenshtein": levenshtein_similarity,
    "dice": dice_similarity,
}


def compute_name_similarity(
    name_a: str,
    name_b: str,
    *,
    metric: str = "levenshtein",
    stop_pattern: re.Pattern[str] | None = _DEFAULT_STOP_RE,
) -> dict[str, str | float]:
    """
    Compute the similarity between two raw merchant names.

    Parameters
    ----------
    name_a, name_b : str
        Raw merchant names (normalisation is handled internally).
    metric : str
        ``"levenshtein"`` (edit-distance ratio) or ``"dice"`` (bigram
        Dice coefficient).
    stop_pattern : compiled regex, optional
        Stop-list pattern from :func:`build_stop_pattern`.

    Returns
    -------
    dict with keys:
        - name_a_normalized, name_b_normalized: the cleaned names
        - score: float [0–1]
    """
    try:
        func = _METRIC_FUNCS[metric]
    except KeyError:
        raise ValueError(f"Unknown name metric {metric!r}; expected one of {NAME_METRICS}") from None

    norm_a = normalize_name(name_a, stop_pattern)
    norm_b = normalize_name(name_b, stop_pattern)

    return {
        "name_a_normalized": norm_a,
        "name_b_normalized": norm_b,
        "score": func(norm_a, norm_b),
    }


def quick_name_score(name_a: str, name_b: str) -> float:
    """Return only the name similarity score (0.0–1.0) with default settings."""
    return compute_name_similarity(name_a, name_b)["score"]
