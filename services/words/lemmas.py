"""Lemma normalization shared by the manual and image ingestion flows."""

import re
from typing import Iterable, List

# Whitespace, ASCII commas and full-width commas
_SEPARATORS = re.compile(r"[\s,，]+")


def normalize_lemma(value: str) -> str:
    return (value or "").strip().lower()


def split_lemmas(raw_inputs: Iterable[str]) -> List[str]:
    """
    Split raw user input into distinct lemmas, first occurrence first.

    >>> split_lemmas(["Cat, dog", "cat"])
    ['cat', 'dog']
    """
    seen = set()
    lemmas = []
    for raw in raw_inputs:
        for token in _SEPARATORS.split(raw or ""):
            lemma = normalize_lemma(token)
            if lemma and lemma not in seen:
                seen.add(lemma)
                lemmas.append(lemma)
    return lemmas


def dedupe_lemmas(values: Iterable[str]) -> List[str]:
    """Normalize whole values (no splitting) and drop empties and repeats."""
    seen = set()
    lemmas = []
    for value in values:
        lemma = normalize_lemma(value)
        if lemma and lemma not in seen:
            seen.add(lemma)
            lemmas.append(lemma)
    return lemmas
