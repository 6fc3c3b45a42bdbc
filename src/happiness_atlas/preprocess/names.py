from __future__ import annotations

import csv
import logging
import re
from functools import lru_cache
from pathlib import Path

import pandas as pd

LOGGER = logging.getLogger(__name__)

TRAILING_PAREN_RE = re.compile(r"\s*\(.*\)\s*$", re.DOTALL)
APOSTROPHE_RE = re.compile(r"['’]")
PERIOD_RE = re.compile(r"\.")
LEADING_ARTICLE_RE = re.compile(r"^the\s+")
TRAILING_FORM_RE = re.compile(r" (republic|kingdom)$")


def _normalize_once(text: str) -> str:
    text = text.strip().lower()
    text = TRAILING_PAREN_RE.sub("", text)
    text = APOSTROPHE_RE.sub("", text)
    text = PERIOD_RE.sub("", text)
    return text.strip()


def normalize_country_name(value: object) -> str:
    """Canonicalize a country name for comparison.

    Trims, lowercases, drops one trailing parenthetical annotation, then
    removes apostrophes (straight and curly) and periods. A parenthetical
    hidden behind a trailing period or apostrophe, as in "Foo (Bar).", is
    dropped too, so the result is stable under repeated normalization.
    Falsy and missing values (None, NaN, pd.NA) normalize to the empty string.
    """
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    if isinstance(value, str):
        text = value
    elif not value:
        return ""
    else:
        text = str(value)

    normalized = _normalize_once(text)
    while True:
        again = _normalize_once(normalized)
        if again == normalized:
            return normalized
        normalized = again


def affix_variants(normalized: str) -> list[str]:
    """Return the name with a leading "the " and/or a trailing form word removed."""
    without_article = LEADING_ARTICLE_RE.sub("", normalized, count=1)
    without_form = TRAILING_FORM_RE.sub("", normalized, count=1)
    without_both = TRAILING_FORM_RE.sub("", without_article, count=1)

    variants: list[str] = []
    for candidate in (without_both, without_article, without_form):
        candidate = candidate.strip()
        if candidate and candidate != normalized and candidate not in variants:
            variants.append(candidate)
    return variants


@lru_cache(maxsize=8)
def _read_override_rows(path: str) -> tuple[tuple[str, str], ...]:
    file_path = Path(path)
    if not file_path.exists():
        LOGGER.warning("Country override table not found: %s", path)
        return ()

    rows: list[tuple[str, str]] = []
    with file_path.open("r", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            alias = (row.get("alias") or "").strip()
            canonical = (row.get("canonical") or "").strip()
            if alias and canonical:
                rows.append((alias, canonical))
    return tuple(rows)


def build_override_map(pairs: list[tuple[str, str]] | tuple[tuple[str, str], ...]) -> dict[str, str]:
    """Key each alias by its literal lowercase form and by its normalized form.

    Literal keys keep aliases such as "congo (kinshasa)" reachable even though
    normalization folds them together. A normalized key shared by aliases with
    different canonicals is ambiguous and is dropped.
    """
    mapping: dict[str, str] = {}
    normalized_targets: dict[str, set[str]] = {}
    for alias, canonical in pairs:
        literal = alias.strip().lower()
        mapping[literal] = canonical
        normalized_targets.setdefault(normalize_country_name(alias), set()).add(canonical)

    for key, canonicals in normalized_targets.items():
        if not key or key in mapping:
            continue
        if len(canonicals) > 1:
            LOGGER.warning(
                "Ignoring ambiguous normalized override alias %r -> %s", key, sorted(canonicals)
            )
            continue
        mapping[key] = next(iter(canonicals))
    return mapping


def load_override_map(path: str) -> dict[str, str]:
    if not path:
        return {}
    return build_override_map(_read_override_rows(path))
