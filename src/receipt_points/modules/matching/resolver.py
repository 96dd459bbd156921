"""
Fuzzy resolution of noisy OCR strings against a canonical catalog.

Scores are distances in [0, 1]: 0 is a perfect match. Each searched field is
scored as ``1 - WRatio / 100`` (rapidfuzz) and the entry score is the weighted
mean over the fields the entry actually has. An entry is a candidate only when
at least one field is within ``MATCH_THRESHOLD``. The lowest score wins and
ties keep catalog order.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from rapidfuzz import fuzz, utils

MATCH_THRESHOLD = 0.4
FALLBACK_SCORE = 0.5

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WS_RE = re.compile(r"\s+")


class MatchTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    LOW = "low"


@dataclass(frozen=True)
class CatalogEntry:
    """Read-only snapshot of a store or product used for matching."""

    id: uuid.UUID
    name: str
    normalized_name: str
    keywords: tuple[str, ...] = ()
    points: Decimal = Decimal("0")
    brand_name: str | None = None
    volume: Decimal | None = None
    volume_unit: str | None = None
    store_type: str | None = None


@dataclass(frozen=True)
class SearchField:
    attr: str
    weight: float


STORE_FIELDS: tuple[SearchField, ...] = (
    SearchField("name", 0.6),
    SearchField("normalized_name", 0.3),
    SearchField("keywords", 0.1),
)

PRODUCT_FIELDS: tuple[SearchField, ...] = (
    SearchField("name", 0.5),
    SearchField("normalized_name", 0.4),
    SearchField("keywords", 0.1),
)


@dataclass(frozen=True)
class MatchResult:
    entity: CatalogEntry
    score: float
    tier: MatchTier
    via_fallback: bool = False
    field_scores: dict[str, float] = field(default_factory=dict, compare=False)

    @property
    def is_match(self) -> bool:
        return self.tier != MatchTier.LOW


def _basic_normalize(text: str) -> str:
    lowered = (text or "").lower()
    lowered = _NON_ALNUM_RE.sub("", lowered)
    return _WS_RE.sub(" ", lowered).strip()


def normalize_store_name(text: str) -> str:
    normalized = _basic_normalize(text)
    # Branch names collapse onto the chain ("mercury drug lucban").
    if "mercury drug" in normalized:
        normalized = "mercury drug"
    return normalized


def normalize_product_name(text: str) -> str:
    # Decimal points are stripped with the rest, so "2.4kg" and "24kg" compare equal.
    return _basic_normalize(text)


def classify_tier(score: float) -> MatchTier:
    if score <= 0.1:
        return MatchTier.EXCELLENT
    if score <= 0.2:
        return MatchTier.GOOD
    if score <= 0.3:
        return MatchTier.FAIR
    if score <= 0.4:
        return MatchTier.POOR
    return MatchTier.LOW


def _distance(candidate: str, value: str) -> float | None:
    if not value:
        return None
    similarity = fuzz.WRatio(candidate, value, processor=utils.default_process)
    return max(0.0, min(1.0, 1.0 - similarity / 100.0))


def _field_distance(candidate: str, entry: CatalogEntry, attr: str) -> float | None:
    value = getattr(entry, attr, None)
    if isinstance(value, (tuple, list)):
        scores = [s for s in (_distance(candidate, str(v)) for v in value) if s is not None]
        return min(scores) if scores else None
    if value is None:
        return None
    return _distance(candidate, str(value))


def score_entry(
    candidate: str, entry: CatalogEntry, fields: Sequence[SearchField]
) -> tuple[float, dict[str, float]] | None:
    """Weighted distance of ``entry`` from an already-normalized candidate."""
    field_scores: dict[str, float] = {}
    weighted = 0.0
    weight_total = 0.0
    for f in fields:
        distance = _field_distance(candidate, entry, f.attr)
        if distance is None:
            continue
        field_scores[f.attr] = distance
        weighted += f.weight * distance
        weight_total += f.weight
    if not field_scores or min(field_scores.values()) > MATCH_THRESHOLD:
        return None
    return weighted / weight_total, field_scores


def _ranked(
    candidate: str, catalog: Sequence[CatalogEntry], fields: Sequence[SearchField]
) -> list[MatchResult]:
    results: list[MatchResult] = []
    for entry in catalog:
        scored = score_entry(candidate, entry, fields)
        if scored is None:
            continue
        score, field_scores = scored
        results.append(
            MatchResult(
                entity=entry,
                score=score,
                tier=classify_tier(score),
                field_scores=field_scores,
            )
        )
    # sorted() is stable, so equal scores stay in catalog order.
    return sorted(results, key=lambda r: r.score)


def resolve(
    candidate_text: str,
    catalog: Sequence[CatalogEntry],
    *,
    fields: Sequence[SearchField] = PRODUCT_FIELDS,
    normalize: Callable[[str], str] = normalize_product_name,
) -> MatchResult | None:
    if not catalog:
        return None
    candidate = normalize(candidate_text)
    if not candidate:
        return None
    ranked = _ranked(candidate, catalog, fields)
    return ranked[0] if ranked else None


def fallback_resolve(
    candidate_text: str,
    catalog: Sequence[CatalogEntry],
    *,
    normalize: Callable[[str], str] = normalize_product_name,
) -> MatchResult | None:
    """Plain containment search used when similarity scoring is unavailable."""
    if not catalog:
        return None
    candidate = normalize(candidate_text)
    if not candidate:
        return None
    words = [w for w in candidate.split(" ") if len(w) > 2]
    for entry in catalog:
        haystacks = [entry.normalized_name.lower(), *(k.lower() for k in entry.keywords)]
        if any(word in hay for word in words for hay in haystacks):
            return MatchResult(
                entity=entry,
                score=FALLBACK_SCORE,
                tier=classify_tier(FALLBACK_SCORE),
                via_fallback=True,
            )
    return None


def suggest(
    candidate_text: str,
    catalog: Sequence[CatalogEntry],
    *,
    fields: Sequence[SearchField] = PRODUCT_FIELDS,
    normalize: Callable[[str], str] = normalize_product_name,
    limit: int = 5,
) -> list[MatchResult]:
    if not catalog or limit <= 0:
        return []
    candidate = normalize(candidate_text)
    if not candidate:
        return []
    return _ranked(candidate, catalog, fields)[:limit]
