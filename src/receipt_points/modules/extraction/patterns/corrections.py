"""
OCR correction rule tables.

Each group is an ordered list applied by ``correction.apply_rules``. Every rule
in a group runs, in order, on the output of the previous one. ``count=1``
rewrites only the first occurrence; ``count=0`` rewrites every occurrence.

Several rules are known to be unsafe on already-normalized text and are kept
as-is for compatibility with receipts processed so far:

- ``1150`` -> ``1150.00`` appends ``.00`` again on every pass.
- ``q`` -> ``g`` rewrites the first ``q`` anywhere in the text, not just in units.
- ``l`` -> ``l`` lowercases the first ``L`` anywhere in the text.
- ``(\\d+)\\.(\\d{3})`` turns any three-decimal number into an integer amount.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

I = re.IGNORECASE


@dataclass(frozen=True)
class CorrectionRule:
    pattern: re.Pattern[str]
    replacement: str
    count: int = 1


def rule(pattern: str, replacement: str, *, flags: int = I, every: bool = False) -> CorrectionRule:
    return CorrectionRule(re.compile(pattern, flags), replacement, 0 if every else 1)


WORD_RULES: tuple[CorrectionRule, ...] = (
    rule(r"\bcast\b", "CASH"),
    rule(r"\bcaste\b", "CASH"),
    rule(r"\bcass\b", "CASH"),
    rule(r"\bcassh\b", "CASH"),
    rule(r"\bamouut\b", "AMOUNT"),
    rule(r"\bamout\b", "AMOUNT"),
    rule(r"\bteder\b", "TENDERED"),
    rule(r"\bpaymeut\b", "PAYMENT"),
    rule(r"paymet", "PAYMENT"),
    rule(r"receipt", "RECEIPT"),
    rule(r"receit", "RECEIPT"),
    rule(r"mercurv", "MERCURY"),
    rule(r"druq", "DRUG"),
)

VOLUME_RULES: tuple[CorrectionRule, ...] = (
    rule(r"\.dkg", ".4kg"),
    rule(r"\.d\s*kg", ".4kg"),
    rule(r"\.d\s*ml", ".4ml"),
    rule(r"\.d\s*l", ".4l"),
    rule(r"\.d\s*g", ".4g"),
    rule(r"kq", "kg"),
    rule(r"ml", "ml"),
    rule(r"l", "l"),
    rule(r"q", "g"),
    rule(r"pack", "pack"),
)

PRICE_RULES: tuple[CorrectionRule, ...] = (
    rule(r"150\.007", "1150.00"),
    rule(r"1150", "1150.00"),
    rule(r"(\d+)\.(\d{3})", r"\g<1>\g<2>.00"),
    rule(r"(\d+),(\d{3})", r"\g<1>\g<2>"),
    rule(r"₱\s*(\d+)", r"\g<1>"),
    rule(r"PHP\s*(\d+)", r"\g<1>"),
)

STORE_RULES: tuple[CorrectionRule, ...] = (
    rule(r"NRORY", "MERCURY"),
    rule(r"JRY\s+DRUG", "MERCURY DRUG"),
    rule(r"[h|m]?ercury\s+d?rug", "MERCURY DRUG", every=True),
    rule(r"Shera\s+Yor\s+Naglro", "MERCURY DRUG", every=True),
    rule(r"NERO\s+DRUG", "MERCURY DRUG", every=True),
    rule(r"MERCURV\s+DRUQ", "MERCURY DRUG"),
    rule(r"MERCURV\s+DRUG", "MERCURY DRUG"),
    rule(r"MERCURY\s+DRUQ", "MERCURY DRUG"),
    rule(r"SM\s+HVPERMARKET", "SM HYPERMARKET"),
    rule(r"SM\s+SUPERMARKET", "SM SUPERMARKET"),
    rule(r"ROBINSONS\s+MALL", "ROBINSONS MALL"),
    rule(r"@\s*RElDmore", "SAVEMORE", every=True),
    rule(r"\(@\s*rob;\s*in:\s*<0\.\s*Br\s*Easgniatie", "ROBINSONS SUPERMARKET", every=True),
    rule(r"rob;\s*in:\s*<0\.\s*Br\s*Easgniatie", "ROBINSONS SUPERMARKET", every=True),
    rule(r"PUREGOLD", "PUREGOLD"),
    rule(r"SAVEMORE", "SAVEMORE"),
    rule(r"7-ELEVEN", "7-ELEVEN"),
)

PRODUCT_RULES: tuple[CorrectionRule, ...] = (
    rule(r"BBRAND\s+JR\s+2\.dkg", "BBRAND JR 2.4kg"),
    rule(r"BBRAND\s+JR\s+2\.4kq", "BBRAND JR 2.4kg"),
    rule(r"barand\s+jr", "BBRAND JR"),
    rule(r"45000\s*a\s*RTIFIED", "BEAR BRAND FORTIFIED"),
    rule(r"NESCAFE\s+GOLD\s+29", "NESCAFE GOLD 2g"),
    rule(r"BEAR\s+B\s+FORT24000", "BEAR B FORT2400g"),
    rule(r"BEAR\s+BIECRTEA0", "BEAR B FORT840g"),
    rule(r"WIDO3HPRE-51\s*6KG", "NIDO3+PRE-S1.6KG"),
    rule(r"MIO034PRE-S7.", "NIDO3+PRE-S2.4KG"),
    # Second layer: the abbreviated brand produced above becomes the full brand.
    rule(r"\bBEAR\s+B\s+FORT(\d+[A-Za-z]*)", r"BEAR BRAND FORT\g<1>"),
)

CORRECTION_GROUPS: tuple[tuple[str, tuple[CorrectionRule, ...]], ...] = (
    ("word", WORD_RULES),
    ("volume", VOLUME_RULES),
    ("price", PRICE_RULES),
    ("store", STORE_RULES),
    ("product", PRODUCT_RULES),
)

# Used by product resolution before normalizing a single item name.
PRODUCT_NAME_GROUPS: tuple[tuple[str, tuple[CorrectionRule, ...]], ...] = (
    ("product", PRODUCT_RULES),
    ("volume", VOLUME_RULES),
)
