from __future__ import annotations

import re
from dataclasses import dataclass

I = re.IGNORECASE


@dataclass(frozen=True)
class SpecificProduct:
    name: str
    patterns: tuple[re.Pattern[str], ...]


def _specific(name: str, *patterns: str) -> SpecificProduct:
    return SpecificProduct(name=name, patterns=tuple(re.compile(p, I) for p in patterns))


# Well-known products recognized regardless of the generic line filter.
SPECIFIC_PRODUCTS: tuple[SpecificProduct, ...] = (
    _specific(
        "Nestle Milo",
        r"(MILO\s+\d+[gml])\s+([\d,]+\.?\d*)",
        r"(NESTLE\s+MILO\s+\d+[gml])\s+([\d,]+\.?\d*)",
    ),
    _specific(
        "Coca-Cola",
        r"(COCA\s*COLA\s+\d+\.?\d*[lml])\s+([\d,]+\.?\d*)",
        r"(COKE\s+\d+\.?\d*[lml])\s+([\d,]+\.?\d*)",
    ),
    _specific(
        "Bear Brand Fortified",
        r"45000\s*a\s*RTIFIED",
        r"BEAR\s+B\s+FORT\d+[A-Za-z]*",
        r"BEAR\s+BRAND\s+FORT\d+[A-Za-z]*",
        r"BEAR\s+BIECRTEA0",
    ),
    _specific("Nescafe Gold", r"NESCAFE\s+GOLD\s+29", r"NESCAFE\s+GOLD\s+2g"),
    _specific("NIDO3+PRE-S1.6KG", r"WIDO3HPRE-51\s*6KG", r"NIDO3\+PRE-S1\.6KG"),
    _specific("NIDO3+PRE-S2.4KG", r"MIO034PRE-S7.", r"NIDO3\+PRE-S2\.4KG"),
)

# Substring checks against the lowercased line; any hit marks it as receipt metadata.
METADATA_KEYWORDS: tuple[str, ...] = (
    "total",
    "subtotal",
    "cash",
    "cast",
    "change",
    "vat",
    "tax",
    "amount",
    "due",
    "tendered",
    "payment",
    "receipt",
    "date",
    "time",
    "cashier",
    "operator",
    "invoice",
    "transaction",
    "serial",
    "number",
    "reference",
    "mercury",
    "drug",
    "corporation",
    "address",
    "phone",
    "hypermarket",
    "supermarket",
    "mall",
    "store",
    "sold",
    "cred",
    "crd",
    "suki",
    "points",
    "balance",
    "earned",
    "redeemed",
    "previous",
    "extra",
)

PURE_AMOUNT_RE = re.compile(r"^[\d.,₱$]+$")
HAS_LETTER_RE = re.compile(r"[a-zA-Z]")

MIN_LINE_LENGTH = 2
MIN_NAME_LENGTH = 3

PRODUCT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "beverages": ("milo", "coca-cola", "pepsi", "coffee", "tea", "nescafe gold"),
    "snacks": ("chips", "crackers", "cookies", "candy"),
    "household": ("soap", "detergent", "cleaning"),
    "baby": ("diapers", "milk", "baby food", "bear brand fortified", "nido 3+ pre-s1.6kg"),
    "personal": ("shampoo", "toothpaste", "deodorant"),
    "grocery": ("rice", "oil", "sugar", "flour"),
}


def product_category(product_name: str) -> str | None:
    lowered = product_name.lower()
    for category, words in PRODUCT_CATEGORIES.items():
        if any(word in lowered for word in words):
            return category
    return None
