"""
Store detection tables.

Groups are tried in ``STORE_PATTERN_GROUPS`` order; the first pattern that
matches anywhere in the corrected text wins. Separators are horizontal
whitespace only, so a store name never absorbs the following line.

The single-token alternatives in ``major_retailers`` (``SM``, ``TARGET``) and the
bare ``HYPERMARKET|SUPERMARKET`` pattern match inside unrelated words. They are
kept for compatibility with existing receipts.
"""

from __future__ import annotations

import re

I = re.IGNORECASE
IM = re.IGNORECASE | re.MULTILINE

UNKNOWN_STORE = "Unknown Store"

MERCURY_DRUG_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(MERCURY[ \t]+DRUG[ \t]+[A-Z]+)", I),
    re.compile(r"(MERCURY[ \t]+DRUG)", I),
    re.compile(r"(SOUTHERN[ \t]+LUZON[ \t]+DRUG[ \t]+CORPORATION)", I),
    re.compile(r"(MERCURY[ \t]+DRUG[ \t]+LUCBAN)", I),
    re.compile(r"(MERCURY[ \t]+DRUG[ \t]+NAKAGISIGURO)", I),
    re.compile(r"(MERCURY[ \t]+DRUG[ \t]+[A-Z \t]+)", I),
)

SAVEMORE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(SAVEMORE[ \t]+MARKET)", I),
    re.compile(r"(SAVEMORE)", I),
    re.compile(r"(SANFORD[ \t]+MARKETING[ \t]+CORPORATION)", I),
    re.compile(r"(FESTIVAL[ \t]+MALL)", I),
)

SM_GROUP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(SM[ \t]+HYPERMARKET|SM[ \t]+SUPERMARKET|SM[ \t]+MALL)", I),
    re.compile(r"(SM[ \t]+[A-Z]+)", I),
    re.compile(r"(HYPERMARKET|SUPERMARKET)", I),
    re.compile(r"(SM[ \t]+[A-Z]+[ \t]+HYPERMARKET)", I),
    re.compile(r"(SM[ \t]+[A-Z]+[ \t]+SUPERMARKET)", I),
)

MAJOR_RETAILER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(SAVEMORE|SM|ROBINSONS|PUREGOLD|7-ELEVEN|WALMART|TARGET)", I),
    re.compile(r"(ROBINSONS[ \t]+SUPERMARKET)", I),
    re.compile(r"(PUREGOLD[ \t]+SUPERMARKET)", I),
    re.compile(r"(SAVEMORE[ \t]+SUPERMARKET)", I),
    re.compile(r"(SAVEMORE[ \t]+MARKET)", I),
    re.compile(r"(SANFORD[ \t]+MARKETING[ \t]+CORPORATION)", I),
    re.compile(r"(7-ELEVEN|7ELEVEN|SEVEN[ \t]+ELEVEN)", I),
)

GENERIC_STORE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^([A-Z \t]+(?:HYPERMARKET|SUPERMARKET|MARKET|STORE|SHOP|MALL))", IM),
    re.compile(r"^([A-Z \t]+(?:INC|CORP|LLC))", IM),
    re.compile(r"^([A-Z \t]{3,}(?:HYPERMARKET|SUPERMARKET|MARKET|STORE))", IM),
)

STORE_PATTERN_GROUPS: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = (
    ("mercury_drug", MERCURY_DRUG_PATTERNS),
    ("savemore", SAVEMORE_PATTERNS),
    ("sm_group", SM_GROUP_PATTERNS),
    ("major_retailers", MAJOR_RETAILER_PATTERNS),
    ("generic", GENERIC_STORE_PATTERNS),
)

# Case-sensitive substring fallback, checked in this order.
STORE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("sm", ("SM", "HYPERMARKET", "SUPERMARKET")),
    ("mercury", ("MERCURY", "DRUG", "SOUTHERN LUZON")),
    ("robinsons", ("ROBINSONS", "MALL", "ROBINSON'S")),
    ("puregold", ("PUREGOLD",)),
    ("savemore", ("SAVEMORE",)),
    ("seven_eleven", ("7-ELEVEN", "7ELEVEN", "SEVEN ELEVEN")),
)

STORE_DISPLAY_NAMES: dict[str, str] = {
    "sm": "SM HYPERMARKET",
    "mercury": "MERCURY DRUG",
    "robinsons": "ROBINSONS SUPERMARKET",
    "puregold": "PUREGOLD",
    "savemore": "SAVEMORE",
    "seven_eleven": "7-ELEVEN",
}

STORE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "pharmacy": ("MERCURY DRUG",),
    "hypermarket": ("SM HYPERMARKET", "ROBINSONS SUPERMARKET"),
    "supermarket": ("PUREGOLD", "SAVEMORE"),
    "convenience": ("7-ELEVEN",),
}


def store_category(store_name: str) -> str | None:
    upper = store_name.upper()
    for category, names in STORE_CATEGORIES.items():
        if any(name in upper for name in names):
            return category
    return None
