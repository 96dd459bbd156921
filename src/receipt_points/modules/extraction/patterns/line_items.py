"""
Line-item grammar and receipt-level scan patterns.

``LINE_SHAPES`` is walked in order by ``extractor.extract_items``; the first
shape whose pattern matches a line decides how its groups map onto an item.
Group indexes of ``None`` mean "not captured".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

I = re.IGNORECASE
IM = re.IGNORECASE | re.MULTILINE

# Fragments shared by several shapes.
_NAME = r"[A-Za-z\s]+"
_SIZE = r"(?:\s+\d+\.?\d*[kglmlpack]+)?"
_PRICE = r"[\d,]+\.?\d*"
_PRICE_SUFFIX = r"[\d,]+\.?\d*[TVXZ]?"


class ShapeKind(str, Enum):
    PRICED = "priced"
    NAME_ONLY = "name_only"
    VOID = "void"
    QUANTITY = "quantity"


@dataclass(frozen=True)
class LineShape:
    shape_id: str
    pattern: re.Pattern[str]
    name: int | None = 1
    total: int | None = 2
    quantity: int | None = None
    unit_price: int | None = None
    # Shapes that only carry "qty x @unit" derive the line total.
    total_from_unit: bool = False
    kind: ShapeKind = ShapeKind.PRICED


def _shape(shape_id: str, pattern: str, **mapping) -> LineShape:
    return LineShape(shape_id=shape_id, pattern=re.compile(pattern), **mapping)


LINE_SHAPES: tuple[LineShape, ...] = (
    # "COFFEE MATE 170g 89.50"
    _shape("name_price", rf"^({_NAME}{_SIZE})\s+({_PRICE})$"),
    # "DOVE SOAP ₱45.00"
    _shape("name_peso_price", rf"^({_NAME}{_SIZE})\s+₱?({_PRICE})$"),
    # "2 PEPSI 330ml 70.00"
    _shape("qty_name_price", rf"^(\d+)\s+({_NAME}{_SIZE})\s+({_PRICE})$", quantity=1, name=2, total=3),
    # "PANDESAL @5.00 25.00"
    _shape("name_at_unit_total", rf"^({_NAME})\s+@({_PRICE})\s+({_PRICE})$", unit_price=2, total=3),
    # "3 BANANA @12.50"
    _shape(
        "qty_name_at_unit",
        rf"^(\d+)\s+({_NAME}{_SIZE})\s+@({_PRICE})$",
        quantity=1,
        name=2,
        unit_price=3,
        total=None,
        total_from_unit=True,
    ),
    # "1.25 CHICKEN BREAST @180.00"
    _shape(
        "decimal_qty_name_at_unit",
        rf"^(\d+\.\d+)\s+({_NAME}{_SIZE})\s+@({_PRICE})$",
        quantity=1,
        name=2,
        unit_price=3,
        total=None,
        total_from_unit=True,
    ),
    # "BIOGESIC 4800012345678 45.00"
    _shape("name_code_price", rf"^({_NAME})\s+(\d{{6,15}})\s+({_PRICE})$", total=3),
    # "SUGO PNT GRA100g 32.75"
    _shape("name_mixed_price", rf"^({_NAME}(?:\s+[A-Za-z]*\d+[A-Za-z]*)?)\s+({_PRICE})$"),
    # "ALASKA 300ml 41.00"
    _shape("name_size_price", rf"^({_NAME})\s+(\d+[A-Za-z]+)\s+({_PRICE})$", total=3),
    # "SUGO PNT GRA100g 32.75" with the unit token split off
    _shape("name_unitspec_price", rf"^({_NAME})\s+([A-Za-z]+\d+[A-Za-z]*)\s+({_PRICE})$", total=3),
    # "BEAR BRAND FORT2400g 347.00V"
    _shape("embedded_size_price", rf"^({_NAME}\d+[A-Za-z]*)\s+({_PRICE_SUFFIX})$"),
    # "LICEAL SC10mL3 16.50T"
    _shape("name_digits_price", rf"^({_NAME}\d+[A-Za-z]*\d*[A-Za-z]*)\s+({_PRICE_SUFFIX})$"),
    # "LICEAL S 16.50T"
    _shape("name_suffix_price", rf"^({_NAME})\s+({_PRICE}[TVXZ])$"),
    # "LICEAL S -16.50V"
    _shape("void_line", rf"^({_NAME})\s+(-{_PRICE}[TVXZ])$", kind=ShapeKind.VOID),
    # "LICEAL SC10mL3+1 16.50"
    _shape("name_symbols_price", rf"^({_NAME}\d+[A-Za-z]*[+\-]?\d*[A-Za-z]*)\s+({_PRICE_SUFFIX})$"),
    # Catch-all for complex names.
    _shape("catch_all_price", rf"^([A-Za-z\s\d+\-]+)\s+({_PRICE_SUFFIX})$"),
    # "SG A-FRSH 115gx3 54.00"
    _shape("name_dashes_price", rf"^([A-Za-z\s\-]+\d+[A-Za-z]*)\s+({_PRICE_SUFFIX})$"),
    # "JJ F PCDYCH13.8g 99.75"
    _shape(
        "name_decimal_size_price",
        rf"^({_NAME}[A-Za-z]*\d+[A-Za-z]*\.?\d*[A-Za-z]*)\s+({_PRICE_SUFFIX})$",
    ),
    # "BEAR BRAND FORT2400g" with the price on its own line
    _shape(
        "bear_brand_name_only",
        r"^(BEAR\s+B(?:RAND)?\s+FORT\d+[A-Za-z]*)\s*[A-Za-z]*$",
        total=None,
        kind=ShapeKind.NAME_ONLY,
    ),
    # "NIDO3+PRE-S1.6KG 1150.00"
    _shape("nido_price", rf"^(NIDO3\+PRE-S\d+\.\d+KG)\s+({_PRICE})$"),
    # Letters only, possibly with a trailing size; kept only for known products.
    _shape(
        "name_only",
        r"^([A-Za-z\s]+(?:\s+\d+[A-Za-z]*)?)\s*[A-Za-z]*$",
        total=None,
        kind=ShapeKind.NAME_ONLY,
    ),
)

# "7 @ 9.50" under the previous item line.
QUANTITY_LINE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s+@\s+([\d,]+\.?\d*)$")
# A line holding nothing but an amount, optionally tax-flagged.
BARE_AMOUNT_RE = re.compile(r"^-?[\d,]+\.\d{2}[TVXZ]?$")
PRICE_SUFFIX_RE = re.compile(r"[TVXZ]$")

# "SUBTOTAL" is left to SUBTOTAL_PATTERN.
TOTAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:(?<!SUB)TOTAL|GRAND TOTAL|AMOUNT DUE).*?([\d,]+\.?\d*)", I),
    re.compile(r"₱\s*([\d,]+\.?\d*)", I),
    re.compile(r"PHP\s*([\d,]+\.?\d*)", I),
)
SUBTOTAL_PATTERN = re.compile(r"SUBTOTAL.*?([\d,]+\.?\d*)", I)

# (pattern, strptime format) in priority order.
DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(\d{4}-\d{2}-\d{2})"), "%Y-%m-%d"),
    (re.compile(r"(\d{2}/\d{2}/\d{4})"), "%m/%d/%Y"),
    (re.compile(r"(\d{2}-\d{2}-\d{4})"), "%m-%d-%Y"),
)

# Captured tokens must contain a digit so labels like "NO" are never taken as the number.
RECEIPT_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:RECEIPT|INVOICE|TXN|TRANS(?:ACTION)?)[ \t]*(?:NO\.?|#|NUMBER)?[ \t]*[:#-]?[ \t]*"
        r"([A-Z0-9-]*\d[A-Z0-9-]*)",
        I,
    ),
    re.compile(r"\b(?:NO|SN|SERIAL)\.?[ \t]*[:#-]?[ \t]*(\w*\d\w*)", I),
    re.compile(r"#[ \t]*(\w*\d\w*)"),
    re.compile(r"\b(?:PTU|TIN)[ \t]*[:#-]?[ \t]*(\w*\d\w*)", I),
)

CASHIER_PATTERN = re.compile(r"^\s*(?:CASHIER|OPERATOR)\s*[:#-]?\s*([A-Za-z][A-Za-z .'-]*?)\s*$", IM)

PAYMENT_METHOD_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bG-?CASH\b", I), "gcash"),
    (re.compile(r"\b(?:PAY)?MAYA\b", I), "maya"),
    (re.compile(r"\b(?:VISA|MASTERCARD|CREDIT\s+CARD|DEBIT\s+CARD|CARD)\b", I), "card"),
    (re.compile(r"\bCASH\b", I), "cash"),
)
