from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

from receipt_points.core.config import settings
from receipt_points.core.logging import get_logger, log_event
from receipt_points.modules.extraction.correction import correct_text
from receipt_points.modules.extraction.patterns.line_items import (
    BARE_AMOUNT_RE,
    CASHIER_PATTERN,
    DATE_PATTERNS,
    LINE_SHAPES,
    PAYMENT_METHOD_PATTERNS,
    PRICE_SUFFIX_RE,
    QUANTITY_LINE_RE,
    RECEIPT_NUMBER_PATTERNS,
    SUBTOTAL_PATTERN,
    TOTAL_PATTERNS,
    LineShape,
    ShapeKind,
)
from receipt_points.modules.extraction.patterns.products import (
    HAS_LETTER_RE,
    METADATA_KEYWORDS,
    MIN_LINE_LENGTH,
    MIN_NAME_LENGTH,
    PURE_AMOUNT_RE,
    SPECIFIC_PRODUCTS,
)
from receipt_points.modules.extraction.patterns.stores import (
    STORE_DISPLAY_NAMES,
    STORE_KEYWORDS,
    STORE_PATTERN_GROUPS,
    UNKNOWN_STORE,
)
from receipt_points.modules.extraction.results import (
    ZERO,
    ExtractedItem,
    ExtractionResult,
    ReceiptMetadata,
    ReceiptTotals,
)

logger = get_logger(__name__)

DEFAULT_OCR_CONFIDENCE = 85.0
CENT = Decimal("0.01")

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class SpecificMatch:
    name: str
    original_name: str
    pattern: str


def split_lines(text: str) -> list[str]:
    return [ln.strip() for ln in re.split(r"\r?\n", text or "") if ln.strip()]


def parse_amount(raw: str | None) -> Decimal | None:
    if raw is None:
        return None
    cleaned = PRICE_SUFFIX_RE.sub("", raw.strip()).replace(",", "")
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def detect_store_name(text: str) -> str:
    if not text:
        return UNKNOWN_STORE

    for group, patterns in STORE_PATTERN_GROUPS:
        for pattern in patterns:
            m = pattern.search(text)
            if m:
                name = (m.group(1) or m.group(0)).strip()
                if not name:
                    continue
                log_event(
                    logger,
                    "extraction.store.detected",
                    level=logging.DEBUG,
                    group=group,
                    store_name=name,
                )
                return name

    for key, keywords in STORE_KEYWORDS:
        for keyword in keywords:
            if keyword in text:
                name = STORE_DISPLAY_NAMES.get(key, UNKNOWN_STORE)
                log_event(
                    logger,
                    "extraction.store.keyword",
                    level=logging.DEBUG,
                    keyword=keyword,
                    store_name=name,
                )
                return name

    return UNKNOWN_STORE


def match_specific_product(text: str) -> SpecificMatch | None:
    if not text:
        return None
    for product in SPECIFIC_PRODUCTS:
        for pattern in product.patterns:
            if pattern.search(text):
                return SpecificMatch(name=product.name, original_name=text, pattern=pattern.pattern)
    return None


def is_likely_product(line: str) -> bool:
    normalized = (line or "").lower().strip()
    if len(normalized) < MIN_LINE_LENGTH:
        return False
    if PURE_AMOUNT_RE.match(normalized):
        return False
    # Known products win over the metadata keyword screen.
    if match_specific_product(line):
        return True
    if any(keyword in normalized for keyword in METADATA_KEYWORDS):
        return False
    return bool(HAS_LETTER_RE.search(normalized))


def _match_shape(line: str) -> tuple[LineShape, re.Match[str]] | None:
    for shape in LINE_SHAPES:
        m = shape.pattern.match(line)
        if m:
            return shape, m
    return None


def _group(m: re.Match[str], index: int | None) -> str | None:
    if index is None:
        return None
    return m.group(index)


def _apply_quantity_line(item: ExtractedItem, m: re.Match[str]) -> ExtractedItem:
    quantity = Decimal(m.group(1))
    unit_price = parse_amount(m.group(2))
    if quantity <= 0 or unit_price is None:
        return item
    return replace(
        item,
        quantity=quantity,
        unit_price=unit_price,
        total_price=(quantity * unit_price).quantize(CENT),
    )


def _cancel_voided(items: list[ExtractedItem], name: str, amount: Decimal) -> None:
    for idx in range(len(items) - 1, -1, -1):
        item = items[idx]
        if item.raw_name == name and item.total_price == abs(amount):
            del items[idx]
            return


def extract_items(corrected_text: str) -> list[ExtractedItem]:
    lines = split_lines(corrected_text)
    items: list[ExtractedItem] = []
    consumed: set[int] = set()
    # Item read from the line directly above; "<qty> @ <unit>" lines only apply to it.
    anchor: int | None = None

    for idx, line in enumerate(lines):
        if idx in consumed:
            continue

        qty_match = QUANTITY_LINE_RE.match(line)
        if qty_match:
            if anchor is not None:
                items[anchor] = _apply_quantity_line(items[anchor], qty_match)
            anchor = None
            continue
        anchor = None

        if not is_likely_product(line):
            continue

        matched = _match_shape(line)
        if matched is None:
            continue
        shape, m = matched

        name = _WS_RE.sub(" ", (_group(m, shape.name) or "")).strip()

        if shape.kind == ShapeKind.VOID:
            amount = parse_amount(_group(m, shape.total))
            if amount is not None:
                _cancel_voided(items, name, amount)
            continue

        quantity = Decimal("1")
        raw_quantity = _group(m, shape.quantity)
        if raw_quantity is not None:
            quantity = Decimal(raw_quantity)
        if quantity <= 0:
            continue

        unit_price = parse_amount(_group(m, shape.unit_price))
        if shape.total_from_unit:
            total = (unit_price * quantity).quantize(CENT) if unit_price is not None else None
        else:
            total = parse_amount(_group(m, shape.total))

        specific = match_specific_product(name)

        if shape.kind == ShapeKind.NAME_ONLY and specific and idx + 1 < len(lines):
            next_line = lines[idx + 1]
            if BARE_AMOUNT_RE.match(next_line) and not next_line.startswith("-"):
                total = parse_amount(next_line)
                consumed.add(idx + 1)

        has_price = total is not None and total != 0
        if len(name) < MIN_NAME_LENGTH or not (has_price or specific):
            continue

        if has_price:
            if not shape.total_from_unit or unit_price is None:
                unit_price = total / quantity
        else:
            total = ZERO
            unit_price = ZERO

        items.append(
            ExtractedItem(
                name=specific.name if specific else name,
                quantity=quantity,
                unit_price=unit_price,
                total_price=total,
                source_pattern_id="specific-pattern" if specific else shape.shape_id,
                raw_name=name,
                line_number=idx + 1,
                specific_product=specific.name if specific else None,
            )
        )
        anchor = len(items) - 1

    return items


def extract_totals(raw_text: str) -> ReceiptTotals:
    total = ZERO
    for pattern in TOTAL_PATTERNS:
        m = pattern.search(raw_text or "")
        if m:
            total = parse_amount(m.group(1)) or ZERO
            break

    subtotal = ZERO
    m = SUBTOTAL_PATTERN.search(raw_text or "")
    if m:
        subtotal = parse_amount(m.group(1)) or ZERO

    return ReceiptTotals(
        subtotal=subtotal or total,
        tax=ZERO,
        total=total,
        currency=settings.default_currency,
    )


def extract_metadata(raw_text: str) -> ReceiptMetadata:
    text = raw_text or ""

    receipt_date = None
    for pattern, _ in DATE_PATTERNS:
        m = pattern.search(text)
        if m:
            receipt_date = m.group(1)
            break

    receipt_number = None
    for pattern in RECEIPT_NUMBER_PATTERNS:
        m = pattern.search(text)
        if m:
            receipt_number = m.group(1)
            break

    cashier = None
    m = CASHIER_PATTERN.search(text)
    if m:
        cashier = m.group(1).strip() or None

    payment_method = None
    for pattern, method in PAYMENT_METHOD_PATTERNS:
        if pattern.search(text):
            payment_method = method
            break

    return ReceiptMetadata(
        receipt_date=receipt_date,
        receipt_number=receipt_number,
        cashier=cashier,
        payment_method=payment_method,
    )


def extract_receipt(
    corrected_text: str,
    *,
    raw_text: str | None = None,
    confidence: float | None = None,
    processing_time_ms: int = 0,
    ocr_variant: str | None = None,
) -> ExtractionResult:
    """Build an ``ExtractionResult`` from corrected OCR text.

    Store and line items are read from ``corrected_text``; totals and metadata
    from ``raw_text`` (defaults to the corrected text). Never raises on
    malformed input: the worst case is no items and ``"Unknown Store"``.
    """
    raw = corrected_text if raw_text is None else raw_text
    store_name = detect_store_name(corrected_text)
    items = extract_items(corrected_text)
    totals = extract_totals(raw)
    metadata = extract_metadata(raw)

    log_event(
        logger,
        "extraction.receipt.parsed",
        store_name=store_name,
        item_count=len(items),
        total=str(totals.total),
        receipt_number=metadata.receipt_number,
        receipt_date=metadata.receipt_date,
    )

    return ExtractionResult(
        store_name=store_name,
        items=tuple(items),
        totals=totals,
        metadata=metadata,
        confidence=DEFAULT_OCR_CONFIDENCE if confidence is None else float(confidence),
        processing_time_ms=processing_time_ms,
        raw_text=raw,
        corrected_text=corrected_text,
        ocr_variant=ocr_variant,
    )


def parse_receipt_text(
    raw_text: str,
    *,
    confidence: float | None = None,
    processing_time_ms: int = 0,
    ocr_variant: str | None = None,
) -> ExtractionResult:
    return extract_receipt(
        correct_text(raw_text),
        raw_text=raw_text or "",
        confidence=confidence,
        processing_time_ms=processing_time_ms,
        ocr_variant=ocr_variant,
    )
