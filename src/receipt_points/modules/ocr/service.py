from __future__ import annotations

import re
import time
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Protocol

import httpx
from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from receipt_points.core.config import settings
from receipt_points.core.logging import (
    get_logger,
    log_context,
    log_event,
    log_exception,
    monotonic_ms,
)
from receipt_points.modules.extraction.extractor import parse_receipt_text
from receipt_points.modules.extraction.results import ExtractionResult

logger = get_logger(__name__)

# psm 6: a single uniform block of text, which is how receipts print.
TESSERACT_CONFIG = "--psm 6 --oem 3 -c preserve_interword_spaces=1"

VARIANTS = ("minimal", "enhanced", "high_contrast", "sharp_focus")


class OcrFailedError(RuntimeError):
    pass


class ImageFetchError(RuntimeError):
    pass


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float
    processing_time_ms: int
    variant: str | None = None


class OcrProvider(Protocol):
    def recognize(self, image_bytes: bytes, *, lang: str, options: str) -> OcrResult: ...


class TesseractOcrProvider:
    def __init__(self, *, timeout_seconds: int | None = None) -> None:
        self._timeout = timeout_seconds or settings.ocr_timeout_seconds

    def recognize(self, image_bytes: bytes, *, lang: str, options: str = TESSERACT_CONFIG) -> OcrResult:
        import pytesseract

        start = time.monotonic()
        image = _open_image(image_bytes)
        data = pytesseract.image_to_data(
            image,
            lang=lang,
            config=options,
            output_type=pytesseract.Output.DICT,
            timeout=self._timeout,
        )
        text = pytesseract.image_to_string(image, lang=lang, config=options, timeout=self._timeout)
        confidences = []
        for raw in data.get("conf", []):
            try:
                value = float(raw)
            except (TypeError, ValueError):
                continue
            if value >= 0:
                confidences.append(value)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(
            text=text or "",
            confidence=round(confidence, 2),
            processing_time_ms=monotonic_ms(start),
        )


def _open_image(image_bytes: bytes) -> Image.Image:
    image = Image.open(BytesIO(image_bytes))
    if image.mode not in {"RGB", "L"}:
        image = image.convert("RGB")
    return image


def _linear(image: Image.Image, factor: float) -> Image.Image:
    return image.point(lambda p: min(255, int(p * factor)))


def preprocess_image(image_bytes: bytes, variant: str) -> bytes:
    if variant not in VARIANTS:
        raise ValueError(f"Unknown OCR variant: {variant}")
    if variant == "minimal":
        return image_bytes

    image = ImageOps.grayscale(_open_image(image_bytes))
    if variant == "enhanced":
        image = _linear(image, 1.2)
        image = ImageEnhance.Brightness(image).enhance(1.1)
        image = image.filter(ImageFilter.UnsharpMask(radius=0.8, percent=150, threshold=2))
        image = image.filter(ImageFilter.MedianFilter(3))
    elif variant == "high_contrast":
        image = _linear(image, 1.5)
        image = ImageEnhance.Brightness(image).enhance(1.2)
        image = ImageEnhance.Contrast(image).enhance(1.3)
    elif variant == "sharp_focus":
        image = image.filter(ImageFilter.UnsharpMask(radius=1.2, percent=150, threshold=2))
        image = _linear(image, 1.1)

    out = BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


_STORE_TOKEN_RE = re.compile(r"(?:MERCURY|MERCURY DRUG)", re.I)
_PRODUCT_TOKEN_RE = re.compile(r"(?:BBRAND|BEAR BRAND|NIDO|MLK|MILK)", re.I)
_TOTAL_TOKEN_RE = re.compile(r"(?:TOTAL|GRAND TOTAL).*?\d+\.?\d*", re.I)
_PRODUCT_CODE_RE = re.compile(r"\d{12,}")
_REFERENCE_TOKEN_RE = re.compile(r"(?:TXN|INVOICE)", re.I)


def score_ocr_text(text: str, confidence: float) -> float:
    """Quick quality estimate of raw OCR output, 0 to 100."""
    score = (confidence or 0) * 0.4
    lines = [ln for ln in (text or "").split("\n") if ln.strip()]
    score += min(len(lines) * 2, 20)
    if _STORE_TOKEN_RE.search(text or ""):
        score += 15
    if _PRODUCT_TOKEN_RE.search(text or ""):
        score += 10
    if _TOTAL_TOKEN_RE.search(text or ""):
        score += 15
    if _PRODUCT_CODE_RE.search(text or ""):
        score += 10
    if _REFERENCE_TOKEN_RE.search(text or ""):
        score += 10
    return min(score, 100.0)


def composite_score(result: ExtractionResult) -> float:
    """60% OCR confidence, 30% items found (10 items is full marks), 10% store detected."""
    items_score = min(len(result.items) / 10 * 100, 100)
    store_score = 100 if result.store_detected else 0
    return (result.confidence or 0) * 0.6 + items_score * 0.3 + store_score * 0.1


def recognize_best(
    image_bytes: bytes,
    *,
    provider: OcrProvider,
    variants: Sequence[str] | None = None,
    lang: str | None = None,
) -> ExtractionResult:
    """OCR every preprocessing variant and keep the parse with the best composite score.

    Equal composite scores are broken by ``score_ocr_text``; a full tie keeps
    the earlier variant. A variant that fails is skipped; if all fail
    ``OcrFailedError`` is raised.
    """
    variants = list(variants or settings.ocr_variant_names())
    lang = lang or settings.tesseract_lang

    best: ExtractionResult | None = None
    best_rank = (-1.0, -1.0)
    for variant in variants:
        start = time.monotonic()
        with log_context(ocr_variant=variant):
            try:
                prepared = preprocess_image(image_bytes, variant)
                ocr = provider.recognize(prepared, lang=lang, options=TESSERACT_CONFIG)
            except Exception:
                log_exception(logger, "ocr.variant.failure", duration_ms=monotonic_ms(start))
                continue

            parsed = parse_receipt_text(
                ocr.text,
                confidence=ocr.confidence,
                processing_time_ms=ocr.processing_time_ms,
                ocr_variant=variant,
            )
            score = composite_score(parsed)
            text_score = score_ocr_text(ocr.text, ocr.confidence)
            log_event(
                logger,
                "ocr.variant.finish",
                confidence=ocr.confidence,
                text_score=round(text_score, 2),
                composite_score=round(score, 2),
                item_count=len(parsed.items),
                store_detected=parsed.store_detected,
                duration_ms=monotonic_ms(start),
            )
        if (score, text_score) > best_rank:
            best, best_rank = parsed, (score, text_score)

    if best is None:
        raise OcrFailedError("All preprocessing variants failed")

    log_event(logger, "ocr.variant.selected", variant=best.ocr_variant, composite_score=round(best_rank[0], 2))
    return best


def load_image_bytes(path_or_url: str) -> bytes:
    if re.match(r"^https?://", path_or_url or ""):
        start = time.monotonic()
        try:
            resp = httpx.get(
                path_or_url,
                timeout=settings.image_fetch_timeout_seconds,
                follow_redirects=True,
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log_exception(logger, "ocr.image.fetch_failure", url=path_or_url, duration_ms=monotonic_ms(start))
            raise ImageFetchError(f"Could not fetch image: {path_or_url}") from exc
        log_event(
            logger,
            "ocr.image.fetched",
            url=path_or_url,
            byte_size=len(resp.content),
            duration_ms=monotonic_ms(start),
        )
        return resp.content

    path = Path(path_or_url or "")
    if path_or_url and path.is_file():
        return path.read_bytes()
    raise ImageFetchError("Invalid image path or URL")
