from __future__ import annotations

import json
import logging

from receipt_points.core.logging import (
    MAX_FIELD_CHARS,
    JsonFormatter,
    get_logger,
    get_upload_id,
    log_context,
    log_event,
    reset_upload_context,
    set_upload_context,
)


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.lines: list[str] = []
        self.setFormatter(JsonFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


def test_events_carry_upload_context():
    logger = get_logger("receipt_points.test")
    handler = _Capture()
    logger.addHandler(handler)
    try:
        token = set_upload_context(upload_id="up-1", user_id="user-1")
        try:
            assert get_upload_id() == "up-1"
            log_event(logger, "receipts.upload.finish", points_earned="13", matched_store=None)
        finally:
            reset_upload_context(token)
        log_event(logger, "catalog.seeded")
    finally:
        logger.removeHandler(handler)

    inside, outside = (json.loads(line) for line in handler.lines)
    assert inside["event"] == "receipts.upload.finish"
    assert inside["upload_id"] == "up-1"
    assert inside["user_id"] == "user-1"
    assert inside["points_earned"] == "13"
    assert "matched_store" not in inside
    assert "upload_id" not in outside
    assert get_upload_id() is None


def test_nested_context_and_long_fields_are_clipped():
    logger = get_logger("receipt_points.test")
    handler = _Capture()
    logger.addHandler(handler)
    try:
        token = set_upload_context(upload_id="up-2", user_id=None)
        try:
            with log_context(ocr_variant="enhanced"):
                log_event(logger, "ocr.variant.finish", raw_text="X" * (MAX_FIELD_CHARS + 5))
            log_event(logger, "ocr.variant.selected")
        finally:
            reset_upload_context(token)
    finally:
        logger.removeHandler(handler)

    inner, outer = (json.loads(line) for line in handler.lines)
    assert inner["upload_id"] == "up-2"
    assert inner["ocr_variant"] == "enhanced"
    assert "user_id" not in inner
    assert inner["raw_text"].endswith("...(+5 chars)")
    assert len(inner["raw_text"]) == MAX_FIELD_CHARS + len("...(+5 chars)")
    assert "ocr_variant" not in outer
    assert outer["upload_id"] == "up-2"
