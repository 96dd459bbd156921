from __future__ import annotations

import logging
from collections.abc import Iterable

from receipt_points.core.logging import get_logger, log_event
from receipt_points.modules.extraction.patterns.corrections import (
    CORRECTION_GROUPS,
    PRODUCT_NAME_GROUPS,
    CorrectionRule,
)

logger = get_logger(__name__)


def apply_rules(text: str, rules: Iterable[CorrectionRule]) -> str:
    """Run every rule in order, each on the previous rule's output."""
    for rule in rules:
        text = rule.pattern.sub(rule.replacement, text, count=rule.count)
    return text


def apply_groups(
    text: str, groups: Iterable[tuple[str, Iterable[CorrectionRule]]]
) -> str:
    for _, rules in groups:
        text = apply_rules(text, rules)
    return text


def correct_text(raw_text: str) -> str:
    if not raw_text:
        return ""
    corrected = apply_groups(raw_text, CORRECTION_GROUPS)
    log_event(
        logger,
        "correction.text",
        level=logging.DEBUG,
        before=raw_text,
        after=corrected,
        changed=corrected != raw_text,
    )
    return corrected


def correct_product_name(name: str) -> str:
    if not name:
        return ""
    corrected = apply_groups(name, PRODUCT_NAME_GROUPS)
    if corrected != name:
        log_event(
            logger,
            "correction.product_name",
            level=logging.DEBUG,
            before=name,
            after=corrected,
        )
    return corrected
