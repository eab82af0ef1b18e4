"""Schema checks for structured prompts before they are sent to the renderer."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from models import StructuredPrompt, ValidationResult

logger = logging.getLogger("paper2poster")

MIN_SHORT_DESCRIPTION = 10
LONG_TEXT_WARNING = 200


def validate_structured_prompt(prompt: Union[StructuredPrompt, Dict[str, Any]]) -> ValidationResult:
    """Check the fields the renderer needs.

    Every violation is reported, not just the first one. Over-long overlay text
    only produces a log warning since the renderer will still accept it.

    Args:
        prompt (StructuredPrompt | dict): Built prompt, or a raw dict of the same shape.

    Returns:
        ValidationResult: ``valid`` plus one error string per failed check.
    """
    data = prompt.model_dump() if isinstance(prompt, StructuredPrompt) else dict(prompt or {})
    errors: List[str] = []

    short = data.get("short_description") or ""
    if len(short) < MIN_SHORT_DESCRIPTION:
        errors.append(f"short_description must be at least {MIN_SHORT_DESCRIPTION} characters")

    objects = data.get("objects") or []
    if not objects:
        errors.append("At least one object is required")
    for i, obj in enumerate(objects):
        obj = obj or {}
        if not obj.get("description"):
            errors.append(f"Object {i} missing description")
        if not obj.get("location"):
            errors.append(f"Object {i} missing location")
        if not obj.get("shape_and_color"):
            errors.append(f"Object {i} missing shape_and_color")

    if not data.get("background_setting"):
        errors.append("background_setting is required")

    texts = data.get("text_render") or []
    if not texts:
        errors.append("At least one text_render element is required")
    for i, el in enumerate(texts):
        el = el or {}
        text = el.get("text")
        if not text:
            errors.append(f"TextRender {i} missing text content")
        elif len(text) > LONG_TEXT_WARNING:
            logger.warning("TextRender %d text is %d characters; long overlays may render poorly", i, len(text))
        if not el.get("location"):
            errors.append(f"TextRender {i} missing location")
        if not el.get("font"):
            errors.append(f"TextRender {i} missing font")

    if not data.get("artistic_style"):
        errors.append("artistic_style is required")

    return ValidationResult(valid=not errors, errors=errors)
