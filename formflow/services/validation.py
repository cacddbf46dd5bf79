"""
Validation Engine

Pure per-field validation and its aggregation over a form tree. Identical
(tree, form data) inputs always produce identical error maps.

Precedence for one field:
    1. required and empty -> required error
    2. empty and optional -> valid, nothing else is checked
    3. text: minLength, then maxLength, then pattern (first failure wins)
    4. numeric or numeric text: min, then max

A non-empty validation.errorMessage replaces every generic message.
"""

import logging
import math
import re
from functools import lru_cache
from typing import Any, Mapping

from formflow.config import get_settings
from formflow.models.contracts.forms import FormElement
from formflow.models.enums import FieldType
from formflow.services.visibility import iter_visible

logger = logging.getLogger(__name__)

# Elements that never carry a value of their own
_SKIPPED_TYPES = {FieldType.BUTTON}


def is_empty(value: Any) -> bool:
    """None, the empty string and the empty list count as no value."""
    return value is None or value == "" or (isinstance(value, (list, tuple)) and len(value) == 0)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning(f"Invalid validation pattern {pattern!r}: {e}")
        return None


def _as_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def _format_bound(bound: int | float) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


def validate_field(element: FormElement, value: Any, required_message: str | None = None) -> str | None:
    """
    Validate one value against an element's rules.

    Args:
        element: The field being validated
        value: Its current value (None when absent from form data)
        required_message: Generic required message (defaults to settings)

    Returns:
        The error message, or None when the value is valid
    """
    rules = element.validation
    custom = rules.error_message if rules and rules.error_message else None

    if is_empty(value):
        if element.required:
            return custom or required_message or get_settings().default_required_message
        return None

    if rules is None:
        return None

    if isinstance(value, str):
        # Zero/unset length bounds are not enforced
        if rules.min_length and len(value) < rules.min_length:
            return custom or f"Minimum length is {rules.min_length}"
        if rules.max_length and len(value) > rules.max_length:
            return custom or f"Maximum length is {rules.max_length}"
        if rules.pattern:
            compiled = _compile(rules.pattern)
            if compiled is None or compiled.fullmatch(value) is None:
                return custom or "Invalid format"

    number = _as_number(value)
    if number is not None:
        if rules.min is not None and number < rules.min:
            return custom or f"Minimum value is {_format_bound(rules.min)}"
        if rules.max is not None and number > rules.max:
            return custom or f"Maximum value is {_format_bound(rules.max)}"

    return None


def validate_form(
    tree: list[FormElement],
    form_data: Mapping[str, Any],
    required_message: str | None = None,
) -> dict[str, str]:
    """
    Validate every visible, named leaf of a form.

    Buttons, containers and elements without a name are skipped, as is
    anything hidden by a visibility condition (including everything inside a
    hidden container).

    Returns:
        Map of field name to error message; empty when the form is valid
    """
    errors: dict[str, str] = {}
    for element in iter_visible(tree, form_data):
        if element.is_container or element.type in _SKIPPED_TYPES or not element.name:
            continue
        error = validate_field(element, form_data.get(element.name), required_message)
        if error:
            errors[element.name] = error
    return errors
