"""Canned validators for formstate.

This module provides ready-to-use validators that can be referenced
from form definitions.
"""

from formstate.validation.validators.canned import (
    EMAIL_PATTERN,
    URL_PATTERN,
    ChoiceValidator,
    LengthValidator,
    PatternValidator,
    RangeValidator,
    RequiredValidator,
    is_empty,
    register_canned_validators,
)

__all__ = [
    "EMAIL_PATTERN",
    "URL_PATTERN",
    "ChoiceValidator",
    "LengthValidator",
    "PatternValidator",
    "RangeValidator",
    "RequiredValidator",
    "is_empty",
    "register_canned_validators",
]
