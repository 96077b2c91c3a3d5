"""
rule-validator: declarative validation of input mappings

Each key of a rules mapping describes the constraints on the value stored
under the same key of the input:
- Presence and emptiness (required, allow_empty)
- Built-in types (integer, numeric, url, uri, ipv4, uuid, telephone,
  identity, date, bool) and custom presets
- Equality, membership, pattern, length and callback constraints
- Nested hashes, arrays and JSON text, recursively
- Object instance checks

Example:
    from rule_validator import validate, ValidationError

    try:
        validate(values, {
            "bank": {"type": "integer", "enum_eq": [1, 2]},
            "card_number": {},
            "province": {"required": True},
        })
    except ValidationError as e:
        print(e.kind, e.path, e.message)
"""

from .api import RuleValidator
from .comparison import identical_equals, structural_equals
from .errors import ErrorKind, RuleConfigError, RuleFileError, ValidationError
from .rule_normalizer import normalize_rule
from .type_presets import BUILTIN_TYPES
from .validation_engine import Validator, validate

__version__ = "0.1.0"
__all__ = [
    "BUILTIN_TYPES",
    "ErrorKind",
    "RuleConfigError",
    "RuleFileError",
    "RuleValidator",
    "ValidationError",
    "Validator",
    "identical_equals",
    "normalize_rule",
    "structural_equals",
    "validate",
]
