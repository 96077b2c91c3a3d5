"""Rule normalization: preset merge plus default fill."""

from collections.abc import Mapping
from typing import Any, Dict

from .errors import ErrorKind, RuleConfigError
from .type_presets import BUILTIN_TYPES

RULE_DEFAULTS = {
    "type": None,
    "required": True,
    "allow_empty": False,
    "allow_tags": False,
    "regexp": None,
    "callback": None,
    "min_length": 0,
}

# Every field a rule may carry
RULE_FIELDS = frozenset(
    {
        "type",
        "required",
        "allow_empty",
        "allow_tags",
        "regexp",
        "regexp_flags",
        "eq",
        "same",
        "enum_eq",
        "enum_same",
        "callback",
        "min_length",
        "allow_negative",
        "keys",
        "element",
        "instanceof",
        "error_message",
    }
)


def normalize_rule(rule: Mapping, types: Mapping = BUILTIN_TYPES) -> Dict[str, Any]:
    """
    Resolve a rule into a record with every default filled.

    The preset named by ``rule["type"]`` is merged first, then the rule's own
    fields on top, then defaults for whatever is still missing. Normalizing
    an already-normalized rule returns an equal dict.

    Args:
        rule: Rule mapping as authored
        types: Preset table (built-ins unless the validator was extended)

    Returns:
        New dict; the input is not modified

    Raises:
        RuleConfigError: If rule is not a mapping
    """
    if rule is None:
        rule = {}
    if not isinstance(rule, Mapping):
        raise RuleConfigError(
            f"Rule must be a mapping, got {type(rule).__name__}",
            ErrorKind.RULE_MISCONFIGURED,
        )

    resolved: Dict[str, Any] = {}

    rule_type = rule.get("type")
    if isinstance(rule_type, str) and rule_type in types:
        resolved.update(types[rule_type])

    resolved.update(rule)

    for field, default in RULE_DEFAULTS.items():
        resolved.setdefault(field, default)

    return resolved


def is_single_rule(element: Any) -> bool:
    """
    Tell a single rule apart from a rules mapping (used for ``element``).

    A single rule only uses rule field names and has at least one field that
    is not itself a mapping, e.g. ``{"type": "integer"}``. In a rules mapping
    every value is a rule.
    """
    if not isinstance(element, Mapping) or not element:
        return False
    if not all(isinstance(k, str) and k in RULE_FIELDS for k in element):
        return False
    return any(not isinstance(v, Mapping) for v in element.values())
