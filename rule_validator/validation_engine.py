"""
Recursive validation engine.

Walks a values mapping against a rules mapping. Each rule is normalized,
checked for presence, then dispatched by type to one of four checks:

- literal (default): same / eq / enum_same / enum_eq / callback / regexp /
  min_length, first one set wins, then the bool, negative and tag guards
- array / hash: recurse through ``keys`` or every item through ``element``
- json: decode text, then the array / hash check
- object: instance and capability check

The key path is passed down as an argument, so a single Validator holds no
per-call state and can be shared between threads.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from .comparison import (
    as_number,
    contains_identical,
    contains_structural,
    identical_equals,
    structural_equals,
)
from .errors import CONFIG_KINDS, ErrorKind, RuleConfigError, RuleFileError, ValidationError
from .rule_loader import import_string
from .rule_normalizer import is_single_rule, normalize_rule
from .type_presets import (
    BOOL_TYPES,
    BUILTIN_TYPES,
    CONTAINER_TYPES,
    NUMERIC_TYPES,
    compile_flags,
    extend_types,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32

_TAG_PATTERN = re.compile(r"<[A-Za-z!/?]")

Path = Tuple[Any, ...]


class Validator:
    """Validates values mappings against rules mappings."""

    def __init__(self, types: Optional[Mapping] = None, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize the validator.

        Args:
            types: Extra type presets layered over the built-in table
            max_depth: Maximum nesting of keys/element descents per call
        """
        self.types = extend_types(types) if types else BUILTIN_TYPES
        self.max_depth = max_depth

    def validate(self, values: Mapping, rules: Mapping, path: Path = ()) -> bool:
        """
        Validate every key of ``rules`` against ``values``.

        Args:
            values: Input mapping
            rules: Mapping of key to rule, checked in declaration order
            path: Keys leading to ``values`` (empty at the top level)

        Returns:
            True when every rule passes

        Raises:
            ValidationError: On the first failing key
            RuleConfigError: If the rule mapping is malformed
        """
        if not isinstance(values, Mapping):
            raise TypeError(f"values must be a mapping, got {type(values).__name__}")
        return self._validate(values, rules, tuple(path), 0)

    def _validate(self, values: Mapping, rules: Mapping, path: Path, depth: int) -> bool:
        self._guard_depth(path, depth)
        if not isinstance(rules, Mapping):
            raise RuleConfigError(
                f"Key [{_format_path(path)}], rules must be a mapping, "
                f"got {type(rules).__name__}",
                ErrorKind.RULE_MISCONFIGURED,
                path,
                path[-1] if path else None,
            )

        for key, rule in rules.items():
            rule = normalize_rule(rule, self.types)

            if key not in values:
                if rule["required"]:
                    raise self._error(key, rule, path, ErrorKind.MISSING_FIELD, "required")
                continue

            self._check(key, values[key], rule, path, depth)

        return True

    def _check(self, key: Any, value: Any, rule: Dict[str, Any], path: Path, depth: int) -> bool:
        if isinstance(value, str) and value == "":
            if rule["allow_empty"]:
                return True
            raise self._error(key, rule, path, ErrorKind.EMPTY_NOT_ALLOWED, "not allow empty")

        rule_type = rule["type"]
        if rule_type in CONTAINER_TYPES:
            return self._check_array(key, value, rule, path, depth)
        if rule_type == "json":
            return self._check_json(key, value, rule, path, depth)
        if rule_type == "object":
            return self._check_object(key, value, rule, path)
        return self._check_literal(key, value, rule, path)

    def _check_literal(self, key: Any, value: Any, rule: Dict[str, Any], path: Path) -> bool:
        # Only the first constraint set is evaluated
        if rule.get("same") is not None:
            expected = rule["same"]
            if not identical_equals(value, expected):
                raise self._error(
                    key, rule, path, ErrorKind.STRICT_EQUALITY_MISMATCH,
                    f"must strict equal [{expected!r}], current value is [{value!r}]",
                )
        elif rule.get("eq") is not None:
            expected = rule["eq"]
            if not structural_equals(value, expected):
                raise self._error(
                    key, rule, path, ErrorKind.EQUALITY_MISMATCH,
                    f"must equal [{expected}], current value is [{value}]",
                )
        elif rule.get("enum_same") is not None:
            choices = rule["enum_same"]
            if not contains_identical(value, choices):
                raise self._error(
                    key, rule, path, ErrorKind.ENUM_STRICT_MISMATCH,
                    f"must be strict equal one of [{', '.join(repr(c) for c in choices)}], "
                    f"current value is {value!r}",
                )
        elif rule.get("enum_eq") is not None:
            choices = rule["enum_eq"]
            if not contains_structural(value, choices):
                raise self._error(
                    key, rule, path, ErrorKind.ENUM_MISMATCH,
                    f"must be equal one of [{', '.join(str(c) for c in choices)}], "
                    f'current value is "{value}"',
                )
        elif rule["callback"]:
            callback = self._callback(key, rule, path)
            if not callback(value, rule):
                raise self._error(key, rule, path, ErrorKind.CALLBACK_FAILED, "custom test failed")
        elif rule["regexp"]:
            pattern = self._pattern(key, rule, path)
            if not pattern.search(_as_text(value)):
                raise self._error(
                    key, rule, path, ErrorKind.PATTERN_MISMATCH,
                    f'mismatch regexp {pattern.pattern}, current value is "{value}"',
                )
        elif rule["min_length"]:
            if len(_as_text(value)) < rule["min_length"]:
                raise self._error(
                    key, rule, path, ErrorKind.TOO_SHORT,
                    f"must be at least {rule['min_length']} characters long",
                )

        rule_type = rule["type"]
        if rule_type in BOOL_TYPES and not isinstance(value, bool):
            raise self._error(
                key, rule, path, ErrorKind.TYPE_MISMATCH,
                f'must be True or False, current value is "{value}"',
            )

        if rule_type in NUMERIC_TYPES and not rule.get("allow_negative", True):
            number = as_number(value)
            if number is not None and number < 0:
                raise self._error(
                    key, rule, path, ErrorKind.NEGATIVE_NOT_ALLOWED,
                    f'not allow negative numeric, current value is "{value}"',
                )

        if not rule["allow_tags"] and _has_tags(value):
            raise self._error(
                key, rule, path, ErrorKind.TAGS_NOT_ALLOWED,
                f'content not allow tags, current value is "{value}"',
            )

        return True

    def _check_array(self, key: Any, value: Any, rule: Dict[str, Any], path: Path, depth: int) -> bool:
        self._guard_depth(path + (key,), depth)

        if value is None or (_is_container(value) and not value):
            if rule["allow_empty"]:
                return True
            raise self._error(key, rule, path, ErrorKind.EMPTY_NOT_ALLOWED, "not allow empty")

        if not _is_container(value):
            raise self._error(key, rule, path, ErrorKind.TYPE_MISMATCH, "is not array type")

        keys = rule.get("keys")
        element = rule.get("element")
        if not keys and not element:
            raise self._error(
                key, rule, path, ErrorKind.RULE_MISCONFIGURED,
                'rule missing "keys" or "element"',
            )

        child_path = path + (key,)
        if keys:
            self._validate(_as_mapping(value), keys, child_path, depth + 1)
        else:
            single = is_single_rule(element)
            if single:
                element = normalize_rule(element, self.types)
            for index, item in _iter_items(value):
                if single:
                    self._check(index, item, element, child_path, depth + 1)
                else:
                    item = _as_mapping(item) if _is_container(item) else {0: item}
                    self._validate(item, element, child_path + (index,), depth + 1)

        if rule["callback"]:
            callback = self._callback(key, rule, path)
            if not callback(value, rule):
                raise self._error(key, rule, path, ErrorKind.CALLBACK_FAILED, "custom test failed")

        return True

    def _check_json(self, key: Any, value: Any, rule: Dict[str, Any], path: Path, depth: int) -> bool:
        try:
            decoded = json.loads(value)
        except (TypeError, ValueError, RecursionError) as e:
            raise self._error(
                key, rule, path, ErrorKind.JSON_PARSE_ERROR, f"json decode failed, {e}"
            ) from e

        return self._check_array(key, decoded, rule, path, depth)

    def _check_object(self, key: Any, value: Any, rule: Dict[str, Any], path: Path) -> bool:
        if not _is_object(value):
            raise self._error(key, rule, path, ErrorKind.NOT_AN_OBJECT, "is not object")

        expected = rule.get("instanceof")
        if isinstance(expected, str) and ":" in expected:
            try:
                expected = import_string(expected)
            except RuleFileError as e:
                raise self._error(
                    key, rule, path, ErrorKind.RULE_MISCONFIGURED, f"bad instanceof, {e}"
                ) from e

        if expected is not None and not _satisfies(value, expected):
            raise self._error(
                key, rule, path, ErrorKind.INSTANCEOF_MISMATCH,
                f'must instanceof "{_describe(expected)}"',
            )

        return True

    def _callback(self, key: Any, rule: Dict[str, Any], path: Path):
        callback = rule["callback"]
        if isinstance(callback, str):
            try:
                callback = import_string(callback)
            except RuleFileError as e:
                raise self._error(
                    key, rule, path, ErrorKind.RULE_MISCONFIGURED, f"bad callback, {e}"
                ) from e

        if not callable(callback):
            raise self._error(
                key, rule, path, ErrorKind.RULE_MISCONFIGURED,
                f"callback is not callable, got {type(callback).__name__}",
            )
        return callback

    def _pattern(self, key: Any, rule: Dict[str, Any], path: Path) -> "re.Pattern":
        regexp = rule["regexp"]
        if isinstance(regexp, re.Pattern):
            return regexp
        try:
            return re.compile(regexp, compile_flags(rule.get("regexp_flags")))
        except (re.error, TypeError, ValueError) as e:
            raise self._error(
                key, rule, path, ErrorKind.RULE_MISCONFIGURED, f"invalid regexp {regexp!r}, {e}"
            ) from e

    def _guard_depth(self, path: Path, depth: int) -> None:
        if depth > self.max_depth:
            raise RuleConfigError(
                f"Key [{_format_path(path)}], nesting deeper than {self.max_depth} levels",
                ErrorKind.NESTING_TOO_DEEP,
                path,
                path[-1] if path else None,
            )

    def _error(
        self, key: Any, rule: Mapping, path: Path, kind: ErrorKind, detail: str
    ) -> ValidationError:
        full_path = path + (key,)
        custom = rule.get("error_message")
        if custom is not None:
            message = str(custom)
        else:
            message = f"Key [{_format_path(full_path)}], {detail}"

        logger.debug(f"Validation failed ({kind.value}) at {list(full_path)}")

        error_class = RuleConfigError if kind in CONFIG_KINDS else ValidationError
        return error_class(message, kind, full_path, key)


def _format_path(path: Path) -> str:
    return "=>".join(str(p) for p in path)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    # 5.0 reads as "5"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(value)


def _has_tags(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 2 and bool(_TAG_PATTERN.search(value))


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def _as_mapping(value: Any) -> Mapping:
    if isinstance(value, Mapping):
        return value
    return dict(enumerate(value))


def _iter_items(value: Any):
    if isinstance(value, Mapping):
        return value.items()
    return enumerate(value)


def _is_object(value: Any) -> bool:
    if value is None or isinstance(value, (str, bytes, int, float, bool)):
        return False
    return not _is_container(value)


def _satisfies(value: Any, expected: Any) -> bool:
    if isinstance(expected, (type, tuple)):
        return isinstance(value, expected)
    if isinstance(expected, str):
        for cls in type(value).__mro__:
            if expected in (cls.__name__, f"{cls.__module__}.{cls.__qualname__}"):
                return True
        return False
    return isinstance(value, expected)


def _describe(expected: Any) -> str:
    if isinstance(expected, type):
        return expected.__name__
    if isinstance(expected, tuple):
        return ", ".join(_describe(e) for e in expected)
    return str(expected)


_default_validator = Validator()


def validate(values: Mapping, rules: Mapping) -> bool:
    """
    Validate ``values`` against ``rules`` with a shared default Validator.

    Example:
        validate(
            {"bank": 1, "card_number": "123"},
            {"bank": {"type": "integer", "enum_eq": [1, 2]}, "card_number": {}},
        )
    """
    return _default_validator.validate(values, rules)
