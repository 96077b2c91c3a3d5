"""Exceptions raised by the validation engine and the rule-file loaders."""

from enum import Enum
from typing import Any, Optional, Sequence, Tuple


class ErrorKind(str, Enum):
    """Machine-distinguishable failure kinds carried by ValidationError."""

    MISSING_FIELD = "MissingField"
    EMPTY_NOT_ALLOWED = "EmptyNotAllowed"
    STRICT_EQUALITY_MISMATCH = "StrictEqualityMismatch"
    EQUALITY_MISMATCH = "EqualityMismatch"
    ENUM_STRICT_MISMATCH = "EnumStrictMismatch"
    ENUM_MISMATCH = "EnumMismatch"
    CALLBACK_FAILED = "CallbackFailed"
    PATTERN_MISMATCH = "PatternMismatch"
    TOO_SHORT = "TooShort"
    TYPE_MISMATCH = "TypeMismatch"
    NEGATIVE_NOT_ALLOWED = "NegativeNotAllowed"
    TAGS_NOT_ALLOWED = "TagsNotAllowed"
    RULE_MISCONFIGURED = "RuleMisconfigured"
    JSON_PARSE_ERROR = "JsonParseError"
    NOT_AN_OBJECT = "NotAnObject"
    INSTANCEOF_MISMATCH = "InstanceofMismatch"
    NESTING_TOO_DEEP = "NestingTooDeep"


# Kinds that point at a broken rule mapping rather than bad input
CONFIG_KINDS = frozenset({ErrorKind.RULE_MISCONFIGURED, ErrorKind.NESTING_TOO_DEEP})


class ValidationError(ValueError):
    """
    A value failed its rule.

    Attributes:
        path: Keys from the root of the values mapping to the failing key
        kind: Failure kind (ErrorKind)
        message: Human-readable message (custom error_message if the rule has one)
        parameter: The key that triggered the failure
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        path: Sequence[Any] = (),
        parameter: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.path: Tuple[Any, ...] = tuple(path)
        self.parameter = parameter

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"path={list(self.path)!r}, message={self.message!r})"
        )


class RuleConfigError(ValidationError):
    """The rule mapping itself is broken. Callers should treat this as fatal."""


class RuleFileError(Exception):
    """A rule file could not be fetched, parsed or resolved."""
