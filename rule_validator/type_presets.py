"""
Built-in type presets.

Each preset is a partial rule that is merged under the user's rule when the
rule's ``type`` names it. The table is read-only; extra presets are layered
on top with extend_types(), which returns a new mapping.
"""

import re
from types import MappingProxyType
from typing import Any, Dict, Mapping

_NUMERIC = {
    "regexp": re.compile(r"^-?\d+(?:\.\d+)?$"),
    "allow_negative": True,
}

BUILTIN_TYPES: Mapping[str, Mapping[str, Any]] = MappingProxyType(
    {
        "integer": MappingProxyType(
            {
                "regexp": re.compile(r"^-?\d+$"),
                "allow_negative": True,
            }
        ),
        "numeric": MappingProxyType(dict(_NUMERIC)),
        "float": MappingProxyType(dict(_NUMERIC)),
        "url": MappingProxyType(
            {
                "regexp": re.compile(
                    r"^[a-z]+://[0-9a-z\-.]+\.[0-9a-z]{1,4}(?::\d+)?"
                    r"(?:/[^?]*)?(?:\?[^#]*)?(?:#[0-9a-z\-_/]*)?$"
                ),
            }
        ),
        "uri": MappingProxyType(
            {
                "regexp": re.compile(r"^/(?:[^?]*)?(?:\?[^#]*)?(?:#[0-9a-z\-_/]*)?$"),
            }
        ),
        "ipv4": MappingProxyType(
            {
                "regexp": re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$"),
            }
        ),
        "uuid": MappingProxyType(
            {
                "regexp": re.compile(
                    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
                    re.IGNORECASE,
                ),
            }
        ),
        "telephone": MappingProxyType(
            {
                "regexp": re.compile(r"^1\d{10}$"),
            }
        ),
        # 15-digit or 18-digit resident identity numbers, last digit may be X
        "identity": MappingProxyType(
            {
                "regexp": re.compile(r"^(?:\d{15}|\d{18}|\d{17}[Xx])$"),
            }
        ),
        "date": MappingProxyType(
            {
                "regexp": re.compile(
                    r"^(\d{4})-?(0\d|1[0-2])-?(0\d|[12]\d|3[01])(\s+)?"
                    r"((0\d|1\d|2[0-3]):[0-5]\d(:([0-5]\d))?)?$"
                ),
            }
        ),
    }
)

# Types validated by the literal check's negative-number guard
NUMERIC_TYPES = frozenset({"integer", "numeric", "float"})
BOOL_TYPES = frozenset({"bool", "boolean"})
CONTAINER_TYPES = frozenset({"array", "hash"})


def compile_flags(names) -> int:
    """Turn a list of flag names (e.g. ["IGNORECASE"]) into an re flags value."""
    flags = 0
    for name in names or ():
        flag = getattr(re, str(name).upper(), None)
        if not isinstance(flag, re.RegexFlag):
            raise ValueError(f"Unknown regexp flag: {name}")
        flags |= flag
    return flags


def extend_types(extra: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    """
    Layer extra presets over the built-in table.

    String regexps are compiled here, honouring an optional ``flags`` list.
    The built-in table is never modified.

    Args:
        extra: Mapping of type name to partial rule

    Returns:
        New read-only mapping containing built-ins plus extras
    """
    if not extra:
        return BUILTIN_TYPES

    merged: Dict[str, Mapping[str, Any]] = dict(BUILTIN_TYPES)
    for name, preset in extra.items():
        preset = dict(preset)
        flags = compile_flags(preset.pop("flags", None))
        if isinstance(preset.get("regexp"), str):
            preset["regexp"] = re.compile(preset["regexp"], flags)
        merged[name] = MappingProxyType(preset)
    return MappingProxyType(merged)
