"""
Rule Loader - rule mappings from YAML and JSON files

Rule files hold the same rules mappings that can be written inline in
Python, with two differences:

- ``callback`` is an import path, ``package.module:function``
- ``regexp`` is a pattern string, compiled with the optional
  ``regexp_flags`` list (e.g. ``[IGNORECASE]``)

``instanceof`` may be an import path (``package.module:Class``) or a class
name matched against the value's type hierarchy.

## How It Works

1. The fetcher returns the file text (local path, file:// or http(s)://)
2. The text is parsed as JSON for ``.json`` files, YAML otherwise
3. The document is checked against the rule file JSON schema
4. Import paths are resolved with importlib and patterns compiled
5. The resolved mapping is cached by URI
"""

import importlib
import json
import logging
import re
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

from .errors import RuleFileError
from .rule_normalizer import is_single_rule
from .rule_schema import check_rules_document
from .type_presets import compile_flags

logger = logging.getLogger(__name__)


def import_string(import_path: str) -> Any:
    """
    Import an object from a ``package.module:attr`` path.

    Args:
        import_path: Module path and attribute path separated by a colon

    Returns:
        The imported object

    Raises:
        RuleFileError: If the module or attribute can't be found
    """
    module_name, _, attr_path = import_path.partition(":")
    if not module_name or not attr_path:
        raise RuleFileError(f"Import path must look like 'module:attr', got {import_path!r}")

    try:
        target = importlib.import_module(module_name)
    except ImportError as e:
        raise RuleFileError(f"Failed to import {module_name} for {import_path}: {e}") from e

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise RuleFileError(f"{import_path}: {module_name} has no attribute path {attr_path}") from e

    return target


class RuleLoader:
    """Loads and resolves rules mappings from rule files."""

    def __init__(self, rule_fetcher):
        """
        Initialize rule loader.

        Args:
            rule_fetcher: RuleFetcher instance used to read files and URIs
        """
        self.rule_fetcher = rule_fetcher
        self.loaded_rules: Dict[str, Dict[str, Any]] = {}  # Cache: uri -> rules

    def load(self, rule_uri: str) -> Dict[str, Any]:
        """
        Load a rules mapping from a file path or URI.

        Args:
            rule_uri: Path, file:// or http(s):// URI of a YAML or JSON rule file

        Returns:
            Rules mapping ready for Validator.validate()

        Raises:
            RuleFileError: If the file can't be read, parsed or resolved
        """
        rule_uri = str(rule_uri)
        if rule_uri in self.loaded_rules:
            return self.loaded_rules[rule_uri]

        text = self.rule_fetcher.fetch(rule_uri)
        document = self.parse(text, rule_uri)
        check_rules_document(document, rule_uri)

        rules = self.resolve(document)
        self.loaded_rules[rule_uri] = rules
        logger.debug(f"Loaded {len(rules)} rules from {rule_uri}")
        return rules

    def parse(self, text: str, source: str = "<rules>") -> Any:
        """Parse rule file text as JSON for .json sources, YAML otherwise."""
        suffix = PurePosixPath(urlparse(source).path or source).suffix.lower()
        try:
            if suffix == ".json":
                document = json.loads(text)
            else:
                document = yaml.safe_load(text)
        except (ValueError, yaml.YAMLError) as e:
            raise RuleFileError(f"Failed to parse rule file {source}: {e}") from e

        return {} if document is None else document

    def resolve(self, rules: Mapping) -> Dict[str, Any]:
        """Return a copy of a rules mapping with import paths and patterns resolved."""
        return {key: self._resolve_rule(rule) for key, rule in rules.items()}

    def _resolve_rule(self, rule: Any) -> Dict[str, Any]:
        if rule is None:
            return {}

        resolved = dict(rule)

        if isinstance(resolved.get("callback"), str):
            resolved["callback"] = import_string(resolved["callback"])
            if not callable(resolved["callback"]):
                raise RuleFileError(f"callback {rule['callback']} is not callable")

        instanceof = resolved.get("instanceof")
        if isinstance(instanceof, str) and ":" in instanceof:
            resolved["instanceof"] = import_string(instanceof)

        if isinstance(resolved.get("regexp"), str):
            try:
                flags = compile_flags(resolved.pop("regexp_flags", None))
                resolved["regexp"] = re.compile(resolved["regexp"], flags)
            except (ValueError, re.error) as e:
                raise RuleFileError(f"Invalid regexp {rule['regexp']!r}: {e}") from e

        if isinstance(resolved.get("keys"), Mapping):
            resolved["keys"] = self.resolve(resolved["keys"])

        element = resolved.get("element")
        if isinstance(element, Mapping):
            if is_single_rule(element):
                resolved["element"] = self._resolve_rule(element)
            else:
                resolved["element"] = self.resolve(element)

        return resolved

    def clear_cache(self) -> None:
        """Forget every loaded rules mapping."""
        self.loaded_rules.clear()
