"""
Public API for rule-validator

This is the "front door": settings, rule-file loading and the validation
engine wired together behind one object.
"""

import os
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Union

from .config_loader import ConfigLoader
from .errors import RuleConfigError, ValidationError
from .rule_fetcher import RuleFetcher
from .rule_loader import RuleLoader
from .validation_engine import Validator

logger = logging.getLogger(__name__)

RulesSource = Union[Mapping, str, "os.PathLike[str]"]


class RuleValidator:
    """
    Main validation service class.

    Validates values mappings against rules given inline or as rule files
    (local paths, file:// or http(s):// URIs). Loaded rule files are cached
    per URI; remote files are also cached on disk.

    Example:
        from rule_validator import RuleValidator

        validator = RuleValidator()
        validator.validate(form_data, "rules/bank-account.yaml")

        if not validator.is_valid(form_data, {"bank": {"type": "integer"}}):
            ...
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the service from bundled settings.

        Args:
            config_path: Optional user config file merged over the bundled
                local-config.yaml (defaults to $RULE_VALIDATOR_CONFIG)
        """
        self.config_loader = ConfigLoader(config_path)

        self.rule_fetcher = RuleFetcher(
            cache_dir=str(self.config_loader.get_cache_dir()),
            timeout=self.config_loader.get_fetch_timeout(),
        )
        self.rule_loader = RuleLoader(self.rule_fetcher)

        self.engine = Validator(
            types=self.config_loader.get_extra_types(),
            max_depth=self.config_loader.get_max_depth(),
        )

    def load_rules(self, rule_uri: Union[str, "os.PathLike[str]"]) -> Dict[str, Any]:
        """
        Load a rules mapping from a YAML or JSON rule file.

        Args:
            rule_uri: Path, file:// or http(s):// URI

        Returns:
            Resolved rules mapping

        Raises:
            RuleFileError: If the file can't be fetched, parsed or resolved
        """
        return self.rule_loader.load(os.fspath(rule_uri))

    def validate(self, values: Mapping, rules: RulesSource) -> bool:
        """
        Validate a values mapping.

        Args:
            values: Input mapping (e.g. parsed request parameters)
            rules: Rules mapping, or path/URI of a rule file

        Returns:
            True when every rule passes

        Raises:
            ValidationError: On the first failing key (path, kind, message, parameter)
            RuleConfigError: If the rules mapping is malformed
            RuleFileError: If a rule file can't be loaded

        Example:
            try:
                validator.validate(values, {
                    "bank": {"type": "integer", "enum_eq": [1, 2]},
                    "card_number": {},
                })
            except ValidationError as e:
                print(e.kind, e.path, e.message)
        """
        if not isinstance(rules, Mapping):
            rules = self.load_rules(rules)
        return self.engine.validate(values, rules)

    def is_valid(self, values: Mapping, rules: RulesSource) -> bool:
        """
        Like validate(), but return False instead of raising for bad input.

        Broken rules (RuleConfigError, RuleFileError) still raise.
        """
        try:
            return self.validate(values, rules)
        except RuleConfigError:
            raise
        except ValidationError as e:
            logger.debug(f"Input rejected: {e.message}")
            return False

    def clear_cache(self) -> None:
        """Forget loaded rule files and delete cached remote files."""
        self.rule_loader.clear_cache()
        self.rule_fetcher.clear_cache()
