"""Settings loading: bundled local-config.yaml plus an optional user file."""

import os
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from importlib.resources import files

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads the bundled settings and merges a user override file over them."""

    ENV_VAR = "RULE_VALIDATOR_CONFIG"
    DEFAULT_CACHE_DIR = Path.home() / ".cache" / "rule-validator"

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional user config file. Falls back to the
                RULE_VALIDATOR_CONFIG environment variable.

        Raises:
            ValueError: If the user config file is not a YAML mapping
        """
        config_file = files('rule_validator').joinpath('local-config.yaml')
        self.local_config_path = str(config_file)

        with config_file.open('r') as f:
            self.local_config = yaml.safe_load(f) or {}

        self.user_config_path = config_path or os.environ.get(self.ENV_VAR)
        if self.user_config_path:
            user_config = self._load_yaml(self.user_config_path)
            if not isinstance(user_config, dict):
                raise ValueError(
                    f"Config file must contain a mapping: {self.user_config_path}"
                )
            logger.debug(f"Merging user config from {self.user_config_path}")
            self.config = {**self.local_config, **user_config}
        else:
            self.config = dict(self.local_config)

    def _load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file from disk."""
        with open(os.path.expanduser(path)) as f:
            return yaml.safe_load(f) or {}

    def get_config(self) -> Dict[str, Any]:
        """Get the merged configuration."""
        return self.config

    def get_max_depth(self) -> int:
        """Get the maximum nesting depth for one validate() call."""
        return int(self.config.get('max_depth', 32))

    def get_cache_dir(self) -> Path:
        """Get the cache directory for remote rule files."""
        cache_dir = self.config.get('cache_dir')
        if not cache_dir:
            return self.DEFAULT_CACHE_DIR
        return Path(os.path.expanduser(cache_dir))

    def get_fetch_timeout(self) -> float:
        """Get the timeout in seconds for http(s) rule file fetches."""
        return float(self.config.get('fetch_timeout_seconds', 10))

    def get_extra_types(self) -> Dict[str, Dict[str, Any]]:
        """Get extra type presets declared in config."""
        return self.config.get('types') or {}
