"""Rule file fetching and caching for local and remote rule files."""

import hashlib
import logging
import shutil
import urllib.parse
from pathlib import Path

import requests

from .errors import RuleFileError

logger = logging.getLogger(__name__)


class RuleFetcher:
    """Fetches rule file text from paths and URIs, caching remote files."""

    def __init__(self, cache_dir: str, timeout: float = 10):
        """
        Initialize rule fetcher.

        Args:
            cache_dir: Directory for caching remote rule files
            timeout: Seconds to wait for an http(s) response
        """
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        # Directory is created lazily, only when a remote file is fetched.

    def fetch(self, rule_uri: str) -> str:
        """
        Fetch rule file text from URI (with caching).

        Logic:
        1. If relative path or file:// → read from disk
        2. If http(s):// → check cache, fetch if missing, return cached text

        Args:
            rule_uri: Rule file path or URI

        Returns:
            File contents

        Raises:
            RuleFileError: If the file can't be read or fetched
        """
        rule_uri = str(rule_uri)
        parsed = urllib.parse.urlparse(rule_uri)

        if not parsed.scheme or len(parsed.scheme) == 1:
            # Plain path (a one-letter scheme is a Windows drive)
            return self._read(Path(rule_uri))

        if parsed.scheme == "file":
            return self._read(Path(urllib.parse.unquote(parsed.path)))

        if parsed.scheme in ("http", "https"):
            cache_path = self.cache_path(rule_uri)
            if cache_path.exists():
                logger.debug(f"Using cached rule file for {rule_uri}")
                return cache_path.read_text(encoding="utf-8")

            text = self._download(rule_uri)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_path.write_text(text, encoding="utf-8")
            return text

        raise RuleFileError(f"Unsupported URI scheme: {parsed.scheme} in {rule_uri}")

    def cache_path(self, rule_uri: str) -> Path:
        """Return the cache file used for a remote rule URI."""
        cache_key = hashlib.sha256(rule_uri.encode()).hexdigest()
        suffix = Path(urllib.parse.urlparse(rule_uri).path).suffix or ".yaml"
        return self.cache_dir / f"{cache_key}{suffix}"

    def clear_cache(self) -> None:
        """Remove every cached remote rule file."""
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)

    def _read(self, path: Path) -> str:
        try:
            return path.resolve().read_text(encoding="utf-8")
        except OSError as e:
            raise RuleFileError(f"Failed to read rule file {path}: {e}") from e

    def _download(self, rule_uri: str) -> str:
        logger.info(f"Fetching rule file from {rule_uri}")
        try:
            response = requests.get(rule_uri, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise RuleFileError(
                f"Timed out after {self.timeout}s fetching rule file from {rule_uri}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise RuleFileError(f"Failed to fetch rule file from {rule_uri}: {e}") from e
        return response.text
