"""Selector catalog loaded from YAML configuration."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger

from dopamint_e2e.core.exceptions import ConfigurationError
from dopamint_e2e.resilience.locators import LocatorCandidate

DEFAULT_SELECTORS_FILE = Path(__file__).resolve().parents[2] / "config" / "selectors.yaml"


class SelectorCatalog:
    """Map dot-notation paths (``create.generate_button``) to locator candidates."""

    def __init__(self, selectors_file: Optional[Union[str, Path]] = None):
        """
        Initialize catalog.

        Args:
            selectors_file: Path to selectors YAML file (defaults to the bundled one)

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        self.selectors_file = Path(selectors_file) if selectors_file else DEFAULT_SELECTORS_FILE
        self._selectors: Dict[str, Any] = self._load_selectors()
        self._cache: Dict[str, LocatorCandidate] = {}

    def _load_selectors(self) -> Dict[str, Any]:
        """Load selectors from YAML file."""
        if not self.selectors_file.exists():
            raise ConfigurationError(f"Selectors file not found: {self.selectors_file}")

        try:
            with open(self.selectors_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid selectors file {self.selectors_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Selectors file {self.selectors_file} must be a mapping")

        logger.info(f"Selectors loaded (version: {data.get('version', 'unknown')})")
        return data

    @property
    def version(self) -> str:
        return str(self._selectors.get("version", "unknown"))

    def _lookup(self, path: str) -> Any:
        value: Any = self._selectors
        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    def has(self, path: str) -> bool:
        """Check whether a path is defined."""
        return self._lookup(path) is not None

    def entries(self, path: str) -> List[Any]:
        """
        Get the ordered raw entries for a path.

        Mapping-style targets yield ``semantic`` first, then ``primary``,
        then ``fallbacks``.

        Args:
            path: Dot-separated path (e.g., "login.login_button")

        Returns:
            Entries in priority order

        Raises:
            ConfigurationError: If the path is unknown or has no entries
        """
        value = self._lookup(path)
        if value is None:
            raise ConfigurationError(f"Selector not defined: {path}")

        if isinstance(value, str):
            entries: List[Any] = [value]
        elif isinstance(value, list):
            entries = list(value)
        elif isinstance(value, dict) and value.keys() & {"semantic", "primary", "fallbacks"}:
            entries = []
            semantic = value.get("semantic")
            if semantic:
                entries.extend(semantic if isinstance(semantic, list) else [semantic])
            if value.get("primary"):
                entries.append(value["primary"])
            fallbacks = value.get("fallbacks") or []
            entries.extend(fallbacks if isinstance(fallbacks, list) else [fallbacks])
        elif isinstance(value, dict) and value.keys() & {"role", "text", "label", "placeholder"}:
            entries = [value]
        else:
            raise ConfigurationError(f"Selector path is a group, not a target: {path}")

        if not entries:
            raise ConfigurationError(f"Selector has no entries: {path}")
        return entries

    def candidate(self, path: str, target: Optional[str] = None) -> LocatorCandidate:
        """
        Build the locator candidate for a path.

        Args:
            path: Dot-separated path
            target: Logical name for logs (defaults to the path)

        Returns:
            LocatorCandidate with the catalog's strategies in order
        """
        key = f"{path}|{target or ''}"
        if key not in self._cache:
            try:
                self._cache[key] = LocatorCandidate.of(target or path, *self.entries(path))
            except ValueError as e:
                raise ConfigurationError(f"Invalid selector entry under {path}: {e}") from e
        return self._cache[key]

    def first(self, path: str) -> str:
        """First selector string of a path, for raw element queries."""
        entry = self.entries(path)[0]
        if not isinstance(entry, str):
            raise ConfigurationError(f"Selector {path} does not start with a selector string")
        return entry


_catalogs: Dict[Path, SelectorCatalog] = {}


def get_selector_catalog(selectors_file: Optional[Union[str, Path]] = None) -> SelectorCatalog:
    """
    Get a shared catalog instance per file.

    Args:
        selectors_file: Optional override path

    Returns:
        SelectorCatalog instance
    """
    path = Path(selectors_file).resolve() if selectors_file else DEFAULT_SELECTORS_FILE
    if path not in _catalogs:
        _catalogs[path] = SelectorCatalog(path)
    return _catalogs[path]
