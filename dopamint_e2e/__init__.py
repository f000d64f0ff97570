"""Dopamint E2E - resilient browser journeys for the Dopamint NFT marketplace."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"

if TYPE_CHECKING:
    from .core.logger import setup_logging as setup_logging
    from .core.settings import E2ESettings as E2ESettings
    from .core.settings import get_settings as get_settings
    from .resilience import dismiss as dismiss
    from .resilience import poll_until as poll_until
    from .resilience import resolve as resolve
    from .selector import SelectorCatalog as SelectorCatalog
    from .selector import get_selector_catalog as get_selector_catalog

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    "setup_logging": ("dopamint_e2e.core.logger", "setup_logging"),
    "E2ESettings": ("dopamint_e2e.core.settings", "E2ESettings"),
    "get_settings": ("dopamint_e2e.core.settings", "get_settings"),
    "resolve": ("dopamint_e2e.resilience", "resolve"),
    "poll_until": ("dopamint_e2e.resilience", "poll_until"),
    "dismiss": ("dopamint_e2e.resilience", "dismiss"),
    "SelectorCatalog": ("dopamint_e2e.selector", "SelectorCatalog"),
    "get_selector_catalog": ("dopamint_e2e.selector", "get_selector_catalog"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
