"""Locator strategies and ordered candidate lists for logical UI targets."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

LocatorEntry = Union[str, Dict[str, Any], "LocatorStrategy"]


class StrategyKind(str, Enum):
    """How a strategy finds its element."""

    SELECTOR = "selector"
    ROLE = "role"
    TEXT = "text"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    TEST_ID = "test_id"


@dataclass(frozen=True)
class LocatorStrategy:
    """A single way of finding a UI element.

    ``SELECTOR`` values are raw Playwright selectors, so CSS, XPath,
    ``text=`` and ``role=`` engines all work. The other kinds map onto the
    semantic ``get_by_*`` locators.
    """

    kind: StrategyKind
    value: str
    name: Optional[str] = None
    exact: bool = False

    @classmethod
    def parse(cls, entry: LocatorEntry) -> "LocatorStrategy":
        """
        Build a strategy from a catalog entry.

        Args:
            entry: Selector string, semantic mapping such as
                ``{"role": "button", "name": "Generate"}``, or a strategy

        Returns:
            Parsed strategy

        Raises:
            ValueError: If the entry is empty or has no recognised key
        """
        if isinstance(entry, LocatorStrategy):
            return entry
        if isinstance(entry, str):
            if not entry.strip():
                raise ValueError("Empty selector string")
            return cls(StrategyKind.SELECTOR, entry)
        if isinstance(entry, dict):
            exact = bool(entry.get("exact", False))
            if "role" in entry:
                return cls(StrategyKind.ROLE, entry["role"], name=entry.get("name"), exact=exact)
            for key in ("text", "label", "placeholder", "test_id"):
                if key in entry:
                    return cls(StrategyKind(key), str(entry[key]), exact=exact)
            for key in ("selector", "css", "xpath"):
                if key in entry:
                    return cls(StrategyKind.SELECTOR, str(entry[key]))
        raise ValueError(f"Unrecognised locator entry: {entry!r}")

    def describe(self) -> str:
        """Short label for logs and error messages."""
        if self.kind is StrategyKind.SELECTOR:
            return self.value
        if self.kind is StrategyKind.ROLE:
            return f'role={self.value}[name="{self.name}"]' if self.name else f"role={self.value}"
        return f'{self.kind.value}="{self.value}"'


@dataclass(frozen=True)
class LocatorCandidate:
    """Ordered strategies for one logical target; first visible match wins."""

    target: str
    strategies: Tuple[LocatorStrategy, ...]

    def __post_init__(self) -> None:
        strategies = tuple(LocatorStrategy.parse(s) for s in self.strategies)
        if not strategies:
            raise ValueError(f"Locator candidate '{self.target}' has no strategies")
        object.__setattr__(self, "strategies", strategies)

    @classmethod
    def of(cls, target: str, *entries: LocatorEntry) -> "LocatorCandidate":
        """Build a candidate from raw entries in priority order."""
        return cls(target, tuple(LocatorStrategy.parse(e) for e in entries))

    def extend(self, *entries: LocatorEntry) -> "LocatorCandidate":
        """Return a new candidate with extra lower-priority strategies appended."""
        return LocatorCandidate(
            self.target, self.strategies + tuple(LocatorStrategy.parse(e) for e in entries)
        )

    def describe(self) -> list:
        """Describe every strategy in order."""
        return [s.describe() for s in self.strategies]

    def __len__(self) -> int:
        return len(self.strategies)

    def __iter__(self) -> Iterator[LocatorStrategy]:
        return iter(self.strategies)
