"""Element resolution, condition polling and overlay dismissal engines."""

from .baseline import extract_token_ids, highest_token_id, new_ids_above, new_ids_predicate
from .dismissal import ClickAt, ClickCandidate, DismissalAction, DismissalPlan, PressKey, dismiss
from .driver import PageDriver, PlaywrightDriver
from .locators import LocatorCandidate, LocatorStrategy, StrategyKind
from .polling import PollOutcome, PollSpec, hidden, poll_until, visible, wait_until
from .resolution import ResolutionResult, check_strategy, resolve

__all__ = [
    "LocatorCandidate",
    "LocatorStrategy",
    "StrategyKind",
    "PageDriver",
    "PlaywrightDriver",
    "ResolutionResult",
    "check_strategy",
    "resolve",
    "PollSpec",
    "PollOutcome",
    "poll_until",
    "wait_until",
    "visible",
    "hidden",
    "extract_token_ids",
    "highest_token_id",
    "new_ids_above",
    "new_ids_predicate",
    "DismissalAction",
    "DismissalPlan",
    "ClickCandidate",
    "PressKey",
    "ClickAt",
    "dismiss",
]
