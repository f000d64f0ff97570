"""Core infrastructure module."""

from .exceptions import (
    # Base exception
    E2EError,
    # Engine outcomes
    ResolutionNotFoundError,
    PollTimeoutError,
    DismissalIncompleteError,
    # Workflow
    WorkflowStepError,
    LoginError,
    WalletError,
    OTPTimeoutError,
    # Configuration
    ConfigurationError,
)
from .logger import setup_logging, workflow_ctx
from .settings import E2ESettings, get_settings, reset_settings

__all__ = [
    "E2EError",
    "ResolutionNotFoundError",
    "PollTimeoutError",
    "DismissalIncompleteError",
    "WorkflowStepError",
    "LoginError",
    "WalletError",
    "OTPTimeoutError",
    "ConfigurationError",
    "setup_logging",
    "workflow_ctx",
    "E2ESettings",
    "get_settings",
    "reset_settings",
]
