"""Custom exception classes for Dopamint E2E."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class E2EError(Exception):
    """Base exception for Dopamint E2E."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize E2E error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ResolutionNotFoundError(E2EError):
    """No locator strategy matched a visible element."""

    def __init__(self, target: str, tried: Optional[List[str]] = None):
        """
        Initialize resolution error.

        Args:
            target: Logical name of the UI target
            tried: Descriptions of the strategies that were checked
        """
        self.target = target
        self.tried = tried or []
        message = f"Element '{target}' not found."
        if self.tried:
            message += f" Tried: {', '.join(self.tried)}"
        super().__init__(message, recoverable=True, details={"target": target, "tried": self.tried})


class PollTimeoutError(E2EError):
    """Condition did not become true before the deadline."""

    def __init__(self, step: str, elapsed_ms: float, timeout_ms: float):
        self.step = step
        self.elapsed_ms = elapsed_ms
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Timed out waiting for {step} after {elapsed_ms / 1000:.1f}s "
            f"(limit {timeout_ms / 1000:.1f}s)",
            recoverable=True,
            details={"step": step, "elapsed_ms": elapsed_ms, "timeout_ms": timeout_ms},
        )


class OTPTimeoutError(PollTimeoutError):
    """No one-time code arrived in the mailbox in time."""


class DismissalIncompleteError(E2EError):
    """Overlay still visible after all dismissal rounds."""

    def __init__(self, rounds: int):
        self.rounds = rounds
        super().__init__(
            f"Overlay still visible after {rounds} dismissal round(s)",
            recoverable=True,
            details={"rounds": rounds},
        )


class WorkflowStepError(E2EError):
    """A workflow step failed; carries the step name and diagnostics."""

    def __init__(
        self,
        step: str,
        elapsed_ms: float,
        screenshot_path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.step = step
        self.elapsed_ms = elapsed_ms
        self.screenshot_path = screenshot_path
        message = f"Step '{step}' failed after {elapsed_ms / 1000:.1f}s"
        if cause is not None:
            message += f": {cause}"
        super().__init__(
            message,
            recoverable=False,
            details={
                "step": step,
                "elapsed_ms": elapsed_ms,
                "screenshot": screenshot_path,
                "cause": type(cause).__name__ if cause is not None else None,
            },
        )


class LoginError(E2EError):
    """Login operation failed."""

    def __init__(self, message: str = "Login failed", recoverable: bool = True):
        super().__init__(message, recoverable)


class WalletError(E2EError):
    """Wallet popup could not be confirmed."""

    def __init__(
        self,
        message: str = "Wallet confirmation failed",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class ConfigurationError(E2EError):
    """Configuration error occurred."""

    def __init__(self, message: str = "Configuration error", recoverable: bool = False):
        super().__init__(message, recoverable)
