"""Tests for custom exceptions."""

from dopamint_e2e.core.exceptions import (
    ConfigurationError,
    DismissalIncompleteError,
    E2EError,
    LoginError,
    OTPTimeoutError,
    PollTimeoutError,
    ResolutionNotFoundError,
    WalletError,
    WorkflowStepError,
)


def test_base_error_to_dict():
    """Test E2EError serialises its fields."""
    error = E2EError("boom", recoverable=False, details={"k": "v"})
    data = error.to_dict()

    assert data["error"] == "E2EError"
    assert data["message"] == "boom"
    assert data["recoverable"] is False
    assert data["details"] == {"k": "v"}
    assert data["timestamp"]


def test_resolution_not_found_lists_strategies():
    """Test the message names the target and each tried strategy."""
    error = ResolutionNotFoundError("Sell button", ["a", "b"])

    assert "Sell button" in str(error)
    assert "a, b" in str(error)
    assert error.recoverable is True
    assert error.details == {"target": "Sell button", "tried": ["a", "b"]}


def test_resolution_not_found_without_strategies():
    """Test the message without a tried list."""
    assert str(ResolutionNotFoundError("x")) == "Element 'x' not found."


def test_poll_timeout_message():
    """Test seconds formatting in the timeout message."""
    error = PollTimeoutError("mint success", 240500, 240000)

    assert "mint success" in str(error)
    assert "240.5s" in str(error)
    assert error.details["timeout_ms"] == 240000


def test_otp_timeout_is_poll_timeout():
    """Test OTP timeouts are poll timeouts."""
    assert isinstance(OTPTimeoutError("OTP email", 1, 1), PollTimeoutError)


def test_dismissal_incomplete():
    """Test rounds are reported."""
    error = DismissalIncompleteError(5)
    assert error.rounds == 5
    assert "5 dismissal round" in str(error)


def test_workflow_step_error_carries_diagnostics():
    """Test step name, elapsed time, screenshot and cause."""
    cause = ResolutionNotFoundError("Generate button")
    error = WorkflowStepError("Generate image", 1500, "/tmp/shot.png", cause=cause)

    assert error.step == "Generate image"
    assert error.screenshot_path == "/tmp/shot.png"
    assert error.recoverable is False
    assert "Generate button" in str(error)
    assert error.to_dict()["details"]["cause"] == "ResolutionNotFoundError"


def test_login_and_wallet_defaults():
    """Test default messages and recoverability."""
    assert str(LoginError()) == "Login failed"
    assert LoginError(recoverable=False).recoverable is False
    assert str(WalletError()) == "Wallet confirmation failed"


def test_configuration_error_not_recoverable():
    """Test configuration errors are final."""
    error = ConfigurationError("Selector not defined: login.x")
    assert isinstance(error, E2EError)
    assert error.recoverable is False
