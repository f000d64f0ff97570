"""Tests for popup dismissal."""

import pytest

from dopamint_e2e.core.exceptions import DismissalIncompleteError
from dopamint_e2e.resilience.dismissal import (
    ClickAt,
    ClickCandidate,
    DismissalPlan,
    PressKey,
    dismiss,
)
from dopamint_e2e.resilience.locators import LocatorCandidate

OVERLAY = LocatorCandidate.of("blocking dialog", "[role=dialog]")
CLOSE = LocatorCandidate.of("close button", "button[aria-label=Close]")


def make_plan(*actions, fallback=None):
    return DismissalPlan(overlay=OVERLAY, actions=actions, fallback=fallback, settle_ms=100)


class TestDismiss:
    """Test dismiss() rounds and actions."""

    @pytest.mark.asyncio
    async def test_clean_page_performs_no_action(self, driver):
        """Test no overlay means no clicks or key presses."""
        plan = make_plan(ClickCandidate(CLOSE), PressKey(), fallback=ClickAt(5, 5))

        assert await dismiss(driver, plan) is True
        assert driver.actions == []
        assert driver.waits == []

    @pytest.mark.asyncio
    async def test_close_button_dismisses(self, driver):
        """Test a visible close button is clicked and the overlay goes away."""
        driver.add("[role=dialog]")
        driver.add("button[aria-label=Close]", on_click=driver.hider("[role=dialog]"))

        assert await dismiss(driver, make_plan(ClickCandidate(CLOSE), PressKey())) is True
        assert driver.clicks() == ["button[aria-label=Close]"]
        assert ("press", "Escape") not in driver.actions

    @pytest.mark.asyncio
    async def test_escape_closes_transient_overlay(self, driver):
        """Test one Escape is enough when the overlay listens for it."""
        driver.add("[role=dialog]")
        driver.key_handlers["Escape"] = driver.hider("[role=dialog]")

        assert await dismiss(driver, make_plan(PressKey())) is True
        assert driver.actions == [("press", "Escape")]

    @pytest.mark.asyncio
    async def test_ineffective_escape_falls_through_to_fallback(self, driver):
        """Test a blind Escape with no effect does not stop the fallback."""
        driver.add("[role=dialog]")
        driver.click_at_handler = driver.hider("[role=dialog]")

        result = await dismiss(driver, make_plan(PressKey(), fallback=ClickAt(10, 10)))

        assert result is True
        assert driver.actions == [("press", "Escape"), ("click_at", 10, 10)]

    @pytest.mark.asyncio
    async def test_ineffective_escape_falls_through_to_next_action(self, driver):
        """Test later actions still run after a blind action missed."""
        driver.add("[role=dialog]")
        driver.add("button[aria-label=Close]", on_click=driver.hider("[role=dialog]"))

        result = await dismiss(driver, make_plan(PressKey(), ClickCandidate(CLOSE)))

        assert result is True
        assert driver.actions == [("press", "Escape"), ("click", "button[aria-label=Close]")]

    @pytest.mark.asyncio
    async def test_stubborn_overlay_returns_false(self, driver):
        """Test a persistent overlay exhausts rounds and returns False."""
        driver.add("[role=dialog]")

        result = await dismiss(driver, make_plan(PressKey(), fallback=ClickAt(1, 1)), max_rounds=3)

        assert result is False
        assert driver.actions.count(("press", "Escape")) == 3
        assert driver.actions.count(("click_at", 1, 1)) == 3

    @pytest.mark.asyncio
    async def test_strict_raises(self, driver):
        """Test strict mode raises DismissalIncompleteError."""
        driver.add("[role=dialog]")

        with pytest.raises(DismissalIncompleteError) as exc_info:
            await dismiss(driver, make_plan(PressKey()), max_rounds=2, strict=True)

        assert exc_info.value.rounds == 2

    @pytest.mark.asyncio
    async def test_overlay_closed_by_last_round(self, driver):
        """Test the final check counts a dismissal made in the last round."""
        driver.add("[role=dialog]")
        driver.click_at_handler = driver.hider("[role=dialog]")

        assert await dismiss(driver, make_plan(fallback=ClickAt(2, 2)), max_rounds=1) is True

    @pytest.mark.asyncio
    async def test_failing_action_is_skipped(self, driver):
        """Test a raising action does not abort dismissal."""
        driver.add("[role=dialog]")
        driver.raising.add("button[aria-label=Close]")
        driver.key_handlers["Escape"] = driver.hider("[role=dialog]")

        assert await dismiss(driver, make_plan(ClickCandidate(CLOSE), PressKey())) is True

    @pytest.mark.asyncio
    async def test_rejects_zero_rounds(self, driver):
        """Test max_rounds must be positive."""
        with pytest.raises(ValueError):
            await dismiss(driver, make_plan(PressKey()), max_rounds=0)

    @pytest.mark.asyncio
    async def test_idempotent_on_clean_page(self, driver):
        """Test calling twice after success stays action-free."""
        driver.add("[role=dialog]")
        driver.key_handlers["Escape"] = driver.hider("[role=dialog]")
        plan = make_plan(PressKey())

        await dismiss(driver, plan)
        actions = list(driver.actions)
        await dismiss(driver, plan)

        assert driver.actions == actions
