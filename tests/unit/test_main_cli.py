"""Tests for the command-line entry point."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

import main
from dopamint_e2e.services.notification import WorkflowReport
from dopamint_e2e.workflows import AIModel


def _report(passed: bool) -> WorkflowReport:
    return WorkflowReport(name="login", passed=passed, duration_seconds=1.0)


@pytest.fixture
def no_logging():
    with patch.object(main, "setup_logging") as setup:
        yield setup


class TestBuildParser:
    """Test argument parsing."""

    def test_defaults(self):
        """Test defaults for a bare journey name."""
        args = main.build_parser().parse_args(["login"])

        assert args.workflow == "login"
        assert args.worker == 0
        assert args.model == AIModel.NANO_BANANA_PRO.value
        assert args.mint_images == []
        assert not args.no_stagger

    def test_repeatable_mint_image(self):
        """Test --mint-image collects every value in order."""
        args = main.build_parser().parse_args(
            ["mint", "--mint-image", "a.png", "--mint-image", "b.png", "--collection-url", "u"]
        )

        assert args.mint_images == [Path("a.png"), Path("b.png")]
        assert args.collection_url == "u"

    def test_unknown_workflow(self):
        """Test an unknown journey exits with a usage error."""
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["search"])


class TestMain:
    """Test exit codes."""

    def test_passed(self, settings, no_logging):
        """Test a passing journey exits 0 with options forwarded."""
        run = AsyncMock(return_value=_report(True))

        with patch.object(main, "get_settings", return_value=settings), patch.object(
            main, "run_workflow", new=run
        ):
            code = main.main(["create", "--image", "robot.png", "--model", "ChatGPT", "--no-stagger"])

        assert code == 0
        name, passed_settings, options = run.await_args.args
        assert name == "create"
        assert passed_settings is settings
        assert options.image == Path("robot.png")
        assert options.model is AIModel.CHATGPT
        assert run.await_args.kwargs == {"worker_index": 0, "stagger": False}

    def test_failed(self, settings, no_logging):
        """Test a failing journey exits 1."""
        with patch.object(main, "get_settings", return_value=settings), patch.object(
            main, "run_workflow", new=AsyncMock(return_value=_report(False))
        ):
            assert main.main(["login"]) == 1

    def test_headed_overrides_settings(self, settings, no_logging):
        """Test --headed turns headless off."""
        settings.headless = True

        with patch.object(main, "get_settings", return_value=settings), patch.object(
            main, "run_workflow", new=AsyncMock(return_value=_report(True))
        ):
            main.main(["login", "--headed"])

        assert settings.headless is False

    def test_invalid_configuration(self, monkeypatch, tmp_path, no_logging):
        """Test invalid settings exit 2 without running anything."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BASE_URL", "ftp://dev.dopamint.ai")
        run = AsyncMock()

        with patch.object(main, "run_workflow", new=run):
            assert main.main(["login"]) == 2

        run.assert_not_called()

    def test_interrupted(self, settings, no_logging):
        """Test Ctrl+C exits 130."""

        def interrupt(coro):
            coro.close()
            raise KeyboardInterrupt

        with patch.object(main, "get_settings", return_value=settings), patch.object(
            main, "run_workflow", new=AsyncMock()
        ), patch.object(asyncio, "run", side_effect=interrupt):
            assert main.main(["login"]) == 130
