"""Run notifications."""

from dopamint_e2e.services.notification.reporter import TelegramNotifier, WorkflowReport

__all__ = ["TelegramNotifier", "WorkflowReport"]
