"""Change polling and watch session orchestration."""

from docwatch.watcher.builder import DocumentBuilder
from docwatch.watcher.models import BuildReport, WatchTask
from docwatch.watcher.orchestrator import Orchestrator, discover_sources, plan_task
from docwatch.watcher.poller import ChangePoller


__all__ = [
    "BuildReport",
    "ChangePoller",
    "DocumentBuilder",
    "Orchestrator",
    "WatchTask",
    "discover_sources",
    "plan_task",
]
