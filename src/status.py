"""Status sinks: consumers of the catalog summary."""
import logging
from typing import Optional

from tqdm import tqdm

from src.catalog import CatalogSummary

logger = logging.getLogger("messages_editor.status")


def format_status(summary: CatalogSummary) -> str:
    """
    Render a summary as a single status line.

    Example: "12/40 - 30.0% - 2 unchanged - 1 errors". The unchanged and
    error parts are omitted when zero.
    """
    parts = [
        f"{summary.translated_count:,}/{summary.total_count:,}",
        f"{summary.percent_translated:.1%}",
    ]
    if summary.unchanged_count > 0:
        parts.append(f"{summary.unchanged_count:,} unchanged")
    if summary.error_count:
        parts.append(f"{summary.error_count:,} errors")
    return " - ".join(parts)


class LoggingStatusSink:
    """Logs every summary it receives."""

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self.last: Optional[CatalogSummary] = None

    def __call__(self, summary: CatalogSummary) -> None:
        self.last = summary
        logger.log(self.level, "Status: %s", format_status(summary))


class ProgressStatusSink:
    """Shows translation progress as a tqdm bar."""

    def __init__(self, desc: str = "Translated", leave: bool = True):
        self.desc = desc
        self.leave = leave
        self._bar: Optional[tqdm] = None

    def __call__(self, summary: CatalogSummary) -> None:
        if self._bar is None or self._bar.total != summary.total_count:
            self.close()
            self._bar = tqdm(total=summary.total_count, desc=self.desc, unit="msg", leave=self.leave)
        self._bar.n = summary.translated_count
        self._bar.set_postfix(unchanged=summary.unchanged_count, errors=summary.error_count, refresh=False)
        self._bar.refresh()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
