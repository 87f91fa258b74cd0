"""Permanent deletion through the OS trash, with an audit CSV log.

Files are moved to the recycle bin with send2trash one by one so each path
reports its own outcome; a CSV row is written per path after the batch.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
import os
from pathlib import Path

from loguru import logger
from send2trash import send2trash

from infrastructure.logging import get_delete_log_directory


@dataclass
class TrashReport:
    """Outcome of a trash operation.

    Attributes:
        success_paths: Paths successfully moved to the trash.
        failed: Tuples of (path, reason) for failures.
        log_path: Optional path to the audit log file.
    """

    success_paths: list[str]
    failed: list[tuple[str, str]]
    log_path: str | None = None


class DeleteService:
    """Coordinates trash operations and audit logging."""

    def __init__(self, log_dir: str | None = None) -> None:
        self._log_dir = log_dir

    def delete_to_recycle(self, paths: list[str]) -> TrashReport:
        """Send files to the recycle bin and report per-path results."""
        success: list[str] = []
        failed: list[tuple[str, str]] = []
        for p in paths:
            normalized_path = os.path.normpath(p)
            if not os.path.exists(normalized_path):
                logger.error("File does not exist: {}", normalized_path)
                failed.append((p, "File does not exist"))
                continue
            try:
                send2trash(normalized_path)
                success.append(p)
            except (UnicodeEncodeError, OSError) as ex:
                logger.warning("Trash with normalized path failed for {}: {}", normalized_path, ex)
                # Retry once with the absolute path
                try:
                    send2trash(os.path.abspath(p))
                    success.append(p)
                except (UnicodeEncodeError, OSError) as ex2:
                    logger.error("All delete methods failed for {}: {} / {}", p, ex, ex2)
                    failed.append((p, str(ex2) or type(ex2).__name__))
        return TrashReport(success_paths=success, failed=failed)

    def execute_delete(self, paths: list[str]) -> TrashReport:
        """Trash `paths` and write an audit CSV log next to previous ones."""
        report = self.delete_to_recycle(paths)
        try:
            base_dir = (
                os.path.expandvars(self._log_dir) if self._log_dir else get_delete_log_directory()
            )
            Path(base_dir).mkdir(parents=True, exist_ok=True)
            ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            log_path = os.path.join(base_dir, f"delete_{ts}.csv")
            with open(log_path, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(["FilePath", "Success", "Reason"])
                for p in report.success_paths:
                    writer.writerow([p, 1, ""])
                for p, reason in report.failed:
                    writer.writerow([p, 0, reason])
            report.log_path = log_path
            logger.info(
                "Delete log written: {} ({} success, {} failed)",
                log_path,
                len(report.success_paths),
                len(report.failed),
            )
        except (OSError, ValueError) as ex:
            logger.error("Write delete log failed: {}", ex)
        return report
