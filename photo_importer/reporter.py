"""Reporting for photo import runs."""

import logging
from pathlib import Path
from typing import Optional

from .importer import ImportStats
from .transfer import TransferStatus

logger = logging.getLogger(__name__)


class ImportReporter:
    """Generates human-readable summaries of an import run."""

    def generate_summary_report(self, stats: ImportStats) -> str:
        """
        Generate human-readable summary report.

        Args:
            stats: Statistics from the import run

        Returns:
            Formatted summary report
        """
        report = []
        report.append("=" * 50)
        report.append("PHOTO IMPORT SUMMARY")
        report.append("=" * 50)
        report.append(f"Completed: {stats.timestamp}")
        report.append(f"Mode: {'DRY RUN' if stats.dry_run else 'LIVE RUN'}")
        report.append(f"Source: {stats.source_root}")
        report.append(f"Library: {stats.library_root}")
        report.append("")

        report.append("=== FILE STATISTICS ===")
        report.append(f"• Images found on card: {stats.images_found:,}")
        report.append(f"• Images already in library: {stats.library_images:,}")
        report.append(f"• New images: {stats.new_images:,}")
        if stats.dry_run:
            report.append(f"• Folders that would be created: {stats.folders_created:,}")
            report.append(f"• Images that would be imported: {stats.planned:,}")
        else:
            report.append(f"• Folders created: {stats.folders_created:,}")
            report.append(f"• Moved: {stats.moved:,}")
            report.append(f"• Copied (original left on card): {stats.copied:,}")
            report.append(f"• Failed: {stats.failed:,}")
            if stats.skipped_groups:
                report.append(f"• Day folders skipped: {stats.skipped_groups:,}")
        report.append("")

        copied = [o for o in stats.outcomes if o.status is TransferStatus.COPIED]
        if copied:
            report.append("=== COPIED INSTEAD OF MOVED ===")
            for outcome in copied:
                report.append(f"  {outcome.file.name}: {outcome.reason}")
            report.append("")

        if stats.errors:
            report.append("=== ERRORS ENCOUNTERED ===")
            for error in stats.errors:
                report.append(f"  {error}")
            report.append("")

        status = "COMPLETE SUCCESS" if stats.success else "COMPLETED WITH ISSUES"
        report.append(f"STATUS: {status}")

        return "\n".join(report)

    def save_report(self, stats: ImportStats, report_file: Path) -> Optional[str]:
        """Save the summary report to a file and return its path."""
        report_file = Path(report_file)
        report_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            report_file.write_text(self.generate_summary_report(stats), encoding='utf-8')
        except OSError as e:
            logger.error(f"Failed to save report: {e}")
            raise
        logger.info(f"Report saved: {report_file}")
        return str(report_file)
