"""
Sync report generator for aggregating run statistics and formatting reports.

Formats the outcome of a run for console display and JSON export.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from logger import format_duration
from models import SyncStats, SyncStatus

logger = logging.getLogger('notion_markdown_sync.orchestrator.report')


class SyncReport:
    """Builds the end-of-run report from the statistics accumulator."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize report generator.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('notion_markdown_sync.orchestrator.report')

    def generate_report(
        self,
        stats: SyncStats,
        duration: float,
        image_stats: Optional[Dict[str, int]] = None
    ) -> Dict[str, Any]:
        """
        Generate the run report.

        Args:
            stats: Statistics of the finished run
            duration: Run duration in seconds
            image_stats: Optional image localizer counters

        Returns:
            Report dictionary
        """
        summary = stats.to_dict()
        summary['duration'] = duration
        summary['duration_formatted'] = format_duration(duration)
        summary['success_rate'] = (stats.success / stats.total) if stats.total else 1.0
        summary['status'] = 'failed' if stats.has_errors else 'success'

        report = {
            'summary': summary,
            'documents': [record.to_dict() for record in stats.records],
            'errors': self._build_error_summary(stats),
            'images': dict(image_stats or {}),
            'timestamp': datetime.now().isoformat()
        }

        self.logger.debug(
            f"Report generated: {stats.total} documents, {stats.errors} errors"
        )

        return report

    @staticmethod
    def _build_error_summary(stats: SyncStats) -> List[Dict[str, Any]]:
        return [
            {
                'document_id': record.document_id,
                'title': record.title,
                'error': record.error
            }
            for record in stats.records
            if record.status == SyncStatus.ERRORED
        ]

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Report dictionary

        Returns:
            Formatted console string with a Markdown results table
        """
        sections = []

        sections.append("=" * 60)
        sections.append("NOTION SYNC REPORT")
        sections.append("=" * 60)
        sections.append("")

        summary = report.get('summary', {})
        sections.append("Summary:")
        sections.append(f"  Total:       {summary.get('total', 0)}")
        sections.append(f"  Success:     {summary.get('success', 0)}")
        sections.append(f"  Created:     {summary.get('created', 0)}")
        sections.append(f"  Updated:     {summary.get('updated', 0)}")
        sections.append(f"  Skipped:     {summary.get('skipped', 0)}")
        sections.append(f"  Errors:      {summary.get('errors', 0)}")
        sections.append(f"  Duration:    {summary.get('duration_formatted', '0s')}")

        images = report.get('images', {})
        if images.get('found'):
            sections.append(
                f"  Images:      {images.get('downloaded', 0)} downloaded, "
                f"{images.get('reused', 0)} reused, {images.get('failed', 0)} failed"
            )

        sections.append("")

        if summary.get('errors', 0) > 0:
            sections.append("SYNC FAILED: some documents could not be synced")
            for error in report.get('errors', []):
                sections.append(f"  - {error.get('title')}: {error.get('error')}")
        else:
            sections.append("Sync completed successfully")

        documents = report.get('documents', [])
        if documents:
            sections.append("")
            sections.append("Notion Sync Summary")
            sections.append("| Status | Title |")
            sections.append("| :----- | :---- |")
            for document in documents:
                title = str(document.get('title', '')).replace('|', '\\|')
                sections.append(f"| {document.get('status')} | {title} |")

        sections.append("")
        sections.append("=" * 60)

        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Report dictionary
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"JSON report exported to {filepath}")

        except (OSError, TypeError) as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")


__all__ = ['SyncReport']
