"""Tests for the run report."""

import json
import unittest

from models import SyncRecord, SyncStats, SyncStatus
from orchestrator import SyncReport


def make_stats(*records):
    stats = SyncStats(total=len(records))
    for record in records:
        stats.record(record)
    return stats


class TestSyncReport(unittest.TestCase):
    def setUp(self):
        self.reporter = SyncReport()

    def test_counters(self):
        stats = make_stats(
            SyncRecord(title='A', status=SyncStatus.CREATED, filename='a.md'),
            SyncRecord(title='B', status=SyncStatus.UPDATED, filename='b.md'),
            SyncRecord(title='C', status=SyncStatus.SKIPPED, filename='c.md'),
        )

        report = self.reporter.generate_report(stats, 12.5)

        summary = report['summary']
        self.assertEqual(summary['total'], 3)
        self.assertEqual(summary['success'], 3)
        self.assertEqual((summary['created'], summary['updated'], summary['skipped']), (1, 1, 1))
        self.assertEqual(summary['status'], 'success')
        self.assertEqual(summary['duration_formatted'], '12.5s')
        self.assertEqual(report['errors'], [])

    def test_console_table_lists_every_document(self):
        stats = make_stats(
            SyncRecord(title='Pipes | in title', status=SyncStatus.CREATED),
            SyncRecord(title='Old', status=SyncStatus.SKIPPED),
        )

        output = self.reporter.format_console_report(self.reporter.generate_report(stats, 1.0))

        self.assertIn('Notion Sync Summary', output)
        self.assertIn('| Status | Title |', output)
        self.assertIn('| created | Pipes \\| in title |', output)
        self.assertIn('| skipped | Old |', output)
        self.assertIn('Sync completed successfully', output)

    def test_errors_mark_run_as_failed(self):
        stats = make_stats(
            SyncRecord(title='Good', status=SyncStatus.CREATED),
            SyncRecord(title='Bad', status=SyncStatus.ERRORED, document_id='p2', error='HTTP 500'),
        )

        report = self.reporter.generate_report(stats, 75.0)
        output = self.reporter.format_console_report(report)

        self.assertEqual(report['summary']['status'], 'failed')
        self.assertEqual(report['summary']['success_rate'], 0.5)
        self.assertEqual(report['errors'], [{'document_id': 'p2', 'title': 'Bad', 'error': 'HTTP 500'}])
        self.assertIn('SYNC FAILED', output)
        self.assertIn('  - Bad: HTTP 500', output)
        self.assertIn('1m 15s', output)

    def test_image_counters_are_shown(self):
        report = self.reporter.generate_report(
            make_stats(), 0.1, {'found': 3, 'downloaded': 2, 'reused': 0, 'failed': 1}
        )
        output = self.reporter.format_console_report(report)
        self.assertIn('2 downloaded, 0 reused, 1 failed', output)

    def test_empty_run(self):
        report = self.reporter.generate_report(SyncStats(), 0.0)
        self.assertEqual(report['summary']['success_rate'], 1.0)
        self.assertNotIn('Notion Sync Summary', self.reporter.format_console_report(report))


def test_export_json_report(tmp_path):
    stats = make_stats(SyncRecord(title='日本語', status=SyncStatus.CREATED, filename='日本語.md'))
    reporter = SyncReport()
    path = tmp_path / 'report.json'

    reporter.export_json_report(reporter.generate_report(stats, 2.0), str(path))

    data = json.loads(path.read_text(encoding='utf-8'))
    assert data['summary']['created'] == 1
    assert data['documents'][0]['title'] == '日本語'
    assert data['documents'][0]['status'] == 'created'


def test_export_to_unwritable_path_is_logged(tmp_path, caplog):
    reporter = SyncReport()
    target = tmp_path / 'missing-dir' / 'report.json'

    with caplog.at_level('ERROR', logger='notion_markdown_sync'):
        reporter.export_json_report(reporter.generate_report(SyncStats(), 0.0), str(target))

    assert not target.exists()
    assert 'Failed to export JSON report' in caplog.text
