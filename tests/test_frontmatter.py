"""Tests for front matter generation and parsing."""

import unittest
from datetime import date

import pytest

from exporters.frontmatter import FrontmatterGenerator, normalize_timestamp, read_existing, timestamp_date
from models import Document
from notion_fixtures import page, rich


def make_document(title='Hello', **properties):
    return Document.from_api(page('page-1', title, **properties))


class TestGenerate(unittest.TestCase):
    def setUp(self):
        self.generator = FrontmatterGenerator(today=date(2024, 6, 1))

    def test_full_header(self):
        document = make_document(
            'Hello "World"',
            Description={'type': 'rich_text', 'rich_text': [rich('A short summary')]},
            PublishDate={'type': 'date', 'date': {'start': '2024-02-10'}},
            HeroImage={'type': 'files', 'files': [
                {'name': 'cover.png', 'type': 'file', 'file': {'url': 'https://files.example/cover.png'}}
            ]},
            Tags={'type': 'multi_select', 'multi_select': [{'name': 'Study.Log'}, {'name': 'Python'}]},
            Series={'type': 'select', 'select': {'name': 'Basics'}}
        )

        expected = '\n'.join([
            '---',
            'title: "Hello \\"World\\""',
            'description: "A short summary"',
            'pubDate: "2024-02-10"',
            'heroImage:',
            '  src: "https://files.example/cover.png"',
            '  alt: "cover.png"',
            'tags:',
            '  - "Study.Log"',
            '  - "Python"',
            'series: "Basics"',
            'updatedDate: "2024-03-01"',
            'updatedAt: "2024-03-01T10:15:30.000Z"',
            '---',
        ])
        self.assertEqual(self.generator.generate(document), expected)

    def test_minimal_header_omits_empty_fields(self):
        metadata = self.generator.build_metadata(make_document('Plain'))

        self.assertEqual(list(metadata), ['title', 'pubDate', 'updatedDate', 'updatedAt'])
        self.assertEqual(metadata['pubDate'], '2024-06-01')

    def test_summary_is_used_without_description(self):
        document = make_document(Summary={'type': 'rich_text', 'rich_text': [rich('From summary')]})
        self.assertEqual(self.generator.build_metadata(document)['description'], 'From summary')

    def test_pub_date_falls_back_to_date_property(self):
        document = make_document(Date={'type': 'date', 'date': {'start': '2023-12-24'}})
        self.assertEqual(self.generator.build_metadata(document)['pubDate'], '2023-12-24')

    def test_pub_date_with_time_keeps_calendar_date(self):
        document = make_document(PublishDate={'type': 'date', 'date': {'start': '2024-03-01T10:00:00.000+09:00'}})
        self.assertEqual(self.generator.build_metadata(document)['pubDate'], '2024-03-01')

    def test_unparseable_pub_date_falls_through(self):
        document = make_document(
            PublishDate={'type': 'date', 'date': {'start': 'someday'}},
            Date={'type': 'date', 'date': {'start': '2023-12-24'}}
        )
        self.assertEqual(self.generator.build_metadata(document)['pubDate'], '2023-12-24')

    def test_multiline_description_stays_on_one_line(self):
        document = make_document(Description={'type': 'rich_text', 'rich_text': [rich('First line\nSecond line')]})
        header = self.generator.generate(document)
        self.assertIn('description: "First line\\nSecond line"', header.split('\n'))

    def test_pub_date_falls_back_to_created_property(self):
        document = make_document(Created={'type': 'created_time', 'created_time': '2024-01-05T08:00:00.000Z'})
        self.assertEqual(self.generator.build_metadata(document)['pubDate'], '2024-01-05')

    def test_external_hero_image_gets_default_alt(self):
        document = make_document(Image={'type': 'files', 'files': [
            {'name': '', 'type': 'external', 'external': {'url': 'https://cdn.example/hero.jpg'}}
        ]})
        self.assertEqual(
            self.generator.build_metadata(document)['heroImage'],
            {'src': 'https://cdn.example/hero.jpg', 'alt': 'Hero image'}
        )

    def test_relation_tags_use_resolved_names(self):
        document = Document.from_api(page('page-1', 'Post', tag_ids=['t1', 't2', 't3']))
        metadata = self.generator.build_metadata(document, ['Study.Log', 'Unknown', 'Python'])
        self.assertEqual(metadata['tags'], ['Study.Log', 'Python'])

    def test_untitled_document(self):
        self.assertEqual(self.generator.build_metadata(make_document(''))['title'], 'Untitled')

    def test_unparseable_edit_time_is_left_out(self):
        document = Document.from_api(page('page-1', 'Post', last_edited_time='not a date'))
        metadata = self.generator.build_metadata(document)
        self.assertNotIn('updatedAt', metadata)
        self.assertNotIn('updatedDate', metadata)


class TestTimestamps:
    def test_offset_is_converted_to_utc(self):
        assert normalize_timestamp('2024-03-01T10:00:00+09:00') == '2024-03-01T01:00:00.000Z'

    def test_naive_timestamp_is_treated_as_utc(self):
        assert normalize_timestamp('2024-03-01T10:00:00') == '2024-03-01T10:00:00.000Z'

    def test_milliseconds_are_kept(self):
        assert normalize_timestamp('2024-03-01T10:00:00.123456Z') == '2024-03-01T10:00:00.123Z'

    def test_date_crosses_midnight(self):
        assert timestamp_date('2024-03-01T02:00:00+09:00') == '2024-02-29'

    def test_invalid_timestamp(self):
        with pytest.raises(ValueError):
            normalize_timestamp('yesterday')


class TestReadExisting:
    def test_round_trip(self, tmp_path):
        generator = FrontmatterGenerator(today=date(2024, 6, 1))
        document = make_document(
            'Quotes "and" \\ slashes',
            Tags={'type': 'multi_select', 'multi_select': [{'name': 'A'}]}
        )
        path = tmp_path / 'post.md'
        path.write_text(generator.generate(document) + '\n\nBody: with colon', encoding='utf-8')

        metadata = read_existing(path)

        assert metadata['title'] == 'Quotes "and" \\ slashes'
        assert metadata['updatedAt'] == '2024-03-01T10:15:30.000Z'
        assert metadata['updatedDate'] == '2024-03-01'
        assert metadata['tags'] == ''
        assert 'Body' not in metadata

    def test_multiline_value_round_trip(self, tmp_path):
        generator = FrontmatterGenerator(today=date(2024, 6, 1))
        document = make_document(
            'Path C:\\new',
            Description={'type': 'rich_text', 'rich_text': [rich('One\nTwo')]}
        )
        path = tmp_path / 'post.md'
        path.write_text(generator.generate(document) + '\n\nBody', encoding='utf-8')

        metadata = read_existing(path)

        assert metadata['description'] == 'One\nTwo'
        assert metadata['title'] == 'Path C:\\new'

    def test_missing_file(self, tmp_path):
        assert read_existing(tmp_path / 'missing.md') == {}

    def test_file_without_header(self, tmp_path):
        path = tmp_path / 'plain.md'
        path.write_text('# Just a heading\n', encoding='utf-8')
        assert read_existing(path) == {}

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / 'binary.md'
        path.write_bytes(b'---\ntitle: "\xff\xfe"\n---\n')
        assert read_existing(path) == {}

    def test_unquoted_values(self, tmp_path):
        path = tmp_path / 'hand.md'
        path.write_text('---\nupdatedDate: 2024-03-01\ndraft: true\n---\n', encoding='utf-8')
        assert read_existing(path) == {'updatedDate': '2024-03-01', 'draft': 'true'}
