"""Tests for block tree to Markdown rendering."""

import pytest

from converters.block_renderer import BlockRenderer, render_rich_text
from models import Block, BlockType
from notion_fixtures import block, build_tree, image_block, rich, table_block


@pytest.fixture
def renderer():
    return BlockRenderer()


def render(renderer, *blocks):
    return renderer.render_blocks(build_tree(blocks))


class TestRichText:
    """Inline annotation rendering."""

    def test_plain_and_annotated_segments(self):
        result = render_rich_text([
            rich('Hello '),
            rich('world', bold=True),
            rich(' and '),
            rich('code', code=True)
        ])
        assert result == 'Hello **world** and `code`'

    def test_whitespace_stays_outside_markers(self):
        assert render_rich_text([rich(' bold ', bold=True), rich('x')]) == ' **bold** x'

    def test_combined_annotations(self):
        assert render_rich_text([rich('gone', italic=True, strikethrough=True)]) == '~~_gone_~~'

    def test_link(self):
        assert render_rich_text([rich('site', href='https://x.dev')]) == '[site](https://x.dev)'

    def test_inline_equation(self):
        segment = {'type': 'equation', 'equation': {'expression': 'E=mc^2'}, 'plain_text': 'E=mc^2'}
        assert render_rich_text([segment]) == '$E=mc^2$'

    def test_empty(self):
        assert render_rich_text(None) == ''
        assert render_rich_text([]) == ''


class TestTextBlocks:
    """Paragraphs, headings, quotes and callouts."""

    def test_paragraph(self, renderer):
        assert render(renderer, block('paragraph', 'Hello')) == 'Hello'

    def test_headings(self, renderer):
        result = render(renderer, block('heading_1', 'One'), block('heading_2', 'Two'), block('heading_3', 'Three'))
        assert result == '# One\n\n## Two\n\n### Three'

    def test_quote(self, renderer):
        assert render(renderer, block('quote', 'Wise words')) == '> Wise words'

    def test_callout_uses_icon_emoji(self, renderer):
        callout = block('callout', 'Careful', icon={'type': 'emoji', 'emoji': '⚠️'})
        assert render(renderer, callout) == '> ⚠️ Careful'

    def test_callout_default_icon(self, renderer):
        assert render(renderer, block('callout', 'Note')) == '> 💡 Note'

    def test_callout_children_are_quoted(self, renderer):
        callout = block('callout', 'Note', children=[block('paragraph', 'More')])
        assert render(renderer, callout) == '> 💡 Note\n>\n> More'

    def test_divider(self, renderer):
        assert render(renderer, block('paragraph', 'a'), block('divider'), block('paragraph', 'b')) == 'a\n\n---\n\nb'

    def test_toggle(self, renderer):
        toggle = block('toggle', 'More', children=[block('paragraph', 'Hidden')])
        assert render(renderer, toggle) == '<details>\n<summary>More</summary>\n\nHidden\n\n</details>'


class TestLists:
    """List items, numbering and nesting."""

    def test_bulleted_items_are_tight(self, renderer):
        assert render(renderer, block('bulleted_list_item', 'a'), block('bulleted_list_item', 'b')) == '- a\n- b'

    def test_numbering_restarts_after_other_block(self, renderer):
        result = render(
            renderer,
            block('numbered_list_item', 'one'),
            block('numbered_list_item', 'two'),
            block('paragraph', 'x'),
            block('numbered_list_item', 'three')
        )
        assert result == '1. one\n2. two\n\nx\n\n1. three'

    def test_to_do(self, renderer):
        result = render(renderer, block('to_do', 'done', checked=True), block('to_do', 'open', checked=False))
        assert result == '- [x] done\n- [ ] open'

    def test_nested_children_are_indented(self, renderer):
        parent = block('bulleted_list_item', 'parent', children=[block('bulleted_list_item', 'child')])
        assert render(renderer, parent) == '- parent\n    - child'


class TestCodeAndTables:
    """Structural blocks."""

    def test_code_block_keeps_language(self, renderer):
        code = block('code', [rich('print(1)')], language='python')
        assert render(renderer, code) == '```python\nprint(1)\n```'

    def test_plain_text_language_is_dropped(self, renderer):
        code = block('code', [rich('just text')], language='plain text')
        assert render(renderer, code) == '```\njust text\n```'

    def test_code_is_not_annotated(self, renderer):
        code = block('code', [rich('x = 1', bold=True)], language='python')
        assert '**' not in render(renderer, code)

    def test_table(self, renderer):
        table = table_block([['A', 'B'], ['1', '2']])
        assert render(renderer, table) == '| A | B |\n| --- | --- |\n| 1 | 2 |'

    def test_table_escapes_pipes_and_pads_rows(self, renderer):
        table = table_block([['Head', 'Other'], ['a|b', 'c']])
        table['_children'][1]['table_row']['cells'] = [[rich('a|b')]]
        assert render(renderer, table).splitlines()[2] == '| a\\|b |  |'

    def test_equation_block(self, renderer):
        assert render(renderer, block('equation', expression='a^2+b^2')) == '$$\na^2+b^2\n$$'


class TestMediaBlocks:
    """Images, embeds and links to files."""

    def test_image_with_caption(self, renderer):
        assert render(renderer, image_block('https://example.com/a.png', 'Diagram')) == \
            '![Diagram](https://example.com/a.png)'

    def test_hosted_image(self, renderer):
        hosted = block('image', type='file', file={'url': 'https://prod-files-secure.s3.amazonaws.com/x/y.png?sig=1'})
        assert render(renderer, hosted) == '![](https://prod-files-secure.s3.amazonaws.com/x/y.png?sig=1)'

    def test_embed_of_image_renders_image(self, renderer):
        assert render(renderer, block('embed', url='https://example.com/pic.gif')) == '![embed](https://example.com/pic.gif)'

    def test_embed_of_notion_hosted_image_renders_image(self, renderer):
        url = 'https://prod-files-secure.s3.us-west-2.amazonaws.com/abc/def?X-Amz=1'
        assert render(renderer, block('embed', url=url)) == f'![embed]({url})'

    def test_embed_of_page_renders_link(self, renderer):
        assert render(renderer, block('embed', url='https://example.com/app')) == '[embed](https://example.com/app)'

    def test_bookmark(self, renderer):
        assert render(renderer, block('bookmark', url='https://example.com')) == '[https://example.com](https://example.com)'

    def test_pdf_uses_file_name(self, renderer):
        pdf = block('pdf', type='external', external={'url': 'https://example.com/files/report%201.pdf'})
        assert render(renderer, pdf) == '[report 1.pdf](https://example.com/files/report%201.pdf)'


class TestFallbacks:
    """Unknown and structural-only block types."""

    def test_unknown_type_with_text(self, renderer):
        assert render(renderer, block('ai_summary', 'Generated text')) == 'Generated text'

    def test_unknown_type_with_url(self, renderer):
        assert render(renderer, block('mystery', url='https://example.com/x')) == 'https://example.com/x'

    def test_unknown_type_without_content_is_dropped(self, renderer):
        assert render(renderer, block('paragraph', 'a'), block('mystery'), block('paragraph', 'b')) == 'a\n\nb'

    def test_unknown_type_maps_to_catch_all(self):
        node = Block.from_api(block('brand_new_type', 'x'))
        assert node.type == BlockType.UNKNOWN
        assert node.raw_type == 'brand_new_type'

    def test_table_of_contents_is_omitted(self, renderer):
        assert render(renderer, block('table_of_contents'), block('paragraph', 'text')) == 'text'

    def test_columns_render_children(self, renderer):
        columns = block('column_list', children=[
            block('column', children=[block('paragraph', 'left')]),
            block('column', children=[block('paragraph', 'right')])
        ])
        assert render(renderer, columns) == 'left\n\nright'

    def test_child_page_renders_title(self, renderer):
        assert render(renderer, block('child_page', title='Sub page')) == 'Sub page'
