"""Renders Notion block trees to Markdown through a per-type dispatch table."""

import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

from models import Block, BlockType, plain_text

from .link_processor import is_image_url

logger = logging.getLogger('notion_markdown_sync.converters.block_renderer')

DEFAULT_CALLOUT_ICON = '💡'
CHILD_INDENT = '    '


def render_rich_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    """
    Render a Notion rich text array to inline Markdown.

    Annotations are applied as ``code``, ``**bold**``, ``_italic_`` and
    ``~~strike~~``; links wrap the result. Surrounding whitespace stays
    outside the markers so ``" bold "`` becomes ``" **bold** "``.
    """
    if not rich_text:
        return ''

    parts = []
    for item in rich_text:
        if not isinstance(item, dict):
            continue

        if item.get('type') == 'equation':
            expression = item.get('equation', {}).get('expression') or item.get('plain_text', '')
            parts.append(f"${expression}$")
            continue

        text = item.get('plain_text')
        if text is None:
            text = item.get('text', {}).get('content', '')
        if not text:
            continue

        stripped = text.strip()
        if not stripped:
            parts.append(text)
            continue

        leading = text[:len(text) - len(text.lstrip())]
        trailing = text[len(text.rstrip()):]

        annotations = item.get('annotations') or {}
        rendered = stripped
        if annotations.get('code'):
            rendered = f"`{rendered}`"
        if annotations.get('bold'):
            rendered = f"**{rendered}**"
        if annotations.get('italic'):
            rendered = f"_{rendered}_"
        if annotations.get('strikethrough'):
            rendered = f"~~{rendered}~~"

        href = item.get('href') or (item.get('text', {}).get('link') or {}).get('url')
        if href:
            rendered = f"[{rendered}]({href})"

        parts.append(f"{leading}{rendered}{trailing}")

    return ''.join(parts)


def file_url(payload: Dict[str, Any]) -> str:
    """URL of a file-like payload (image, video, pdf, ...), hosted or external."""
    source_type = payload.get('type')
    if source_type in ('external', 'file', 'file_upload'):
        return (payload.get(source_type) or {}).get('url', '')
    return (payload.get('external') or {}).get('url') or (payload.get('file') or {}).get('url', '')


def _indent(text: str, prefix: str = CHILD_INDENT) -> str:
    return '\n'.join(prefix + line if line.strip() else line for line in text.split('\n'))


def _quote(text: str) -> str:
    return '\n'.join(f"> {line}" if line else '>' for line in text.split('\n'))


class BlockRenderer:
    """Converts a list of blocks (with nested children) to Markdown."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('notion_markdown_sync.converters.block_renderer')

        self.renderers: Dict[BlockType, Callable[[Block, int], str]] = {
            BlockType.PARAGRAPH: self._render_paragraph,
            BlockType.HEADING_1: self._render_heading,
            BlockType.HEADING_2: self._render_heading,
            BlockType.HEADING_3: self._render_heading,
            BlockType.BULLETED_LIST_ITEM: self._render_list_item,
            BlockType.NUMBERED_LIST_ITEM: self._render_list_item,
            BlockType.TO_DO: self._render_list_item,
            BlockType.TOGGLE: self._render_toggle,
            BlockType.CODE: self._render_code,
            BlockType.QUOTE: self._render_quote,
            BlockType.CALLOUT: self._render_callout,
            BlockType.DIVIDER: self._render_divider,
            BlockType.TABLE: self._render_table,
            BlockType.TABLE_ROW: self._render_table_row,
            BlockType.IMAGE: self._render_image,
            BlockType.EMBED: self._render_embed,
            BlockType.BOOKMARK: self._render_bookmark,
            BlockType.LINK_PREVIEW: self._render_bookmark,
            BlockType.VIDEO: self._render_file,
            BlockType.AUDIO: self._render_file,
            BlockType.FILE: self._render_file,
            BlockType.PDF: self._render_file,
            BlockType.EQUATION: self._render_equation,
            BlockType.CHILD_PAGE: self._render_child_title,
            BlockType.CHILD_DATABASE: self._render_child_title,
            BlockType.COLUMN_LIST: self._render_container,
            BlockType.COLUMN: self._render_container,
            BlockType.SYNCED_BLOCK: self._render_container,
            BlockType.TABLE_OF_CONTENTS: self._render_nothing,
            BlockType.BREADCRUMB: self._render_nothing,
            BlockType.UNKNOWN: self._render_unknown,
        }

    def render_blocks(self, blocks: List[Block]) -> str:
        """
        Render sibling blocks in document order.

        Consecutive list items are separated by a single newline, everything
        else by a blank line. Numbered items are numbered per run of siblings.
        """
        output = ''
        previous: Optional[Block] = None
        ordinal = 0

        for block in blocks:
            if block.type == BlockType.NUMBERED_LIST_ITEM:
                ordinal = ordinal + 1 if previous is not None and previous.type == BlockType.NUMBERED_LIST_ITEM else 1

            rendered = self.render_block(block, ordinal)
            if not rendered:
                continue

            if output:
                tight = previous is not None and previous.type.is_list_item and block.type.is_list_item
                output += '\n' if tight else '\n\n'
            output += rendered
            previous = block

        return output

    def render_block(self, block: Block, ordinal: int = 1) -> str:
        renderer = self.renderers.get(block.type, self._render_unknown)
        return renderer(block, ordinal)

    def _children(self, block: Block) -> str:
        return self.render_blocks(block.children) if block.children else ''

    def _with_children(self, text: str, block: Block) -> str:
        children = self._children(block)
        if not children:
            return text
        return f"{text}\n\n{children}" if text else children

    def _render_paragraph(self, block: Block, ordinal: int) -> str:
        return self._with_children(render_rich_text(block.payload.get('rich_text')), block)

    def _render_heading(self, block: Block, ordinal: int) -> str:
        level = int(block.raw_type[-1])
        text = render_rich_text(block.payload.get('rich_text'))
        heading = f"{'#' * level} {text}" if text else ''
        return self._with_children(heading, block)

    def _render_list_item(self, block: Block, ordinal: int) -> str:
        text = render_rich_text(block.payload.get('rich_text'))

        if block.type == BlockType.NUMBERED_LIST_ITEM:
            line = f"{ordinal}. {text}"
        elif block.type == BlockType.TO_DO:
            mark = 'x' if block.payload.get('checked') else ' '
            line = f"- [{mark}] {text}"
        else:
            line = f"- {text}"

        children = self._children(block)
        if children:
            line = f"{line}\n{_indent(children)}"
        return line

    def _render_toggle(self, block: Block, ordinal: int) -> str:
        summary = render_rich_text(block.payload.get('rich_text'))
        children = self._children(block)
        body = f"\n\n{children}\n\n" if children else '\n'
        return f"<details>\n<summary>{summary}</summary>{body}</details>"

    def _render_code(self, block: Block, ordinal: int) -> str:
        language = block.payload.get('language') or ''
        if language == 'plain text':
            language = ''
        code = plain_text(block.payload.get('rich_text'))
        return f"```{language}\n{code}\n```"

    def _render_quote(self, block: Block, ordinal: int) -> str:
        text = render_rich_text(block.payload.get('rich_text'))
        return _quote(self._with_children(text, block))

    def _render_callout(self, block: Block, ordinal: int) -> str:
        icon = block.payload.get('icon') or {}
        emoji = icon.get('emoji') if icon.get('type', 'emoji') == 'emoji' else None
        text = render_rich_text(block.payload.get('rich_text'))
        return _quote(self._with_children(f"{emoji or DEFAULT_CALLOUT_ICON} {text}".rstrip(), block))

    def _render_divider(self, block: Block, ordinal: int) -> str:
        return '---'

    def _render_table(self, block: Block, ordinal: int) -> str:
        rows = [child.payload.get('cells') or [] for child in block.children
                if child.type == BlockType.TABLE_ROW]
        if not rows:
            return ''

        width = block.payload.get('table_width') or max(len(row) for row in rows)

        def format_row(cells: List[Any]) -> str:
            values = [render_rich_text(cell).replace('|', '\\|').replace('\n', '<br>') for cell in cells]
            values += [''] * (width - len(values))
            return '| ' + ' | '.join(values[:width]) + ' |'

        # GFM requires a header row, so the first row is used even without has_column_header
        lines = [format_row(rows[0]), '| ' + ' | '.join(['---'] * width) + ' |']
        lines.extend(format_row(row) for row in rows[1:])
        return '\n'.join(lines)

    def _render_table_row(self, block: Block, ordinal: int) -> str:
        return ' | '.join(render_rich_text(cell) for cell in block.payload.get('cells') or [])

    def _render_image(self, block: Block, ordinal: int) -> str:
        url = file_url(block.payload)
        if not url:
            return ''
        alt = plain_text(block.payload.get('caption')).replace('[', '').replace(']', '')
        return f"![{alt}]({url})"

    def _render_embed(self, block: Block, ordinal: int) -> str:
        url = block.payload.get('url', '')
        if not url:
            return ''
        if is_image_url(url):
            return f"![embed]({url})"
        return f"[embed]({url})"

    def _render_bookmark(self, block: Block, ordinal: int) -> str:
        url = block.payload.get('url', '')
        if not url:
            return ''
        caption = render_rich_text(block.payload.get('caption'))
        return f"[{caption or url}]({url})"

    def _render_file(self, block: Block, ordinal: int) -> str:
        url = file_url(block.payload)
        if not url:
            return ''
        name = (
            plain_text(block.payload.get('caption'))
            or block.payload.get('name')
            or unquote(urlparse(url).path.rsplit('/', 1)[-1])
            or block.raw_type
        )
        return f"[{name}]({url})"

    def _render_equation(self, block: Block, ordinal: int) -> str:
        expression = block.payload.get('expression', '')
        return f"$$\n{expression}\n$$" if expression else ''

    def _render_child_title(self, block: Block, ordinal: int) -> str:
        return block.payload.get('title', '')

    def _render_container(self, block: Block, ordinal: int) -> str:
        return self._children(block)

    def _render_nothing(self, block: Block, ordinal: int) -> str:
        return ''

    def _render_unknown(self, block: Block, ordinal: int) -> str:
        """Generic fallback: rich text, else caption, else URL, else nothing."""
        payload = block.payload if isinstance(block.payload, dict) else {}

        text = render_rich_text(payload.get('rich_text'))
        if not text:
            text = render_rich_text(payload.get('caption'))
        if not text:
            text = payload.get('url') or file_url(payload)

        if not text:
            self.logger.debug(f"No renderable content in block {block.id} of type '{block.raw_type}'")

        return self._with_children(text or '', block)


__all__ = ['BlockRenderer', 'render_rich_text', 'file_url']
