"""Rendering of markdown document bodies into portable ProseMirror-style JSON."""

import copy
import logging
import re
from typing import Any, Dict, List, Optional

import markdown
from bs4 import BeautifulSoup, NavigableString, Tag

from models import Document

logger = logging.getLogger('kb_exporter.converters.prosemirror')

MARKDOWN_EXTENSIONS = ['fenced_code', 'tables', 'sane_lists']

HEADING_TAGS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 5, 'h6': 6}

INLINE_MARKS = {
    'strong': 'strong',
    'b': 'strong',
    'em': 'em',
    'i': 'em',
    'code': 'code_inline',
    'del': 'strikethrough',
    's': 'strikethrough',
    'mark': 'highlight',
    'u': 'underline',
}

CHECKBOX_PATTERN = re.compile(r'^\s*\[([ xX])\]\s+')


class ProsemirrorRenderer:
    """
    Converts a document's native markdown into a ProseMirror-style node tree.

    The markdown is rendered to HTML with python-markdown and the HTML is
    walked with BeautifulSoup. When a document already carries its latest
    collaborative state as JSON, that state is returned instead.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('kb_exporter.converters.prosemirror')

    def render_document(self, document: Document) -> Dict[str, Any]:
        """
        Produce the portable snapshot for a document.

        Args:
            document: Document to render

        Returns:
            ProseMirror-style JSON document
        """
        if document.content:
            return copy.deepcopy(document.content)
        return self.render_markdown(document.text)

    def render_markdown(self, text: Optional[str]) -> Dict[str, Any]:
        """Render a markdown string into a `doc` node."""
        if not text or not text.strip():
            return {'type': 'doc', 'content': [{'type': 'paragraph'}]}

        html = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
        soup = BeautifulSoup(html, 'lxml')
        root = soup.body or soup

        content = self._blocks(root.children)
        if not content:
            content = [{'type': 'paragraph'}]
        return {'type': 'doc', 'content': content}

    def render_description(self, text: Optional[str]) -> Optional[Dict[str, Any]]:
        """Render a collection description; None when there is none."""
        if not text:
            return None
        return self.render_markdown(text)

    def _blocks(self, children) -> List[Dict[str, Any]]:
        """Convert a sequence of HTML nodes into block nodes."""
        blocks = []
        pending_inline: List[Dict[str, Any]] = []

        def flush():
            if pending_inline:
                blocks.append({'type': 'paragraph', 'content': list(pending_inline)})
                pending_inline.clear()

        for child in children:
            if isinstance(child, NavigableString):
                if child.strip():
                    pending_inline.extend(self._inline(child, []))
                continue
            if not isinstance(child, Tag):
                continue

            block = self._block(child)
            if block is None:
                pending_inline.extend(self._inline(child, []))
                continue

            flush()
            if isinstance(block, list):
                blocks.extend(block)
            else:
                blocks.append(block)

        flush()
        return blocks

    def _block(self, el: Tag):
        """Convert a block-level element, or return None for inline elements."""
        tag = el.name

        if tag == 'p':
            content = self._inline_children(el, [])
            return {'type': 'paragraph', 'content': content} if content else {'type': 'paragraph'}

        if tag in HEADING_TAGS:
            node = {'type': 'heading', 'attrs': {'level': HEADING_TAGS[tag]}}
            content = self._inline_children(el, [])
            if content:
                node['content'] = content
            return node

        if tag == 'ul':
            return self._list(el, 'bullet_list')

        if tag == 'ol':
            node = self._list(el, 'ordered_list')
            node['attrs'] = {'order': int(el.get('start', 1))}
            return node

        if tag == 'blockquote':
            return {'type': 'blockquote', 'content': self._blocks(el.children) or [{'type': 'paragraph'}]}

        if tag == 'pre':
            return self._code_block(el)

        if tag == 'hr':
            return {'type': 'hr'}

        if tag == 'table':
            return self._table(el)

        if tag in ('div', 'section', 'thead', 'tbody'):
            return self._blocks(el.children)

        return None

    def _list(self, el: Tag, list_type: str) -> Dict[str, Any]:
        items = [child for child in el.children if isinstance(child, Tag) and child.name == 'li']

        checkbox = list_type == 'bullet_list' and items and all(
            CHECKBOX_PATTERN.match(item.get_text()) for item in items
        )
        if checkbox:
            return {
                'type': 'checkbox_list',
                'content': [self._checkbox_item(item) for item in items]
            }

        return {
            'type': list_type,
            'content': [
                {'type': 'list_item', 'content': self._blocks(item.children) or [{'type': 'paragraph'}]}
                for item in items
            ]
        }

    def _checkbox_item(self, item: Tag) -> Dict[str, Any]:
        content = self._blocks(item.children) or [{'type': 'paragraph'}]
        checked = False

        # strip the "[x] " marker from the first text node
        first = content[0]
        if first.get('type') == 'paragraph' and first.get('content'):
            head = first['content'][0]
            if head.get('type') == 'text':
                match = CHECKBOX_PATTERN.match(head['text'])
                if match:
                    checked = match.group(1).lower() == 'x'
                    head['text'] = head['text'][match.end():]
                    if not head['text']:
                        first['content'].pop(0)

        return {'type': 'checkbox_item', 'attrs': {'checked': checked}, 'content': content}

    def _code_block(self, el: Tag) -> Dict[str, Any]:
        code = el.find('code')
        source = code if code is not None else el
        language = None
        for css_class in source.get('class') or []:
            if css_class.startswith('language-'):
                language = css_class[len('language-'):]
                break

        text = source.get_text()
        if text.endswith('\n'):
            text = text[:-1]

        node = {'type': 'code_block', 'attrs': {'language': language}}
        if text:
            node['content'] = [{'type': 'text', 'text': text}]
        return node

    def _table(self, el: Tag) -> Dict[str, Any]:
        rows = []
        for tr in el.find_all('tr'):
            cells = []
            for cell in tr.find_all(['th', 'td'], recursive=False):
                content = self._inline_children(cell, [])
                paragraph = {'type': 'paragraph', 'content': content} if content else {'type': 'paragraph'}
                cells.append({
                    'type': 'th' if cell.name == 'th' else 'td',
                    'attrs': {'colspan': 1, 'rowspan': 1, 'alignment': cell.get('align')},
                    'content': [paragraph]
                })
            rows.append({'type': 'tr', 'content': cells})
        return {'type': 'table', 'content': rows}

    def _inline_children(self, el: Tag, marks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        nodes = []
        for child in el.children:
            nodes.extend(self._inline(child, marks))
        return nodes

    def _inline(self, node, marks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Convert an inline node, carrying the marks of its ancestors."""
        if isinstance(node, NavigableString):
            text = str(node).replace('\n', ' ')
            if not text:
                return []
            result = {'type': 'text', 'text': text}
            if marks:
                result['marks'] = [dict(mark) for mark in marks]
            return [result]

        if not isinstance(node, Tag):
            return []

        if node.name == 'br':
            return [{'type': 'br'}]

        if node.name == 'img':
            return [{
                'type': 'image',
                'attrs': {
                    'src': node.get('src'),
                    'alt': node.get('alt') or None,
                    'title': node.get('title')
                }
            }]

        if node.name == 'a':
            link = {'type': 'link', 'attrs': {'href': node.get('href'), 'title': node.get('title')}}
            return self._inline_children(node, marks + [link])

        mark_type = INLINE_MARKS.get(node.name)
        if mark_type:
            return self._inline_children(node, marks + [{'type': mark_type}])

        return self._inline_children(node, marks)
