"""Tests for rendering markdown bodies into ProseMirror-style JSON."""

from converters import ProsemirrorRenderer
from conftest import make_document


def text(value, *marks):
    node = {'type': 'text', 'text': value}
    if marks:
        node['marks'] = list(marks)
    return node


class TestBlocks:

    def setup_method(self):
        self.renderer = ProsemirrorRenderer()

    def test_empty_body_is_single_paragraph(self):
        expected = {'type': 'doc', 'content': [{'type': 'paragraph'}]}
        assert self.renderer.render_markdown("") == expected
        assert self.renderer.render_markdown("   \n") == expected

    def test_heading_and_paragraph(self):
        doc = self.renderer.render_markdown("## Setup\n\nRun it.")

        assert doc['content'] == [
            {'type': 'heading', 'attrs': {'level': 2}, 'content': [text("Setup")]},
            {'type': 'paragraph', 'content': [text("Run it.")]},
        ]

    def test_fenced_code_block_with_language(self):
        doc = self.renderer.render_markdown("```python\nprint('hi')\n```")

        assert doc['content'] == [
            {'type': 'code_block', 'attrs': {'language': 'python'}, 'content': [text("print('hi')")]}
        ]

    def test_bullet_and_ordered_lists(self):
        bullet = self.renderer.render_markdown("- one\n- two")['content'][0]
        ordered = self.renderer.render_markdown("1. three\n2. four")['content'][0]

        assert bullet['type'] == 'bullet_list'
        assert [item['content'][0]['content'][0]['text'] for item in bullet['content']] == ["one", "two"]
        assert ordered['type'] == 'ordered_list'
        assert ordered['attrs'] == {'order': 1}
        assert len(ordered['content']) == 2

    def test_checkbox_list(self):
        doc = self.renderer.render_markdown("- [x] done\n- [ ] todo")

        checklist = doc['content'][0]
        assert checklist['type'] == 'checkbox_list'
        assert [item['attrs']['checked'] for item in checklist['content']] == [True, False]
        assert checklist['content'][0]['content'][0]['content'] == [text("done")]

    def test_blockquote_and_rule(self):
        doc = self.renderer.render_markdown("> quoted\n\n---")

        assert doc['content'] == [
            {'type': 'blockquote', 'content': [{'type': 'paragraph', 'content': [text("quoted")]}]},
            {'type': 'hr'},
        ]

    def test_table(self):
        doc = self.renderer.render_markdown("| A | B |\n| --- | --- |\n| 1 | 2 |")

        table = doc['content'][0]
        assert table['type'] == 'table'
        header, row = table['content']
        assert [cell['type'] for cell in header['content']] == ['th', 'th']
        assert row['content'][1]['content'][0]['content'] == [text("2")]


class TestInline:

    def setup_method(self):
        self.renderer = ProsemirrorRenderer()

    def test_marks(self):
        doc = self.renderer.render_markdown("a **bold** and *em* and `code`")

        assert doc['content'][0]['content'] == [
            text("a "),
            text("bold", {'type': 'strong'}),
            text(" and "),
            text("em", {'type': 'em'}),
            text(" and "),
            text("code", {'type': 'code_inline'}),
        ]

    def test_nested_link_marks(self):
        doc = self.renderer.render_markdown('[**docs**](https://example.com "Docs")')

        assert doc['content'][0]['content'] == [
            text(
                "docs",
                {'type': 'link', 'attrs': {'href': 'https://example.com', 'title': 'Docs'}},
                {'type': 'strong'},
            )
        ]

    def test_image(self):
        doc = self.renderer.render_markdown("![chart](/api/attachments.redirect?id=abc)")

        assert doc['content'][0]['content'] == [{
            'type': 'image',
            'attrs': {'src': '/api/attachments.redirect?id=abc', 'alt': 'chart', 'title': None}
        }]


class TestDocuments:

    def setup_method(self):
        self.renderer = ProsemirrorRenderer()

    def test_stored_content_preferred(self):
        state = {'type': 'doc', 'content': [{'type': 'paragraph', 'content': [text("live")]}]}
        document = make_document("d1", text="stale", content=state)

        rendered = self.renderer.render_document(document)
        rendered['content'].clear()

        assert state['content'][0]['content'] == [text("live")]

    def test_markdown_used_without_content(self):
        document = make_document("d1", text="Hello")

        assert self.renderer.render_document(document)['content'] == [
            {'type': 'paragraph', 'content': [text("Hello")]}
        ]

    def test_description(self):
        assert self.renderer.render_description(None) is None
        assert self.renderer.render_description("") is None
        assert self.renderer.render_description("About")['type'] == 'doc'
