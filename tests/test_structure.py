"""Tests for the structure analyzer and table parser."""

from wp_mdx.content import process_content
from wp_mdx.models import (
    Cell,
    Code,
    Heading,
    ImageNode,
    ListBlock,
    Paragraph,
    Quote,
    Table,
)
from wp_mdx.sanitizer import parse_markup
from wp_mdx.structure import parse_table


def _structure(markup):
    return process_content(markup).structure


class TestBlockClassification:
    """Each top-level block maps to one node kind."""

    def test_sanitized_paragraph_scenario(self):
        assert _structure("<div><script>x</script><p>Hello <b>world</b></p></div>") == [
            Paragraph(text="Hello world")
        ]

    def test_headings(self):
        assert _structure("<h1>Top</h1><h3>  Deep \n title </h3>") == [
            Heading(level=1, text="Top"),
            Heading(level=3, text="Deep title"),
        ]

    def test_empty_paragraph_dropped(self):
        assert _structure("<p>  </p><p>Kept</p>") == [Paragraph(text="Kept")]

    def test_lists(self):
        assert _structure("<ol><li>One</li><li> Two </li></ol><ul><li>A</li></ul>") == [
            ListBlock(ordered=True, items=["One", "Two"]),
            ListBlock(ordered=False, items=["A"]),
        ]

    def test_quote(self):
        assert _structure("<blockquote><p>Be   brief.</p></blockquote>") == [
            Quote(text="Be brief.")
        ]

    def test_code_keeps_whitespace(self):
        assert _structure("<pre>  def f():\n      return 1\n</pre>") == [
            Code(text="  def f():\n      return 1\n")
        ]

    def test_unknown_block_with_text_becomes_paragraph(self):
        assert _structure("<section><em>Aside</em> note</section>") == [
            Paragraph(text="Aside note")
        ]

    def test_links_are_inlined_in_text(self):
        assert _structure('<p>Read <a href="https://e.com/a">this</a>.</p>') == [
            Paragraph(text="Read this (https://e.com/a).")
        ]

    def test_page_builder_text_kept_after_unwrap(self):
        assert _structure('<div class="elementor-text-editor">Hello world</div>') == [
            Paragraph(text="Hello world")
        ]

    def test_top_level_anchor_kept(self):
        assert _structure('<a href="https://x.io">Read more</a>') == [
            Paragraph(text="Read more (https://x.io)")
        ]

    def test_bare_text_with_inline_markup_is_one_paragraph(self):
        assert _structure("Hello <b>world</b>") == [Paragraph(text="Hello world")]

    def test_text_runs_split_by_blocks(self):
        assert _structure("Intro <em>text</em><h2>Part</h2>line one<br>line two") == [
            Paragraph(text="Intro text"),
            Heading(level=2, text="Part"),
            Paragraph(text="line one line two"),
        ]

    def test_inline_code_joins_text(self):
        assert _structure("Call <code>run()</code> first") == [
            Paragraph(text="Call run() first")
        ]

    def test_node_kinds(self):
        kinds = [node.kind for node in _structure(
            "<h2>T</h2><p>P</p><ul><li>i</li></ul><blockquote>q</blockquote><pre>c</pre>"
        )]
        assert kinds == ["heading", "paragraph", "list", "quote", "code"]


class TestImages:
    """Images are hoisted and never lost to nesting."""

    def test_nested_image_hoisted_first(self):
        structure = _structure(
            '<p>Intro</p><div><p>Nested <img src="/a.jpg" alt="A"></p></div><p>End</p>'
        )
        assert structure == [
            ImageNode(index=0, src="/a.jpg", alt_text="A", caption=""),
            Paragraph(text="Intro"),
            Paragraph(text="Nested"),
            Paragraph(text="End"),
        ]

    def test_figure_not_duplicated_as_paragraph(self):
        structure = _structure(
            '<figure class="wp-block-image"><img src="/a.jpg" alt="A">'
            "<figcaption>Cap</figcaption></figure><p>Text</p>"
        )
        assert structure == [
            ImageNode(index=0, src="/a.jpg", alt_text="A", caption="Cap"),
            Paragraph(text="Text"),
        ]

    def test_image_without_src_not_emitted(self):
        assert _structure('<p>Only text<img alt="broken"></p>') == [
            Paragraph(text="Only text")
        ]

    def test_image_indices_match_references(self):
        content = process_content(
            '<img src="/1.jpg"><div><div><img src="/2.jpg"></div></div><p><img src="/3.jpg"></p>'
        )
        node_indices = [node.index for node in content.structure if node.kind == "image"]
        assert node_indices == [ref.index for ref in content.images] == [0, 1, 2]

    def test_deterministic(self):
        markup = '<h2>T</h2><figure><img src="/x.jpg"></figure><p>Body</p>'
        assert process_content(markup) == process_content(markup)


class TestTableParser:
    """Tables keep headers, rows and spans."""

    def _table(self, markup):
        return parse_table(parse_markup(markup).table)

    def test_thead_and_tbody(self):
        table = self._table(
            "<table><thead><tr><th>Name</th><th>Age</th></tr></thead>"
            "<tbody><tr><td>Ann</td><td>31</td></tr><tr><td>Bob</td><td>42</td></tr></tbody></table>"
        )
        assert table.headers == ["Name", "Age"]
        assert len(table.rows) == 2
        assert table.rows[0] == [Cell(text="Ann"), Cell(text="31")]

    def test_first_row_of_th_is_header(self):
        table = self._table(
            "<table><tr><th>K</th><th>V</th></tr><tr><td>a</td><td>1</td></tr></table>"
        )
        assert table.headers == ["K", "V"]
        assert table.rows == [[Cell(text="a"), Cell(text="1")]]

    def test_first_row_of_td_is_data(self):
        table = self._table("<table><tr><td>a</td></tr><tr><td>b</td></tr></table>")
        assert table.headers == []
        assert table.rows == [[Cell(text="a")], [Cell(text="b")]]

    def test_spans_parsed(self):
        table = self._table(
            '<table><tr><td colspan="2" rowspan="3">a</td><td colspan="x">b</td>'
            '<td rowspan="0">c</td></tr></table>'
        )
        assert table.rows[0] == [
            Cell(text="a", colspan=2, rowspan=3),
            Cell(text="b", colspan=1, rowspan=1),
            Cell(text="c", colspan=1, rowspan=1),
        ]

    def test_caption(self):
        table = self._table("<table><caption> Prices </caption><tr><td>1</td></tr></table>")
        assert table.caption == "Prices"

    def test_nested_table_caption_not_borrowed(self):
        table = self._table(
            "<table><tr><td>outer<table><caption>Inner</caption>"
            "<tr><td>inner</td></tr></table></td></tr></table>"
        )
        assert table.caption == ""

    def test_nested_table_rows_not_mixed(self):
        table = self._table(
            "<table><tr><td>outer<table><tr><td>inner</td></tr></table></td></tr></table>"
        )
        assert len(table.rows) == 1

    def test_header_only_table_not_emitted(self):
        assert _structure("<table><tr><th>Only</th></tr></table>") == []

    def test_wordpress_table_figure(self):
        structure = _structure(
            '<figure class="wp-block-table"><table><tbody><tr><td>a</td></tr></tbody></table>'
            "<figcaption>Totals</figcaption></figure>"
        )
        assert structure == [Table(caption="Totals", headers=[], rows=[[Cell(text="a")]])]
