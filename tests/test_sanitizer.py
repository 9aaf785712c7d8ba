"""Tests for markup sanitization and the attribute allow-list."""

import pytest

from wp_mdx.errors import MarkupParseError
from wp_mdx.sanitizer import (
    filter_attributes,
    looks_like_css_leak,
    parse_markup,
    sanitize,
    sanitize_markup,
)


class TestNonContentRemoval:
    """Scripts, styles, comments and leaked CSS are dropped."""

    def test_script_style_noscript_removed(self):
        soup = sanitize_markup(
            "<div><script>x()</script><style>p{}</style>"
            "<noscript>enable js</noscript><p>Hello</p></div>"
        )
        assert soup.find(["script", "style", "noscript"]) is None
        assert soup.get_text() == "Hello"

    def test_comments_removed(self):
        soup = sanitize_markup("<p>Keep<!-- wp:paragraph --> me</p>")
        assert str(soup) == "<p>Keep me</p>"

    def test_leaked_stylesheet_text_removed(self):
        soup = sanitize_markup(
            "<p>Hello</p>.elementor-widget { color: red; }<p>World</p>"
        )
        assert str(soup) == "<p>Hello</p><p>World</p>"

    def test_css_comment_text_removed(self):
        soup = sanitize_markup("<p>/* theme overrides */</p><p>Body</p>")
        assert soup.get_text() == "Body"

    def test_code_blocks_are_not_treated_as_css(self):
        soup = sanitize_markup("<pre>.button { color: red; }</pre>")
        assert soup.pre.get_text() == ".button { color: red; }"

    def test_plain_prose_is_not_a_leak(self):
        assert not looks_like_css_leak("Prices start at $5: see the list below.")
        assert looks_like_css_leak("@media (max-width: 600px) { .a { b: c } }")

    @pytest.mark.parametrize(
        "text",
        [
            "See example.fl-studio.com for details",
            "Note {see: below}",
            "Our .wp-block tutorial covers the editor.",
            "/* not closed, just prose",
            ".elementor-widget { color: red; } and then some prose",
        ],
    )
    def test_prose_with_css_like_fragments_is_kept(self, text):
        assert not looks_like_css_leak(text)

    @pytest.mark.parametrize(
        "text",
        [
            ".vc_row{margin:0}",
            "body { margin: 0; padding: 0 }\n.et_pb_section { display: block; }",
            '@import url("theme.css");',
            "@font-face { font-family: Brand; src: url(brand.woff2); }",
            "/* overrides */ #main > p.lead:hover { color: #333; }",
        ],
    )
    def test_whole_stylesheet_text_is_a_leak(self, text):
        assert looks_like_css_leak(text)

    def test_prose_paragraphs_survive_sanitizing(self):
        soup = sanitize_markup(
            "<p>See example.fl-studio.com for details</p><p>Note {see: below}</p>"
        )
        assert [p.get_text() for p in soup.find_all("p")] == [
            "See example.fl-studio.com for details",
            "Note {see: below}",
        ]


class TestAttributeFilter:
    """Only allow-listed attributes survive."""

    def test_image_keeps_src_alt_title(self):
        soup = parse_markup(
            '<img src="a.jpg" alt="A" title="T" class="big" style="width:1px" data-id="3">'
        )
        filter_attributes(soup)
        assert soup.img.attrs == {"src": "a.jpg", "alt": "A", "title": "T"}

    def test_anchor_keeps_href_and_title(self):
        soup = parse_markup('<a href="/x" title="X" target="_blank" rel="noopener">x</a>')
        filter_attributes(soup)
        assert soup.a.attrs == {"href": "/x", "title": "X"}

    def test_code_and_pre_keep_class(self):
        soup = parse_markup(
            '<pre class="wp-block-code" style="x"><code class="language-python">x</code></pre>'
        )
        filter_attributes(soup)
        assert soup.pre.attrs == {"class": ["wp-block-code"]}
        assert soup.code.attrs == {"class": ["language-python"]}

    def test_style_and_class_stripped_elsewhere(self):
        soup = parse_markup('<p class="lead" style="color:red" id="intro">Text</p>')
        filter_attributes(soup)
        assert soup.p.attrs == {}

    def test_table_cells_keep_spans(self):
        soup = parse_markup(
            '<table border="1" width="100%"><tr><td colspan="2" rowspan="3" align="left">x</td></tr></table>'
        )
        filter_attributes(soup)
        assert soup.table.attrs == {"border": "1"}
        assert soup.td.attrs == {"colspan": "2", "rowspan": "3"}


class TestContainers:
    """Page-builder wrappers are unwrapped and empty containers removed."""

    def test_page_builder_wrappers_unwrapped(self):
        soup = sanitize_markup(
            '<div class="elementor-section"><div class="elementor-widget-wrap">'
            "<p>A</p></div></div><p>B</p>"
        )
        assert str(soup) == "<p>A</p><p>B</p>"

    def test_gutenberg_group_unwrapped(self):
        soup = sanitize_markup(
            '<div class="wp-block-group"><div class="wp-block-group__inner-container">'
            "<h2>Title</h2></div></div>"
        )
        assert str(soup) == "<h2>Title</h2>"

    def test_empty_containers_removed(self):
        soup = sanitize_markup("<div><span> </span></div><section></section><p>x</p>")
        assert str(soup) == "<p>x</p>"

    def test_container_with_media_kept(self):
        soup = sanitize_markup('<div><img src="a.jpg"/></div>')
        assert soup.div is not None
        assert soup.img["src"] == "a.jpg"


class TestIdempotence:
    """Sanitizing sanitized markup changes nothing."""

    MARKUP = (
        '<div class="elementor-section"><style>.x{}</style>'
        '<p class="lead" style="color:red">Hello <b>world</b></p>'
        "<!-- comment --><div><span></span></div>"
        '<figure class="wp-block-image"><img src="/a.jpg" class="size-full" alt="A"/>'
        "<figcaption>Cap</figcaption></figure>"
        ".vc_row { margin: 0; }"
        '<pre class="lang">  code\n  block</pre></div>'
    )

    def test_sanitize_twice_on_same_tree(self):
        soup = parse_markup(self.MARKUP)
        sanitize(soup)
        once = str(soup)
        sanitize(soup)
        assert str(soup) == once

    def test_sanitize_reparsed_output(self):
        once = str(sanitize_markup(self.MARKUP))
        twice = str(sanitize_markup(once))
        assert twice == once


class TestParseMarkup:
    """Markup that cannot become a tree is reported."""

    def test_none_parses_to_empty_tree(self):
        assert str(parse_markup(None)) == ""

    @pytest.mark.parametrize("value", [42, {"rendered": "<p>x</p>"}, ["<p>"]])
    def test_non_text_raises(self, value):
        with pytest.raises(MarkupParseError):
            parse_markup(value)
