"""Tests for metadata extraction and placeholder synthesis."""

from datetime import datetime

from wp_mdx.metadata import extract_post_meta, parse_date
from wp_mdx.models import Author, FeaturedImage, Provenance, Term


def _item(**overrides):
    item = {
        "id": 7,
        "title": {"rendered": "Tom &amp; Jerry &#8211; Part 1"},
        "content": {"rendered": "<p>Body</p>"},
        "excerpt": {"rendered": "<p>Short</p>"},
        "slug": "tom-jerry",
        "status": "publish",
        "type": "post",
        "link": "https://example.com/tom-jerry/",
        "date": "2024-03-01T10:00:00",
        "modified": "2024-03-02T11:30:00",
        "author": 3,
        "categories": [],
        "tags": [],
        "featured_media": 0,
    }
    item.update(overrides)
    return item


EMBEDDED = {
    "author": [{"id": 3, "name": "Jane Doe", "slug": "jane"}],
    "wp:term": [
        [{"id": 5, "name": "News", "slug": "news", "taxonomy": "category"}],
        [
            {"id": 11, "name": "Python", "slug": "python", "taxonomy": "post_tag"},
            {"id": 12, "name": "Web", "slug": "web", "taxonomy": "post_tag"},
        ],
    ],
    "wp:featuredmedia": [
        {
            "id": 99,
            "source_url": "https://example.com/wp-content/uploads/hero.jpg",
            "alt_text": "Hero",
            "caption": {"rendered": "<p>The hero shot</p>\n"},
        }
    ],
}


class TestBasicFields:
    """Scalar fields are normalized."""

    def test_title_entities_decoded(self):
        meta = extract_post_meta(_item())
        assert meta.title == "Tom & Jerry – Part 1"

    def test_scalars_copied(self):
        meta = extract_post_meta(_item())
        assert (meta.id, meta.slug, meta.status, meta.type) == (7, "tom-jerry", "publish", "post")
        assert meta.link == "https://example.com/tom-jerry/"

    def test_dates_parsed(self):
        meta = extract_post_meta(_item())
        assert meta.date == datetime(2024, 3, 1, 10, 0, 0)
        assert meta.modified == datetime(2024, 3, 2, 11, 30, 0)

    def test_bad_date_is_none(self):
        assert parse_date("yesterday") is None
        assert parse_date(None) is None
        assert parse_date("2024-03-01T10:00:00Z").tzinfo is not None


class TestEmbeddedRelations:
    """Embedded relation data is preferred."""

    def test_embedded_author(self):
        meta = extract_post_meta(_item(_embedded=EMBEDDED))
        assert meta.author == Author(id=3, name="Jane Doe", slug="jane")
        assert meta.author.provenance is Provenance.RESOLVED

    def test_embedded_terms_by_taxonomy(self):
        meta = extract_post_meta(_item(_embedded=EMBEDDED, categories=[5], tags=[11, 12]))
        assert meta.categories == [Term(id=5, name="News", slug="news")]
        assert [tag.name for tag in meta.tags] == ["Python", "Web"]
        assert meta.placeholders() == []

    def test_embedded_featured_image(self):
        meta = extract_post_meta(_item(_embedded=EMBEDDED, featured_media=99))
        assert meta.featured_image == FeaturedImage(
            id=99,
            url="https://example.com/wp-content/uploads/hero.jpg",
            alt="Hero",
            caption="The hero shot",
        )


class TestPlaceholders:
    """Missing relation data is synthesized, never an error."""

    def test_category_placeholders(self):
        meta = extract_post_meta(_item(categories=[5, 9]))
        assert meta.categories == [
            Term(id=5, name="Category 5", slug="category-5"),
            Term(id=9, name="Category 9", slug="category-9"),
        ]
        assert all(term.provenance is Provenance.PLACEHOLDER for term in meta.categories)
        assert "categories" in meta.placeholders()

    def test_tag_placeholders(self):
        meta = extract_post_meta(_item(tags=[4]))
        assert meta.tags == [Term(id=4, name="Tag 4", slug="tag-4")]

    def test_author_placeholder(self):
        meta = extract_post_meta(_item())
        assert meta.author == Author(id=3, name="Unknown Author", slug="unknown")
        assert meta.author.provenance is Provenance.PLACEHOLDER

    def test_no_author_at_all(self):
        meta = extract_post_meta(_item(author=0))
        assert meta.author is None

    def test_featured_media_id_only(self):
        meta = extract_post_meta(_item(featured_media=42))
        assert meta.featured_image.id == 42
        assert meta.featured_image.url == ""
        assert meta.featured_image.caption == "Featured Image"
        assert meta.featured_image.provenance is Provenance.PLACEHOLDER

    def test_no_featured_media(self):
        assert extract_post_meta(_item()).featured_image is None

    def test_embedded_without_category_group_falls_back(self):
        embedded = {"wp:term": [[{"id": 1, "name": "T", "slug": "t", "taxonomy": "post_tag"}]]}
        meta = extract_post_meta(_item(_embedded=embedded, categories=[2]))
        assert meta.categories == [Term(id=2, name="Category 2", slug="category-2")]
        assert meta.tags == [Term(id=1, name="T", slug="t")]

    def test_author_error_object_falls_back(self):
        embedded = {"author": [{"code": "rest_user_invalid_id", "message": "Invalid"}]}
        meta = extract_post_meta(_item(_embedded=embedded))
        assert meta.author.name == "Unknown Author"

    def test_minimal_item(self):
        meta = extract_post_meta({"id": 1})
        assert meta.title == ""
        assert meta.date is None
        assert meta.categories == []
        assert meta.author is None
