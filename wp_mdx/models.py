"""Data models used throughout the export pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


@dataclass
class ImageReference:
    """Image discovered in an item's markup, indexed in document order."""

    index: int
    source_url: str
    alt_text: str
    caption: str
    original_alt_text: str = ""
    original_caption: str = ""


@dataclass
class Heading:
    level: int
    text: str
    kind: str = field(default="heading", init=False, repr=False)


@dataclass
class Paragraph:
    text: str
    kind: str = field(default="paragraph", init=False, repr=False)


@dataclass
class ListBlock:
    ordered: bool
    items: List[str]
    kind: str = field(default="list", init=False, repr=False)


@dataclass
class Quote:
    text: str
    kind: str = field(default="quote", init=False, repr=False)


@dataclass
class Code:
    text: str
    kind: str = field(default="code", init=False, repr=False)


@dataclass
class ImageNode:
    """Placement of an extracted image; ``index`` joins it to its asset."""

    index: int
    src: str
    alt_text: str
    caption: str
    kind: str = field(default="image", init=False, repr=False)


@dataclass
class Cell:
    text: str
    colspan: int = 1
    rowspan: int = 1


@dataclass
class Table:
    caption: str
    headers: List[str]
    rows: List[List[Cell]]
    kind: str = field(default="table", init=False, repr=False)


StructureNode = Union[Heading, Paragraph, ListBlock, Quote, Code, ImageNode, Table]


class Provenance(str, Enum):
    """Whether a relational field came from embedded data or was synthesized."""

    RESOLVED = "resolved"
    PLACEHOLDER = "placeholder"


@dataclass
class Author:
    id: Optional[int]
    name: str
    slug: str
    provenance: Provenance = field(default=Provenance.RESOLVED, compare=False)


@dataclass
class Term:
    """Category or tag attached to an item."""

    id: Optional[int]
    name: str
    slug: str
    provenance: Provenance = field(default=Provenance.RESOLVED, compare=False)


@dataclass
class FeaturedImage:
    id: Optional[int]
    url: str
    alt: str
    caption: str
    provenance: Provenance = field(default=Provenance.RESOLVED, compare=False)


@dataclass
class PostMeta:
    """Normalized metadata describing one source item."""

    id: Optional[int]
    title: str
    slug: str
    status: str
    type: str
    link: str
    date: Optional[datetime]
    modified: Optional[datetime]
    author: Optional[Author] = None
    categories: List[Term] = field(default_factory=list)
    tags: List[Term] = field(default_factory=list)
    featured_image: Optional[FeaturedImage] = None

    def placeholders(self) -> List[str]:
        """Names of the relational fields that were synthesized."""
        synthesized: List[str] = []
        if self.author and self.author.provenance is Provenance.PLACEHOLDER:
            synthesized.append("author")
        if any(term.provenance is Provenance.PLACEHOLDER for term in self.categories):
            synthesized.append("categories")
        if any(term.provenance is Provenance.PLACEHOLDER for term in self.tags):
            synthesized.append("tags")
        if (
            self.featured_image
            and self.featured_image.provenance is Provenance.PLACEHOLDER
        ):
            synthesized.append("featured_image")
        return synthesized


@dataclass
class DownloadedAsset:
    """Image fetched and stored on disk, keyed back to its reference index."""

    index: int
    original_path: str
    optimized_path: str
    file_name: str
    source_url: str


@dataclass
class ProcessedContent:
    html: str
    plain_text: str
    images: List[ImageReference]
    structure: List[StructureNode]

    @property
    def word_count(self) -> int:
        return len(self.plain_text.split())


@dataclass
class ProcessedPost:
    meta: PostMeta
    content: ProcessedContent
    excerpt: str = ""


@dataclass
class FrequencyEntry:
    name: str
    count: int


@dataclass
class DateRange:
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None


@dataclass
class ContentSummary:
    """Corpus-level statistics across every processed item."""

    total_posts: int
    date_range: DateRange
    categories: List[FrequencyEntry]
    tags: List[FrequencyEntry]
    authors: List[FrequencyEntry]
    total_words: int
    average_words: float
