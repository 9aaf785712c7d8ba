"""Corpus-level statistics across processed posts."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable, List

from .models import ContentSummary, DateRange, FrequencyEntry, PostMeta, ProcessedPost


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


def _ranked(counter: Counter) -> List[FrequencyEntry]:
    # most_common() sorts stably, so ties keep first-seen order.
    return [FrequencyEntry(name=name, count=count) for name, count in counter.most_common()]


class SummaryAggregator:
    """Fold post metadata and word counts into a :class:`ContentSummary`."""

    def __init__(self) -> None:
        self.total_posts = 0
        self.total_words = 0
        self.date_range = DateRange()
        self.categories: Counter = Counter()
        self.tags: Counter = Counter()
        self.authors: Counter = Counter()

    def add(self, meta: PostMeta, word_count: int) -> None:
        self.total_posts += 1
        self.total_words += word_count
        self._extend_range(meta)
        self.categories.update(term.name for term in meta.categories)
        self.tags.update(term.name for term in meta.tags)
        if meta.author:
            self.authors[meta.author.name] += 1

    def _extend_range(self, meta: PostMeta) -> None:
        date = meta.date
        if date is None:
            return
        earliest = self.date_range.earliest
        if earliest is None or _naive(date) < _naive(earliest):
            self.date_range.earliest = date
        latest = self.date_range.latest
        if latest is None or _naive(date) > _naive(latest):
            self.date_range.latest = date

    def build(self) -> ContentSummary:
        average = self.total_words / self.total_posts if self.total_posts else 0
        return ContentSummary(
            total_posts=self.total_posts,
            date_range=DateRange(self.date_range.earliest, self.date_range.latest),
            categories=_ranked(self.categories),
            tags=_ranked(self.tags),
            authors=_ranked(self.authors),
            total_words=self.total_words,
            average_words=average,
        )


def summarize_posts(posts: Iterable[ProcessedPost]) -> ContentSummary:
    aggregator = SummaryAggregator()
    for post in posts:
        aggregator.add(post.meta, post.content.word_count)
    return aggregator.build()
