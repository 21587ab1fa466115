"""Queryable topic catalogue keyed by area, then filename."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Sequence

from kbplan.models import LoadResult, SamplesDocument, TopicDocument

LOGGER = logging.getLogger(__name__)


class TopicIndex:
    """In-memory catalogue built from a `LoadResult`.

    Insertion order is the loader's discovery order and every query returns
    topics in that order, so two builds over the same corpus are identical.
    """

    def __init__(
        self,
        topics: Iterable[TopicDocument] = (),
        samples: Iterable[SamplesDocument] = (),
        orphan_samples: Iterable[SamplesDocument] = (),
    ) -> None:
        self._by_area: Dict[str, Dict[str, TopicDocument]] = {}
        self._by_path: Dict[str, TopicDocument] = {}
        self._positions: Dict[str, int] = {}
        self._samples: Dict[str, SamplesDocument] = {}
        self.orphan_samples: List[SamplesDocument] = list(orphan_samples)

        for topic in topics:
            if topic.path in self._by_path:
                LOGGER.warning("Duplicate topic path ignored: %s", topic.path)
                continue
            self._by_area.setdefault(topic.area, {})[topic.filename] = topic
            self._positions[topic.path] = len(self._by_path)
            self._by_path[topic.path] = topic

        for sample in samples:
            if sample.topic_path is not None:
                self._samples.setdefault(sample.topic_path, sample)

    @classmethod
    def build(cls, result: LoadResult) -> "TopicIndex":
        index = cls(result.topics, result.samples, result.orphan_samples)
        incomplete = len(index.incomplete())
        if incomplete:
            LOGGER.info("%d topics have missing or malformed front matter", incomplete)
        return index

    def __len__(self) -> int:
        return len(self._by_path)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, TopicDocument):
            return item.path in self._by_path
        return item in self._by_path

    def __iter__(self) -> Iterator[TopicDocument]:
        return iter(self._by_path.values())

    def areas(self) -> List[str]:
        return list(self._by_area)

    def topics(self, areas: Sequence[str] | None = None) -> List[TopicDocument]:
        if areas is None:
            return list(self._by_path.values())
        wanted = set(areas)
        return [topic for topic in self._by_path.values() if topic.area in wanted]

    def get(self, area: str, filename: str) -> TopicDocument | None:
        return self._by_area.get(area, {}).get(filename)

    def get_by_path(self, path: str) -> TopicDocument | None:
        return self._by_path.get(path)

    def position(self, topic: TopicDocument | str) -> int:
        path = topic.path if isinstance(topic, TopicDocument) else topic
        return self._positions[path]

    def samples_for(self, topic: TopicDocument) -> SamplesDocument | None:
        return self._samples.get(topic.path)

    def find_by_tag(self, tag: str) -> List[TopicDocument]:
        needle = tag.strip().lower()
        return [
            topic
            for topic in self._by_path.values()
            if needle in (value.lower() for value in topic.tags)
        ]

    def search(self, keyword: str) -> List[TopicDocument]:
        """Case-insensitive substring match over title, description, tags and body."""
        needle = keyword.strip().lower()
        if not needle:
            return []
        matches = []
        for topic in self._by_path.values():
            haystacks = (topic.title, topic.description, " ".join(topic.tags), topic.body)
            if any(needle in text.lower() for text in haystacks):
                matches.append(topic)
        return matches

    def incomplete(self) -> List[TopicDocument]:
        return [topic for topic in self._by_path.values() if topic.metadata_incomplete]

    def restrict(self, areas: Sequence[str]) -> "TopicIndex":
        """Sub-index over the given areas, keeping discovery positions relative."""
        topics = self.topics(areas)
        wanted = set(areas)
        return TopicIndex(
            topics,
            (self._samples[topic.path] for topic in topics if topic.path in self._samples),
            (sample for sample in self.orphan_samples if sample.area in wanted),
        )

    def counts_by_area(self) -> Dict[str, int]:
        return {area: len(topics) for area, topics in self._by_area.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TopicIndex):
            return NotImplemented
        return (
            list(self._by_path.items()) == list(other._by_path.items())
            and list(self._samples.items()) == list(other._samples.items())
            and self.orphan_samples == other.orphan_samples
        )

    __hash__ = None  # type: ignore[assignment]
