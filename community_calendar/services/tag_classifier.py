"""
Tag Classifier - keyword-based category tagging of events.

Every event inherits the tags of its source's ``filters`` and gains each
taxonomy tag whose name or keywords appear in its combined text.
"""

from collections.abc import Iterable, Sequence

from community_calendar.schemas import SourceConfig
from community_calendar.taxonomy import (
    DEFAULT_TAG_TAXONOMY,
    EMOJI_PRIORITY,
    TagDefinition,
)


def flatten_filters(filters: Iterable) -> set[str]:
    tags: set[str] = set()
    for group in filters or []:
        items = group if isinstance(group, list | tuple) else [group]
        tags.update(tag for tag in items if isinstance(tag, str) and tag)
    return tags


class TagClassifier:
    def __init__(
        self,
        taxonomy: Sequence[TagDefinition] = DEFAULT_TAG_TAXONOMY,
        emoji_priority: Sequence[str] = EMOJI_PRIORITY,
    ):
        self.taxonomy = list(taxonomy)
        self.emoji_priority = list(emoji_priority)
        self._emoji_by_tag = {tag.name: tag.emoji for tag in self.taxonomy}
        self._needles = {
            tag.name: [n.lower() for n in [tag.name, *tag.keywords] if n]
            for tag in self.taxonomy
        }

    def classify(self, text: str | None, filters: Iterable = ()) -> set[str]:
        """Inherited filter tags plus every taxonomy tag found in ``text``."""
        tags = flatten_filters(filters)
        haystack = (text or "").lower()
        if not haystack:
            return tags

        for tag in self.taxonomy:
            if any(needle in haystack for needle in self._needles[tag.name]):
                tags.add(tag.name)
        return tags

    def classify_for_source(self, source: SourceConfig, *texts: str | None) -> set[str]:
        combined = " ".join(text for text in texts if text)
        return self.classify(combined, source.filters)

    def emoji_for_tags(self, tags: Iterable[str]) -> str:
        """Emoji of the highest-priority tag present, or an empty string."""
        present = set(tags)
        for name in self.emoji_priority:
            if name in present:
                return self._emoji_by_tag.get(name, "")
        return ""


default_tag_classifier = TagClassifier()
