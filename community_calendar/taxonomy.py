# ===========================================
# EVENT TAG TAXONOMY
# ===========================================
#
# Ordered list of tags the classifier looks for in event text. A tag matches
# when its own name or any of its keywords occurs in the text
# (case-insensitive substring). The emoji priority decides which single emoji
# the calendar shows for an event carrying several tags.

from pydantic import BaseModel, Field


class TagDefinition(BaseModel):
    name: str
    keywords: list[str] = Field(default_factory=list)
    emoji: str = ""


DEFAULT_TAG_TAXONOMY: list[TagDefinition] = [
    TagDefinition(
        name="lgbtq",
        keywords=["queer", "gay", "lesbian", "trans ", "transgender", "pride", "drag"],
        emoji="🏳️‍🌈",
    ),
    TagDefinition(
        name="music",
        keywords=["concert", "live band", "dj ", "open mic", "karaoke", "jazz"],
        emoji="🎵",
    ),
    TagDefinition(
        name="art",
        keywords=["gallery", "exhibit", "painting", "mural", "craft", "zine"],
        emoji="🎨",
    ),
    TagDefinition(
        name="market",
        keywords=["vendor", "flea", "farmers market", "pop-up", "popup", "bazaar"],
        emoji="🛍️",
    ),
    TagDefinition(
        name="food",
        keywords=["potluck", "dinner", "brunch", "tasting", "food truck", "bake sale"],
        emoji="🍽️",
    ),
    TagDefinition(
        name="dance",
        keywords=["dancing", "salsa", "ballroom", "contra", "swing night"],
        emoji="💃",
    ),
    TagDefinition(
        name="workshop",
        keywords=["class", "training", "teach-in", "skillshare", "seminar"],
        emoji="🛠️",
    ),
    TagDefinition(
        name="activism",
        keywords=["protest", "rally", "march", "organizing", "mutual aid", "teach-in"],
        emoji="✊",
    ),
    TagDefinition(
        name="outdoors",
        keywords=["hike", "park", "garden", "trail", "bike ride", "camping"],
        emoji="🌳",
    ),
    TagDefinition(
        name="sports",
        keywords=["pickleball", "soccer", "volleyball", "run club", "climbing", "yoga"],
        emoji="🏅",
    ),
    TagDefinition(
        name="film",
        keywords=["movie", "screening", "cinema", "documentary"],
        emoji="🎬",
    ),
    TagDefinition(
        name="books",
        keywords=["reading", "book club", "poetry", "author", "library"],
        emoji="📚",
    ),
    TagDefinition(
        name="family",
        keywords=["kids", "children", "all ages", "family-friendly", "storytime"],
        emoji="👨‍👩‍👧",
    ),
    TagDefinition(
        name="social",
        keywords=["meetup", "mixer", "hangout", "game night", "trivia", "social"],
        emoji="🎉",
    ),
]

# First tag of this list present on an event decides its emoji
EMOJI_PRIORITY: list[str] = [
    "lgbtq",
    "activism",
    "music",
    "dance",
    "art",
    "film",
    "books",
    "market",
    "food",
    "workshop",
    "sports",
    "outdoors",
    "family",
    "social",
]
