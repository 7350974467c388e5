"""Keyword heuristics for cleaning and classifying prompt text."""

import re

from storyprompts.domain.models.prompts import Category, Difficulty

HARD_KEYWORDS = ("difficult", "challenge", "loss", "regret")
MEDIUM_KEYWORDS = ("decision", "change", "relationship", "career")

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.CHILDHOOD: ("childhood", "young", "kid"),
    Category.FAMILY: ("family", "parent", "sibling"),
    Category.CAREER: ("work", "job", "career"),
    Category.RELATIONSHIPS: ("friend", "relationship", "love"),
}

TAG_KEYWORDS: dict[str, tuple[str, ...]] = {
    "memory": ("remember", "memory", "recall"),
    "emotion": ("feel", "emotion", "happy", "sad", "proud"),
    "people": ("person", "people", "friend", "family"),
    "place": ("place", "location", "home", "town"),
    "time": ("time", "when", "age", "year"),
    "learning": ("learn", "teach", "lesson", "advice"),
}

_NUMBERING = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


def sanitize_prompt_text(text: str) -> str:
    """Collapse whitespace, drop markdown marks, capitalise and punctuate."""
    cleaned = re.sub(r"\s+", " ", text).strip()
    cleaned = re.sub(r"[*_`]", "", cleaned).strip()
    if not cleaned:
        return cleaned
    if not re.search(r"[.!?]$", cleaned):
        cleaned += "."
    return cleaned[0].upper() + cleaned[1:]


def determine_difficulty(text: str) -> Difficulty:
    lower = text.lower()
    if any(word in lower for word in HARD_KEYWORDS):
        return Difficulty.HARD
    if any(word in lower for word in MEDIUM_KEYWORDS):
        return Difficulty.MEDIUM
    return Difficulty.EASY


def categorize_prompt(text: str) -> Category:
    lower = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(word in lower for word in keywords):
            return category
    return Category.GENERAL


def extract_tags(text: str) -> list[str]:
    lower = text.lower()
    return [tag for tag, keywords in TAG_KEYWORDS.items() if any(word in lower for word in keywords)]


def parse_question_lines(response: str, limit: int = 3, min_length: int = 10, max_length: int = 200) -> list[str]:
    """Split an LLM list answer into clean questions.

    Blank lines and list numbering are stripped; lines outside the length
    bounds are dropped.
    """
    questions = []
    for line in response.splitlines():
        question = _NUMBERING.sub("", line).strip()
        if min_length < len(question) < max_length:
            questions.append(question)
    return questions[:limit]
