"""
Topic Classification

Maps a user message to the subject that selects a response template and
chart type. The default strategy is keyword matching with a fixed
priority order; follow-up questions ("why?", "what about that one?")
inherit the subject of the previous assistant turns.
"""

import enum
import re
from abc import ABC, abstractmethod
from typing import List, Tuple


class Topic(str, enum.Enum):
    """Subject of a user's question."""
    PARETO = "pareto"
    AVAILABILITY = "availability"
    DOWNTIME = "downtime"
    DATA_QUERY = "data_query"
    GENERAL = "general"


# First match wins
TOPIC_KEYWORDS: List[Tuple[Topic, Tuple[str, ...]]] = [
    (Topic.PARETO, ("pareto", "cause", "reason")),
    (Topic.AVAILABILITY, ("availability", "uptime")),
    (Topic.DOWNTIME, ("downtime",)),
    (Topic.DATA_QUERY, ("record", "data", "count", "how many")),
]

FOLLOW_UP_MARKERS = (
    "what about",
    "how about",
    "tell me more",
    "more detail",
    "and what",
    "why",
    "explain",
    "elaborate",
)
PRONOUNS = ("it", "that", "this", "they", "them", "those", "these")
QUESTION_WORDS = ("what", "why", "how", "which", "who", "when", "where")
SHORT_MESSAGE_WORDS = 5

_PRONOUN_RE = re.compile(r"\b(?:%s)\b" % "|".join(PRONOUNS))
_WORD_RE = re.compile(r"[a-z0-9']+")


def match_topic(text: str) -> Topic:
    """Apply the keyword priority order to already-lowercased text."""
    for topic, keywords in TOPIC_KEYWORDS:
        if any(k in text for k in keywords):
            return topic
    return Topic.GENERAL


def is_follow_up(message: str) -> bool:
    """True when a message leans on the previous turn instead of naming its subject."""
    text = message.lower().strip()
    if not text:
        return False
    if any(marker in text for marker in FOLLOW_UP_MARKERS):
        return True
    if _PRONOUN_RE.search(text):
        return True

    words = _WORD_RE.findall(text)
    if words and len(words) <= SHORT_MESSAGE_WORDS:
        return words[0] in QUESTION_WORDS or words[0] in PRONOUNS
    return False


class BaseTopicClassifier(ABC):
    """Strategy interface so keyword matching can be swapped for an intent model."""

    @abstractmethod
    def classify(self, message: str, recent_assistant_text: str = "") -> Topic:
        ...


class KeywordTopicClassifier(BaseTopicClassifier):
    """
    Substring matching with follow-up inheritance.

    A message that names a topic itself keeps it. Only a follow-up that
    names none is matched against the recent assistant text.
    """

    def classify(self, message: str, recent_assistant_text: str = "") -> Topic:
        text = (message or "").lower()
        topic = match_topic(text)
        if topic != Topic.GENERAL or not recent_assistant_text or not is_follow_up(text):
            return topic
        return match_topic(f"{text} {recent_assistant_text.lower()}")


default_classifier = KeywordTopicClassifier()


def classify(message: str, recent_assistant_text: str = "") -> Topic:
    return default_classifier.classify(message, recent_assistant_text)
