"""
Memory Request Detection
========================

Decides whether a message asks the bot to remember something, and pulls
out the part worth storing.

    "@north remember that our office is in Denver"
        -> is_memory_request: True
        -> extract_payload:   "our office is in Denver"

Detection is a case-insensitive substring match against a fixed phrase
list. No NLP: "I can't remember that" also counts as a request.
"""

import re

MEMORY_TRIGGERS = (
    "remember that",
    "remember this",
    "store this",
    "save this",
    "note that",
    "keep in mind",
)

# Slack user mentions (<@U123ABC> or <@U123ABC|name>) and plain @handles;
# the "@" of an email address is not a handle
_MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+(?:\|[^>]*)?>|(?<![\w.])@\w+")

_TRIGGER_PATTERNS = [
    re.compile(r"\b" + r"\s+".join(map(re.escape, phrase.split())) + r"\b\s*", re.IGNORECASE)
    for phrase in MEMORY_TRIGGERS
]

_LEADING_PUNCTUATION = re.compile(r"^[\s:,\-]+")
_REPEATED_SPACES = re.compile(r"[ \t]{2,}")


def is_memory_request(message: str) -> bool:
    """True if the message contains any memory trigger phrase."""
    lower_message = message.lower()
    return any(trigger in lower_message for trigger in MEMORY_TRIGGERS)


def strip_mentions(message: str) -> str:
    """Remove bot/user mentions and tidy the spacing they leave behind."""
    text = _MENTION_PATTERN.sub("", message)
    return _REPEATED_SPACES.sub(" ", text).strip()


def extract_payload(message: str) -> str:
    """
    Extract the knowledge to store from a memory request.

    Removes mentions and the first occurrence of each trigger phrase, then
    trims whitespace and any leading ':' ',' '-' left over.

    Returns:
        The remaining text; "" when nothing is left to remember
    """
    text = _MENTION_PATTERN.sub("", message)
    for pattern in _TRIGGER_PATTERNS:
        text = pattern.sub("", text, count=1)

    text = _REPEATED_SPACES.sub(" ", text)
    return _LEADING_PUNCTUATION.sub("", text).strip()
