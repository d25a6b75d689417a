"""Reply content validation (length and profanity)."""

import re


REPLY_MIN_LENGTH = 1
REPLY_MAX_LENGTH = 50000

# Basic word list, matched as whole words (case-insensitive)
PROFANITY_WORDS = frozenset(
    {
        "asshole",
        "bastard",
        "bitch",
        "bullshit",
        "cunt",
        "dickhead",
        "fuck",
        "fucker",
        "fucking",
        "motherfucker",
        "shit",
        "slut",
        "whore",
    }
)

PROFANITY_PATTERN = re.compile(
    r"\b(?:" + "|".join(sorted(PROFANITY_WORDS)) + r")\b",
    re.IGNORECASE,
)


def contains_profanity(text: str) -> bool:
    """Check text against the profanity word list."""
    return PROFANITY_PATTERN.search(text) is not None


def validate_reply_content(
    content: str | None, max_length: int = REPLY_MAX_LENGTH
) -> list[str]:
    """Validate reply content.

    Content is checked after trimming surrounding whitespace.

    Args:
        content: Raw reply text
        max_length: Maximum number of characters allowed

    Returns:
        Violation messages in check order (empty when valid)
    """
    text = (content or "").strip()

    if len(text) < REPLY_MIN_LENGTH:
        return ["Reply content is required"]

    errors = []
    if len(text) > max_length:
        errors.append(f"Reply cannot exceed {max_length:,} characters")
    if contains_profanity(text):
        errors.append("Reply contains inappropriate language")
    return errors
