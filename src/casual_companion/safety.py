"""
Pre-flight validation of user messages.

Rejections raise InputRejectedError with a user-facing reason before any
pipeline work happens. Accepted text has e-mail addresses, phone numbers and
card numbers replaced by placeholders.
"""

import re

from casual_companion.exceptions import InputRejectedError

PII_EMAIL = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
PII_CARD = re.compile(r"\b(?:\d[ -]*?){13,16}\b")
PII_PHONE = re.compile(r"\b(?:\+?\d{1,3}[-.\s]?)?(?:\(?\d{3,5}\)?[-.\s]?)?\d{3,5}[-.\s]?\d{4}\b")

NSFW_HINTS = re.compile(r"(porn|nude|blowjob|hentai|sex\s*act|xxx)", re.IGNORECASE)

EMPTY_MESSAGE = "Message cannot be empty"
MESSAGE_TOO_LONG = "Message is too long"
CONTENT_VIOLATION = "Content violates guidelines"


def redact_pii(text: str) -> str:
    # Cards before phones, the phone pattern matches the tail of a card number
    text = PII_EMAIL.sub("[email]", text)
    text = PII_CARD.sub("[card]", text)
    return PII_PHONE.sub("[phone]", text)


def is_likely_nsfw(text: str) -> bool:
    return bool(NSFW_HINTS.search(text))


def validate_user_message(text: str, max_chars: int = 10000) -> str:
    """
    Validate and clean a user message.

    Args:
        text: Raw user message
        max_chars: Longest accepted message

    Returns:
        The stripped message with PII redacted

    Raises:
        InputRejectedError: If the message is empty, too long or disallowed
    """
    if text is None or not text.strip():
        raise InputRejectedError(EMPTY_MESSAGE)

    cleaned = text.strip()
    if len(cleaned) > max_chars:
        raise InputRejectedError(MESSAGE_TOO_LONG)
    if is_likely_nsfw(cleaned):
        raise InputRejectedError(CONTENT_VIOLATION)

    return redact_pii(cleaned)
