"""URL detection and whitespace tokenisation for message bodies."""

import re
from dataclasses import dataclass
from typing import List, Optional

URL_REGEX = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)


@dataclass(frozen=True)
class MessageToken:
    """A whitespace-delimited piece of a message body."""
    text: str
    is_link: bool = False
    href: Optional[str] = None


def detect_links(text: Optional[str]) -> bool:
    """Return True if ``text`` contains at least one http(s) URL."""
    if not text:
        return False
    return URL_REGEX.search(text) is not None


def tokenize_message(text: str) -> List[MessageToken]:
    """
    Split a message body on whitespace and classify each token.

    Args:
        text: Message body

    Returns:
        Tokens in order; runs of whitespace are collapsed, so joining the
        token texts with a single space reproduces the rendered body.
    """
    tokens = []
    for word in text.split():
        match = URL_REGEX.search(word)
        if match:
            tokens.append(MessageToken(text=word, is_link=True, href=match.group(0)))
        else:
            tokens.append(MessageToken(text=word))
    return tokens
