"""Utility functions for the Keeper note store."""
import re
from typing import List, Optional

URL_PATTERN = re.compile(r"https?://\S+")

# Characters that end a sentence or close a bracket around a URL in prose
_TRAILING_PUNCTUATION = ".,;:!?)>]'\""


def contains_url(text: Optional[str]) -> bool:
    """Report whether free text contains an http(s) link.

    A link is ``http://`` or ``https://`` followed by at least one
    non-whitespace character. This is the function behind the derived
    ``has_links`` flag on notes.

    Examples:
        >>> contains_url("Check https://example.com")
        True
        >>> contains_url("no links")
        False
        >>> contains_url(None)
        False
    """
    if not text:
        return False
    return URL_PATTERN.search(text) is not None


def extract_urls(text: Optional[str]) -> List[str]:
    """Return every link in ``text`` in order of appearance.

    Trailing punctuation picked up from the surrounding sentence is
    stripped from each match. Duplicates are kept.

    Example:
        >>> extract_urls("See https://a.io/x. Also (https://b.io)!")
        ['https://a.io/x', 'https://b.io']
    """
    if not text:
        return []
    return [
        match.rstrip(_TRAILING_PUNCTUATION)
        for match in URL_PATTERN.findall(text)
    ]
