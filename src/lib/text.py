"""
Plain-text excerpts of markdown documents (page descriptions, OGP tags).
"""

import re
from typing import List, Optional, Tuple

from ..config.settings import appsettings


EXCERPT_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'```[\s\S]*?```'), ''),                 # fenced code
    (re.compile(r'`([^`]+)`'), r'\1'),                    # inline code
    (re.compile(r'!\[([^\]]*)\]\([^)]+\)'), ''),          # images
    (re.compile(r'\[([^\]]+)\]\([^)]+\)'), r'\1'),        # links keep their text
    (re.compile(r'^#{1,6}\s+', re.MULTILINE), ''),        # heading markers
    (re.compile(r'(\*\*|__)(.*?)\1'), r'\2'),             # strong
    (re.compile(r'(\*|_)(.*?)\1'), r'\2'),                # emphasis
    (re.compile(r'^[*\-+]\s+', re.MULTILINE), ''),        # bullets
    (re.compile(r'^\d+\.\s+', re.MULTILINE), ''),         # numbered items
    (re.compile(r'^>\s+', re.MULTILINE), ''),             # quotes
    (re.compile(r'<[^>]+>'), ''),                         # html tags
    (re.compile(r'\n{2,}'), '\n'),
]


def excerpt_extract(markdown: str, max_length: Optional[int] = None) -> str:
    """
    Strip markdown syntax and return a short plain-text excerpt.

    Args:
        markdown: Markdown source
        max_length: Truncation length, defaults to settings.excerpt_max_length

    Returns:
        Plain text, with "..." appended when it had to be truncated

    Example:
        >>> excerpt_extract("# Title\\n\\nSome **bold** [link](/x).")
        'Title\\nSome bold link.'
    """
    if not markdown:
        return ''
    if max_length is None:
        max_length = appsettings.excerpt_max_length

    text = markdown
    for pattern, replacement in EXCERPT_RULES:
        text = pattern.sub(replacement, text)
    text = text.strip()

    if len(text) > max_length:
        text = text[:max_length].strip() + '...'
    return text
