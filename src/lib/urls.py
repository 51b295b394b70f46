"""
URL classification for embeddable links

Pure regular-expression matchers used by the link-to-embed transform to
decide what kind of placeholder a standalone link becomes.
"""

import re
from typing import Dict, Optional
from urllib.parse import urlsplit, parse_qs

from ..models.document import EmbedKind


HTTP_URL = re.compile(r'^https?://')

TWEET_URL = re.compile(
    r'^https://(twitter|x)\.com/[a-zA-Z0-9_-]+/status/[a-zA-Z0-9?=&\-_]+$'
)

YOUTUBE_URLS = [
    re.compile(r'^https?://youtu\.be/[\w-]+(?:\?[\w=&-]+)?$'),
    re.compile(r'^https?://(?:www\.)?youtube\.com/watch\?[\w=&-]+$'),
]

GITHUB_BLOB_URL = re.compile(
    r'^https://github\.com/([a-zA-Z0-9](-?[a-zA-Z0-9]){0,38})'
    r'/([a-zA-Z0-9](-?[a-zA-Z0-9._]){0,99})'
    r'/blob/[^~\s:?\[*^/\\]{2,}/[\w!\-_~.*%()\'"/]+(?:#L\d+(?:-L\d+)?)?$'
)

YOUTUBE_VIDEO_ID_LENGTH = 11


def httpUrl_is(url: str) -> bool:
    """True for absolute http:// or https:// URLs with a host"""
    if not HTTP_URL.match(url):
        return False
    try:
        return bool(urlsplit(url).netloc)
    except ValueError:
        return False


def tweetUrl_is(url: str) -> bool:
    return bool(TWEET_URL.match(url))


def youtubeUrl_is(url: str) -> bool:
    return any(pattern.match(url) for pattern in YOUTUBE_URLS)


def githubUrl_is(url: str) -> bool:
    """True for links to a single file (optionally a line range) on GitHub"""
    return bool(GITHUB_BLOB_URL.match(url))


def embedKind_classify(url: str) -> EmbedKind:
    """
    Classify a URL into the embed kind used for its placeholder.

    Matchers run in a fixed order (tweet, youtube, github) and the first
    hit wins; anything else is a generic link card.

    Args:
        url: Absolute http(s) URL

    Returns:
        EmbedKind for the URL

    Example:
        >>> embedKind_classify('https://x.com/jack/status/20')
        <EmbedKind.TWEET: 'tweet'>
        >>> embedKind_classify('https://example.com')
        <EmbedKind.GENERIC_CARD: 'generic-card'>
    """
    if tweetUrl_is(url):
        return EmbedKind.TWEET
    if youtubeUrl_is(url):
        return EmbedKind.YOUTUBE
    if githubUrl_is(url):
        return EmbedKind.GITHUB
    return EmbedKind.GENERIC_CARD


def youtubeParameters_extract(url: str) -> Optional[Dict[str, Optional[str]]]:
    """
    Pull the video id and start offset out of a YouTube URL.

    The id comes from the ``v`` query parameter, or the first path segment
    for youtu.be short links. ``t=100s`` yields a start of ``"100"``.

    Args:
        url: Candidate YouTube URL

    Returns:
        {"videoId": ..., "start": ...} or None when the URL is not a
        YouTube link or the id is not 11 characters long
    """
    if not youtubeUrl_is(url):
        return None

    parts = urlsplit(url)
    params = parse_qs(parts.query)

    video_id = params.get('v', [None])[0]
    if not video_id:
        segments = parts.path.split('/')
        video_id = segments[1] if len(segments) > 1 else None

    start = params.get('t', [None])[0]
    if start is not None:
        start = start.replace('s', '', 1)

    if not video_id or len(video_id) != YOUTUBE_VIDEO_ID_LENGTH:
        return None

    return {"videoId": video_id, "start": start}
