"""YouTube URL validation and video id extraction.

Both the gateway and the workflow client import from here, so a URL accepted
by one side is never rejected by the other.
"""

import re
from typing import Optional

# watch?v=, youtu.be/, embed/ and v/ links, with or without scheme and www.
URL_PREFIX = r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)'

VIDEO_ID_REGEX = re.compile(URL_PREFIX + r'([^&\n?#]+)')
PLAUSIBLE_URL_REGEX = re.compile(URL_PREFIX)

WATCH_URL = 'https://www.youtube.com/watch?v={video_id}'


def extract_video_id(text) -> Optional[str]:
    """Return the video id embedded in ``text``, or None if there is none."""
    if not isinstance(text, str):
        return None
    match = VIDEO_ID_REGEX.search(text)
    return match.group(1) if match else None


def is_plausible_youtube_url(text) -> bool:
    """Quick check used before submitting; never stricter than extract_video_id."""
    if not isinstance(text, str):
        return False
    return PLAUSIBLE_URL_REGEX.search(text.strip()) is not None


def canonical_watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)
