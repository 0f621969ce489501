"""Value types passed between the gateway, its providers and the client."""

import re
from dataclasses import dataclass
from typing import Dict, Optional

from errors import GatewayError

UNSAFE_TITLE_CHARS = re.compile(r'[^a-zA-Z0-9\s]')


def format_duration(seconds) -> str:
    """Format a duration in seconds as H:MM:SS, or M:SS under an hour.

    Unknown, zero and negative durations all format as "0:00".
    """
    try:
        total = int(seconds or 0)
    except (TypeError, ValueError):
        return '0:00'
    if total <= 0:
        return '0:00'

    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f'{hours}:{minutes:02d}:{secs:02d}'
    return f'{minutes}:{secs:02d}'


def sanitize_title(title: Optional[str], video_id: Optional[str] = None) -> str:
    """Turn a video title into a download filename ending in .mp3."""
    name = UNSAFE_TITLE_CHARS.sub('', title or '').strip()
    if not name:
        name = video_id or 'audio'
    return f'{name}.mp3'


@dataclass(frozen=True)
class VideoMetadata:
    """What a metadata provider knows about a video."""

    video_id: str
    title: str
    channel: str
    thumbnail: str
    duration: Optional[int] = None  # seconds, None when the provider can't tell


@dataclass(frozen=True)
class VideoInfo:
    """Preview data returned by the info action."""

    title: str
    thumbnail: str
    duration: str
    channel: str
    video_id: str

    @classmethod
    def from_metadata(cls, metadata: VideoMetadata) -> 'VideoInfo':
        return cls(
            title=metadata.title,
            thumbnail=metadata.thumbnail,
            duration=format_duration(metadata.duration),
            channel=metadata.channel,
            video_id=metadata.video_id,
        )

    @classmethod
    def from_dict(cls, data) -> 'VideoInfo':
        """Parse a gateway info response, rejecting anything incomplete."""
        if not isinstance(data, dict):
            raise GatewayError('Failed to get video information')
        try:
            return cls(
                title=str(data['title']),
                thumbnail=str(data['thumbnail']),
                duration=str(data['duration']),
                channel=str(data['channel']),
                video_id=str(data['videoId']),
            )
        except KeyError as e:
            raise GatewayError('Failed to get video information') from e

    def to_dict(self) -> Dict[str, str]:
        return {
            'title': self.title,
            'thumbnail': self.thumbnail,
            'duration': self.duration,
            'channel': self.channel,
            'videoId': self.video_id,
        }


@dataclass(frozen=True)
class AudioArtifact:
    """A finished MP3 held in memory."""

    data: bytes
    filename: str
    mime_type: str = 'audio/mpeg'

    @property
    def size(self) -> int:
        return len(self.data)
