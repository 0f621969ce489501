"""Metadata and audio extraction capabilities used by the gateway.

The gateway only talks to ``MetadataProvider`` and ``AudioExtractor``; the
yt-dlp backed classes are the real implementations, the oEmbed provider and
the demo extractor are lighter alternatives selected through config.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

import requests
import yt_dlp
from yt_dlp.utils import DownloadError

from errors import ExtractionError, ProviderError
from models import AudioArtifact, VideoMetadata
from url_resolver import canonical_watch_url

logger = logging.getLogger(__name__)

THUMBNAIL_URL = 'https://img.youtube.com/vi/{video_id}/maxresdefault.jpg'
OEMBED_URL = 'https://www.youtube.com/oembed'

# Frame header followed by filler; enough for players to recognise the type
MP3_FRAME_HEADER = bytes([0xFF, 0xFB, 0x90, 0x00])
DEMO_FILE_SIZE = 1024 * 10


class MetadataProvider(ABC):
    """Looks up title, channel, duration and thumbnail for a video id."""

    name = 'metadata'

    @abstractmethod
    def get_metadata(self, video_id: str) -> VideoMetadata:
        """Return metadata, or raise ProviderError."""


class AudioExtractor(ABC):
    """Produces an MP3 for a video id inside a caller-owned directory."""

    name = 'extractor'

    @abstractmethod
    def extract(self, video_id: str, workdir: Path) -> AudioArtifact:
        """Return the finished artifact, or raise ExtractionError.

        Anything written to ``workdir`` is removed by the caller afterwards.
        """


class YtDlpMetadataProvider(MetadataProvider):
    """Reads metadata with yt-dlp without downloading anything."""

    name = 'yt-dlp'

    def __init__(self):
        self.ydl_opts = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'noplaylist': True,
        }

    def get_metadata(self, video_id: str) -> VideoMetadata:
        try:
            with yt_dlp.YoutubeDL(self.ydl_opts) as ydl:
                info = ydl.extract_info(canonical_watch_url(video_id), download=False)
        except DownloadError as e:
            raise ProviderError(f'yt-dlp could not read {video_id}: {e}') from e

        return self._parse_info(video_id, info)

    def _parse_info(self, video_id: str, info) -> VideoMetadata:
        """Build VideoMetadata from a yt-dlp info dict."""
        if not isinstance(info, dict):
            raise ProviderError(f'yt-dlp returned no info for {video_id}')

        title = info.get('title')
        if not isinstance(title, str) or not title:
            raise ProviderError(f'yt-dlp info for {video_id} has no title')

        duration = info.get('duration')
        if duration is not None and not isinstance(duration, (int, float)):
            raise ProviderError(f'Unexpected duration for {video_id}: {duration!r}')

        channel = info.get('channel') or info.get('uploader') or ''
        thumbnail = info.get('thumbnail') or THUMBNAIL_URL.format(video_id=video_id)

        return VideoMetadata(
            video_id=video_id,
            title=title,
            channel=str(channel),
            thumbnail=str(thumbnail),
            duration=int(duration) if duration is not None else None,
        )


class OEmbedMetadataProvider(MetadataProvider):
    """Uses YouTube's public oEmbed endpoint.

    oEmbed has no duration field, so ``duration`` is always None and the info
    response reports "0:00".
    """

    name = 'oembed'

    def __init__(self, timeout: float = 10, session=None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_metadata(self, video_id: str) -> VideoMetadata:
        params = {'url': canonical_watch_url(video_id), 'format': 'json'}
        try:
            response = self.session.get(OEMBED_URL, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ProviderError(f'oEmbed request failed for {video_id}: {e}') from e

        if not response.ok:
            raise ProviderError(f'oEmbed returned HTTP {response.status_code} for {video_id}')

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f'oEmbed returned invalid JSON for {video_id}') from e

        return self._parse_oembed(video_id, data)

    def _parse_oembed(self, video_id: str, data) -> VideoMetadata:
        if not isinstance(data, dict) or not isinstance(data.get('title'), str):
            raise ProviderError(f'oEmbed response for {video_id} has no title')

        return VideoMetadata(
            video_id=video_id,
            title=data['title'],
            channel=str(data.get('author_name') or ''),
            thumbnail=THUMBNAIL_URL.format(video_id=video_id),
            duration=None,
        )


class YtDlpAudioExtractor(AudioExtractor):
    """Downloads the best audio stream and converts it to MP3 with ffmpeg."""

    name = 'yt-dlp'

    def __init__(self, audio_quality: str = '0'):
        self.audio_quality = str(audio_quality)

    def _ydl_opts(self, workdir: Path) -> Dict:
        return {
            'format': 'bestaudio/best',
            'postprocessors': [{
                'key': 'FFmpegExtractAudio',
                'preferredcodec': 'mp3',
                'preferredquality': self.audio_quality,
            }],
            'outtmpl': str(workdir / 'audio.%(ext)s'),
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
        }

    def extract(self, video_id: str, workdir: Path) -> AudioArtifact:
        try:
            with yt_dlp.YoutubeDL(self._ydl_opts(workdir)) as ydl:
                ydl.extract_info(canonical_watch_url(video_id), download=True)
        except DownloadError as e:
            raise ExtractionError(f'yt-dlp failed for {video_id}: {e}') from e

        # The postprocessor replaces the downloaded stream with an .mp3
        mp3_files = sorted(p for p in workdir.iterdir() if p.suffix == '.mp3')
        if not mp3_files:
            raise ExtractionError(f'No MP3 produced for {video_id}')

        data = mp3_files[0].read_bytes()
        if not data:
            raise ExtractionError(f'Empty MP3 produced for {video_id}')

        logger.info(f'Extracted {len(data)} bytes of audio for {video_id}')
        return AudioArtifact(data=data, filename=f'{video_id}.mp3')


class DemoAudioExtractor(AudioExtractor):
    """Returns a placeholder MP3 without touching the network."""

    name = 'demo'

    def extract(self, video_id: str, workdir: Path) -> AudioArtifact:
        data = MP3_FRAME_HEADER + os.urandom(DEMO_FILE_SIZE - len(MP3_FRAME_HEADER))
        return AudioArtifact(data=data, filename=f'{video_id}.mp3')


def build_metadata_provider(config: Dict) -> MetadataProvider:
    if config.get('metadata_provider') == 'oembed':
        return OEmbedMetadataProvider(timeout=config.get('request_timeout', 10))
    return YtDlpMetadataProvider()


def build_audio_extractor(config: Dict) -> AudioExtractor:
    if config.get('extractor') == 'demo':
        return DemoAudioExtractor()
    return YtDlpAudioExtractor(audio_quality=config.get('audio_quality', '0'))
