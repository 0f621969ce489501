import json

import pytest

from app import create_app
from models import AudioArtifact, VideoMetadata
from providers import AudioExtractor, MetadataProvider

ENDPOINT = '/youtube-to-mp3'
VIDEO_ID = 'dQw4w9WgXcQ'
WATCH_URL = f'https://www.youtube.com/watch?v={VIDEO_ID}'
MP3_BYTES = b'\xff\xfb\x90\x00' + b'\x00' * 60


class FakeMetadataProvider(MetadataProvider):
    name = 'fake'

    def __init__(self, error=None, title='Never Gonna Give You Up!', duration=212):
        self.error = error
        self.title = title
        self.duration = duration
        self.calls = []

    def get_metadata(self, video_id):
        self.calls.append(video_id)
        if self.error is not None:
            raise self.error
        return VideoMetadata(
            video_id=video_id,
            title=self.title,
            channel='Rick Astley',
            thumbnail=f'https://img.youtube.com/vi/{video_id}/maxresdefault.jpg',
            duration=self.duration,
        )


class FakeAudioExtractor(AudioExtractor):
    """Writes a partial file into the workspace before succeeding or failing."""

    name = 'fake'

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.workdirs = []

    def extract(self, video_id, workdir):
        self.calls.append(video_id)
        self.workdirs.append(workdir)
        (workdir / 'audio.part').write_bytes(MP3_BYTES[:10])
        if self.error is not None:
            raise self.error
        (workdir / 'audio.mp3').write_bytes(MP3_BYTES)
        return AudioArtifact(data=MP3_BYTES, filename=f'{video_id}.mp3')


class FlaskResponse:
    """Gives a Flask test response the parts of requests.Response we use."""

    def __init__(self, response):
        self.status_code = response.status_code
        self.headers = response.headers
        self.content = response.data

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


class FlaskSession:
    """Routes GatewayClient calls into the Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append(json)
        return FlaskResponse(self.test_client.post(url, json=json))


@pytest.fixture
def config(tmp_path):
    return {
        'host': '127.0.0.1',
        'port': '5000',
        'debug': False,
        'endpoint': ENDPOINT,
        'temp_dir': str(tmp_path / 'temp_downloads'),
        'metadata_provider': 'yt-dlp',
        'extractor': 'yt-dlp',
        'audio_quality': '0',
        'request_timeout': 5,
        'log_level': 'DEBUG',
    }


@pytest.fixture
def metadata_provider():
    return FakeMetadataProvider()


@pytest.fixture
def audio_extractor():
    return FakeAudioExtractor()


@pytest.fixture
def app(config, metadata_provider, audio_extractor):
    app = create_app(config, metadata_provider=metadata_provider,
                     audio_extractor=audio_extractor)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flask_session(client):
    return FlaskSession(client)
