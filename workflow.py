"""Client-side conversion workflow.

``ConversionWorkflow`` drives one conversion at a time through
Idle -> Validating -> FetchingInfo -> Converting -> Ready, dropping to Failed
on any error. Every step publishes an immutable ``WorkflowSnapshot`` to the
subscribed listeners, which is all a front-end needs to render progress.
"""

import argparse
import logging
import re
import sys
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import requests
from rich.console import Console

from config import load_config, setup_logging
from errors import GatewayError, NetworkError, ValidationError, WorkflowError
from models import AudioArtifact, VideoInfo, sanitize_title
from url_resolver import extract_video_id, is_plausible_youtube_url

logger = logging.getLogger(__name__)

FILENAME_REGEX = re.compile(r'filename="?([^";]+)"?')

EMPTY_URL_MESSAGE = 'Please enter a YouTube URL'
INVALID_URL_MESSAGE = 'Please enter a valid YouTube URL'
INFO_FALLBACK = 'Failed to get video information'
CONVERT_FALLBACK = 'Failed to convert video'
GENERIC_FALLBACK = 'Failed to convert video. Please try again.'
SUCCESS_MESSAGE = 'Conversion completed successfully!'


def validate_url(url) -> None:
    """Local shape check run before any request is made."""
    if not url or not url.strip():
        raise ValidationError(EMPTY_URL_MESSAGE)
    if not is_plausible_youtube_url(url):
        raise ValidationError(INVALID_URL_MESSAGE)


class GatewayClient:
    """Talks to the conversion endpoint over HTTP."""

    def __init__(self, endpoint: str, timeout: float = 300, session=None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, url: str, action: str, fallback: str):
        try:
            response = self.session.post(
                self.endpoint,
                json={'url': url, 'action': action},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f'Could not reach {self.endpoint}: {e}')
            raise NetworkError(fallback) from e

        if not response.ok:
            raise GatewayError(self._error_message(response, fallback), response.status_code)
        return response

    @staticmethod
    def _error_message(response, fallback: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return fallback
        if isinstance(body, dict) and isinstance(body.get('error'), str) and body['error']:
            return body['error']
        return fallback

    def info(self, url: str) -> VideoInfo:
        response = self._post(url, 'info', INFO_FALLBACK)
        try:
            body = response.json()
        except ValueError as e:
            raise GatewayError(INFO_FALLBACK, response.status_code) from e
        return VideoInfo.from_dict(body)

    def convert(self, url: str) -> AudioArtifact:
        response = self._post(url, 'convert', CONVERT_FALLBACK)
        if not response.content:
            raise GatewayError(CONVERT_FALLBACK, response.status_code)

        match = FILENAME_REGEX.search(response.headers.get('Content-Disposition', ''))
        if match:
            filename = match.group(1)
        else:
            filename = f'{extract_video_id(url) or "audio"}.mp3'

        return AudioArtifact(
            data=response.content,
            filename=filename,
            mime_type=response.headers.get('Content-Type', 'audio/mpeg'),
        )


class WorkflowState(Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    FETCHING_INFO = 'fetching_info'
    CONVERTING = 'converting'
    READY = 'ready'
    FAILED = 'failed'

    @property
    def is_busy(self) -> bool:
        return self in (WorkflowState.VALIDATING, WorkflowState.FETCHING_INFO,
                        WorkflowState.CONVERTING)


@dataclass(frozen=True)
class WorkflowSnapshot:
    state: WorkflowState = WorkflowState.IDLE
    url: str = ''
    progress: int = 0
    video_info: Optional[VideoInfo] = None
    artifact: Optional[AudioArtifact] = None
    error: str = ''
    success_message: str = ''


class ConversionWorkflow:
    """Runs info then convert for one URL at a time."""

    def __init__(self, client: GatewayClient, release_delay: float = 1.0):
        self.client = client
        self.release_delay = release_delay
        self._snapshot = WorkflowSnapshot()
        self._listeners: List[Callable[[WorkflowSnapshot], None]] = []
        self._lock = threading.Lock()
        self._release_timer: Optional[threading.Timer] = None

    @property
    def snapshot(self) -> WorkflowSnapshot:
        return self._snapshot

    @property
    def state(self) -> WorkflowState:
        return self._snapshot.state

    def subscribe(self, listener: Callable[[WorkflowSnapshot], None]) -> None:
        self._listeners.append(listener)

    def _publish(self, snapshot: WorkflowSnapshot) -> WorkflowSnapshot:
        with self._lock:
            self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def _advance(self, **changes) -> WorkflowSnapshot:
        return self._publish(replace(self._snapshot, **changes))

    def _fail(self, message: str) -> WorkflowSnapshot:
        return self._advance(state=WorkflowState.FAILED, error=message)

    def submit(self, url: str) -> WorkflowSnapshot:
        """Start a conversion; ignored while another one is in flight."""
        with self._lock:
            if self._snapshot.state.is_busy:
                logger.debug(f'Ignoring submit while {self._snapshot.state.value}')
                return self._snapshot
            self._snapshot = WorkflowSnapshot(state=WorkflowState.VALIDATING, url=url or '')

        self._cancel_release()
        self._publish(self._snapshot)

        try:
            validate_url(url)
            self._advance(state=WorkflowState.FETCHING_INFO, progress=25)
            video_info = self.client.info(url)
            self._advance(video_info=video_info, progress=50)

            self._advance(state=WorkflowState.CONVERTING, progress=75)
            artifact = self.client.convert(url)
        except WorkflowError as e:
            logger.error(f'Conversion error: {e}')
            return self._fail(str(e) or GENERIC_FALLBACK)
        except Exception:
            logger.exception('Conversion error')
            return self._fail(GENERIC_FALLBACK)

        return self._advance(
            state=WorkflowState.READY,
            progress=100,
            artifact=artifact,
            success_message=SUCCESS_MESSAGE,
        )

    def download_filename(self) -> str:
        info = self._snapshot.video_info
        if info is None:
            raise WorkflowError('Nothing to download')
        return sanitize_title(info.title, info.video_id)

    def download(self, directory='.') -> Path:
        """Write the MP3 to ``directory`` and schedule releasing it."""
        snapshot = self._snapshot
        if snapshot.state is not WorkflowState.READY or snapshot.artifact is None:
            raise WorkflowError('Nothing to download')

        target = Path(directory) / self.download_filename()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(snapshot.artifact.data)
        logger.info(f'Saved {snapshot.artifact.size} bytes to {target}')

        self._schedule_release()
        return target

    def release(self) -> None:
        """Drop the in-memory artifact."""
        with self._lock:
            if self._snapshot.artifact is None:
                return
            self._snapshot = replace(self._snapshot, artifact=None)
            snapshot = self._snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    def _schedule_release(self) -> None:
        self._cancel_release()
        if self.release_delay <= 0:
            self.release()
            return
        self._release_timer = threading.Timer(self.release_delay, self.release)
        self._release_timer.daemon = True
        self._release_timer.start()

    def _cancel_release(self) -> None:
        if self._release_timer is not None:
            self._release_timer.cancel()
            self._release_timer = None


def main(argv=None) -> int:
    """Convert a single URL from the command line."""
    settings = load_config()
    default_endpoint = f"http://{settings['host']}:{settings['port']}{settings['endpoint']}"

    parser = argparse.ArgumentParser(description='Convert a YouTube video to MP3')
    parser.add_argument('url', help='YouTube watch, share or embed URL')
    parser.add_argument('--endpoint', default=default_endpoint,
                        help=f'conversion endpoint (default: {default_endpoint})')
    parser.add_argument('--output-dir', default='.', help='where to save the MP3')
    args = parser.parse_args(argv)

    setup_logging(settings['log_level'])
    console = Console()

    workflow = ConversionWorkflow(GatewayClient(args.endpoint), release_delay=0)
    workflow.subscribe(
        lambda snap: console.print(f'[{snap.progress:3d}%] {snap.state.value}')
    )

    result = workflow.submit(args.url)
    if result.state is not WorkflowState.READY:
        console.print(result.error, style='red')
        return 1

    info = result.video_info
    console.print(f'{info.title} - {info.channel} ({info.duration})')
    path = workflow.download(args.output_dir)
    console.print(f'{result.success_message} Saved to {path}', style='green')
    return 0


if __name__ == '__main__':
    sys.exit(main())
