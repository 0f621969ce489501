"""Configuration loading and logging setup for the converter service."""

import os
import logging
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv
from rich.logging import RichHandler

PROJECT_ROOT = Path(__file__).parent

# Load environment variables from .env next to the app, if there is one
load_dotenv(PROJECT_ROOT / '.env')

METADATA_PROVIDERS = ('yt-dlp', 'oembed')
EXTRACTORS = ('yt-dlp', 'demo')


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> Dict:
    """Load configuration from environment variables."""
    temp_dir = os.getenv('YTMP3_TEMP_DIR', 'temp_downloads')
    if not Path(temp_dir).is_absolute():
        temp_dir = str(PROJECT_ROOT / temp_dir)

    return {
        'host': os.getenv('YTMP3_HOST', '127.0.0.1'),
        'port': os.getenv('YTMP3_PORT', '5000'),
        'debug': _env_flag('YTMP3_DEBUG'),
        'endpoint': os.getenv('YTMP3_ENDPOINT', '/youtube-to-mp3'),
        'temp_dir': temp_dir,
        'metadata_provider': os.getenv('YTMP3_METADATA_PROVIDER', 'yt-dlp'),
        'extractor': os.getenv('YTMP3_EXTRACTOR', 'yt-dlp'),
        # "0" is the best VBR setting for ffmpeg's mp3 encoder
        'audio_quality': os.getenv('YTMP3_AUDIO_QUALITY', '0'),
        'request_timeout': float(os.getenv('YTMP3_REQUEST_TIMEOUT', '10')),
        'log_level': os.getenv('YTMP3_LOG_LEVEL', 'INFO'),
    }


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.get('metadata_provider') not in METADATA_PROVIDERS:
        errors.append(
            f"YTMP3_METADATA_PROVIDER must be one of {', '.join(METADATA_PROVIDERS)}"
        )

    if config.get('extractor') not in EXTRACTORS:
        errors.append(f"YTMP3_EXTRACTOR must be one of {', '.join(EXTRACTORS)}")

    try:
        port = int(config.get('port'))
        if not 0 < port < 65536:
            errors.append(f"YTMP3_PORT out of range: {port}")
    except (TypeError, ValueError):
        errors.append(f"YTMP3_PORT is not a number: {config.get('port')!r}")

    endpoint = config.get('endpoint') or ''
    if not endpoint.startswith('/'):
        errors.append("YTMP3_ENDPOINT must start with '/'")

    try:
        Path(config['temp_dir']).mkdir(parents=True, exist_ok=True)
    except (KeyError, OSError) as e:
        errors.append(f"Cannot create temp folder: {e}")

    return errors


def setup_logging(log_level: str = 'INFO') -> None:
    """Set up logging with Rich for readable console output."""
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[rich_handler],
        format='%(message)s',
    )

    # Suppress noisy third-party loggers
    for logger_name in ('yt_dlp', 'urllib3.connectionpool'):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
