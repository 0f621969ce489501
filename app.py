import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path

from flask import Flask, Response, current_app, jsonify, request
from flask_cors import CORS

from config import load_config, setup_logging, validate_config
from errors import ClientInputError, ExtractionError, ProviderError
from models import VideoInfo
from providers import build_audio_extractor, build_metadata_provider
from url_resolver import extract_video_id

# Run locally with:
#   pip install -e .
#   python app.py
#
# The server extracts the audio itself and answers the convert call with the
# finished MP3; the browser (or workflow.py) then saves it on the user's side.

logger = logging.getLogger(__name__)

ALLOWED_METHODS = 'POST, GET, OPTIONS'
ALLOWED_HEADERS = 'Content-Type, Authorization'

INFO_FAILED = 'Failed to get video information'
CONVERT_FAILED = 'Failed to convert video to MP3'


def error_response(message, status):
    return jsonify({'error': message}), status


@contextmanager
def temporary_workspace(temp_dir, video_id):
    """Per-request scratch directory, removed on every exit path."""
    prefix = re.sub(r'[^\w-]', '_', video_id)[:32]
    workdir = Path(tempfile.mkdtemp(prefix=f'{prefix}-', dir=temp_dir))
    try:
        yield workdir
    finally:
        try:
            shutil.rmtree(workdir)
        except OSError as e:
            logger.error(f'Could not remove temp folder {workdir}: {e}')


def handle_info(video_id):
    provider = current_app.extensions['metadata_provider']
    try:
        metadata = provider.get_metadata(video_id)
    except ProviderError as e:
        logger.error(f'Error fetching video info: {e}')
        return error_response(INFO_FAILED, 500)
    except Exception:
        logger.exception(f'Metadata provider crashed for {video_id}')
        return error_response(INFO_FAILED, 500)

    return jsonify(VideoInfo.from_metadata(metadata).to_dict())


def handle_convert(video_id):
    extractor = current_app.extensions['audio_extractor']
    temp_dir = current_app.config['YTMP3']['temp_dir']
    try:
        # The artifact is fully in memory before the workspace goes away
        with temporary_workspace(temp_dir, video_id) as workdir:
            artifact = extractor.extract(video_id, workdir)
    except ExtractionError as e:
        logger.error(f'Error converting video: {e}')
        return error_response(CONVERT_FAILED, 500)
    except Exception:
        logger.exception(f'Audio extractor crashed for {video_id}')
        return error_response(CONVERT_FAILED, 500)

    filename = artifact.filename.replace('"', '').replace('\\', '')
    return Response(
        artifact.data,
        mimetype=artifact.mime_type,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


def youtube_to_mp3():
    """
    Handles the info and convert actions for a YouTube URL.
    """
    if request.method == 'OPTIONS':
        response = Response(status=200)
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = ALLOWED_METHODS
        response.headers['Access-Control-Allow-Headers'] = ALLOWED_HEADERS
        return response

    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}

        url = data.get('url')
        if not url or not isinstance(url, str):
            raise ClientInputError('YouTube URL is required')

        video_id = extract_video_id(url)
        if not video_id:
            raise ClientInputError('Invalid YouTube URL')

        action = data.get('action')
        if action == 'info':
            return handle_info(video_id)
        if action == 'convert':
            return handle_convert(video_id)

        raise ClientInputError('Invalid action')

    except ClientInputError as e:
        return error_response(e.message, e.status)
    except Exception:
        logger.exception('Unexpected error while handling request')
        return error_response('Internal server error', 500)


def health():
    return jsonify({
        'status': 'ok',
        'extractor': current_app.extensions['audio_extractor'].name,
    })


def method_not_allowed(_error):
    return error_response('Method not allowed', 405)


def create_app(config=None, metadata_provider=None, audio_extractor=None):
    """Build the Flask app; providers can be injected for tests."""
    config = config or load_config()
    errors = validate_config(config)
    if errors:
        raise ValueError('Invalid configuration: ' + '; '.join(errors))

    app = Flask(__name__)
    app.config['YTMP3'] = config

    # Enable CORS so browser front-ends on any origin can call the endpoint
    CORS(app, send_wildcard=True, methods=ALLOWED_METHODS.split(', '),
         allow_headers=ALLOWED_HEADERS.split(', '))

    app.extensions['metadata_provider'] = metadata_provider or build_metadata_provider(config)
    app.extensions['audio_extractor'] = audio_extractor or build_audio_extractor(config)

    app.add_url_rule(config['endpoint'], 'youtube_to_mp3', youtube_to_mp3,
                     methods=['POST', 'OPTIONS'], provide_automatic_options=False)
    app.add_url_rule('/health', 'health', health, methods=['GET'])
    app.register_error_handler(405, method_not_allowed)

    logger.info(
        f"Serving {config['endpoint']} with metadata={app.extensions['metadata_provider'].name}"
        f" extractor={app.extensions['audio_extractor'].name}"
    )
    return app


if __name__ == '__main__':
    settings = load_config()
    setup_logging(settings['log_level'])
    logger.info('Server starting...')
    create_app(settings).run(host=settings['host'], port=int(settings['port']),
                             debug=settings['debug'])
