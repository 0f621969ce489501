import pytest

from url_resolver import canonical_watch_url, extract_video_id, is_plausible_youtube_url

SUPPORTED = [
    ('https://www.youtube.com/watch?v=dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
    ('http://youtube.com/watch?v=dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
    ('www.youtube.com/watch?v=dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
    ('youtube.com/watch?v=dQw4w9WgXcQ&t=42s', 'dQw4w9WgXcQ'),
    ('https://youtu.be/dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
    ('youtu.be/dQw4w9WgXcQ?si=abc', 'dQw4w9WgXcQ'),
    ('https://www.youtube.com/embed/dQw4w9WgXcQ#start', 'dQw4w9WgXcQ'),
    ('https://www.youtube.com/v/dQw4w9WgXcQ?version=3', 'dQw4w9WgXcQ'),
    ('https://youtu.be/dQw4w9WgXcQ\nsecond line', 'dQw4w9WgXcQ'),
]

UNSUPPORTED = [
    '',
    'not a url',
    'https://vimeo.com/123456',
    'https://www.youtube.com/',
    'https://www.youtube.com/watch?v=',
    'https://youtu.be/',
    'https://www.youtube.com/playlist?list=PL123',
]


@pytest.mark.parametrize('url,expected', SUPPORTED)
def test_extracts_id_from_supported_forms(url, expected):
    assert extract_video_id(url) == expected


@pytest.mark.parametrize('url', UNSUPPORTED)
def test_unsupported_input_has_no_id(url):
    assert extract_video_id(url) is None


def test_non_string_input_has_no_id():
    assert extract_video_id(None) is None
    assert extract_video_id(42) is None
    assert is_plausible_youtube_url(None) is False


@pytest.mark.parametrize('url,_', SUPPORTED)
def test_plausibility_check_accepts_everything_extractable(url, _):
    assert is_plausible_youtube_url(url)


def test_plausibility_check_rejects_plain_text():
    assert not is_plausible_youtube_url('not a url')
    assert not is_plausible_youtube_url('https://example.com/watch?v=abc')


def test_extractor_matches_inside_other_hosts():
    # m.youtube.com contains "youtube.com/watch?v=", so both checks agree
    url = 'https://m.youtube.com/watch?v=abc123'
    assert extract_video_id(url) == 'abc123'
    assert is_plausible_youtube_url(url)


def test_canonical_watch_url():
    assert canonical_watch_url('abc') == 'https://www.youtube.com/watch?v=abc'
