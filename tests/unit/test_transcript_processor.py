"""
Tests for processors/transcript_processor.py

Tests YouTube caption extraction with mocked API responses and watch pages.
All external dependencies (YouTube Transcript API, HTTP) are mocked.
"""

import pytest
from unittest.mock import Mock, MagicMock, patch
import requests

from processors.transcript_processor import TranscriptProcessor


@pytest.fixture
def mock_session():
    """Mock requests session"""
    session = Mock(spec=requests.Session)
    return session


@pytest.fixture
def processor(mock_session):
    return TranscriptProcessor(session=mock_session)


@pytest.fixture
def sample_transcript_entries():
    """Sample transcript entries returned by YouTube API"""
    entries = []
    for i, text in enumerate([
        "Welcome to this video about building habits",
        "Today we'll talk about systems over goals",
        "Let's start with a simple example"
    ]):
        entry = MagicMock()
        entry.start = float(i * 5)
        entry.text = text
        entry.duration = 5.0
        entries.append(entry)
    return entries


@pytest.fixture
def watch_page_html():
    """Watch page fragment with a caption track"""
    return (
        '<html><head><meta name="title" content="Habits Explained">'
        '<meta property="og:title" content="OG Habits"></head><body><script>'
        'var ytInitialPlayerResponse = {"captions": {"playerCaptionsTracklistRenderer": '
        '{"captionTracks": [{"baseUrl":"https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ\\u0026lang=en",'
        '"languageCode":"en"}]}}};'
        '</script></body></html>'
    )


def _response(status_code=200, text='', json_data=None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = json_data
    return response


def _mock_transcript_api(mock_ytt_api):
    mock_api_instance = MagicMock()
    mock_ytt_api.return_value = mock_api_instance
    mock_transcript_list = MagicMock()
    mock_api_instance.list.return_value = mock_transcript_list
    return mock_transcript_list


class TestTranscriptProcessorInitialization:
    """Tests for TranscriptProcessor initialization"""

    @pytest.mark.unit
    def test_uses_given_session(self, mock_session):
        """Should keep the injected session"""
        processor = TranscriptProcessor(session=mock_session)
        assert processor.session is mock_session

    @pytest.mark.unit
    def test_creates_logger_with_class_name(self, processor):
        """Should create logger with proper naming"""
        assert "TranscriptProcessor" in processor.logger.name


class TestGetYoutubeTranscript:
    """Tests for get_youtube_transcript() method"""

    @pytest.mark.unit
    def test_extracts_manual_transcript(self, processor, sample_transcript_entries):
        """Should extract manually created transcript when available"""
        with patch('youtube_transcript_api.YouTubeTranscriptApi') as mock_ytt_api:
            transcript_list = _mock_transcript_api(mock_ytt_api)
            manual = MagicMock()
            manual.fetch.return_value = sample_transcript_entries
            transcript_list.find_manually_created_transcript.return_value = manual

            result = processor.get_youtube_transcript('dQw4w9WgXcQ')

            assert result['success'] is True
            assert result['type'] == 'manual'
            assert result['video_id'] == 'dQw4w9WgXcQ'
            assert result['total_entries'] == 3
            assert result['transcript'][0] == {
                'start': 0.0,
                'text': "Welcome to this video about building habits",
                'duration': 5.0,
            }
            transcript_list.find_manually_created_transcript.assert_called_once_with(['en'])

    @pytest.mark.unit
    def test_falls_back_to_auto_generated(self, processor, sample_transcript_entries):
        """Should fall back to auto-generated transcript if manual not available"""
        with patch('youtube_transcript_api.YouTubeTranscriptApi') as mock_ytt_api:
            transcript_list = _mock_transcript_api(mock_ytt_api)
            transcript_list.find_manually_created_transcript.side_effect = Exception("No manual transcript")
            auto = MagicMock()
            auto.fetch.return_value = sample_transcript_entries
            transcript_list.find_generated_transcript.return_value = auto

            result = processor.get_youtube_transcript('dQw4w9WgXcQ')

            assert result['success'] is True
            assert result['type'] == 'auto_generated'

    @pytest.mark.unit
    def test_non_english_language_falls_back_to_english(self, processor, sample_transcript_entries):
        """Should ask for the requested language, then English"""
        with patch('youtube_transcript_api.YouTubeTranscriptApi') as mock_ytt_api:
            transcript_list = _mock_transcript_api(mock_ytt_api)
            manual = MagicMock()
            manual.fetch.return_value = sample_transcript_entries
            transcript_list.find_manually_created_transcript.return_value = manual

            processor.get_youtube_transcript('dQw4w9WgXcQ', language='es')

            transcript_list.find_manually_created_transcript.assert_called_once_with(['es', 'en'])

    @pytest.mark.unit
    def test_no_transcript_available(self, processor):
        """Should report failure when neither transcript type exists"""
        with patch('youtube_transcript_api.YouTubeTranscriptApi') as mock_ytt_api:
            transcript_list = _mock_transcript_api(mock_ytt_api)
            transcript_list.find_manually_created_transcript.side_effect = Exception("none")
            transcript_list.find_generated_transcript.side_effect = Exception("none")

            result = processor.get_youtube_transcript('dQw4w9WgXcQ')

            assert result['success'] is False
            assert result['error'] == 'No en transcript available'

    @pytest.mark.unit
    def test_api_error(self, processor):
        """Should report failure when the transcript list cannot be fetched"""
        with patch('youtube_transcript_api.YouTubeTranscriptApi') as mock_ytt_api:
            mock_ytt_api.return_value.list.side_effect = Exception("Video unavailable")

            result = processor.get_youtube_transcript('dQw4w9WgXcQ')

            assert result['success'] is False
            assert 'Video unavailable' in result['error']
            assert result['video_id'] == 'dQw4w9WgXcQ'


class TestScrapeCaptionTrack:
    """Tests for scrape_caption_track() method"""

    @pytest.mark.unit
    def test_scrapes_json3_track(self, processor, mock_session, watch_page_html):
        """Should find the timedtext URL and parse its json3 events"""
        captions = {'events': [
            {'tStartMs': 0, 'dDurationMs': 1500, 'segs': [{'utf8': 'Hello '}, {'utf8': 'world'}]},
            {'tStartMs': 1500, 'dDurationMs': 500},
            {'tStartMs': 2000, 'dDurationMs': 1000, 'segs': [{'utf8': '\n'}]},
            {'tStartMs': 3000, 'dDurationMs': 2000, 'segs': [{'utf8': 'Second line'}]},
        ]}
        mock_session.get.side_effect = [
            _response(text=watch_page_html),
            _response(json_data=captions),
        ]

        segments = processor.scrape_caption_track('dQw4w9WgXcQ')

        assert segments == [
            {'text': 'Hello world', 'start': 0.0, 'duration': 1.5},
            {'text': 'Second line', 'start': 3.0, 'duration': 2.0},
        ]
        caption_url = mock_session.get.call_args_list[1][0][0]
        assert caption_url == 'https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en&fmt=json3'

    @pytest.mark.unit
    def test_page_without_captions(self, processor, mock_session):
        """Should raise when the page has no caption renderer"""
        mock_session.get.return_value = _response(text='<html>no captions here</html>')

        with pytest.raises(RuntimeError, match="No captions available"):
            processor.scrape_caption_track('dQw4w9WgXcQ')

    @pytest.mark.unit
    def test_page_fetch_failure(self, processor, mock_session):
        """Should raise when the watch page request fails"""
        mock_session.get.return_value = _response(status_code=429)

        with pytest.raises(RuntimeError, match="429"):
            processor.scrape_caption_track('dQw4w9WgXcQ')

    @pytest.mark.unit
    def test_empty_track(self, processor, mock_session, watch_page_html):
        """Should raise when the caption track has no text"""
        mock_session.get.side_effect = [
            _response(text=watch_page_html),
            _response(json_data={'events': []}),
        ]

        with pytest.raises(RuntimeError, match="empty"):
            processor.scrape_caption_track('dQw4w9WgXcQ')


class TestFetchVideoTitle:
    """Tests for fetch_video_title() method"""

    @pytest.mark.unit
    def test_reads_title_meta(self, processor, mock_session, watch_page_html):
        """Should prefer the title meta tag"""
        mock_session.get.return_value = _response(text=watch_page_html)
        assert processor.fetch_video_title('dQw4w9WgXcQ') == 'Habits Explained'

    @pytest.mark.unit
    def test_falls_back_to_og_title(self, processor, mock_session):
        """Should use og:title when the title meta tag is missing"""
        mock_session.get.return_value = _response(
            text='<html><head><meta property="og:title" content="OG Habits"></head></html>'
        )
        assert processor.fetch_video_title('dQw4w9WgXcQ') == 'OG Habits'

    @pytest.mark.unit
    def test_falls_back_to_video_id(self, processor, mock_session):
        """Should return the video ID on request errors"""
        mock_session.get.side_effect = requests.ConnectionError("offline")
        assert processor.fetch_video_title('dQw4w9WgXcQ') == 'dQw4w9WgXcQ'
