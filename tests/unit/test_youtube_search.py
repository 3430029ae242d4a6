"""
Tests for core/youtube_search.py

The YouTube Data API is mocked through a fake requests.Session.
"""

import pytest
import requests
from datetime import datetime, timezone
from unittest.mock import Mock

from core.youtube_search import (
    YouTubeAPIError,
    YouTubeSearch,
    format_duration,
    format_youtube_error,
    parse_duration,
    published_after_date,
)


def api_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    return response


def video_item(video_id, duration='PT4M13S', views='1500'):
    return {
        'id': video_id,
        'snippet': {
            'title': f"Video {video_id}",
            'channelId': 'UC123',
            'channelTitle': 'Habit Lab',
            'publishedAt': '2024-10-01T00:00:00Z',
            'thumbnails': {'medium': {'url': f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"}},
        },
        'contentDetails': {'duration': duration},
        'statistics': {'viewCount': views, 'likeCount': '42'},
    }


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


@pytest.fixture
def search(mock_session):
    return YouTubeSearch(api_key='yt-key', session=mock_session)


class TestHelpers:
    """Tests for duration and error helpers"""

    @pytest.mark.unit
    def test_parse_duration(self):
        assert parse_duration('PT4M13S') == 253
        assert parse_duration('PT1H2M3S') == 3723
        assert parse_duration('PT45S') == 45
        assert parse_duration('') == 0
        assert parse_duration('P1D') == 0

    @pytest.mark.unit
    def test_format_duration(self):
        assert format_duration(253) == '4:13'
        assert format_duration(3723) == '1:02:03'

    @pytest.mark.unit
    def test_format_youtube_error(self):
        """Should turn quota and key errors into friendly messages"""
        assert 'quota exceeded' in format_youtube_error(YouTubeAPIError('Daily limit (quotaExceeded)'))
        assert 'Invalid YouTube API key' in format_youtube_error(YouTubeAPIError('API key not valid.'))
        assert format_youtube_error(YouTubeAPIError('boom')) == 'YouTube API error: boom'

    @pytest.mark.unit
    def test_published_after_date(self):
        now = datetime(2024, 10, 23, 12, 0, tzinfo=timezone.utc)
        assert published_after_date('week', now) == '2024-10-16T12:00:00Z'
        assert published_after_date('any', now) is None
        assert published_after_date(None, now) is None


class TestYouTubeSearch:
    """Tests for YouTubeSearch"""

    @pytest.mark.unit
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv('YOUTUBE_API_KEY', raising=False)
        with pytest.raises(ValueError, match="YOUTUBE_API_KEY"):
            YouTubeSearch(api_key=None)

    @pytest.mark.unit
    def test_search_params_and_results(self, search, mock_session):
        """Should send filters only when set and normalize items"""
        mock_session.get.return_value = api_response({
            'items': [{
                'id': {'videoId': 'abc123def45'},
                'snippet': {'title': 'Atomic Habits', 'channelTitle': 'Habit Lab', 'channelId': 'UC123'},
            }],
            'pageInfo': {'totalResults': 1234},
            'nextPageToken': 'NEXT',
        })

        result = search.search_videos('atomic habits', max_results=5, video_duration='medium',
                                      region_code='US')

        url = mock_session.get.call_args.args[0]
        params = mock_session.get.call_args.kwargs['params']
        assert url == 'https://www.googleapis.com/youtube/v3/search'
        assert params['q'] == 'atomic habits'
        assert params['maxResults'] == 5
        assert params['videoDuration'] == 'medium'
        assert params['regionCode'] == 'US'
        assert params['key'] == 'yt-key'
        assert 'publishedAfter' not in params
        assert 'channelId' not in params

        assert result['total_results'] == 1234
        assert result['next_page_token'] == 'NEXT'
        assert result['prev_page_token'] is None
        item = result['items'][0]
        assert item['video_id'] == 'abc123def45'
        assert item['channel_title'] == 'Habit Lab'
        assert item['thumbnails']['default'] == ''

    @pytest.mark.unit
    def test_api_error_includes_reasons(self, search, mock_session):
        """Should raise YouTubeAPIError with the API's reasons"""
        mock_session.get.return_value = api_response({
            'error': {'message': 'The request cannot be completed.', 'errors': [{'reason': 'quotaExceeded'}]},
        }, status_code=403)

        with pytest.raises(YouTubeAPIError) as exc_info:
            search.search_videos('habits')

        assert str(exc_info.value) == 'The request cannot be completed. (quotaExceeded)'

    @pytest.mark.unit
    def test_api_error_without_body(self, search, mock_session):
        response = api_response(None, status_code=500)
        response.json.side_effect = ValueError("no json")
        mock_session.get.return_value = response

        with pytest.raises(YouTubeAPIError, match="HTTP 500"):
            search.search_videos('habits')

    @pytest.mark.unit
    def test_video_details(self, search, mock_session):
        mock_session.get.return_value = api_response({'items': [video_item('abc123def45')]})

        details = search.get_video_details('abc123def45')

        assert details['duration_seconds'] == 253
        assert details['view_count'] == 1500
        assert details['like_count'] == 42
        assert details['comment_count'] == 0
        assert details['tags'] == []

    @pytest.mark.unit
    def test_video_details_missing(self, search, mock_session):
        mock_session.get.return_value = api_response({'items': []})
        assert search.get_video_details('gone') is None

    @pytest.mark.unit
    def test_multiple_details_chunks_and_skips_failures(self, search, mock_session):
        """Should request 50 IDs at a time and skip chunks that fail"""
        ids = [f"vid{i:08d}" for i in range(120)]
        mock_session.get.side_effect = [
            api_response({'items': [video_item(ids[0])]}),
            api_response({'error': {'message': 'Backend Error'}}, status_code=500),
            api_response({'items': [video_item(ids[100]), video_item(ids[101])]}),
        ]

        details = search.get_multiple_video_details(ids)

        assert [d['video_id'] for d in details] == [ids[0], ids[100], ids[101]]
        chunks = [c.kwargs['params']['id'].split(',') for c in mock_session.get.call_args_list]
        assert [len(c) for c in chunks] == [50, 50, 20]
