"""
YouTube Data API v3 search and video details
"""

import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import requests

from core.config import Config

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = 'https://www.googleapis.com/youtube/v3'
DETAILS_CHUNK_SIZE = 50

ORDERS = ('relevance', 'date', 'rating', 'viewCount', 'title')
VIDEO_DURATIONS = ('any', 'short', 'medium', 'long')
PUBLISHED_PERIODS = {
    'day': timedelta(days=1),
    'week': timedelta(days=7),
    'month': timedelta(days=30),
    'year': timedelta(days=365),
}

ISO_DURATION_RE = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?')


class YouTubeAPIError(RuntimeError):
    """Error response from the YouTube Data API"""


def parse_duration(iso_duration: str) -> int:
    """
    ISO 8601 video duration to seconds

    Examples:
        >>> parse_duration("PT4M13S")
        253
    """
    match = ISO_DURATION_RE.search(iso_duration or '')
    if not match:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_youtube_error(error: Exception) -> str:
    message = str(error)
    if 'quotaExceeded' in message:
        return 'YouTube API quota exceeded. Please try again tomorrow.'
    if 'invalidApiKey' in message or 'API key not valid' in message:
        return 'Invalid YouTube API key. Please check your configuration.'
    return f"YouTube API error: {message}"


def published_after_date(period: Optional[str], now: Optional[datetime] = None) -> Optional[str]:
    if not period or period not in PUBLISHED_PERIODS:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - PUBLISHED_PERIODS[period]).strftime('%Y-%m-%dT%H:%M:%SZ')


def _thumbnails(snippet: Dict) -> Dict[str, Optional[str]]:
    thumbs = snippet.get('thumbnails') or {}
    result = {size: (thumbs.get(size) or {}).get('url', '') for size in ('default', 'medium', 'high')}
    if thumbs.get('maxres'):
        result['maxres'] = thumbs['maxres'].get('url')
    return result


def _video_details(item: Dict) -> Dict:
    snippet = item.get('snippet') or {}
    statistics = item.get('statistics') or {}
    duration = (item.get('contentDetails') or {}).get('duration', '')
    return {
        'video_id': item['id'],
        'title': snippet.get('title'),
        'description': snippet.get('description'),
        'channel_id': snippet.get('channelId'),
        'channel_title': snippet.get('channelTitle'),
        'published_at': snippet.get('publishedAt'),
        'duration': duration,
        'duration_seconds': parse_duration(duration),
        'view_count': int(statistics.get('viewCount') or 0),
        'like_count': int(statistics.get('likeCount') or 0),
        'comment_count': int(statistics.get('commentCount') or 0),
        'tags': snippet.get('tags') or [],
        'category_id': snippet.get('categoryId'),
        'thumbnails': _thumbnails(snippet),
    }


class YouTubeSearch:
    """Thin YouTube Data API v3 client"""

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or Config.get_api_keys()['youtube']
        if not self.api_key:
            raise ValueError("YOUTUBE_API_KEY is not configured")
        self.session = session or requests.Session()

    def _get(self, endpoint: str, params: Dict) -> Dict:
        response = self.session.get(
            f"{YOUTUBE_API_BASE}/{endpoint}",
            params={**params, 'key': self.api_key},
            timeout=Config.SHORT_TIMEOUT,
        )
        if not response.ok:
            try:
                error = response.json().get('error') or {}
            except ValueError:
                error = {}
            reasons = [e.get('reason') for e in error.get('errors') or [] if e.get('reason')]
            message = error.get('message') or f"YouTube request failed with HTTP {response.status_code}"
            if reasons:
                message = f"{message} ({', '.join(reasons)})"
            raise YouTubeAPIError(message)
        return response.json()

    def search_videos(
        self,
        query: str,
        max_results: int = 10,
        order: str = 'relevance',
        video_duration: str = 'any',
        published_after: str = 'any',
        channel_id: Optional[str] = None,
        region_code: Optional[str] = None,
        page_token: Optional[str] = None,
    ) -> Dict:
        """
        Search videos

        Args:
            query: Search terms
            max_results: 1-50
            order: relevance, date, rating, viewCount or title
            video_duration: any, short, medium or long
            published_after: any, day, week, month or year

        Returns:
            {'items', 'total_results', 'next_page_token', 'prev_page_token'}
        """
        params = {
            'part': 'snippet',
            'type': 'video',
            'q': query,
            'maxResults': max_results,
            'order': order,
        }
        if video_duration and video_duration != 'any':
            params['videoDuration'] = video_duration
        after = published_after_date(published_after)
        if after:
            params['publishedAfter'] = after
        if channel_id:
            params['channelId'] = channel_id
        if region_code:
            params['regionCode'] = region_code
        if page_token:
            params['pageToken'] = page_token

        logger.info(f"🔍 [YOUTUBE] Searching for {query!r} (max {max_results}, order {order})")
        data = self._get('search', params)

        items = []
        for item in data.get('items') or []:
            snippet = item.get('snippet') or {}
            items.append({
                'video_id': (item.get('id') or {}).get('videoId'),
                'title': snippet.get('title'),
                'description': snippet.get('description'),
                'channel_id': snippet.get('channelId'),
                'channel_title': snippet.get('channelTitle'),
                'published_at': snippet.get('publishedAt'),
                'thumbnails': _thumbnails(snippet),
            })

        return {
            'items': items,
            'total_results': (data.get('pageInfo') or {}).get('totalResults', len(items)),
            'next_page_token': data.get('nextPageToken'),
            'prev_page_token': data.get('prevPageToken'),
        }

    def get_video_details(self, video_id: str) -> Optional[Dict]:
        data = self._get('videos', {'part': 'snippet,contentDetails,statistics', 'id': video_id})
        items = data.get('items') or []
        return _video_details(items[0]) if items else None

    def get_multiple_video_details(self, video_ids: List[str]) -> List[Dict]:
        """Details for many videos, 50 IDs per request; failed chunks are skipped"""
        results = []
        for start in range(0, len(video_ids), DETAILS_CHUNK_SIZE):
            chunk = video_ids[start:start + DETAILS_CHUNK_SIZE]
            try:
                data = self._get('videos', {'part': 'snippet,contentDetails,statistics', 'id': ','.join(chunk)})
            except (YouTubeAPIError, requests.RequestException) as e:
                logger.warning(f"⚠️ [YOUTUBE] Skipping details chunk of {len(chunk)} videos: {e}")
                continue
            results.extend(_video_details(item) for item in data.get('items') or [])
        return results
